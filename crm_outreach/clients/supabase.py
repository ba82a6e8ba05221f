# crm_outreach/clients/supabase.py
"""Supabase store for people, companies and jobs."""

import os
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional

from supabase import create_client, Client
import structlog

from crm_outreach.automation.results import OperationResult
from crm_outreach.core.config import TablesConfig

log = structlog.get_logger()

# Entity name -> TablesConfig field
FAVORITE_TABLES = {
    "lead": "people",
    "company": "companies",
    "job": "jobs",
}


def _pick(row: dict, *keys: str) -> Any:
    """Return the first non-empty value among keys."""
    for key in keys:
        value = row.get(key)
        if value is not None and value != "":
            return value
    return None


def _as_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    return str(value)


@dataclass
class Lead:
    """Person record from Supabase, normalized across key conventions."""
    id: str
    name: str = ""
    company_id: Optional[str] = None
    company: Optional[str] = None
    company_role: Optional[str] = None
    email: Optional[str] = None
    location: Optional[str] = None
    linkedin_url: Optional[str] = None
    linkedin_request_message: Optional[str] = None
    linkedin_connected_message: Optional[str] = None
    linkedin_follow_up_message: Optional[str] = None
    stage: Optional[str] = None
    priority: Optional[str] = None
    lead_score: Optional[str] = None
    automation_status: Optional[str] = None
    created_at: Optional[str] = None
    automation_started_at: Optional[str] = None

    @property
    def first_name(self) -> str:
        parts = (self.name or "").split()
        return parts[0] if parts else ""

    @classmethod
    def from_row(cls, row: dict) -> "Lead":
        """Build a Lead from either display-style or column-style keys."""
        return cls(
            id=str(row["id"]),
            name=_pick(row, "Name", "name") or "",
            company_id=_as_str(_pick(row, "company_id")),
            company=_pick(row, "Company", "company"),
            company_role=_pick(row, "Company Role", "company_role"),
            email=_pick(row, "Email Address", "email_address", "email"),
            location=_pick(row, "Employee Location", "employee_location", "location"),
            linkedin_url=_pick(row, "LinkedIn URL", "linkedin_url"),
            linkedin_request_message=_pick(
                row, "LinkedIn Request Message", "linkedin_request_message"
            ),
            linkedin_connected_message=_pick(
                row, "LinkedIn Connected Message", "linkedin_connected_message"
            ),
            linkedin_follow_up_message=_pick(
                row, "LinkedIn Follow Up Message", "linkedin_follow_up_message"
            ),
            stage=_pick(row, "Stage", "stage", "stage_enum"),
            priority=_pick(row, "priority_enum", "priority", "Priority"),
            lead_score=_as_str(_pick(row, "Lead Score", "lead_score")),
            automation_status=_pick(
                row, "automation_status_enum", "Automation Status", "automation_status"
            ),
            created_at=_as_str(row.get("created_at")),
            automation_started_at=_as_str(row.get("automation_started_at")),
        )


@dataclass
class Company:
    """Company record from Supabase."""
    id: str
    name: str = ""
    industry: Optional[str] = None
    size: Optional[str] = None
    website: Optional[str] = None
    linkedin_url: Optional[str] = None
    lead_score: Optional[str] = None
    score_reason: Optional[str] = None
    automation_active: bool = False

    @classmethod
    def from_row(cls, row: dict) -> "Company":
        return cls(
            id=str(row["id"]),
            name=_pick(row, "Company Name", "name") or "",
            industry=_pick(row, "Industry", "industry"),
            size=_as_str(_pick(row, "Company Size", "company_size", "size")),
            website=_pick(row, "Website", "website"),
            linkedin_url=_pick(row, "Company LinkedIn", "linkedin_url"),
            lead_score=_as_str(_pick(row, "Lead Score", "lead_score")),
            score_reason=_pick(row, "Score Reason", "score_reason"),
            automation_active=bool(row.get("automation_active") or False),
        )


@dataclass
class Job:
    """Job posting record from Supabase."""
    id: str
    title: str = ""
    company_id: Optional[str] = None
    location: Optional[str] = None
    function: Optional[str] = None
    salary: Optional[str] = None
    posted_date: Optional[str] = None
    valid_through: Optional[str] = None
    lead_score_job: Optional[str] = None

    @classmethod
    def from_row(cls, row: dict) -> "Job":
        return cls(
            id=str(row["id"]),
            title=_pick(row, "Job Title", "title") or "",
            company_id=_as_str(_pick(row, "company_id")),
            location=_pick(row, "Job Location", "location"),
            function=_pick(row, "Function", "function"),
            salary=_as_str(_pick(row, "Salary", "salary")),
            posted_date=_as_str(_pick(row, "Posted Date", "posted_date")),
            valid_through=_as_str(_pick(row, "Valid Through", "valid_through")),
            lead_score_job=_as_str(_pick(row, "lead_score_job")),
        )


class SupabaseStore:
    """Store for Supabase database operations used by the automation flow."""

    def __init__(self, client: Optional[Client] = None, tables: Optional[TablesConfig] = None):
        """Initialize Supabase client from environment variables."""
        self.tables = tables or TablesConfig()
        if client is not None:
            self.client = client
            return

        url = os.getenv("SUPABASE_URL")
        key = os.getenv("SUPABASE_KEY")

        if not url:
            raise ValueError("SUPABASE_URL environment variable is required")
        if not key:
            raise ValueError("SUPABASE_KEY environment variable is required")

        self.client: Client = create_client(url, key)

    def get_leads(self, lead_ids: list[str]) -> list[Lead]:
        """Fetch leads by id, preserving the requested order."""
        if not lead_ids:
            return []
        result = (
            self.client.table(self.tables.people)
            .select("*")
            .in_("id", lead_ids)
            .execute()
        )
        by_id = {str(row["id"]): Lead.from_row(row) for row in result.data}
        missing = [lead_id for lead_id in lead_ids if lead_id not in by_id]
        if missing:
            log.warning("leads_not_found", lead_ids=missing)
        return [by_id[lead_id] for lead_id in lead_ids if lead_id in by_id]

    def get_company(self, company_id: str) -> Optional[Company]:
        """Fetch a single company, or None if it does not exist."""
        result = (
            self.client.table(self.tables.companies)
            .select("*")
            .eq("id", company_id)
            .execute()
        )
        if not result.data:
            return None
        return Company.from_row(result.data[0])

    def refresh_lead(self, lead_id: str) -> Optional[Lead]:
        """Re-fetch one lead after a mutation."""
        leads = self.get_leads([lead_id])
        return leads[0] if leads else None

    def refresh_company(self, company_id: str) -> Optional[Company]:
        """Re-fetch one company after a mutation."""
        return self.get_company(company_id)

    def update_lead_outreach(
        self,
        lead_id: str,
        request: str,
        connected: str,
        follow_up: str,
        stage: str = "contacted",
        started_at: Optional[datetime] = None,
    ) -> None:
        """Write the message bundle, stage and automation timestamp for one lead.

        Raises on backend errors; callers decide how to report them.
        """
        started_at = started_at or datetime.now(timezone.utc)
        data = {
            "linkedin_request_message": request,
            "linkedin_connected_message": connected,
            "linkedin_follow_up_message": follow_up,
            "stage": stage,
            "automation_started_at": started_at.isoformat(),
        }
        self.client.table(self.tables.people).update(data).eq("id", lead_id).execute()
        log.info("lead_outreach_updated", lead_id=lead_id, stage=stage)

    def mark_company_automated(
        self, company_id: str, owner_id: Optional[str] = None
    ) -> OperationResult:
        """Flag a company as under automation and optionally assign its owner."""
        data = {"automation_active": True, "pipeline_stage": "automated"}
        if owner_id:
            data["owner_id"] = owner_id

        try:
            self.client.table(self.tables.companies).update(data).eq("id", company_id).execute()
        except Exception as e:
            log.warning("company_automation_flag_failed", company_id=company_id, error=str(e))
            return OperationResult.failure(str(e))

        log.info("company_marked_automated", company_id=company_id, owner_id=owner_id)
        return OperationResult.success()

    def toggle_favorite(self, entity: str, entity_id: str, favorite: bool) -> OperationResult:
        """Set the favorite flag on a lead, company or job."""
        field = FAVORITE_TABLES.get(entity)
        if field is None:
            return OperationResult.failure(f"Unknown entity type: {entity}")
        table = getattr(self.tables, field)

        try:
            self.client.table(table).update({"is_favorite": favorite}).eq("id", entity_id).execute()
        except Exception as e:
            log.error("favorite_toggle_failed", entity=entity, entity_id=entity_id, error=str(e))
            return OperationResult.failure(str(e))

        log.info("favorite_toggled", entity=entity, entity_id=entity_id, favorite=favorite)
        return OperationResult.success()
