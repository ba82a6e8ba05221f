"""Webhook dispatch to the n8n automation workflow."""

import asyncio
from datetime import datetime, timezone
from typing import Optional

import httpx
import structlog

from crm_outreach.automation.composer import MessageBundle
from crm_outreach.automation.results import DispatchOutcome, DispatchStatus
from crm_outreach.clients.supabase import Company, Lead
from crm_outreach.core.config import WebhookConfig

log = structlog.get_logger()

SOURCE = "crm_automation"
ACTION = "lead_automation_trigger"


def _utc_timestamp() -> str:
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def build_payload(
    lead: Lead,
    bundle: MessageBundle,
    company: Optional[Company] = None,
    job_title: Optional[str] = None,
    company_name: Optional[str] = None,
    timestamp: Optional[str] = None,
) -> dict:
    """Build the webhook body for one lead.

    The message fields come from the same bundle that was persisted.
    """
    lead_body = {
        "id": lead.id,
        "name": lead.name,
        "company": lead.company,
        "companyRole": lead.company_role,
        "email": lead.email,
        "location": lead.location,
        "linkedinUrl": lead.linkedin_url,
        "stage": lead.stage,
        "priority": lead.priority,
        "leadScore": lead.lead_score,
        "automationStatus": lead.automation_status,
        "createdAt": lead.created_at,
        "linkedinMessage": bundle.request,
        "linkedinConnectedMessage": bundle.connected,
        "linkedinFollowUpMessage": bundle.follow_up,
    }
    if job_title:
        lead_body["jobTitle"] = job_title
    if company_name:
        lead_body["companyName"] = company_name

    payload = {
        "timestamp": timestamp or _utc_timestamp(),
        "source": SOURCE,
        "action": ACTION,
        "lead": lead_body,
    }

    if company is not None:
        payload["company"] = {
            "id": company.id,
            "name": company.name,
            "industry": company.industry,
            "size": company.size,
            "website": company.website,
            "linkedinUrl": company.linkedin_url,
            "leadScore": company.lead_score,
            "scoreReason": company.score_reason,
            "automationActive": company.automation_active,
        }

    return payload


class WebhookDispatcher:
    """POSTs one payload per lead; each call is fired once and never retried."""

    def __init__(self, config: Optional[WebhookConfig] = None):
        self.config = config or WebhookConfig()

    def _client_kwargs(self) -> dict:
        kwargs = {"headers": {"User-Agent": self.config.user_agent}}
        if self.config.timeout_seconds is not None:
            kwargs["timeout"] = self.config.timeout_seconds
        return kwargs

    async def _send(self, client: httpx.AsyncClient, lead_id: str, payload: dict) -> DispatchOutcome:
        try:
            response = await client.post(
                self.config.url,
                json=payload,
                headers={"Content-Type": "application/json"},
            )
        except httpx.HTTPError as e:
            log.error("webhook_network_error", lead_id=lead_id, error=str(e))
            return DispatchOutcome(lead_id, DispatchStatus.NETWORK_ERROR, error=str(e))

        if 200 <= response.status_code < 300:
            log.info("webhook_delivered", lead_id=lead_id, status_code=response.status_code)
            return DispatchOutcome(lead_id, DispatchStatus.DELIVERED, status_code=response.status_code)

        log.error("webhook_rejected", lead_id=lead_id, status_code=response.status_code)
        return DispatchOutcome(
            lead_id,
            DispatchStatus.REJECTED,
            status_code=response.status_code,
            error=f"Webhook failed: {response.status_code}",
        )

    async def dispatch_batch(
        self,
        leads: list[Lead],
        bundles: dict[str, MessageBundle],
        company: Optional[Company] = None,
        job_title: Optional[str] = None,
        company_name: Optional[str] = None,
    ) -> list[DispatchOutcome]:
        """Send every lead's payload concurrently and wait for all to settle."""
        log.info("dispatch_batch_started", count=len(leads), url=self.config.url)

        async with httpx.AsyncClient(**self._client_kwargs()) as client:
            outcomes = await asyncio.gather(*[
                self._send(
                    client,
                    lead.id,
                    build_payload(lead, bundles[lead.id], company, job_title, company_name),
                )
                for lead in leads
            ])

        delivered = sum(1 for o in outcomes if o.ok)
        log.info("dispatch_batch_completed", count=len(outcomes), delivered=delivered)
        return list(outcomes)
