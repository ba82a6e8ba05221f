"""Automation session: select, compose, persist, dispatch, summarize."""

import asyncio
from pathlib import Path
from typing import Optional

import structlog

from crm_outreach.automation.composer import MessageBundle, MessageDrafts
from crm_outreach.automation.dispatcher import WebhookDispatcher
from crm_outreach.automation.persistence import persist_batch
from crm_outreach.automation.results import BatchSummary, OperationResult, aggregate
from crm_outreach.automation.selection import SelectionSet
from crm_outreach.clients.supabase import Company, Lead, SupabaseStore
from crm_outreach.core.config import DEFAULT_CONFIG_PATH, Settings
from crm_outreach.services.slack_notifier import SlackNotifier

log = structlog.get_logger()


class EmptySelectionError(ValueError):
    """Raised when a batch is submitted with no leads selected."""


class AutomationSession:
    """One automation batch, from the first checkbox to the result summary.

    Every surface that starts LinkedIn automation goes through this class, so
    the persisted messages and the webhook payload always come from the same
    bundle.
    """

    def __init__(
        self,
        store: SupabaseStore,
        dispatcher: WebhookDispatcher,
        settings: Optional[Settings] = None,
        company: Optional[Company] = None,
        company_name: Optional[str] = None,
        job_title: Optional[str] = None,
        notifier: Optional[SlackNotifier] = None,
        config_path: Path = DEFAULT_CONFIG_PATH,
    ):
        self.store = store
        self.dispatcher = dispatcher
        self.settings = settings or Settings()
        self.company = company
        self.company_name = company_name or (company.name if company else None)
        self.job_title = job_title
        self.notifier = notifier
        self.selection = SelectionSet()
        self.drafts = MessageDrafts(
            company_name=self.company_name,
            job_title=job_title,
            config_path=config_path,
            char_limit=self.settings.automation.message_char_limit,
        )
        self.is_open = True
        self.last_summary: Optional[BatchSummary] = None

    def toggle(self, lead: Lead) -> SelectionSet:
        """Toggle a lead; newly selected leads get a composed draft."""
        self.selection.toggle(lead)
        if self.selection.is_selected(lead):
            self.drafts.ensure(lead)
        return self.selection

    def select_all(self, leads: list[Lead]) -> SelectionSet:
        for lead in leads:
            if not self.selection.is_selected(lead):
                self.toggle(lead)
        return self.selection

    def edit(self, lead_id: str, slot: str, text: str) -> MessageBundle:
        if lead_id not in self.selection:
            raise KeyError(f"Lead {lead_id} is not selected")
        return self.drafts.edit(lead_id, slot, text)

    def bundles(self) -> dict[str, MessageBundle]:
        return self.drafts.snapshot(self.selection.ids)

    async def _mark_company(self) -> Optional[OperationResult]:
        if self.company is None:
            return None
        owner_id = self.settings.automation.owner_id or None
        loop = asyncio.get_event_loop()
        return await loop.run_in_executor(
            None,
            lambda: self.store.mark_company_automated(self.company.id, owner_id),
        )

    async def submit(self) -> BatchSummary:
        """Persist and dispatch every selected lead, then summarize.

        Dispatch runs for every lead whatever the persistence outcome. Nothing
        is rolled back and nothing is retried. In-flight calls are not
        cancelled by close().
        """
        if not len(self.selection):
            raise EmptySelectionError("Select at least one lead to automate")

        leads = self.selection.leads
        bundles = self.bundles()
        log.info(
            "automation_submit_started",
            count=len(leads),
            company=self.company_name,
            job_title=self.job_title,
        )

        persist_outcomes = await persist_batch(
            self.store, bundles, stage=self.settings.automation.contacted_stage
        )
        await self._mark_company()

        dispatch_outcomes = await self.dispatcher.dispatch_batch(
            leads,
            bundles,
            company=self.company,
            job_title=self.job_title,
            company_name=self.company_name,
        )

        summary = aggregate(persist_outcomes, dispatch_outcomes)
        self.last_summary = summary
        log.info("automation_submit_completed", level=summary.level, **summary.as_dict())

        if self.notifier is not None:
            await self.notifier.send_automation_summary(summary, self.company_name)

        if summary.full_success:
            self.close()
        return summary

    def close(self) -> None:
        """Drop local selection and drafts."""
        self.selection.clear()
        self.drafts.clear()
        self.is_open = False
