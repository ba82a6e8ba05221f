"""Selection set for an automation session."""

from typing import Iterator

import structlog

from crm_outreach.clients.supabase import Lead

log = structlog.get_logger()


class SelectionSet:
    """Leads checked for the current automation batch, keyed by lead id.

    Membership is by id, so a lead re-fetched for another list view is still
    selected. Insertion order is kept for display and dispatch.
    """

    def __init__(self):
        self._leads: dict[str, Lead] = {}

    def toggle(self, lead: Lead) -> "SelectionSet":
        """Add the lead if absent, remove it if present."""
        if lead.id in self._leads:
            del self._leads[lead.id]
            log.debug("lead_deselected", lead_id=lead.id)
        else:
            self._leads[lead.id] = lead
            log.debug("lead_selected", lead_id=lead.id)
        return self

    def is_selected(self, lead: Lead) -> bool:
        return lead.id in self._leads

    def refresh(self, leads: list[Lead]) -> None:
        """Swap in newer copies of selected leads without changing membership."""
        for lead in leads:
            if lead.id in self._leads:
                self._leads[lead.id] = lead

    def clear(self) -> None:
        self._leads.clear()

    @property
    def ids(self) -> list[str]:
        return list(self._leads)

    @property
    def leads(self) -> list[Lead]:
        return list(self._leads.values())

    def __contains__(self, lead: object) -> bool:
        if isinstance(lead, Lead):
            return lead.id in self._leads
        return lead in self._leads

    def __len__(self) -> int:
        return len(self._leads)

    def __iter__(self) -> Iterator[Lead]:
        return iter(self.leads)
