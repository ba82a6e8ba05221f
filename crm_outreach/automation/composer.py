"""LinkedIn message composition for the three-step outreach sequence."""

from dataclasses import dataclass, replace
from pathlib import Path
from typing import Optional

import structlog

from crm_outreach.clients.supabase import Lead
from crm_outreach.core.config import DEFAULT_CONFIG_PATH, load_templates, render_template

log = structlog.get_logger()

SLOTS = ("request", "connected", "follow_up")

DEFAULT_TEMPLATES = {
    "request": (
        "Hi {{first_name}},\n\n"
        "I came across your profile and noticed your experience as a {{role}} at {{company}}. "
        "{{job_line}}\n\n"
        "Would you be open to a brief conversation?\n\n"
        "Best regards"
    ),
    "connected": (
        "Thank you for connecting! I'd love to learn more about your experience at {{company}}."
    ),
    "follow_up": "Following up on our connection. I hope you're doing well!",
}

JOB_LINE = "We have an exciting opportunity for a {{job_title}} role that might interest you."
NO_JOB_LINE = "I'd love to connect and discuss potential opportunities."


@dataclass(frozen=True)
class MessageBundle:
    """Request, connected and follow-up text for one lead."""
    request: str
    connected: str
    follow_up: str

    def with_slot(self, slot: str, text: str) -> "MessageBundle":
        if slot not in SLOTS:
            raise ValueError(f"Unknown message slot: {slot}")
        return replace(self, **{slot: text})


def stored_text(lead: Lead, slot: str) -> Optional[str]:
    """Stored message for a slot, or None if empty or whitespace."""
    value = {
        "request": lead.linkedin_request_message,
        "connected": lead.linkedin_connected_message,
        "follow_up": lead.linkedin_follow_up_message,
    }[slot]
    if value and value.strip():
        return value
    return None


def template_variables(
    lead: Lead,
    company_name: Optional[str] = None,
    job_title: Optional[str] = None,
) -> dict:
    """Variables available to message templates."""
    company = lead.company or company_name or "your company"
    job_line = render_template(JOB_LINE, {"job_title": job_title}) if job_title else NO_JOB_LINE
    return {
        "first_name": lead.first_name or "there",
        "name": lead.name,
        "role": lead.company_role or "professional",
        "company": company,
        "job_title": job_title or "",
        "job_line": job_line,
    }


def configured_templates(config_path: Path = DEFAULT_CONFIG_PATH) -> dict[str, str]:
    """Slot name to template body, from linkedin_templates.md if present."""
    return {t.name: t.body for t in load_templates(config_path) if t.name in SLOTS}


def compose_bundle(
    lead: Lead,
    company_name: Optional[str] = None,
    job_title: Optional[str] = None,
    config_path: Path = DEFAULT_CONFIG_PATH,
    templates: Optional[dict[str, str]] = None,
) -> MessageBundle:
    """Build the initial bundle for a lead.

    Stored text wins verbatim; otherwise the configured template for the slot
    is rendered, falling back to the built-in default. Pass templates from
    configured_templates() to avoid re-reading the config directory per lead.
    """
    if templates is None:
        templates = configured_templates(config_path)
    variables = template_variables(lead, company_name, job_title)
    texts = {}
    for slot in SLOTS:
        existing = stored_text(lead, slot)
        if existing is not None:
            texts[slot] = existing
            continue

        template = templates.get(slot) or DEFAULT_TEMPLATES[slot]
        texts[slot] = render_template(template, variables)

    log.debug("bundle_composed", lead_id=lead.id, job_title=job_title)
    return MessageBundle(**texts)


def character_count(text: str, limit: int = 300) -> dict:
    """Advisory counter shown next to a message; never enforced."""
    length = len(text or "")
    return {"length": length, "limit": limit, "over_limit": length > limit}


class MessageDrafts:
    """Editable bundles for every lead in a session, keyed by lead id."""

    def __init__(
        self,
        company_name: Optional[str] = None,
        job_title: Optional[str] = None,
        config_path: Path = DEFAULT_CONFIG_PATH,
        char_limit: int = 300,
    ):
        self.company_name = company_name
        self.job_title = job_title
        self.config_path = config_path
        self.char_limit = char_limit
        self.templates = configured_templates(config_path)
        self._bundles: dict[str, MessageBundle] = {}

    def ensure(self, lead: Lead) -> MessageBundle:
        """Compose a bundle for the lead unless one is already drafted."""
        if lead.id not in self._bundles:
            self._bundles[lead.id] = compose_bundle(
                lead, self.company_name, self.job_title, self.config_path, self.templates
            )
        return self._bundles[lead.id]

    def get(self, lead_id: str) -> Optional[MessageBundle]:
        return self._bundles.get(lead_id)

    def edit(self, lead_id: str, slot: str, text: str) -> MessageBundle:
        """Replace one slot's text. Over-limit text is logged, not rejected."""
        if lead_id not in self._bundles:
            raise KeyError(f"No draft for lead {lead_id}")

        counter = character_count(text, self.char_limit)
        if counter["over_limit"]:
            log.warning(
                "message_over_char_limit",
                lead_id=lead_id,
                slot=slot,
                length=counter["length"],
                limit=self.char_limit,
            )

        bundle = self._bundles[lead_id].with_slot(slot, text)
        self._bundles[lead_id] = bundle
        return bundle

    def discard(self, lead_id: str) -> None:
        self._bundles.pop(lead_id, None)

    def clear(self) -> None:
        self._bundles.clear()

    def snapshot(self, lead_ids: list[str]) -> dict[str, MessageBundle]:
        """Frozen bundles for the given leads, as submitted."""
        return {lead_id: self._bundles[lead_id] for lead_id in lead_ids}
