"""Configuration loading and models."""

import os
import re
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field

DEFAULT_WEBHOOK_URL = "https://n8n.srv814433.hstgr.cloud/webhook/crm"


class WebhookConfig(BaseModel):
    url: str = DEFAULT_WEBHOOK_URL
    user_agent: str = "CRM-Automation/1.0"
    timeout_seconds: Optional[float] = None  # None keeps the httpx default


class AutomationConfig(BaseModel):
    contacted_stage: str = "contacted"
    owner_id: str = ""  # Assigned to the company on hand-off when set
    message_char_limit: int = 300  # LinkedIn connection note limit, advisory only


class TablesConfig(BaseModel):
    people: str = "people"
    companies: str = "companies"
    jobs: str = "jobs"


class Settings(BaseModel):
    webhook: WebhookConfig = Field(default_factory=WebhookConfig)
    automation: AutomationConfig = Field(default_factory=AutomationConfig)
    tables: TablesConfig = Field(default_factory=TablesConfig)


DEFAULT_CONFIG_PATH = Path("config")

PLACEHOLDER_RE = re.compile(r"\{\{(\w+)\}\}")


def load_settings(config_path: Path = DEFAULT_CONFIG_PATH) -> Settings:
    """Load settings from YAML file, then fill unset values from env vars."""
    settings_file = config_path / "settings.yaml"

    if settings_file.exists():
        with open(settings_file) as f:
            data = yaml.safe_load(f) or {}
        settings = Settings(**data)
    else:
        settings = Settings()

    env_webhook_url = os.environ.get("CRM_WEBHOOK_URL", "")
    if env_webhook_url and settings.webhook.url == DEFAULT_WEBHOOK_URL:
        settings.webhook.url = env_webhook_url

    if not settings.automation.owner_id:
        settings.automation.owner_id = os.environ.get("CRM_OWNER_ID", "")

    return settings


def load_template(config_path: Path, template_name: str) -> str:
    """Load a template file."""
    template_file = config_path / template_name
    return template_file.read_text()


def render_template(template: str, variables: dict) -> str:
    """Render a template with variable substitution.

    Single pass: substituted values are never re-scanned for placeholders.
    Unknown placeholders are left as-is.
    """
    def substitute(match: re.Match) -> str:
        key = match.group(1)
        if key not in variables:
            return match.group(0)
        value = variables[key]
        return str(value) if value else ""

    return PLACEHOLDER_RE.sub(substitute, template)


class MessageTemplate(BaseModel):
    """LinkedIn message template for one slot of the outreach sequence."""
    name: str
    body: str


def load_templates(config_path: Path = DEFAULT_CONFIG_PATH) -> list[MessageTemplate]:
    """Load and parse linkedin_templates.md into list of MessageTemplate objects."""
    templates_file = config_path / "linkedin_templates.md"

    if not templates_file.exists():
        return []

    content = templates_file.read_text()

    # Split on frontmatter delimiters (---)
    sections = re.split(r'^---\s*$', content, flags=re.MULTILINE)

    templates = []
    # Process pairs of (frontmatter, body)
    i = 1
    while i < len(sections) - 1:
        frontmatter = sections[i].strip()
        body = sections[i + 1].strip()

        if not frontmatter:
            i += 2
            continue

        meta = yaml.safe_load(frontmatter)
        if not meta or "template" not in meta:
            i += 2
            continue

        templates.append(MessageTemplate(name=meta["template"], body=body))
        i += 2

    return templates

