"""Core infrastructure: CLI, config."""

from crm_outreach.core.config import (
    Settings,
    WebhookConfig,
    AutomationConfig,
    MessageTemplate,
    load_settings,
    load_template,
    load_templates,
    render_template,
)
