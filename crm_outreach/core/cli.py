"""Command-line interface for LinkedIn outreach automation."""

import asyncio
from pathlib import Path
from typing import Optional

import click
import structlog
import yaml

from crm_outreach.automation.composer import SLOTS, character_count
from crm_outreach.automation.dispatcher import WebhookDispatcher
from crm_outreach.automation.session import AutomationSession, EmptySelectionError
from crm_outreach.clients.supabase import FAVORITE_TABLES, SupabaseStore
from crm_outreach.core.config import DEFAULT_CONFIG_PATH, Settings, load_settings
from crm_outreach.services.slack_notifier import SlackNotifier

# Configure structlog for CLI output
structlog.configure(
    processors=[
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.dev.ConsoleRenderer()
    ]
)

log = structlog.get_logger()


def build_session(
    store: SupabaseStore,
    settings: Settings,
    lead_ids: tuple,
    company_id: Optional[str],
    job_title: Optional[str],
    config_path: Path,
    notifier: Optional[SlackNotifier] = None,
) -> AutomationSession:
    """Load leads and company context and select every requested lead."""
    company = store.get_company(company_id) if company_id else None
    if company_id and company is None:
        raise click.ClickException(f"Company not found: {company_id}")

    session = AutomationSession(
        store,
        WebhookDispatcher(settings.webhook),
        settings=settings,
        company=company,
        job_title=job_title,
        notifier=notifier,
        config_path=config_path,
    )
    session.select_all(store.get_leads(list(lead_ids)))
    return session


def apply_message_file(session: AutomationSession, message_file: Path) -> int:
    """Apply edits from a YAML file mapping lead id to slot texts."""
    with open(message_file) as f:
        edits = yaml.safe_load(f) or {}

    applied = 0
    for lead_id, slots in edits.items():
        lead_id = str(lead_id)
        if lead_id not in session.selection:
            click.echo(f"  Skipping edits for unselected lead {lead_id}")
            continue
        slots = slots or {}
        if not isinstance(slots, dict):
            raise click.ClickException(f"Edits for lead {lead_id} must map slot names to text")
        for slot, text in slots.items():
            if slot not in SLOTS:
                raise click.ClickException(
                    f"Unknown message slot '{slot}' for lead {lead_id} (expected one of: {', '.join(SLOTS)})"
                )
            if not isinstance(text, str) or not text.strip():
                raise click.ClickException(f"Message for lead {lead_id} slot '{slot}' must be non-empty text")
            session.edit(lead_id, slot, text)
            applied += 1
    return applied


@click.group()
def cli():
    """CRM outreach automation - LinkedIn sequences via n8n."""


@cli.command()
@click.argument("lead_ids", nargs=-1, required=True)
@click.option("--company-id", default=None, help="Company the leads were selected from")
@click.option("--job-title", default=None, help="Job context for the request message")
@click.option("--config", "config_path", type=click.Path(), default=str(DEFAULT_CONFIG_PATH),
              help="Config directory path")
def preview(lead_ids: tuple, company_id: Optional[str], job_title: Optional[str], config_path: str):
    """Show the messages that would be sent, without writing anything."""
    config = Path(config_path)
    settings = load_settings(config)
    store = SupabaseStore(tables=settings.tables)

    session = build_session(store, settings, lead_ids, company_id, job_title, config)
    limit = settings.automation.message_char_limit

    for lead in session.selection:
        bundle = session.drafts.get(lead.id)
        click.echo("=" * 40)
        click.echo(f"{lead.name} ({lead.company_role or 'N/A'} at {lead.company or 'N/A'})")
        click.echo(f"LinkedIn: {lead.linkedin_url or 'No LinkedIn'}")
        click.echo("=" * 40)
        for slot in SLOTS:
            text = getattr(bundle, slot)
            counter = character_count(text, limit)
            marker = " (over limit)" if counter["over_limit"] else ""
            click.echo(f"\n[{slot}] {counter['length']}/{limit}{marker}")
            click.echo(text)
        click.echo()


@cli.command()
@click.argument("lead_ids", nargs=-1, required=True)
@click.option("--company-id", default=None, help="Company the leads were selected from")
@click.option("--job-title", default=None, help="Job context for the request message")
@click.option("--message-file", type=click.Path(exists=True), default=None,
              help="YAML file of per-lead message edits")
@click.option("--config", "config_path", type=click.Path(), default=str(DEFAULT_CONFIG_PATH),
              help="Config directory path")
def automate(
    lead_ids: tuple,
    company_id: Optional[str],
    job_title: Optional[str],
    message_file: Optional[str],
    config_path: str,
):
    """Save messages, mark leads contacted and trigger the n8n workflow."""
    config = Path(config_path)
    settings = load_settings(config)
    store = SupabaseStore(tables=settings.tables)

    session = build_session(
        store, settings, lead_ids, company_id, job_title, config, notifier=SlackNotifier()
    )

    if message_file:
        applied = apply_message_file(session, Path(message_file))
        click.echo(f"Applied {applied} message edit(s)")

    try:
        summary = asyncio.run(session.submit())
    except EmptySelectionError as e:
        raise click.ClickException(str(e))

    click.echo("\n" + "=" * 40)
    click.echo("SUMMARY")
    click.echo("=" * 40)
    click.echo(f"Attempted:            {summary.attempted}")
    click.echo(f"Succeeded:            {len(summary.succeeded)}")
    click.echo(f"Webhook failures:     {summary.dispatch_failures}")
    click.echo(f"Persistence failures: {len(summary.persistence_failures)}")

    for outcome in summary.persistence_failures:
        click.echo(f"  ✗ {outcome.lead_id}: not saved ({outcome.result.error})")
    for outcome in summary.rejected:
        click.echo(f"  ✗ {outcome.lead_id}: webhook rejected (HTTP {outcome.status_code})")
    for outcome in summary.network_errors:
        click.echo(f"  ✗ {outcome.lead_id}: webhook unreachable ({outcome.error})")

    click.echo(f"\n{summary.message}")
    if not summary.full_success:
        raise SystemExit(1)


@cli.command()
@click.argument("entity", type=click.Choice(sorted(FAVORITE_TABLES)))
@click.argument("entity_id")
@click.option("--off", is_flag=True, help="Remove from favorites")
@click.option("--config", "config_path", type=click.Path(), default=str(DEFAULT_CONFIG_PATH),
              help="Config directory path")
def favorite(entity: str, entity_id: str, off: bool, config_path: str):
    """Mark a lead, company or job as favorite."""
    settings = load_settings(Path(config_path))
    store = SupabaseStore(tables=settings.tables)
    result = store.toggle_favorite(entity, entity_id, not off)
    if not result.ok:
        raise click.ClickException(f"Could not update favorite: {result.error}")

    label = entity_id
    if entity == "lead":
        lead = store.refresh_lead(entity_id)
        label = lead.name if lead else entity_id
    elif entity == "company":
        company = store.refresh_company(entity_id)
        label = company.name if company else entity_id

    state = "removed from" if off else "added to"
    click.echo(f"{entity} {label} {state} favorites")


def main():
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
