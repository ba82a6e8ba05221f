# crm_outreach/services/slack_notifier.py
"""Slack notification service for automation batch results."""

import os
from typing import Optional

import httpx
import structlog

from crm_outreach.automation.results import BatchSummary

log = structlog.get_logger()


class SlackNotifier:
    """Service for sending Slack notifications."""

    def __init__(self, webhook_url: Optional[str] = None):
        """Initialize with webhook URL."""
        self.webhook_url = webhook_url or os.getenv("SLACK_WEBHOOK_URL")

    def build_blocks(self, summary: BatchSummary, company_name: Optional[str] = None) -> list[dict]:
        status_emoji = "✅" if summary.full_success else "⚠️"
        title = "LinkedIn Automation Started"
        if company_name:
            title = f"{title}: {company_name}"

        blocks = [
            {
                "type": "header",
                "text": {
                    "type": "plain_text",
                    "text": f"{status_emoji} {title}",
                }
            },
            {
                "type": "section",
                "fields": [
                    {"type": "mrkdwn", "text": f"*Attempted:*\n{summary.attempted}"},
                    {"type": "mrkdwn", "text": f"*Succeeded:*\n{len(summary.succeeded)}"},
                    {"type": "mrkdwn", "text": f"*Webhook failures:*\n{summary.dispatch_failures}"},
                    {"type": "mrkdwn", "text": f"*Save failures:*\n{len(summary.persistence_failures)}"},
                ]
            }
        ]

        issues = [f"{o.lead_id}: {o.result.error}" for o in summary.persistence_failures]
        issues += [f"{o.lead_id}: HTTP {o.status_code}" for o in summary.rejected]
        issues += [f"{o.lead_id}: {o.error}" for o in summary.network_errors]
        if issues:
            issue_text = "\n".join(f"• {i}" for i in issues[:5])
            blocks.append({
                "type": "section",
                "text": {"type": "mrkdwn", "text": f"*Issues:*\n{issue_text}"}
            })

        return blocks

    async def send_automation_summary(
        self,
        summary: BatchSummary,
        company_name: Optional[str] = None,
    ) -> bool:
        """Send the result of one automation submit to Slack.

        Returns:
            True if sent successfully
        """
        if not self.webhook_url:
            log.warning("slack_webhook_not_configured")
            return False

        blocks = self.build_blocks(summary, company_name)

        try:
            async with httpx.AsyncClient(timeout=10.0) as client:
                response = await client.post(
                    self.webhook_url,
                    json={"text": summary.message, "blocks": blocks},
                )
                response.raise_for_status()
                log.info("slack_summary_sent", attempted=summary.attempted, succeeded=len(summary.succeeded))
                return True

        except Exception as e:
            log.error("slack_send_error", error=str(e))
            return False
