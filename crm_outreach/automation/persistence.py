"""Write submitted message bundles back onto lead records."""

import asyncio
from datetime import datetime, timezone
from typing import Optional

import structlog

from crm_outreach.automation.composer import MessageBundle
from crm_outreach.automation.results import OperationResult, PersistOutcome
from crm_outreach.clients.supabase import SupabaseStore

log = structlog.get_logger()


async def persist_lead(
    store: SupabaseStore,
    lead_id: str,
    bundle: MessageBundle,
    stage: str = "contacted",
    started_at: Optional[datetime] = None,
) -> PersistOutcome:
    """Issue the single update for one lead and capture its outcome."""
    loop = asyncio.get_event_loop()
    try:
        await loop.run_in_executor(
            None,
            lambda: store.update_lead_outreach(
                lead_id,
                request=bundle.request,
                connected=bundle.connected,
                follow_up=bundle.follow_up,
                stage=stage,
                started_at=started_at,
            ),
        )
    except Exception as e:
        log.error("lead_persist_failed", lead_id=lead_id, error=str(e))
        return PersistOutcome(lead_id, OperationResult.failure(str(e)))

    return PersistOutcome(lead_id, OperationResult.success())


async def persist_batch(
    store: SupabaseStore,
    bundles: dict[str, MessageBundle],
    stage: str = "contacted",
) -> list[PersistOutcome]:
    """Update every lead independently; no failure stops the others.

    Returns one outcome per lead id, in the order given.
    """
    started_at = datetime.now(timezone.utc)
    log.info("persist_batch_started", count=len(bundles), stage=stage)

    outcomes = await asyncio.gather(*[
        persist_lead(store, lead_id, bundle, stage, started_at)
        for lead_id, bundle in bundles.items()
    ])

    failed = sum(1 for o in outcomes if not o.ok)
    log.info("persist_batch_completed", count=len(outcomes), failed=failed)
    return list(outcomes)
