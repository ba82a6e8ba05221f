from unittest.mock import MagicMock

import pytest

from crm_outreach.automation.composer import MessageBundle
from crm_outreach.automation.persistence import persist_batch


def bundles_for(*lead_ids):
    return {
        lead_id: MessageBundle(f"req {lead_id}", f"conn {lead_id}", f"fu {lead_id}")
        for lead_id in lead_ids
    }


@pytest.mark.asyncio
async def test_one_update_per_lead_with_bundle_text():
    store = MagicMock()

    outcomes = await persist_batch(store, bundles_for("a", "b", "c"))

    assert [o.lead_id for o in outcomes] == ["a", "b", "c"]
    assert all(o.ok for o in outcomes)
    assert store.update_lead_outreach.call_count == 3

    calls = {c.args[0]: c.kwargs for c in store.update_lead_outreach.call_args_list}
    assert calls["b"]["request"] == "req b"
    assert calls["b"]["connected"] == "conn b"
    assert calls["b"]["follow_up"] == "fu b"
    assert calls["b"]["stage"] == "contacted"
    assert calls["b"]["started_at"] is not None


@pytest.mark.asyncio
async def test_failure_on_one_lead_does_not_stop_others():
    store = MagicMock()

    def update(lead_id, **kwargs):
        if lead_id == "b":
            raise Exception("violates row-level security policy")

    store.update_lead_outreach.side_effect = update

    outcomes = await persist_batch(store, bundles_for("a", "b", "c"))

    assert store.update_lead_outreach.call_count == 3
    by_id = {o.lead_id: o for o in outcomes}
    assert by_id["a"].ok and by_id["c"].ok
    assert not by_id["b"].ok
    assert "row-level security" in by_id["b"].result.error


@pytest.mark.asyncio
async def test_custom_stage_is_written():
    store = MagicMock()

    await persist_batch(store, bundles_for("a"), stage="queued")

    assert store.update_lead_outreach.call_args.kwargs["stage"] == "queued"
