import json
from datetime import datetime, timedelta, timezone

from scripts.run_cleanup import run
from fakes import temp_variant


def expired(variant_id):
    now = datetime.now(timezone.utc)
    return temp_variant(variant_id, created_at=now - timedelta(hours=3), delete_at=now - timedelta(hours=1))


async def test_clean_pass_exits_zero(store, event_log, capsys):
    store.add(expired(1))
    store.add(temp_variant(2, created_at=datetime.now(timezone.utc), delete_at=datetime.now(timezone.utc) + timedelta(hours=2)))

    assert await run(24, 250, store=store, event_log=event_log) == 0
    summary = json.loads(capsys.readouterr().out)
    assert summary["success"] is True
    assert (summary["deletedCount"], summary["skippedCount"], summary["totalFound"]) == (1, 1, 2)
    assert store.deleted == ["gid://shopify/ProductVariant/1"]


async def test_failed_delete_exits_one(store, event_log, capsys):
    store.add(expired(1))
    store.add(expired(2))
    store.fail_delete_ids.add("gid://shopify/ProductVariant/1")

    assert await run(24, 250, store=store, event_log=event_log) == 1
    summary = json.loads(capsys.readouterr().out)
    assert summary["success"] is False
    assert summary["deletedCount"] == 1
    assert summary["errors"][0]["variantId"] == "gid://shopify/ProductVariant/1"


async def test_listing_failure_exits_one(store, event_log, capsys):
    store.fail_listing = True

    assert await run(24, 250, store=store, event_log=event_log) == 1
    assert json.loads(capsys.readouterr().out)["success"] is False
    assert event_log.query_recent(1)[0]["action"] == "cleanup_error"
