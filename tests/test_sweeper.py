from datetime import timedelta

import pytest

from app.core.errors import CatalogTransportError
from app.services.sweeper import CleanupSweeper, DeleteAtPassed, ExpiryPolicy, OlderThan
from fakes import temp_variant


@pytest.fixture
def sweeper(store, event_log, clock):
    return CleanupSweeper(store, event_log, clock=clock)


@pytest.fixture
def fixture_set(store, clock):
    now = clock.now
    return {
        "a": store.add(temp_variant(1, created_at=now - timedelta(hours=3), delete_at=now - timedelta(hours=1))),
        "b": store.add(temp_variant(2, created_at=now - timedelta(hours=30), delete_at=now + timedelta(hours=1))),
        "c": store.add(temp_variant(3, created_at=now - timedelta(hours=1), delete_at=now + timedelta(hours=1))),
        "d": store.add(temp_variant(4)),
    }


async def test_sweep_deletes_expired_and_skips_the_rest(sweeper, store, fixture_set):
    summary = await sweeper.sweep()
    assert summary.deleted_count == 2
    assert summary.skipped_count == 2
    assert summary.total_found == 4
    assert summary.success is True
    assert set(store.deleted) == {fixture_set["a"].id, fixture_set["b"].id}


async def test_second_sweep_deletes_nothing_new(sweeper, store, fixture_set):
    await sweeper.sweep()
    summary = await sweeper.sweep()
    assert summary.deleted_count == 0
    assert summary.skipped_count == 2
    assert len(store.deleted) == 2


async def test_delete_failure_does_not_stop_the_pass(sweeper, store, event_log, fixture_set):
    store.fail_delete_ids.add(fixture_set["a"].id)
    summary = await sweeper.sweep()
    assert summary.success is False
    assert summary.deleted_count == 1
    assert len(summary.errors) == 1
    assert summary.errors[0].variant_id == fixture_set["a"].id
    assert store.deleted == [fixture_set["b"].id]
    actions = [e["action"] for e in event_log.query_recent(500)]
    assert "cleanup_delete_failed" in actions


async def test_listing_failure_aborts_the_pass(sweeper, store, event_log):
    store.fail_listing = True
    with pytest.raises(CatalogTransportError):
        await sweeper.sweep()
    assert event_log.query_recent(1)[0]["action"] == "cleanup_error"


async def test_boundary_times_are_not_expired(store, event_log, clock):
    now = clock.now
    store.add(temp_variant(10, created_at=now - timedelta(hours=24), delete_at=now))
    summary = await CleanupSweeper(store, event_log, clock=clock).sweep()
    assert summary.deleted_count == 0


async def test_unparseable_metadata_counts_as_absent(store, event_log, clock):
    variant = temp_variant(11)
    variant.metadata["delete_at"] = "tomorrow-ish"
    store.add(variant)
    summary = await CleanupSweeper(store, event_log, clock=clock).sweep()
    assert summary.skipped_count == 1


async def test_delete_at_only_policy(store, event_log, clock, fixture_set):
    sweeper = CleanupSweeper(store, event_log, policy=ExpiryPolicy([DeleteAtPassed()]), clock=clock)
    summary = await sweeper.sweep()
    assert summary.deleted_count == 1
    assert store.deleted == [fixture_set["a"].id]


async def test_scan_limit_caps_a_single_pass(store, event_log, clock):
    old = clock.now - timedelta(hours=48)
    for i in range(5):
        store.add(temp_variant(100 + i, created_at=old))
    sweeper = CleanupSweeper(store, event_log, clock=clock, scan_limit=3)
    first = await sweeper.sweep()
    second = await sweeper.sweep()
    assert first.total_found == 3
    assert second.total_found == 2
    assert len(store.deleted) == 5


def test_policy_reports_reason(clock):
    policy = ExpiryPolicy([DeleteAtPassed(), OlderThan(timedelta(hours=24))])
    now = clock.now
    assert policy.expired_reason(temp_variant(1, delete_at=now - timedelta(minutes=1)), now) == "delete_at_passed"
    assert policy.expired_reason(temp_variant(2, created_at=now - timedelta(hours=25)), now) == "max_age_exceeded"
    assert policy.is_expired(temp_variant(3), now) is False
