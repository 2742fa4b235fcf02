from datetime import datetime, timedelta, timezone

import pytest

from usagebar.models import (
    CostSnapshot,
    Provider,
    ProviderIdentity,
    RateWindow,
    UsageSnapshot,
)
from usagebar.store import StoreUpdate, UpdateKind, UsageStore


def make_snapshot(used_percent):
    return UsageSnapshot(
        primary=RateWindow(used_percent=used_percent, window_minutes=300),
        secondary=None,
        carveouts=[],
        updated_at=datetime.now(timezone.utc),
        identity=ProviderIdentity(),
    )


def test_store_update_and_get():
    store = UsageStore()
    store.update_snapshot(Provider.CLAUDE, make_snapshot(0.5))

    retrieved = store.get_snapshot(Provider.CLAUDE)
    assert retrieved is not None
    assert retrieved.primary.used_percent == pytest.approx(0.5)


def test_store_error_clears_snapshot():
    store = UsageStore()
    store.update_snapshot(Provider.CLAUDE, make_snapshot(0.5))
    assert store.get_snapshot(Provider.CLAUDE) is not None

    store.set_error(Provider.CLAUDE, "Token expired")
    assert store.get_snapshot(Provider.CLAUDE) is None
    assert store.get_error(Provider.CLAUDE) == "Token expired"


def test_notification_once_per_reset():
    store = UsageStore()
    store.update_snapshot(Provider.CLAUDE, make_snapshot(0.95))

    assert store.should_notify(Provider.CLAUDE, 0.9)
    store.mark_notified(Provider.CLAUDE)
    assert not store.should_notify(Provider.CLAUDE, 0.9)
    store.reset_notification(Provider.CLAUDE)
    assert store.should_notify(Provider.CLAUDE, 0.9)


def test_should_notify_without_snapshot_or_below_threshold():
    store = UsageStore()
    assert store.should_notify(Provider.CODEX, 0.9) is False
    store.update_snapshot(Provider.CODEX, make_snapshot(0.5))
    assert store.should_notify(Provider.CODEX, 0.9) is False


def test_store_subscription_receives_updates():
    store = UsageStore()
    receiver = store.subscribe()
    store.update_snapshot(Provider.CLAUDE, make_snapshot(0.5))

    update = receiver.get_nowait()
    assert update == StoreUpdate(UpdateKind.USAGE_UPDATED, Provider.CLAUDE)


def test_store_subscription_receives_errors():
    store = UsageStore()
    receiver = store.subscribe()
    store.set_error(Provider.CODEX, "Auth failed")

    update = receiver.get_nowait()
    assert update.kind is UpdateKind.ERROR_OCCURRED
    assert update.provider is Provider.CODEX
    assert update.error == "Auth failed"


def test_store_subscription_error_cleared_on_success():
    store = UsageStore()
    store.set_error(Provider.CLAUDE, "Network error")

    receiver = store.subscribe()
    store.update_snapshot(Provider.CLAUDE, make_snapshot(0.3))

    assert receiver.get_nowait() == StoreUpdate(UpdateKind.ERROR_CLEARED, Provider.CLAUDE)
    assert receiver.get_nowait() == StoreUpdate(UpdateKind.USAGE_UPDATED, Provider.CLAUDE)
    assert store.get_error(Provider.CLAUDE) is None


def test_update_cost():
    store = UsageStore()
    receiver = store.subscribe()
    store.update_cost(Provider.CODEX, CostSnapshot(today_cost=1.5, monthly_cost=10.0))

    cost = store.get_cost(Provider.CODEX)
    assert cost.today_cost == pytest.approx(1.5)
    assert cost.monthly_cost == pytest.approx(10.0)
    assert receiver.get_nowait() == StoreUpdate(UpdateKind.COST_UPDATED, Provider.CODEX)


def test_should_refresh():
    store = UsageStore()
    assert store.should_refresh(Provider.CLAUDE, timedelta(seconds=60)) is True
    store.update_snapshot(Provider.CLAUDE, make_snapshot(0.1))
    assert store.should_refresh(Provider.CLAUDE, timedelta(seconds=60)) is False
    assert store.should_refresh(Provider.CLAUDE, timedelta(0)) is True


def test_all_providers_with_snapshots():
    store = UsageStore()
    store.update_snapshot(Provider.CLAUDE, make_snapshot(0.2))
    store.update_snapshot(Provider.CODEX, make_snapshot(0.4))

    pairs = dict(store.all_providers_with_snapshots())
    assert set(pairs) == {Provider.CLAUDE, Provider.CODEX}
    assert pairs[Provider.CODEX].primary.used_percent == pytest.approx(0.4)


def test_get_snapshot_returns_copy():
    store = UsageStore()
    store.update_snapshot(Provider.CLAUDE, make_snapshot(0.2))
    copy_a = store.get_snapshot(Provider.CLAUDE)
    copy_a.primary.used_percent = 0.99
    assert store.get_snapshot(Provider.CLAUDE).primary.used_percent == pytest.approx(0.2)