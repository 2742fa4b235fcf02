"""Thread-safe store of per-provider usage, cost and error state."""

from __future__ import annotations

import copy
import queue
import threading
import time
from dataclasses import dataclass
from datetime import timedelta
from enum import Enum

from usagebar.models import CostSnapshot, Provider, UsageSnapshot

_SUBSCRIBER_CAPACITY = 64


class UpdateKind(Enum):
    USAGE_UPDATED = "usage_updated"
    COST_UPDATED = "cost_updated"
    ERROR_OCCURRED = "error_occurred"
    ERROR_CLEARED = "error_cleared"


@dataclass(frozen=True)
class StoreUpdate:
    """A change notification sent to subscribers."""

    kind: UpdateKind
    provider: Provider
    error: str | None = None


class UsageStore:
    """Latest snapshots, costs and errors for each provider."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._snapshots: dict[Provider, UsageSnapshot] = {}
        self._costs: dict[Provider, CostSnapshot] = {}
        self._errors: dict[Provider, str] = {}
        self._last_fetch: dict[Provider, float] = {}
        self._notified: set[Provider] = set()
        self._subscribers: list[queue.Queue[StoreUpdate]] = []

    def subscribe(self) -> queue.Queue[StoreUpdate]:
        """A queue receiving every update sent after this call."""
        receiver: queue.Queue[StoreUpdate] = queue.Queue(maxsize=_SUBSCRIBER_CAPACITY)
        with self._lock:
            self._subscribers.append(receiver)
        return receiver

    def _send(self, update: StoreUpdate) -> None:
        with self._lock:
            subscribers = list(self._subscribers)
        for receiver in subscribers:
            while True:
                try:
                    receiver.put_nowait(update)
                    break
                except queue.Full:
                    try:
                        receiver.get_nowait()
                    except queue.Empty:
                        pass

    def get_snapshot(self, provider: Provider) -> UsageSnapshot | None:
        with self._lock:
            return copy.deepcopy(self._snapshots.get(provider))

    def get_cost(self, provider: Provider) -> CostSnapshot | None:
        with self._lock:
            return copy.deepcopy(self._costs.get(provider))

    def get_error(self, provider: Provider) -> str | None:
        with self._lock:
            return self._errors.get(provider)

    def update_snapshot(self, provider: Provider, snapshot: UsageSnapshot) -> None:
        """Store a fresh snapshot, clearing any recorded error."""
        with self._lock:
            had_error = self._errors.pop(provider, None) is not None
            self._snapshots[provider] = snapshot
            self._last_fetch[provider] = time.monotonic()
        if had_error:
            self._send(StoreUpdate(UpdateKind.ERROR_CLEARED, provider))
        self._send(StoreUpdate(UpdateKind.USAGE_UPDATED, provider))

    def update_cost(self, provider: Provider, cost: CostSnapshot) -> None:
        with self._lock:
            self._costs[provider] = cost
        self._send(StoreUpdate(UpdateKind.COST_UPDATED, provider))

    def set_error(self, provider: Provider, error: str) -> None:
        """Record an error and drop the provider's snapshot."""
        with self._lock:
            self._errors[provider] = error
            self._snapshots.pop(provider, None)
            self._last_fetch[provider] = time.monotonic()
        self._send(StoreUpdate(UpdateKind.ERROR_OCCURRED, provider, error))

    def should_refresh(self, provider: Provider, cooldown: timedelta) -> bool:
        """True if the provider was never fetched or the cooldown has elapsed."""
        with self._lock:
            last = self._last_fetch.get(provider)
        if last is None:
            return True
        return time.monotonic() - last >= cooldown.total_seconds()

    def should_notify(self, provider: Provider, threshold: float) -> bool:
        with self._lock:
            if provider in self._notified:
                return False
            snapshot = self._snapshots.get(provider)
            if snapshot is None:
                return False
            return snapshot.max_usage() >= threshold

    def mark_notified(self, provider: Provider) -> None:
        with self._lock:
            self._notified.add(provider)

    def reset_notification(self, provider: Provider) -> None:
        with self._lock:
            self._notified.discard(provider)

    def all_providers_with_snapshots(self) -> list[tuple[Provider, UsageSnapshot]]:
        with self._lock:
            return [(p, copy.deepcopy(s)) for p, s in self._snapshots.items()]