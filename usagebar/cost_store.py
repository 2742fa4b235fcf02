"""Per-provider cost snapshots built from the local usage logs."""

from __future__ import annotations

import copy
import dataclasses
import logging
from collections.abc import Iterable
from datetime import date, timedelta

from usagebar.claude_cost import ClaudeCostScanner
from usagebar.codex_cost import CodexCostScanner
from usagebar.models import CostSnapshot, DailyCost, Provider
from usagebar.scanner import CostScanner, PricingSource

logger = logging.getLogger(__name__)

_LOOKBACK = timedelta(days=30)


def normalize_cost(value: float) -> float:
    """Round sub-half-cent amounts down to zero."""
    return 0.0 if abs(value) < 0.005 else value


def mark_log_error(snapshot: CostSnapshot, pricing_estimate: bool) -> CostSnapshot:
    """A copy of *snapshot* flagged as coming from a failed log scan."""
    return dataclasses.replace(snapshot, log_error=True, pricing_estimate=pricing_estimate)


def aggregate_costs(
    costs: Iterable[DailyCost],
    today: date,
    month_start: date,
    pricing_estimate: bool,
) -> CostSnapshot:
    """Today's and this month's totals, with the month's entries as breakdown."""
    costs = list(costs)
    today_cost = sum(c.cost for c in costs if c.date == today)
    this_month = [c for c in costs if month_start <= c.date <= today]
    return CostSnapshot(
        today_cost=normalize_cost(today_cost),
        monthly_cost=normalize_cost(sum(c.cost for c in this_month)),
        currency="USD",
        daily_breakdown=copy.deepcopy(this_month),
        pricing_estimate=pricing_estimate,
        log_error=False,
    )


class CostStore:
    """Scans each provider's logs and keeps the last good snapshot per provider."""

    def __init__(
        self,
        pricing: PricingSource | None = None,
        pricing_available: bool = False,
        claude_scanner: CostScanner | None = None,
        codex_scanner: CostScanner | None = None,
    ) -> None:
        self.pricing = pricing if pricing is not None else PricingSource()
        self.pricing_failed = not pricing_available
        self._scanners: dict[Provider, CostScanner] = {
            Provider.CLAUDE: claude_scanner or ClaudeCostScanner(self.pricing),
            Provider.CODEX: codex_scanner or CodexCostScanner(self.pricing),
        }
        self._cached: dict[Provider, CostSnapshot] = {}

    def scan_all(self, today: date | None = None) -> dict[Provider, CostSnapshot]:
        """Fresh snapshots for every provider."""
        return {provider: self.scan_provider(provider, today) for provider in self._scanners}

    def scan_provider(self, provider: Provider, today: date | None = None) -> CostSnapshot:
        """Scan one provider; on failure fall back to its last snapshot, flagged."""
        today = today if today is not None else date.today()
        month_start = today.replace(day=1)
        since = month_start - _LOOKBACK

        try:
            costs = self._scanners[provider].scan(since, today)
        except (OSError, ValueError) as exc:
            logger.warning("Failed to scan costs for %s: %s", provider.name, exc)
            previous = self._cached.get(provider)
            if previous is None:
                previous = CostSnapshot(pricing_estimate=self.pricing_failed, log_error=True)
            snapshot = mark_log_error(previous, self.pricing_failed)
        else:
            snapshot = aggregate_costs(costs, today, month_start, self.pricing_failed)

        self._cached[provider] = snapshot
        return copy.deepcopy(snapshot)

    def get_cached(self, provider: Provider) -> CostSnapshot | None:
        return self._cached.get(provider)