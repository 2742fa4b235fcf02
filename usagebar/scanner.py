"""Aggregation of token-usage log entries into per-day, per-model costs."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections import defaultdict
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import date
from typing import Protocol

from usagebar.models import DailyCost

logger = logging.getLogger(__name__)

CLAUDE_FALLBACK_PRICE = 3.0 / 1_000_000
DEFAULT_FALLBACK_PRICE = 2.5 / 1_000_000


@dataclass
class TokenUsage:
    """Token counts accumulated for one model."""

    input_tokens: int = 0
    output_tokens: int = 0
    cache_creation_tokens: int = 0
    cache_read_tokens: int = 0


@dataclass(frozen=True)
class LogEntry:
    """Token usage of a single request, attributed to a day and a model."""

    date: date
    model: str
    input_tokens: int = 0
    output_tokens: int = 0
    cache_creation_tokens: int = 0
    cache_read_tokens: int = 0


class _Price(Protocol):
    def calculate_cost(self, usage: TokenUsage) -> float: ...


class PricingSource:
    """Per-model prices; models without a price are costed by estimate_cost."""

    def __init__(self, prices: Mapping[str, _Price] | None = None) -> None:
        self._prices: dict[str, _Price] = dict(prices or {})

    def get_price(self, model: str) -> _Price | None:
        return self._prices.get(model)

    def normalize_model_name(self, model: str) -> str:
        """Canonical name used for price lookup; names are kept as given."""
        return model


class CostScanner(ABC):
    """Reads usage logs and turns them into daily costs."""

    @abstractmethod
    def scan(self, since: date, until: date) -> list[DailyCost]:
        """Costs for every day in the inclusive range [since, until]."""


def estimate_cost(model: str, usage: TokenUsage) -> float:
    """Rough cost for a model with no known price, from input and output tokens."""
    logger.debug("No pricing found for %s, estimating", model)
    rate = CLAUDE_FALLBACK_PRICE if model.startswith("claude") else DEFAULT_FALLBACK_PRICE
    return (usage.input_tokens + usage.output_tokens) * rate


def aggregate_entries(
    entries: Iterable[LogEntry], pricing: PricingSource
) -> list[DailyCost]:
    """Sum entries per (date, model) and price them, sorted by date then model."""
    aggregated: dict[tuple[date, str], TokenUsage] = defaultdict(TokenUsage)

    for entry in entries:
        usage = aggregated[(entry.date, entry.model)]
        usage.input_tokens += entry.input_tokens
        usage.output_tokens += entry.output_tokens
        usage.cache_creation_tokens += entry.cache_creation_tokens
        usage.cache_read_tokens += entry.cache_read_tokens

    costs = []
    for (day, model), usage in aggregated.items():
        price = pricing.get_price(model)
        cost = price.calculate_cost(usage) if price is not None else estimate_cost(model, usage)
        costs.append(DailyCost(date=day, model=model, cost=cost))

    costs.sort(key=lambda c: (c.date, c.model))
    return costs