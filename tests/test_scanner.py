from datetime import date

import pytest

from usagebar.models import DailyCost
from usagebar.scanner import (
    CostScanner,
    LogEntry,
    PricingSource,
    TokenUsage,
    aggregate_entries,
    estimate_cost,
)


class _RecordingPrice:
    def __init__(self, value: float) -> None:
        self.value = value
        self.seen: list[TokenUsage] = []

    def calculate_cost(self, usage: TokenUsage) -> float:
        self.seen.append(usage)
        return self.value


def test_estimate_cost_claude_rate():
    usage = TokenUsage(input_tokens=1_000_000)
    assert estimate_cost("claude-sonnet-4", usage) == pytest.approx(3.0)


def test_estimate_cost_other_rate():
    usage = TokenUsage(output_tokens=1_000_000)
    assert estimate_cost("gpt-5.2-codex", usage) == pytest.approx(2.5)


def test_estimate_cost_ignores_cache_tokens():
    plain = TokenUsage(input_tokens=500, output_tokens=200)
    cached = TokenUsage(
        input_tokens=500, output_tokens=200, cache_creation_tokens=9000, cache_read_tokens=7000
    )
    assert estimate_cost("claude-opus-4", cached) == estimate_cost("claude-opus-4", plain)


def test_aggregate_empty():
    assert aggregate_entries([], PricingSource()) == []


def test_aggregate_sums_same_day_and_model():
    price = _RecordingPrice(1.25)
    pricing = PricingSource({"claude-sonnet-4": price})
    day = date(2026, 1, 18)
    entries = [
        LogEntry(day, "claude-sonnet-4", 10, 4, 2, 1),
        LogEntry(day, "claude-sonnet-4", 20, 6, 3, 5),
    ]

    result = aggregate_entries(entries, pricing)

    assert result == [DailyCost(date=day, model="claude-sonnet-4", cost=1.25)]
    assert price.seen == [TokenUsage(10 + 20, 4 + 6, 2 + 3, 1 + 5)]


def test_aggregate_sorted_by_date_then_model():
    entries = [
        LogEntry(date(2026, 1, 18), "claude-sonnet-4", 1, 1),
        LogEntry(date(2026, 1, 15), "claude-sonnet-4", 1, 1),
        LogEntry(date(2026, 1, 18), "claude-opus-4", 1, 1),
    ]

    result = aggregate_entries(entries, PricingSource())

    keys = [(c.date, c.model) for c in result]
    assert keys == sorted(keys)
    assert len(result) == 3


def test_aggregate_unpriced_model_falls_back_to_estimate():
    day = date(2026, 1, 18)
    entries = [LogEntry(day, "gpt-5.2-codex", 1000, 300)]

    result = aggregate_entries(entries, PricingSource())

    expected = estimate_cost("gpt-5.2-codex", TokenUsage(1000, 300))
    assert result[0].cost == pytest.approx(expected)


def test_pricing_source_lookup_and_normalize():
    price = _RecordingPrice(0.5)
    pricing = PricingSource({"claude-opus-4": price})
    assert pricing.get_price("claude-opus-4") is price
    assert pricing.get_price("unknown") is None
    assert pricing.normalize_model_name("claude-opus-4") == "claude-opus-4"


def test_cost_scanner_is_abstract():
    with pytest.raises(TypeError):
        CostScanner()