"""Core data models for usage and cost tracking."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any


class Provider(Enum):
    """An AI coding assistant whose usage is tracked."""

    CLAUDE = "Claude"
    CODEX = "Codex"

    def display_name(self) -> str:
        """Human-readable provider name."""
        return _DISPLAY_NAMES[self]

    def dashboard_url(self) -> str:
        """Web dashboard where the provider's usage can be inspected."""
        return _DASHBOARD_URLS[self]


_DISPLAY_NAMES = {
    Provider.CLAUDE: "Claude Code",
    Provider.CODEX: "Codex",
}

_DASHBOARD_URLS = {
    Provider.CLAUDE: "https://console.anthropic.com/",
    Provider.CODEX: "https://chatgpt.com/",
}


def _require(data: dict[str, Any], key: str) -> Any:
    try:
        return data[key]
    except KeyError:
        raise ValueError(f"missing field `{key}`") from None


def _format_datetime(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def _parse_datetime(value: str) -> datetime:
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


@dataclass
class RateWindow:
    """Usage of one rate-limit window, as a fraction between 0 and 1."""

    used_percent: float
    window_minutes: int | None = None
    resets_at: datetime | None = None
    reset_description: str | None = None

    def remaining_percent(self) -> float:
        return 1.0 - self.used_percent

    def is_high_usage(self, threshold: float) -> bool:
        return self.used_percent >= threshold

    def to_dict(self) -> dict[str, Any]:
        return {
            "used_percent": self.used_percent,
            "window_minutes": self.window_minutes,
            "resets_at": _format_datetime(self.resets_at) if self.resets_at else None,
            "reset_description": self.reset_description,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RateWindow:
        resets_at = data.get("resets_at")
        return cls(
            used_percent=float(_require(data, "used_percent")),
            window_minutes=data.get("window_minutes"),
            resets_at=_parse_datetime(resets_at) if resets_at is not None else None,
            reset_description=data.get("reset_description"),
        )


@dataclass
class ProviderIdentity:
    """Account details reported by a provider."""

    email: str | None = None
    organization: str | None = None
    plan: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "email": self.email,
            "organization": self.organization,
            "plan": self.plan,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ProviderIdentity:
        return cls(
            email=data.get("email"),
            organization=data.get("organization"),
            plan=data.get("plan"),
        )


@dataclass
class ModelWindow:
    """A model-specific rate window with its label."""

    label: str
    window: RateWindow

    def to_dict(self) -> dict[str, Any]:
        return {"label": self.label, "window": self.window.to_dict()}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ModelWindow:
        return cls(
            label=str(_require(data, "label")),
            window=RateWindow.from_dict(_require(data, "window")),
        )


@dataclass
class UsageSnapshot:
    """Usage state of a provider at a point in time."""

    primary: RateWindow | None
    secondary: RateWindow | None
    updated_at: datetime
    identity: ProviderIdentity
    carveouts: list[ModelWindow] = field(default_factory=list)

    def max_usage(self) -> float:
        """Highest usage fraction across all windows, or 0.0 when there are none."""
        windows = [w for w in (self.primary, self.secondary) if w is not None]
        windows.extend(c.window for c in self.carveouts)
        return max((w.used_percent for w in windows), default=0.0)

    def to_dict(self) -> dict[str, Any]:
        return {
            "primary": self.primary.to_dict() if self.primary else None,
            "secondary": self.secondary.to_dict() if self.secondary else None,
            "carveouts": [c.to_dict() for c in self.carveouts],
            "updated_at": _format_datetime(self.updated_at),
            "identity": self.identity.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> UsageSnapshot:
        primary = data.get("primary")
        secondary = data.get("secondary")
        return cls(
            primary=RateWindow.from_dict(primary) if primary is not None else None,
            secondary=RateWindow.from_dict(secondary) if secondary is not None else None,
            carveouts=[ModelWindow.from_dict(c) for c in data.get("carveouts") or []],
            updated_at=_parse_datetime(_require(data, "updated_at")),
            identity=ProviderIdentity.from_dict(_require(data, "identity")),
        )


@dataclass
class DailyCost:
    """Cost attributed to one model on one day."""

    date: date
    model: str
    cost: float

    def to_dict(self) -> dict[str, Any]:
        return {"date": self.date.isoformat(), "model": self.model, "cost": self.cost}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DailyCost:
        return cls(
            date=date.fromisoformat(_require(data, "date")),
            model=str(_require(data, "model")),
            cost=float(_require(data, "cost")),
        )


@dataclass
class CostSnapshot:
    """Aggregated spending for a provider."""

    today_cost: float = 0.0
    monthly_cost: float = 0.0
    currency: str = "USD"
    daily_breakdown: list[DailyCost] = field(default_factory=list)
    pricing_estimate: bool = False
    log_error: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "today_cost": self.today_cost,
            "monthly_cost": self.monthly_cost,
            "currency": self.currency,
            "daily_breakdown": [d.to_dict() for d in self.daily_breakdown],
            "pricing_estimate": self.pricing_estimate,
            "log_error": self.log_error,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CostSnapshot:
        return cls(
            today_cost=float(_require(data, "today_cost")),
            monthly_cost=float(_require(data, "monthly_cost")),
            currency=str(_require(data, "currency")),
            daily_breakdown=[
                DailyCost.from_dict(d) for d in _require(data, "daily_breakdown")
            ],
            pricing_estimate=bool(data.get("pricing_estimate", False)),
            log_error=bool(data.get("log_error", False)),
        )