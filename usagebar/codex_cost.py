"""Cost scanning of Codex session logs stored as sessions/YYYY/MM/DD/*.jsonl."""

from __future__ import annotations

import json
import logging
import os
import re
from collections.abc import Iterator
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Any

from usagebar.models import DailyCost
from usagebar.scanner import CostScanner, LogEntry, PricingSource, aggregate_entries

logger = logging.getLogger(__name__)

_SIGNED_INT = re.compile(r"[+-]?[0-9]+")
_UNSIGNED_INT = re.compile(r"\+?[0-9]+")


def _opt_str(data: dict[str, Any], key: str) -> str | None:
    value = data.get(key)
    if value is not None and not isinstance(value, str):
        raise ValueError(f"`{key}` must be a string, got {value!r}")
    return value


def _opt_count(data: dict[str, Any], key: str) -> int | None:
    value = data.get(key)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValueError(f"`{key}` must be a non-negative integer, got {value!r}")
    return value


def _opt_object(data: dict[str, Any], key: str) -> dict[str, Any] | None:
    value = data.get(key)
    if value is not None and not isinstance(value, dict):
        raise ValueError(f"`{key}` must be an object")
    return value


@dataclass(frozen=True)
class CodexTokenUsage:
    """Cumulative token counts reported by a token_count event."""

    input_tokens: int | None = None
    cached_input_tokens: int | None = None
    cache_read_input_tokens: int | None = None
    output_tokens: int | None = None


@dataclass(frozen=True)
class CodexInfo:
    """The info block of a token_count event."""

    model: str | None = None
    model_name: str | None = None
    total_token_usage: CodexTokenUsage | None = None


@dataclass(frozen=True)
class CodexRecord:
    """One line of a Codex session log."""

    entry_type: str
    payload_type: str | None = None
    model: str | None = None
    info: CodexInfo | None = None

    @classmethod
    def from_json(cls, line: str) -> CodexRecord:
        """Parse a JSON line; raises ValueError if it is malformed."""
        data = json.loads(line)
        if not isinstance(data, dict):
            raise ValueError("log entry must be a JSON object")
        entry_type = data.get("type")
        if not isinstance(entry_type, str):
            raise ValueError("missing field `type`")

        payload = _opt_object(data, "payload")
        if payload is None:
            return cls(entry_type=entry_type)

        info = None
        raw_info = _opt_object(payload, "info")
        if raw_info is not None:
            usage = None
            raw_usage = _opt_object(raw_info, "total_token_usage")
            if raw_usage is not None:
                usage = CodexTokenUsage(
                    input_tokens=_opt_count(raw_usage, "input_tokens"),
                    cached_input_tokens=_opt_count(raw_usage, "cached_input_tokens"),
                    cache_read_input_tokens=_opt_count(raw_usage, "cache_read_input_tokens"),
                    output_tokens=_opt_count(raw_usage, "output_tokens"),
                )
            info = CodexInfo(
                model=_opt_str(raw_info, "model"),
                model_name=_opt_str(raw_info, "model_name"),
                total_token_usage=usage,
            )

        return cls(
            entry_type=entry_type,
            payload_type=_opt_str(payload, "type"),
            model=_opt_str(payload, "model"),
            info=info,
        )


@dataclass(frozen=True)
class CodexTotals:
    """Running totals seen so far in a session, used to derive per-event deltas."""

    input: int = 0
    cached: int = 0
    output: int = 0


def default_sessions_dir() -> Path:
    """$CODEX_HOME/sessions, else ~/.codex/sessions."""
    codex_home = os.environ.get("CODEX_HOME")
    if codex_home is not None:
        return Path(codex_home) / "sessions"
    try:
        return Path.home() / ".codex" / "sessions"
    except RuntimeError:
        return Path(".codex") / "sessions"


def _parse_component(name: str, signed: bool) -> int | None:
    pattern = _SIGNED_INT if signed else _UNSIGNED_INT
    return int(name) if pattern.fullmatch(name) else None


def _make_date(year: int | None, month: int | None, day: int | None) -> date | None:
    if year is None or month is None or day is None:
        return None
    try:
        return date(year, month, day)
    except (ValueError, OverflowError):
        return None


def extract_date_from_path(path: str | os.PathLike[str]) -> date | None:
    """The date encoded as .../YYYY/MM/DD/<file> in a session path, if any."""
    parts = Path(path).parts
    if len(parts) < 4:
        return None
    return _make_date(
        _parse_component(parts[-4], signed=True),
        _parse_component(parts[-3], signed=False),
        _parse_component(parts[-2], signed=False),
    )


def _subdirs(directory: Path) -> list[Path]:
    try:
        return sorted(p for p in directory.iterdir() if p.is_dir())
    except OSError:
        return []


def _jsonl_files(directory: Path) -> list[Path]:
    try:
        return sorted(p for p in directory.iterdir() if p.suffix == ".jsonl")
    except OSError:
        return []


def _lines(path: Path) -> Iterator[str]:
    with path.open("rb") as handle:
        for raw in handle:
            try:
                yield raw.decode("utf-8").rstrip("\n").removesuffix("\r")
            except UnicodeDecodeError as exc:
                logger.debug("Failed to read line in %s: %s", path, exc)


class CodexCostScanner(CostScanner):
    """Computes Codex costs from cumulative token_count events."""

    def __init__(
        self,
        pricing: PricingSource | None = None,
        sessions_dir: str | os.PathLike[str] | None = None,
    ) -> None:
        self.pricing = pricing if pricing is not None else PricingSource()
        self.sessions_dir = (
            Path(sessions_dir) if sessions_dir is not None else default_sessions_dir()
        )

    def find_jsonl_files(self, since: date, until: date) -> list[Path]:
        """JSONL files in day directories within the inclusive range."""
        if not self.sessions_dir.exists():
            return []

        found: list[Path] = []
        for year_dir in _subdirs(self.sessions_dir):
            year = _parse_component(year_dir.name, signed=True)
            if year is None:
                continue
            for month_dir in _subdirs(year_dir):
                month = _parse_component(month_dir.name, signed=False)
                if month is None:
                    continue
                for day_dir in _subdirs(month_dir):
                    day = _make_date(
                        year, month, _parse_component(day_dir.name, signed=False)
                    )
                    if day is None or day < since or day > until:
                        continue
                    found.extend(_jsonl_files(day_dir))
        return found

    def parse_file(self, path: str | os.PathLike[str], date: date) -> list[LogEntry]:
        """Per-event usage deltas of a session file, all attributed to *date*."""
        path = Path(path)
        entries: list[LogEntry] = []
        current_model: str | None = None
        last = CodexTotals()

        for line in _lines(path):
            if not line:
                continue
            try:
                record = CodexRecord.from_json(line)
            except ValueError as exc:
                logger.debug("Failed to parse JSON line in %s: %s", path, exc)
                continue

            if record.entry_type == "turn_context":
                if record.model is not None:
                    current_model = self.pricing.normalize_model_name(record.model)
                continue

            if record.entry_type != "event_msg" or record.payload_type != "token_count":
                continue
            info = record.info
            if info is None:
                continue

            raw_model = info.model if info.model is not None else info.model_name
            if raw_model is not None:
                model = self.pricing.normalize_model_name(raw_model)
            else:
                model = current_model if current_model is not None else "unknown"

            totals = info.total_token_usage
            if totals is None:
                continue

            input_tokens = totals.input_tokens or 0
            cached = (
                totals.cached_input_tokens
                if totals.cached_input_tokens is not None
                else totals.cache_read_input_tokens
            ) or 0
            output = totals.output_tokens or 0

            delta_input = max(input_tokens - last.input, 0)
            delta_cached = max(min(cached, delta_input) - last.cached, 0)
            delta_output = max(output - last.output, 0)

            last = CodexTotals(input=input_tokens, cached=cached, output=output)

            if delta_input > 0 or delta_output > 0:
                entries.append(
                    LogEntry(
                        date=date,
                        model=model,
                        input_tokens=max(delta_input - delta_cached, 0),
                        output_tokens=delta_output,
                        cache_creation_tokens=0,
                        cache_read_tokens=delta_cached,
                    )
                )

        return entries

    def scan(self, since: date, until: date) -> list[DailyCost]:
        logger.debug("Scanning Codex sessions directory %s", self.sessions_dir)
        files = self.find_jsonl_files(since, until)
        logger.debug("Found %d JSONL files", len(files))

        entries: list[LogEntry] = []
        for path in files:
            file_date = extract_date_from_path(path) or since
            try:
                entries.extend(self.parse_file(path, file_date))
            except OSError as exc:
                logger.debug("Failed to parse file %s: %s", path, exc)

        return aggregate_entries(entries, self.pricing)