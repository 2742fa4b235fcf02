"""Cost scanning of Claude Code's per-project JSONL session logs."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from datetime import date, datetime
from pathlib import Path
from typing import Any

from usagebar.models import DailyCost
from usagebar.scanner import CostScanner, LogEntry, PricingSource, aggregate_entries

logger = logging.getLogger(__name__)


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


@dataclass(frozen=True)
class _Usage:
    input_tokens: int | None = None
    output_tokens: int | None = None
    cache_creation_input_tokens: int | None = None
    cache_read_input_tokens: int | None = None


@dataclass(frozen=True)
class ClaudeLogRecord:
    """One line of a Claude session log."""

    entry_type: str
    timestamp: str | None = None
    request_id: str | None = None
    message_id: str | None = None
    model: str | None = None
    usage: _Usage | None = None

    @classmethod
    def from_json(cls, line: str) -> ClaudeLogRecord:
        """Parse a JSON line; raises ValueError if it is malformed."""
        data = json.loads(line)
        if not isinstance(data, dict):
            raise ValueError("log entry must be a JSON object")
        entry_type = data.get("type")
        if not isinstance(entry_type, str):
            raise ValueError("missing field `type`")

        message = data.get("message")
        message_id = model = usage = None
        if message is not None:
            if not isinstance(message, dict):
                raise ValueError("`message` must be an object")
            message_id = _opt_str(message, "id")
            model = _opt_str(message, "model")
            raw_usage = message.get("usage")
            if raw_usage is not None:
                if not isinstance(raw_usage, dict):
                    raise ValueError("`usage` must be an object")
                usage = _Usage(
                    input_tokens=_opt_count(raw_usage, "input_tokens"),
                    output_tokens=_opt_count(raw_usage, "output_tokens"),
                    cache_creation_input_tokens=_opt_count(
                        raw_usage, "cache_creation_input_tokens"
                    ),
                    cache_read_input_tokens=_opt_count(raw_usage, "cache_read_input_tokens"),
                )

        return cls(
            entry_type=entry_type,
            timestamp=_opt_str(data, "timestamp"),
            request_id=_opt_str(data, "requestId"),
            message_id=message_id,
            model=model,
            usage=usage,
        )


def _config_dir() -> Path | None:
    xdg = os.environ.get("XDG_CONFIG_HOME")
    if xdg and os.path.isabs(xdg):
        return Path(xdg)
    try:
        return Path.home() / ".config"
    except RuntimeError:
        return None


def default_project_dirs() -> list[Path]:
    """Directories where Claude Code keeps its project logs."""
    dirs = []
    try:
        dirs.append(Path.home() / ".claude" / "projects")
    except RuntimeError:
        pass
    config = _config_dir()
    if config is not None:
        dirs.append(config / "claude" / "projects")
    return dirs


def extract_date_from_path(path: str | os.PathLike[str]) -> date | None:
    """The date a file is named after (YYYY-MM-DD.jsonl), if any."""
    try:
        return datetime.strptime(Path(path).stem, "%Y-%m-%d").date()
    except ValueError:
        return None


def _walk_dir(directory: Path) -> list[Path]:
    files = []
    with os.scandir(directory) as entries:
        for entry in entries:
            path = Path(entry.path)
            if entry.is_dir():
                files.extend(_walk_dir(path))
            else:
                files.append(path)
    return files


def _local_date(timestamp: str) -> date | None:
    try:
        parsed = datetime.fromisoformat(timestamp)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        return None
    return parsed.astimezone().date()


def _lines(path: Path):
    with path.open("rb") as handle:
        for raw in handle:
            try:
                yield raw.decode("utf-8").rstrip("\n").removesuffix("\r")
            except UnicodeDecodeError as exc:
                logger.debug("Failed to read line in %s: %s", path, exc)


class ClaudeCostScanner(CostScanner):
    """Computes Claude Code costs from assistant messages in session logs."""

    def __init__(
        self,
        pricing: PricingSource | None = None,
        project_dirs: list[str | os.PathLike[str]] | None = None,
    ) -> None:
        self.pricing = pricing if pricing is not None else PricingSource()
        self.project_dirs = (
            [Path(p) for p in project_dirs]
            if project_dirs is not None
            else default_project_dirs()
        )

    def find_jsonl_files(self, since: date, until: date) -> list[Path]:
        """JSONL files dated within range, plus those whose name carries no date."""
        found = []
        for directory in self.project_dirs:
            if not directory.exists():
                continue
            try:
                candidates = _walk_dir(directory)
            except OSError as exc:
                logger.debug("Failed to walk %s: %s", directory, exc)
                continue
            for path in sorted(candidates):
                if path.suffix != ".jsonl" or path.stem == "":
                    continue
                file_date = extract_date_from_path(path)
                if file_date is None or since <= file_date <= until:
                    found.append(path)
        return found

    def parse_file(
        self, path: str | os.PathLike[str], since: date, until: date
    ) -> list[LogEntry]:
        """Usage entries of assistant messages within range; duplicates dropped."""
        path = Path(path)
        entries = []
        seen: set[str] = set()

        for line in _lines(path):
            if not line:
                continue
            try:
                record = ClaudeLogRecord.from_json(line)
            except ValueError as exc:
                logger.debug("Failed to parse JSON line in %s: %s", path, exc)
                continue

            if record.entry_type != "assistant" or record.usage is None:
                continue
            if record.timestamp is None:
                continue
            day = _local_date(record.timestamp)
            if day is None or day < since or day > until:
                continue

            dedup_key = f"{record.message_id or ''}:{record.request_id or ''}"
            if dedup_key != ":":
                if dedup_key in seen:
                    continue
                seen.add(dedup_key)

            usage = record.usage
            entries.append(
                LogEntry(
                    date=day,
                    model=self.pricing.normalize_model_name(record.model or "unknown"),
                    input_tokens=usage.input_tokens or 0,
                    output_tokens=usage.output_tokens or 0,
                    cache_creation_tokens=usage.cache_creation_input_tokens or 0,
                    cache_read_tokens=usage.cache_read_input_tokens or 0,
                )
            )

        return entries

    def scan(self, since: date, until: date) -> list[DailyCost]:
        logger.debug("Scanning Claude project directories %s", self.project_dirs)
        files = self.find_jsonl_files(since, until)
        logger.debug("Found %d JSONL files", len(files))

        entries: list[LogEntry] = []
        for path in files:
            try:
                entries.extend(self.parse_file(path, since, until))
            except OSError as exc:
                logger.debug("Failed to parse file %s: %s", path, exc)

        return aggregate_entries(entries, self.pricing)