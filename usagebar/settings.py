"""User configuration: loading, validation and reloading."""

from __future__ import annotations

import copy
import logging
import os
import queue
import threading
import tomllib
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

_SUBSCRIBER_CAPACITY = 16


class SettingsError(Exception):
    """Raised when the configuration cannot be found, read, parsed or validated."""


class ThemeMode(Enum):
    SYSTEM = "system"
    LIGHT = "light"
    DARK = "dark"


def _table(data: dict[str, Any], key: str) -> dict[str, Any]:
    value = data.get(key, {})
    if not isinstance(value, dict):
        raise SettingsError(f"`{key}` must be a table")
    return value


def _bool(data: dict[str, Any], key: str, default: bool) -> bool:
    value = data.get(key, default)
    if not isinstance(value, bool):
        raise SettingsError(f"`{key}` must be a boolean, got {value!r}")
    return value


def _float(data: dict[str, Any], key: str, default: float) -> float:
    value = data.get(key, default)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise SettingsError(f"`{key}` must be a number, got {value!r}")
    return float(value)


def _optional_str(data: dict[str, Any], key: str) -> str | None:
    value = data.get(key)
    if value is not None and not isinstance(value, str):
        raise SettingsError(f"`{key}` must be a string, got {value!r}")
    return value


@dataclass
class ProviderConfig:
    enabled: bool = True

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ProviderConfig:
        return cls(enabled=_bool(data, "enabled", True))


@dataclass
class ProviderSettings:
    claude: ProviderConfig = field(default_factory=ProviderConfig)
    codex: ProviderConfig = field(default_factory=ProviderConfig)
    merge_icons: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ProviderSettings:
        return cls(
            claude=ProviderConfig.from_dict(_table(data, "claude")),
            codex=ProviderConfig.from_dict(_table(data, "codex")),
            merge_icons=_bool(data, "merge_icons", False),
        )


@dataclass
class DisplaySettings:
    show_as_remaining: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DisplaySettings:
        return cls(show_as_remaining=_bool(data, "show_as_remaining", False))


@dataclass
class BrowserSettings:
    preferred: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> BrowserSettings:
        return cls(preferred=_optional_str(data, "preferred"))


@dataclass
class NotificationSettings:
    enabled: bool = True
    threshold: float = 0.9

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> NotificationSettings:
        return cls(
            enabled=_bool(data, "enabled", True),
            threshold=_float(data, "threshold", 0.9),
        )


@dataclass
class ThemeSettings:
    mode: ThemeMode = ThemeMode.SYSTEM

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ThemeSettings:
        raw = data.get("mode", ThemeMode.SYSTEM.value)
        try:
            mode = ThemeMode(raw)
        except ValueError:
            raise SettingsError(f"unknown theme mode {raw!r}") from None
        return cls(mode=mode)


def config_path() -> Path | None:
    """Location of the configuration file, or None if no config directory is known."""
    xdg = os.environ.get("XDG_CONFIG_HOME")
    if xdg and os.path.isabs(xdg):
        base = Path(xdg)
    else:
        try:
            base = Path.home() / ".config"
        except RuntimeError:
            return None
    return base / "claude-bar" / "config.toml"


@dataclass
class Settings:
    providers: ProviderSettings = field(default_factory=ProviderSettings)
    display: DisplaySettings = field(default_factory=DisplaySettings)
    browser: BrowserSettings = field(default_factory=BrowserSettings)
    notifications: NotificationSettings = field(default_factory=NotificationSettings)
    theme: ThemeSettings = field(default_factory=ThemeSettings)
    debug: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Settings:
        """Build settings from a parsed table; missing keys take their defaults."""
        return cls(
            providers=ProviderSettings.from_dict(_table(data, "providers")),
            display=DisplaySettings.from_dict(_table(data, "display")),
            browser=BrowserSettings.from_dict(_table(data, "browser")),
            notifications=NotificationSettings.from_dict(_table(data, "notifications")),
            theme=ThemeSettings.from_dict(_table(data, "theme")),
            debug=_bool(data, "debug", False),
        )

    @classmethod
    def from_toml(cls, text: str) -> Settings:
        try:
            data = tomllib.loads(text)
        except tomllib.TOMLDecodeError as exc:
            raise SettingsError(f"invalid TOML: {exc}") from exc
        return cls.from_dict(data)

    @classmethod
    def load(cls, path: str | os.PathLike[str] | None = None) -> Settings:
        """Load settings from *path* (default: config_path()); defaults if it is absent."""
        if path is None:
            path = config_path()
            if path is None:
                raise SettingsError("Could not determine config directory")
        path = Path(path)

        if not path.exists():
            logger.info("Config file not found at %s, using defaults", path)
            return cls()

        try:
            content = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise SettingsError(f"Failed to read config file: {path}") from exc

        try:
            settings = cls.from_toml(content)
        except SettingsError as exc:
            raise SettingsError(f"Failed to parse config file: {path}: {exc}") from exc

        logger.info("Loaded config from %s", path)
        return settings

    def validate(self) -> None:
        threshold = self.notifications.threshold
        if threshold < 0.0 or threshold > 1.0:
            raise SettingsError(
                f"notifications.threshold must be between 0.0 and 1.0, got {threshold}"
            )


class SettingsWatcher:
    """Holds the current settings and broadcasts them when they are reloaded."""

    def __init__(self, path: str | os.PathLike[str] | None = None) -> None:
        self._path = Path(path) if path is not None else None
        settings = Settings.load(self._path)
        settings.validate()
        self._settings = settings
        self._lock = threading.Lock()
        self._subscribers: list[queue.Queue[Settings]] = []

    def get(self) -> Settings:
        """A copy of the current settings."""
        with self._lock:
            return copy.deepcopy(self._settings)

    def subscribe(self) -> queue.Queue[Settings]:
        """A queue that receives every successfully reloaded configuration."""
        receiver: queue.Queue[Settings] = queue.Queue(maxsize=_SUBSCRIBER_CAPACITY)
        with self._lock:
            self._subscribers.append(receiver)
        return receiver

    def reload(self) -> bool:
        """Re-read the configuration; keep the old settings if it is invalid."""
        try:
            new_settings = Settings.load(self._path)
            new_settings.validate()
        except SettingsError as exc:
            logger.error("Failed to reload config, keeping old settings: %s", exc)
            return False

        logger.info("Config reloaded")
        with self._lock:
            self._settings = new_settings
            subscribers = list(self._subscribers)
        for receiver in subscribers:
            _offer(receiver, copy.deepcopy(new_settings))
        return True


def _offer(receiver: queue.Queue[Any], item: Any) -> None:
    """Put *item* on *receiver*, dropping the oldest entry when it is full."""
    while True:
        try:
            receiver.put_nowait(item)
            return
        except queue.Full:
            try:
                receiver.get_nowait()
            except queue.Empty:
                pass