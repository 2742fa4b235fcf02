import pytest

from usagebar.settings import (
    Settings,
    SettingsError,
    SettingsWatcher,
    ThemeMode,
    config_path,
)

FULL_TOML = """
debug = true

[providers]
merge_icons = false

[providers.claude]
enabled = true

[providers.codex]
enabled = false

[display]
show_as_remaining = true

[notifications]
enabled = false
threshold = 0.85

[theme]
mode = "dark"
"""


def test_default_settings():
    settings = Settings()
    assert settings.providers.claude.enabled
    assert settings.providers.codex.enabled
    assert not settings.providers.merge_icons
    assert not settings.display.show_as_remaining
    assert settings.notifications.enabled
    assert settings.notifications.threshold == pytest.approx(0.9)
    assert settings.theme.mode is ThemeMode.SYSTEM
    assert settings.browser.preferred is None
    assert settings.debug is False


def test_settings_validation():
    settings = Settings()
    settings.validate()
    assert settings.notifications.threshold == pytest.approx(0.9)

    settings.notifications.threshold = 1.5
    with pytest.raises(SettingsError):
        settings.validate()

    settings.notifications.threshold = -0.1
    with pytest.raises(SettingsError):
        settings.validate()


def test_parse_toml():
    settings = Settings.from_toml(FULL_TOML)
    assert settings.debug
    assert not settings.providers.merge_icons
    assert settings.providers.claude.enabled
    assert not settings.providers.codex.enabled
    assert settings.display.show_as_remaining
    assert not settings.notifications.enabled
    assert settings.notifications.threshold == pytest.approx(0.85)
    assert settings.theme.mode is ThemeMode.DARK


def test_partial_toml_uses_defaults():
    settings = Settings.from_toml('[browser]\npreferred = "firefox"\n')
    assert settings.browser.preferred == "firefox"
    assert settings.providers.claude.enabled
    assert settings.notifications.threshold == pytest.approx(0.9)


def test_integer_threshold_accepted():
    settings = Settings.from_toml("[notifications]\nthreshold = 1\n")
    assert settings.notifications.threshold == 1.0


def test_unknown_theme_mode_rejected():
    with pytest.raises(SettingsError):
        Settings.from_toml('[theme]\nmode = "purple"\n')


def test_wrong_type_rejected():
    with pytest.raises(SettingsError):
        Settings.from_toml('debug = "yes"\n')


def test_invalid_toml_rejected():
    with pytest.raises(SettingsError):
        Settings.from_toml("[providers\n")


def test_load_missing_file_gives_defaults(tmp_path):
    settings = Settings.load(tmp_path / "nope.toml")
    assert settings == Settings()


def test_load_from_file(tmp_path):
    path = tmp_path / "config.toml"
    path.write_text(FULL_TOML)
    settings = Settings.load(path)
    assert settings.theme.mode is ThemeMode.DARK
    assert settings.debug is True


def test_load_bad_file_raises(tmp_path):
    path = tmp_path / "config.toml"
    path.write_text("debug = = true")
    with pytest.raises(SettingsError):
        Settings.load(path)


def test_config_path_uses_xdg(monkeypatch, tmp_path):
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path))
    assert config_path() == tmp_path / "claude-bar" / "config.toml"


def test_watcher_reload_broadcasts(tmp_path):
    path = tmp_path / "config.toml"
    watcher = SettingsWatcher(path)
    assert watcher.get() == Settings()

    receiver = watcher.subscribe()
    path.write_text(FULL_TOML)
    assert watcher.reload() is True
    assert watcher.get().theme.mode is ThemeMode.DARK
    assert receiver.get_nowait().debug is True


def test_watcher_keeps_old_settings_on_invalid(tmp_path):
    path = tmp_path / "config.toml"
    path.write_text("[notifications]\nthreshold = 0.5\n")
    watcher = SettingsWatcher(path)
    receiver = watcher.subscribe()

    path.write_text("[notifications]\nthreshold = 2.0\n")
    assert watcher.reload() is False
    assert watcher.get().notifications.threshold == pytest.approx(0.5)
    assert receiver.empty()


def test_watcher_rejects_invalid_initial(tmp_path):
    path = tmp_path / "config.toml"
    path.write_text("[notifications]\nthreshold = -1.0\n")
    with pytest.raises(SettingsError):
        SettingsWatcher(path)


def test_watcher_get_returns_copy(tmp_path):
    watcher = SettingsWatcher(tmp_path / "config.toml")
    copy_a = watcher.get()
    copy_a.debug = True
    assert watcher.get().debug is False