import pytest

from usbmoded.common import ModeListType
from usbmoded.config import Config, SetConfigResult
from usbmoded.modelist import (
    SIGNAL_AVAILABLE_MODES,
    SIGNAL_HIDDEN_MODES,
    SIGNAL_SETTINGS_CHANGED,
    SIGNAL_SUPPORTED_MODES,
    SIGNAL_WHITELISTED_MODES,
    ModeRegistry,
)

MODES = ["mass_storage", "developer_mode", "mtp_mode"]


def make_config(tmp_path, static_text=None):
    static = tmp_path / "static"
    static.mkdir()
    if static_text is not None:
        (static / "10-test.ini").write_text(static_text)
    return Config(
        static_dir=static,
        dynamic_dir=tmp_path / "dynamic",
        cmdline_path=tmp_path / "no-cmdline",
    )


def make_registry(tmp_path, static_text=None, **kwargs):
    config = make_config(tmp_path, static_text)
    events = []
    registry = ModeRegistry(
        config, MODES, notify=lambda sig, val: events.append((sig, val)), **kwargs
    )
    return registry, config, events


def test_supported_list_ends_with_charging(tmp_path):
    registry, _, _ = make_registry(tmp_path)
    result = registry.mode_list(ModeListType.SUPPORTED, 0)
    assert result == "mass_storage, developer_mode, mtp_mode, charging_only"


def test_diag_mode_lists_only_diag(tmp_path):
    registry, _, _ = make_registry(tmp_path, diag_mode=True)
    assert registry.mode_list(ModeListType.SUPPORTED, 0) == "diag_mode"


def test_hidden_modes_are_skipped(tmp_path):
    registry, _, _ = make_registry(tmp_path, "[usbmode]\nhide=developer_mode\n")
    result = registry.mode_list(ModeListType.SUPPORTED, 0).split(", ")
    assert "developer_mode" not in result
    assert result[-1] == "charging_only"


def test_available_respects_whitelist(tmp_path):
    registry, _, _ = make_registry(tmp_path, "[usbmode]\nwhitelist=mtp_mode\n")
    assert registry.mode_list(ModeListType.AVAILABLE, 0).split(", ") == [
        "mtp_mode",
        "charging_only",
    ]
    assert len(registry.mode_list(ModeListType.SUPPORTED, 0).split(", ")) == len(MODES) + 1


def test_permission_filter(tmp_path):
    registry, _, _ = make_registry(
        tmp_path, permitted=lambda mode, uid: mode != "mass_storage"
    )
    assert "mass_storage" not in registry.mode_list(ModeListType.SUPPORTED, 5)


def test_valid_mode(tmp_path):
    registry, _, _ = make_registry(tmp_path, "[usbmode]\nwhitelist=mtp_mode\n")
    assert registry.valid_mode("charging_only") is True
    assert registry.valid_mode("mtp_mode") is True
    assert registry.valid_mode("mass_storage") is False
    assert registry.valid_mode("no_such_mode") is False


def test_mode_setting_default_is_ask(tmp_path):
    registry, _, _ = make_registry(tmp_path)
    assert registry.mode_setting(0) == "ask"


def test_mode_setting_from_static(tmp_path):
    registry, _, _ = make_registry(tmp_path, "[usbmode]\nmode=mtp_mode\n")
    assert registry.mode_setting(0) == "mtp_mode"


def test_invalid_mode_setting_reset_to_ask(tmp_path):
    registry, config, _ = make_registry(tmp_path)
    config.set_setting("usbmode", "mode", "bogus")
    assert registry.mode_setting(0) == "ask"
    assert config.get_string("usbmode", "mode") == "ask"


def test_set_mode_setting_round_trip(tmp_path):
    registry, config, _ = make_registry(tmp_path)
    assert registry.set_mode_setting("mtp_mode", 0) is SetConfigResult.UPDATED
    assert registry.mode_setting(0) == "mtp_mode"
    assert registry.set_mode_setting("mtp_mode", 0) is SetConfigResult.UNCHANGED


def test_set_mode_setting_rejects_unknown(tmp_path):
    registry, _, _ = make_registry(tmp_path)
    with pytest.raises(ValueError):
        registry.set_mode_setting("bogus", 0)


def test_set_mode_setting_rejects_not_permitted(tmp_path):
    registry, _, _ = make_registry(tmp_path, permitted=lambda mode, uid: uid == 0)
    with pytest.raises(ValueError):
        registry.set_mode_setting("mtp_mode", 7)


def test_hide_and_unhide_notify(tmp_path):
    registry, config, events = make_registry(tmp_path)
    assert registry.hide_mode("mtp_mode") is SetConfigResult.UPDATED
    assert config.hidden_modes() == "mtp_mode"
    signals = [sig for sig, _ in events]
    assert signals == [SIGNAL_HIDDEN_MODES, SIGNAL_SUPPORTED_MODES, SIGNAL_AVAILABLE_MODES]
    assert "mtp_mode" not in dict(events)[SIGNAL_SUPPORTED_MODES]

    events.clear()
    assert registry.hide_mode("mtp_mode") is SetConfigResult.UNCHANGED
    assert events == []

    assert registry.unhide_mode("mtp_mode") is SetConfigResult.UPDATED
    assert config.hidden_modes() == ""


def test_set_mode_in_whitelist(tmp_path):
    registry, config, events = make_registry(tmp_path)
    assert registry.set_mode_in_whitelist("mtp_mode", True, 0) is SetConfigResult.UPDATED
    assert config.mode_whitelist() == "mtp_mode"
    signals = [sig for sig, _ in events]
    assert signals == [SIGNAL_SETTINGS_CHANGED, SIGNAL_WHITELISTED_MODES, SIGNAL_AVAILABLE_MODES]
    assert dict(events)[SIGNAL_WHITELISTED_MODES] == "mtp_mode"

    registry.set_mode_in_whitelist("mass_storage", True, 0)
    assert config.mode_whitelist() == "mtp_mode,mass_storage"
    registry.set_mode_in_whitelist("mtp_mode", False, 0)
    assert config.mode_whitelist() == "mass_storage"


def test_whitelist_resets_dropped_default(tmp_path):
    registry, config, _ = make_registry(tmp_path)
    registry.set_mode_setting("developer_mode", 0)
    registry.set_whitelist("mtp_mode", 0)
    assert config.get_string("usbmode", "mode") == "ask"