"""Mode lists, the default mode setting, and hidden and whitelisted modes."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable

from .common import MODE_ASK, MODE_CHARGING, MODE_DIAG, ModeListType
from .config import (
    MODE_HIDE_KEY,
    MODE_SETTING_ENTRY,
    MODE_SETTING_KEY,
    MODE_WHITELIST_KEY,
    Config,
    SetConfigResult,
)

logger = logging.getLogger(__name__)

SIGNAL_SUPPORTED_MODES = "supported_modes"
SIGNAL_AVAILABLE_MODES = "available_modes"
SIGNAL_HIDDEN_MODES = "hidden_modes"
SIGNAL_WHITELISTED_MODES = "whitelisted_modes"
SIGNAL_SETTINGS_CHANGED = "settings_changed"

Notify = Callable[[str, "str | None"], None]


def _split_modes(value: str | None) -> list[str] | None:
    return None if value is None else value.split(",")


class ModeRegistry:
    """Knows the configured modes and applies hide/whitelist/permission rules."""

    def __init__(
        self,
        config: Config,
        modes: Iterable[str] | Callable[[], Iterable[str]] = (),
        permitted: Callable[[str, int], bool] | None = None,
        diag_mode: bool | Callable[[], bool] = False,
        notify: Notify | None = None,
    ) -> None:
        self.config = config
        self._modes = modes if callable(modes) else tuple(modes)
        self._permitted = permitted
        self._diag_mode = diag_mode
        self._notify = notify

    # ---------------------------------------------------------------- helpers

    @property
    def modes(self) -> list[str]:
        """Names of the configured dynamic modes, in order."""
        source = self._modes() if callable(self._modes) else self._modes
        return list(source)

    @property
    def diag_mode(self) -> bool:
        return bool(self._diag_mode() if callable(self._diag_mode) else self._diag_mode)

    def _is_permitted(self, mode: str, uid: int) -> bool:
        return True if self._permitted is None else bool(self._permitted(mode, uid))

    def _emit(self, signal: str, value: str | None) -> None:
        if self._notify is not None:
            self._notify(signal, value)

    def _send_mode_signals(self) -> None:
        self._emit(SIGNAL_HIDDEN_MODES, self.config.hidden_modes())
        self._emit(SIGNAL_SUPPORTED_MODES, self.mode_list(ModeListType.SUPPORTED, 0))
        self._emit(SIGNAL_AVAILABLE_MODES, self.mode_list(ModeListType.AVAILABLE, 0))

    # ------------------------------------------------------------------ modes

    def valid_mode(self, mode: str) -> bool:
        """True if mode exists and is whitelisted; charging is always valid."""
        if mode == MODE_CHARGING:
            return True
        if mode not in self.modes:
            return False
        whitelist = _split_modes(self.config.mode_whitelist())
        return whitelist is None or mode in whitelist

    def mode_list(self, list_type: ModeListType, uid: int = 0) -> str:
        """Comma separated list of modes, always ending with charging mode."""
        if self.diag_mode:
            return MODE_DIAG

        hidden = _split_modes(self.config.hidden_modes()) or []
        whitelist = None
        if ModeListType(list_type) is ModeListType.AVAILABLE:
            whitelist = _split_modes(self.config.mode_whitelist())

        names = [
            name
            for name in self.modes
            if self._is_permitted(name, uid)
            and name not in hidden
            and (whitelist is None or name in whitelist)
        ]
        names.append(MODE_CHARGING)
        return ", ".join(names)

    # --------------------------------------------------------------- settings

    def mode_setting(self, uid: int = 0) -> str:
        """Default mode for a user; invalid settings are reset to ask."""
        mode = self.config.kcmdline_string(MODE_SETTING_KEY)
        if mode is not None:
            return mode

        mode = self.config.get_user_string(MODE_SETTING_ENTRY, MODE_SETTING_KEY, uid)
        if mode is None:
            return MODE_CHARGING
        if mode != MODE_ASK and (not self.valid_mode(mode) or not self._is_permitted(mode, uid)):
            logger.warning(
                "default mode '%s' is not valid for uid '%d', reset to '%s'", mode, uid, MODE_ASK
            )
            mode = MODE_ASK
            try:
                self.set_mode_setting(mode, uid)
            except ValueError as exc:
                logger.warning("%s", exc)
        return mode

    def set_mode_setting(self, mode: str, uid: int = 0) -> SetConfigResult:
        """Store the default mode; raise ValueError for unknown or forbidden modes."""
        if mode != MODE_ASK and not self.valid_mode(mode):
            raise ValueError(f"mode {mode!r} does not exist or is not whitelisted")
        if not self._is_permitted(mode, uid):
            raise ValueError(f"mode {mode!r} is not permitted for uid {uid}")
        return self.config.set_user_setting(MODE_SETTING_ENTRY, MODE_SETTING_KEY, mode, uid)

    def _set_hidden(self, mode: str, hide: bool) -> SetConfigResult:
        hidden = self.config.make_modes_string(MODE_HIDE_KEY, mode, hide)
        result = self.config.set_setting(MODE_SETTING_ENTRY, MODE_HIDE_KEY, hidden)
        if result is SetConfigResult.UPDATED:
            self._send_mode_signals()
        return result

    def hide_mode(self, mode: str) -> SetConfigResult:
        """Add a mode to the hidden list."""
        return self._set_hidden(mode, True)

    def unhide_mode(self, mode: str) -> SetConfigResult:
        """Remove a mode from the hidden list."""
        return self._set_hidden(mode, False)

    def set_whitelist(self, whitelist: str, current_user: int = 0) -> SetConfigResult:
        """Replace the mode whitelist, resetting a default that drops out of it."""
        result = self.config.set_setting(MODE_SETTING_ENTRY, MODE_WHITELIST_KEY, whitelist)
        if result is SetConfigResult.UPDATED:
            setting = self.mode_setting(current_user)
            if setting != MODE_ASK and not self.valid_mode(setting):
                self.set_mode_setting(MODE_ASK, current_user)
            self._emit(SIGNAL_SETTINGS_CHANGED, None)
            self._emit(SIGNAL_WHITELISTED_MODES, whitelist)
            self._emit(SIGNAL_AVAILABLE_MODES, self.mode_list(ModeListType.AVAILABLE, 0))
        return result

    def set_mode_in_whitelist(
        self, mode: str, allowed: bool, current_user: int = 0
    ) -> SetConfigResult:
        """Add a mode to, or remove it from, the whitelist."""
        whitelist = self.config.make_modes_string(MODE_WHITELIST_KEY, mode, allowed)
        return self.set_whitelist(whitelist, current_user)