"""USB mode names, cable states and mode classification helpers."""

from __future__ import annotations

import enum
from dataclasses import dataclass

MODE_UNDEFINED = "undefined"
MODE_ASK = "ask"
MODE_MASS_STORAGE = "mass_storage"
MODE_DEVELOPER = "developer_mode"
MODE_MTP = "mtp_mode"
MODE_HOST = "host_mode"
MODE_CONNECTION_SHARING = "connection_sharing"
MODE_DIAG = "diag_mode"
MODE_ADB = "adb_mode"
MODE_PC_SUITE = "pc_suite"
MODE_CHARGING = "charging_only"
MODE_CHARGING_FALLBACK = "charging_only_fallback"
MODE_CHARGER = "dedicated_charger"
MODE_BUSY = "busy"

UID_UNKNOWN = -1


class ModeListType(enum.Enum):
    """Kind of mode list to build."""

    SUPPORTED = "supported"
    """All configured modes."""
    AVAILABLE = "available"
    """Configured modes that can be activated."""


class CableState(enum.Enum):
    """State of the USB cable as seen by the daemon."""

    UNKNOWN = "unknown"
    DISCONNECTED = "disconnected"
    CHARGER_CONNECTED = "charger_connected"
    PC_CONNECTED = "pc_connected"


def cable_state_repr(state: CableState) -> str:
    """Human readable name of a cable state."""
    return CableState(state).value


@dataclass(frozen=True)
class _ModeMapping:
    internal: str
    hardware: str | None = None
    external: str | None = None


_MODE_MAPPINGS = {
    mapping.internal: mapping
    for mapping in (
        _ModeMapping(MODE_UNDEFINED, hardware=MODE_CHARGING),
        _ModeMapping(MODE_ASK, hardware=MODE_CHARGING),
        _ModeMapping(MODE_MASS_STORAGE),
        _ModeMapping(MODE_DEVELOPER),
        _ModeMapping(MODE_MTP),
        _ModeMapping(MODE_HOST),
        _ModeMapping(MODE_CONNECTION_SHARING),
        _ModeMapping(MODE_DIAG),
        _ModeMapping(MODE_ADB),
        _ModeMapping(MODE_PC_SUITE),
        _ModeMapping(MODE_CHARGING, hardware=MODE_CHARGING),
        _ModeMapping(MODE_CHARGING_FALLBACK, hardware=MODE_CHARGING),
        _ModeMapping(MODE_CHARGER, hardware=MODE_CHARGING),
    )
}

_STATIC_MODES = frozenset({MODE_UNDEFINED, MODE_CHARGER, MODE_CHARGING_FALLBACK, MODE_CHARGING})


def map_mode_to_hardware(internal_mode: str) -> str:
    """Mode name to use when configuring the USB hardware."""
    mapping = _MODE_MAPPINGS.get(internal_mode)
    if mapping is not None and mapping.hardware:
        return mapping.hardware
    return internal_mode


def map_mode_to_external(internal_mode: str) -> str:
    """Mode name to use in D-Bus broadcasts."""
    mapping = _MODE_MAPPINGS.get(internal_mode)
    if mapping is not None and mapping.external:
        return mapping.external
    return internal_mode


def modename_is_static(modename: str | None) -> bool:
    """True for built-in modes that do not correspond to a mode file."""
    return modename in _STATIC_MODES


def modename_is_internal(modename: str | None) -> bool:
    """True for static modes and the ask / busy pseudo modes."""
    return modename_is_static(modename) or modename in (MODE_ASK, MODE_BUSY)