"""Layered daemon configuration: static ini files, legacy file and dynamic settings."""

from __future__ import annotations

import enum
import errno
import logging
import os
import tempfile
from collections.abc import Callable
from pathlib import Path

from .cmdline import read_kernel_cmdline, validate_ip
from .common import MODE_ASK
from .keyfile import KeyFile

logger = logging.getLogger(__name__)

MODE_SETTING_ENTRY = "usbmode"
MODE_SETTING_KEY = "mode"
FS_MOUNT_DEFAULT = "/dev/mmcblk0p1"
FS_MOUNT_ENTRY = "mountpoints"
FS_MOUNT_KEY = "mount"
FS_SYNC_ENTRY = "sync"
FS_SYNC_KEY = "nofua"
ALT_MOUNT_ENTRY = "altmount"
ALT_MOUNT_KEY = "mount"
UDEV_PATH_ENTRY = "udev"
UDEV_PATH_KEY = "path"
UDEV_SUBSYSTEM_KEY = "subsystem"
CDROM_ENTRY = "cdrom"
CDROM_PATH_KEY = "path"
CDROM_TIMEOUT_KEY = "timeout"
TRIGGER_ENTRY = "trigger"
TRIGGER_PATH_KEY = "path"
TRIGGER_UDEV_SUBSYSTEM = "udev_subsystem"
TRIGGER_MODE_KEY = "mode"
TRIGGER_PROPERTY_KEY = "property"
TRIGGER_PROPERTY_VALUE_KEY = "value"
NETWORK_ENTRY = "network"
NETWORK_IP_KEY = "ip"
NETWORK_INTERFACE_KEY = "interface"
NETWORK_GATEWAY_KEY = "gateway"
NETWORK_NAT_INTERFACE_KEY = "nat_interface"
NETWORK_NETMASK_KEY = "netmask"
NO_ROAMING_KEY = "noroaming"
ANDROID_ENTRY = "android"
ANDROID_MANUFACTURER_KEY = "iManufacturer"
ANDROID_VENDOR_ID_KEY = "idVendor"
ANDROID_PRODUCT_KEY = "iProduct"
ANDROID_PRODUCT_ID_KEY = "idProduct"
MODE_HIDE_KEY = "hide"
MODE_WHITELIST_KEY = "whitelist"
MODE_GROUP_ENTRY = "mode_group"

DEFAULT_STATIC_DIR = "/etc/usb-moded"
DEFAULT_DYNAMIC_DIR = "/var/lib/usb-moded"
CONFIG_FILE_NAME = "usb-moded.ini"

DEFAULT_NETWORK_IP = "192.168.2.15"
DEFAULT_NETWORK_INTERFACE = "usb0"
DEFAULT_NETWORK_NETMASK = "255.255.255.0"


class SetConfigResult(enum.Enum):
    """Outcome of a configuration change."""

    ERROR = -1
    UPDATED = 0
    UNCHANGED = 1


class Config:
    """Access to merged static and dynamic settings.

    Static settings come from ``*.ini`` files in the static directory, in
    sorted order. User changes are kept in a dynamic file that only holds
    values differing from the static ones.
    """

    #: uids of additional users that get per-user setting keys; None disables
    additional_users: range | None = None

    def __init__(
        self,
        static_dir: str | Path = DEFAULT_STATIC_DIR,
        dynamic_dir: str | Path = DEFAULT_DYNAMIC_DIR,
        legacy_file: str | Path | None = None,
        cmdline_path: str | Path = "/proc/cmdline",
        mode_interface: Callable[[], str | None] | None = None,
        on_change: Callable[[str, str, str], None] | None = None,
    ) -> None:
        self.static_dir = Path(static_dir)
        self.dynamic_dir = Path(dynamic_dir)
        self.dynamic_file = self.dynamic_dir / CONFIG_FILE_NAME
        self.legacy_file = Path(legacy_file) if legacy_file else self.static_dir / CONFIG_FILE_NAME
        self.cmdline_path = Path(cmdline_path)
        self.mode_interface = mode_interface
        self.on_change = on_change

    # ------------------------------------------------------------------ files

    def _load_static(self) -> KeyFile:
        ini = KeyFile()
        ini.set_value(MODE_SETTING_ENTRY, MODE_SETTING_KEY, MODE_ASK)
        paths = sorted(self.static_dir.glob("*.ini"))
        if not paths:
            logger.debug("no configuration ini-files found")
        for path in paths:
            if path != self.legacy_file:
                ini.merge_file(path)
        return ini

    def _load_legacy(self) -> KeyFile | None:
        if not self.legacy_file.exists():
            return None
        if self.dynamic_file.exists():
            logger.warning("%s: has reappeared after settings migration", self.legacy_file)
            return None
        ini = KeyFile()
        if not ini.merge_file(self.legacy_file):
            return None
        # mode=ask in the legacy file may be a mere default; ignore it
        if ini.get_value(MODE_SETTING_ENTRY, MODE_SETTING_KEY) == MODE_ASK:
            ini.remove_key(MODE_SETTING_ENTRY, MODE_SETTING_KEY)
        return ini

    def _remove_legacy(self) -> None:
        try:
            self.legacy_file.unlink()
        except FileNotFoundError:
            pass
        except OSError as exc:
            logger.warning("%s: can't remove stale config file: %s", self.legacy_file, exc)

    def _load_dynamic(self, ini: KeyFile) -> None:
        ini.merge_file(self.dynamic_file)

    def _save_dynamic(self, ini: KeyFile) -> None:
        ini.purge_empty_groups()
        current = ini.to_data()
        try:
            previous: str | None = self.dynamic_file.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError):
            previous = None
        if previous == current:
            return
        try:
            self.dynamic_dir.mkdir(mode=0o755, exist_ok=True)
        except OSError as exc:
            logger.error("%s: can't create dir: %s", self.dynamic_dir, exc)
            return
        try:
            self._write_atomic(current)
        except OSError as exc:
            logger.error("%s: can't save: %s", self.dynamic_file, exc)
            return
        logger.debug("%s: updated", self.dynamic_file)
        self._remove_legacy()

    def _write_atomic(self, data: str) -> None:
        fd, tmp = tempfile.mkstemp(dir=self.dynamic_dir, prefix=f".{CONFIG_FILE_NAME}.")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(data)
            os.chmod(tmp, 0o644)
            os.replace(tmp, self.dynamic_file)
        except OSError:
            try:
                os.unlink(tmp)
            except OSError as exc:
                if exc.errno != errno.ENOENT:
                    logger.debug("%s: %s", tmp, exc)
            raise

    # -------------------------------------------------------------- settings

    def init(self) -> bool:
        """Migrate legacy settings and store only non-default dynamic values."""
        static_ini = self._load_static()
        active_ini = KeyFile()
        legacy_ini = self._load_legacy()
        if legacy_ini is not None:
            legacy_ini.purge(static_ini)
            active_ini.merge(legacy_ini)
        self._load_dynamic(active_ini)
        active_ini.purge(static_ini)
        self._save_dynamic(active_ini)
        return True

    def settings(self) -> KeyFile:
        """Currently effective settings: static values overridden by dynamic ones."""
        ini = self._load_static()
        self._load_dynamic(ini)
        return ini

    def get_string(self, entry: str, key: str) -> str | None:
        """Value of a setting, or None when it is not set."""
        return self.settings().get_value(entry, key)

    def get_int(self, entry: str, key: str) -> int:
        """Integer value of a setting; zero when missing."""
        return self.settings().get_int(entry, key)

    def user_key(self, base_key: str, uid: int) -> str | None:
        """Per-user key name for additional users, or None."""
        if self.additional_users is not None and uid in self.additional_users:
            return f"{base_key}_{uid}"
        return None

    def get_user_string(self, entry: str, base_key: str, uid: int) -> str | None:
        """User specific value, falling back to the global one."""
        key = self.user_key(base_key, uid)
        value = self.get_string(entry, key) if key else None
        if value is None:
            value = self.get_string(entry, base_key)
        return value

    def kcmdline_string(self, entry: str) -> str | None:
        """Setting override from the kernel command line."""
        return read_kernel_cmdline(entry, self.cmdline_path)

    def set_setting(self, entry: str, key: str, value: str) -> SetConfigResult:
        """Change a setting and persist the dynamic configuration."""
        static_ini = self._load_static()
        active_ini = KeyFile()
        active_ini.merge(static_ini)
        self._load_dynamic(active_ini)

        result = SetConfigResult.UNCHANGED
        if active_ini.get_value(entry, key) != value:
            active_ini.set_value(entry, key, value)
            result = SetConfigResult.UPDATED
            if self.on_change is not None:
                self.on_change(entry, key, value)

        active_ini.purge(static_ini)
        self._save_dynamic(active_ini)
        return result

    def set_user_setting(self, entry: str, base_key: str, value: str, uid: int) -> SetConfigResult:
        """Change a setting under the user specific key when there is one."""
        key = self.user_key(base_key, uid) or base_key
        return self.set_setting(entry, key, value)

    def make_modes_string(self, key: str, mode_name: str, include: bool) -> str:
        """Comma separated mode list with mode_name added or removed."""
        old = self.get_string(MODE_SETTING_ENTRY, key) or ""
        modes: list[str] = []
        for name in old.split(","):
            if not name:
                continue
            if name == mode_name:
                if not include:
                    continue
                include = False
            modes.append(name)
        if include:
            modes.append(mode_name)
        return ",".join(modes)

    # ------------------------------------------------------------- accessors

    def find_mounts(self) -> str:
        return self.get_string(FS_MOUNT_ENTRY, FS_MOUNT_KEY) or FS_MOUNT_DEFAULT

    def find_sync(self) -> int:
        return self.get_int(FS_SYNC_ENTRY, FS_SYNC_KEY)

    def find_alt_mount(self) -> str | None:
        return self.get_string(ALT_MOUNT_ENTRY, ALT_MOUNT_KEY)

    def find_udev_path(self) -> str | None:
        return self.get_string(UDEV_PATH_ENTRY, UDEV_PATH_KEY)

    def find_udev_subsystem(self) -> str | None:
        return self.get_string(UDEV_PATH_ENTRY, UDEV_SUBSYSTEM_KEY)

    def check_trigger(self) -> str | None:
        return self.get_string(TRIGGER_ENTRY, TRIGGER_PATH_KEY)

    def trigger_subsystem(self) -> str | None:
        return self.get_string(TRIGGER_ENTRY, TRIGGER_UDEV_SUBSYSTEM)

    def trigger_mode(self) -> str | None:
        return self.get_string(TRIGGER_ENTRY, TRIGGER_MODE_KEY)

    def trigger_property(self) -> str | None:
        return self.get_string(TRIGGER_ENTRY, TRIGGER_PROPERTY_KEY)

    def trigger_value(self) -> str | None:
        return self.get_string(TRIGGER_ENTRY, TRIGGER_PROPERTY_VALUE_KEY)

    def network_setting(self, name: str) -> str | None:
        """Effective network setting, with command line overrides and defaults."""
        if name == NETWORK_IP_KEY:
            ip = self.kcmdline_string(NETWORK_IP_KEY)
            if ip is not None and validate_ip(ip):
                return ip
            return self.get_string(NETWORK_ENTRY, NETWORK_IP_KEY) or DEFAULT_NETWORK_IP
        if name == NETWORK_INTERFACE_KEY:
            interface = self.get_string(NETWORK_ENTRY, NETWORK_INTERFACE_KEY)
            if interface:
                return interface
            if self.mode_interface is not None:
                interface = self.mode_interface()
                if interface:
                    return interface
            return DEFAULT_NETWORK_INTERFACE
        if name == NETWORK_GATEWAY_KEY:
            gateway = self.kcmdline_string(NETWORK_GATEWAY_KEY)
            if gateway is not None:
                return gateway
            return self.get_string(NETWORK_ENTRY, NETWORK_GATEWAY_KEY)
        if name == NETWORK_NETMASK_KEY:
            netmask = self.kcmdline_string(NETWORK_NETMASK_KEY)
            if netmask is not None:
                return netmask
            return self.get_string(NETWORK_ENTRY, NETWORK_NETMASK_KEY) or DEFAULT_NETWORK_NETMASK
        if name == NETWORK_NAT_INTERFACE_KEY:
            return self.get_string(NETWORK_ENTRY, NETWORK_NAT_INTERFACE_KEY)
        return None

    def set_network_setting(self, name: str, value: str) -> SetConfigResult:
        """Change ip, gateway or interface; raise ValueError for bad input."""
        if name in (NETWORK_IP_KEY, NETWORK_GATEWAY_KEY) and not validate_ip(value):
            raise ValueError(f"invalid {name} address: {value!r}")
        if name not in (NETWORK_IP_KEY, NETWORK_INTERFACE_KEY, NETWORK_GATEWAY_KEY):
            raise ValueError(f"network setting {name!r} can't be changed")
        return self.set_setting(NETWORK_ENTRY, name, value)

    def android_manufacturer(self) -> str | None:
        return self.get_string(ANDROID_ENTRY, ANDROID_MANUFACTURER_KEY)

    def android_vendor_id(self) -> str | None:
        return self.get_string(ANDROID_ENTRY, ANDROID_VENDOR_ID_KEY)

    def android_product(self) -> str | None:
        return self.get_string(ANDROID_ENTRY, ANDROID_PRODUCT_KEY)

    def android_product_id(self) -> str | None:
        return self.get_string(ANDROID_ENTRY, ANDROID_PRODUCT_ID_KEY)

    def hidden_modes(self) -> str | None:
        return self.get_string(MODE_SETTING_ENTRY, MODE_HIDE_KEY)

    def mode_whitelist(self) -> str | None:
        return self.get_string(MODE_SETTING_ENTRY, MODE_WHITELIST_KEY)

    def is_roaming_not_allowed(self) -> bool:
        return bool(self.get_int(NETWORK_ENTRY, NO_ROAMING_KEY))

    def user_clear(self, uid: int) -> bool:
        """Remove the per-user mode setting of an additional user."""
        if self.additional_users is not None and uid not in self.additional_users:
            logger.error("Invalid uid value: %d", uid)
            return False
        active_ini = KeyFile()
        self._load_dynamic(active_ini)
        key = self.user_key(MODE_SETTING_KEY, uid)
        if key and active_ini.remove_key(MODE_SETTING_ENTRY, key):
            self._save_dynamic(active_ini)
        return True