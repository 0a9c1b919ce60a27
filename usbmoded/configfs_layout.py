"""Paths and function names of a configfs USB gadget."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Protocol

logger = logging.getLogger(__name__)

CONFIGFS_ENTRY = "configfs"

DEFAULT_GADGET_BASE_DIRECTORY = "/config/usb_gadget/g1"
DEFAULT_GADGET_FUNC_DIRECTORY = "functions"
DEFAULT_GADGET_CONF_DIRECTORY = "configs/b.1"

GADGET_CTRL_UDC = "UDC"
GADGET_CTRL_ID_VENDOR = "idVendor"
GADGET_CTRL_ID_PRODUCT = "idProduct"
GADGET_CTRL_MANUFACTURER = "strings/0x409/manufacturer"
GADGET_CTRL_PRODUCT = "strings/0x409/product"
GADGET_CTRL_SERIAL = "strings/0x409/serialnumber"

DEFAULT_FUNCTION_MASS_STORAGE = "mass_storage.usb0"
DEFAULT_FUNCTION_RNDIS = "rndis_bam.rndis"
DEFAULT_FUNCTION_MTP = "ffs.mtp"

RNDIS_CTRL_WCEIS = "wceis"
RNDIS_CTRL_ETHADDR = "ethaddr"


class _SettingsSource(Protocol):
    def get_string(self, entry: str, key: str) -> str | None: ...


def strip_whitespace(text: str) -> str:
    """Trim control/space characters and collapse inner runs to one space."""
    words = []
    current: list[str] = []
    for ch in text:
        if ord(ch) <= 32:
            if current:
                words.append("".join(current))
                current = []
        else:
            current.append(ch)
    if current:
        words.append("".join(current))
    return " ".join(words)


@dataclass(frozen=True)
class ConfigfsLayout:
    """Directory layout and function names of a configfs gadget."""

    base_directory: str = DEFAULT_GADGET_BASE_DIRECTORY
    func_subdirectory: str = DEFAULT_GADGET_FUNC_DIRECTORY
    conf_subdirectory: str = DEFAULT_GADGET_CONF_DIRECTORY
    function_mass_storage: str = DEFAULT_FUNCTION_MASS_STORAGE
    function_rndis: str = DEFAULT_FUNCTION_RNDIS
    function_mtp: str = DEFAULT_FUNCTION_MTP

    @classmethod
    def from_config(cls, config: _SettingsSource | None) -> ConfigfsLayout:
        """Build the layout from the [configfs] settings, using defaults for gaps."""

        def get(key: str, default: str) -> str:
            if config is None:
                return default
            value = config.get_string(CONFIGFS_ENTRY, key)
            return default if value is None else value

        return cls(
            base_directory=get("gadget_base_directory", DEFAULT_GADGET_BASE_DIRECTORY),
            func_subdirectory=get("gadget_func_directory", DEFAULT_GADGET_FUNC_DIRECTORY),
            conf_subdirectory=get("gadget_conf_directory", DEFAULT_GADGET_CONF_DIRECTORY),
            function_mass_storage=get("function_mass_storage", DEFAULT_FUNCTION_MASS_STORAGE),
            function_rndis=get("function_rndis", DEFAULT_FUNCTION_RNDIS),
            function_mtp=get("function_mtp", DEFAULT_FUNCTION_MTP),
        )

    def _base(self, name: str) -> str:
        return f"{self.base_directory}/{name}"

    @property
    def func_directory(self) -> str:
        return self._base(self.func_subdirectory)

    @property
    def conf_directory(self) -> str:
        return self._base(self.conf_subdirectory)

    @property
    def ctrl_udc(self) -> str:
        return self._base(GADGET_CTRL_UDC)

    @property
    def ctrl_id_vendor(self) -> str:
        return self._base(GADGET_CTRL_ID_VENDOR)

    @property
    def ctrl_id_product(self) -> str:
        return self._base(GADGET_CTRL_ID_PRODUCT)

    @property
    def ctrl_manufacturer(self) -> str:
        return self._base(GADGET_CTRL_MANUFACTURER)

    @property
    def ctrl_product(self) -> str:
        return self._base(GADGET_CTRL_PRODUCT)

    @property
    def ctrl_serial(self) -> str:
        return self._base(GADGET_CTRL_SERIAL)

    @property
    def rndis_ctrl_wceis(self) -> str:
        return self.function_path(self.function_rndis, RNDIS_CTRL_WCEIS)

    @property
    def rndis_ctrl_ethaddr(self) -> str:
        return self.function_path(self.function_rndis, RNDIS_CTRL_ETHADDR)

    def function_path(self, *args: str) -> str:
        """Path of a function directory, or of an item below one."""
        return "/".join((self.func_directory, *args))

    def config_path(self, func: str) -> str:
        """Path of the configuration link that enables a function."""
        return f"{self.conf_directory}/{func}"

    def map_function(self, func: str | None) -> str | None:
        """Translate generic function names into this gadget's function names."""
        if func is None:
            return None
        if func == "mass_storage":
            return self.function_mass_storage
        if func == "rndis":
            return self.function_rndis
        if func in ("mtp", "ffs"):
            return self.function_mtp
        return func