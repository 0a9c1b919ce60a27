"""Control of a configfs based USB gadget."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Protocol

from .android import format_usb_id
from .configfs_fs import (
    UDC_CLASS_DIR,
    FileType,
    file_type,
    find_udc,
    make_dir,
    read_file,
    remove_dir,
    write_file,
)
from .configfs_layout import ConfigfsLayout

logger = logging.getLogger(__name__)


class _GadgetSettings(Protocol):
    def android_manufacturer(self) -> str | None: ...
    def android_vendor_id(self) -> str | None: ...
    def android_product(self) -> str | None: ...
    def android_product_id(self) -> str | None: ...


class ConfigfsGadget:
    """A USB gadget assembled from configfs functions and configuration links."""

    def __init__(
        self,
        layout: ConfigfsLayout | None = None,
        udc_class_dir: str | Path = UDC_CLASS_DIR,
    ) -> None:
        self.layout = layout if layout is not None else ConfigfsLayout()
        self.udc_class_dir = Path(udc_class_dir)
        self._probed: bool | None = None
        self._udc_probed = False
        self._udc_value: str | None = None

    # ---------------------------------------------------------------- probing

    def probe(self) -> bool:
        """Detect the gadget; detection is repeated until it succeeds once."""
        if not self._probed:
            self._probed = (
                os.path.exists(self.layout.base_directory)
                and os.path.exists(self.layout.ctrl_udc)
            )
            logger.warning("CONFIGFS %sdetected", "" if self._probed else "not ")
        return self.in_use()

    def in_use(self) -> bool:
        """True when the gadget has been detected."""
        if self._probed is None:
            logger.debug("in_use() called before probe()")
        return bool(self._probed)

    # -------------------------------------------------------------------- UDC

    def _udc_enable_value(self) -> str:
        if not self._udc_probed:
            self._udc_probed = True
            self._udc_value = find_udc(self.udc_class_dir)
        return self._udc_value or ""

    def _write_udc(self, text: str) -> bool:
        previous = read_file(self.layout.ctrl_udc)
        if previous is None:
            return False
        if previous != text:
            return write_file(self.layout.ctrl_udc, text)
        return True

    def set_udc(self, enable: bool) -> bool:
        """Bind the gadget to the device controller, or unbind it."""
        logger.debug("UDC - %s", "ENABLE" if enable else "DISABLE")
        return self._write_udc(self._udc_enable_value() if enable else "")

    # -------------------------------------------------------------- functions

    def _register_function(self, function: str) -> str | None:
        path = self.layout.function_path(function)
        if not make_dir(path):
            return None
        logger.debug("function %s is registered", function)
        return path

    def _enable_function(self, function: str) -> bool:
        fpath = self._register_function(function)
        if fpath is None:
            logger.error("function %s is not registered", function)
            return False
        cpath = self.layout.config_path(function)
        kind = file_type(cpath)
        if kind is FileType.SYMLINK:
            try:
                os.unlink(cpath)
            except OSError as exc:
                logger.error("%s: unlink failed: %s", cpath, exc.strerror)
                return False
        elif kind is not None:
            logger.error("%s: is not a symlink", cpath)
            return False
        try:
            os.symlink(fpath, cpath)
        except OSError as exc:
            logger.error("%s: failed to symlink to %s: %s", cpath, fpath, exc.strerror)
            return False
        logger.debug("function %s is enabled", function)
        return True

    def _disable_function(self, function: str) -> bool:
        cpath = self.layout.config_path(function)
        if file_type(cpath) is not FileType.SYMLINK:
            logger.error("%s: is not a symlink", cpath)
            return False
        try:
            os.unlink(cpath)
        except OSError as exc:
            logger.error("%s: unlink failed: %s", cpath, exc.strerror)
            return False
        logger.debug("function %s is disabled", function)
        return True

    def _disable_all_functions(self) -> bool:
        directory = self.layout.conf_directory
        try:
            with os.scandir(directory) as entries:
                names = [entry.name for entry in entries if entry.is_symlink()]
        except OSError as exc:
            logger.error("%s: opendir failed: %s", directory, exc.strerror)
            return False
        ack = True
        for name in names:
            if not self._disable_function(name):
                ack = False
        if ack:
            logger.debug("all functions are disabled")
        return ack

    # ------------------------------------------------------------------ setup

    def init(
        self,
        config: _GadgetSettings | None,
        mac_address: str | None = None,
        serial: str | None = None,
    ) -> bool:
        """Unbind the gadget and write identity and function defaults."""
        if not self.probe():
            return self.in_use()

        self.set_udc(False)

        layout = self.layout
        if config is not None:
            for path, value in (
                (layout.ctrl_id_vendor, config.android_vendor_id()),
                (layout.ctrl_id_product, config.android_product_id()),
                (layout.ctrl_manufacturer, config.android_manufacturer()),
                (layout.ctrl_product, config.android_product()),
            ):
                if value is not None:
                    write_file(path, value)
        if serial:
            write_file(layout.ctrl_serial, serial)

        self._register_function(layout.function_mass_storage)
        self._register_function(layout.function_mtp)
        self._register_function(layout.function_rndis)
        if mac_address:
            write_file(layout.rndis_ctrl_ethaddr, mac_address)
        # needed for rndis discovery on newer Windows hosts
        write_file(layout.rndis_ctrl_wceis, "1")

        # left unbound until a cable connection is detected
        return self.in_use()

    def quit(self) -> None:
        """Forget cached controller information."""
        self._udc_probed = False
        self._udc_value = None

    # ------------------------------------------------------------------ modes

    def set_charging_mode(self) -> bool:
        """Configure a mass-storage-only gadget and bind it."""
        ack = False
        if self.set_function("mass_storage"):
            self.set_productid("0AFE")
            ack = self.set_udc(True)
        logger.debug("CONFIGFS set_charging_mode() -> %d", ack)
        return ack

    def set_productid(self, product_id: str | None) -> bool:
        """Write the USB product id, in the 0x-prefixed form the kernel wants."""
        ack = False
        if product_id is not None and self.in_use():
            product_id = format_usb_id(product_id, "0x")
            ack = write_file(self.layout.ctrl_id_product, product_id)
        logger.debug("CONFIGFS set_productid(%s) -> %d", product_id, ack)
        return ack

    def set_vendorid(self, vendor_id: str | None) -> bool:
        """Write the USB vendor id, in the 0x-prefixed form the kernel wants."""
        ack = False
        if vendor_id is not None and self.in_use():
            vendor_id = format_usb_id(vendor_id, "0x")
            ack = write_file(self.layout.ctrl_id_vendor, vendor_id)
        logger.debug("CONFIGFS set_vendorid(%s) -> %d", vendor_id, ack)
        return ack

    def set_function(self, functions: str | None) -> bool:
        """Enable a comma separated list of functions, or none; leaves UDC unbound."""
        ack = False
        if self.in_use() and self.set_udc(False) and self._disable_all_functions():
            ack = True
            for name in (functions.split(",") if functions is not None else []):
                use = self.layout.map_function(name)
                if not use:
                    continue
                if not self._enable_function(use):
                    ack = False
                    break
        logger.debug("CONFIGFS set_function(%s) -> %d", functions, ack)
        return ack

    def _lun_path(self, lun: int, *rest: str) -> str:
        return self.layout.function_path(self.layout.function_mass_storage, f"lun.{lun}", *rest)

    def add_mass_storage_lun(self, lun: int) -> bool:
        """Create a mass storage logical unit."""
        if not self.in_use():
            return False
        if not make_dir(self._lun_path(lun)):
            return False
        logger.debug("function %s unit lun.%d added", self.layout.function_mass_storage, lun)
        return True

    def remove_mass_storage_lun(self, lun: int) -> bool:
        """Remove a mass storage logical unit; a missing one counts as removed."""
        if not self.in_use():
            return False
        if not remove_dir(self._lun_path(lun)):
            return False
        logger.debug("function %s unit lun.%d removed", self.layout.function_mass_storage, lun)
        return True

    def set_mass_storage_attr(self, lun: int, attr: str, value: str) -> bool:
        """Write an attribute of a mass storage logical unit."""
        if not self.in_use():
            return False
        return write_file(self._lun_path(lun, attr), value)