"""Control of the android_usb gadget driver through sysfs."""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Protocol

logger = logging.getLogger(__name__)

ANDROID0_DIRECTORY = "/sys/class/android_usb/android0"
CMDLINE_PATH = "/proc/cmdline"

_SERIAL_MARKER = "androidboot.serialno="
_SERIAL_BREAK = re.compile(r"[ \t\r\n,]")
_HEX_RE = re.compile(r"\s*([+-]?)(?:0[xX])?([0-9a-fA-F]+)")
_WRITE_MAX = 63
_LONG_MAX = 2**63 - 1


class _AndroidSettings(Protocol):
    def android_manufacturer(self) -> str | None: ...
    def android_vendor_id(self) -> str | None: ...
    def android_product(self) -> str | None: ...
    def android_product_id(self) -> str | None: ...


def format_usb_id(text: str, prefix: str = "") -> str:
    """Normalise a hex id such as ``0AFE`` to four lower case digits.

    Text that is not entirely a hex number is returned unchanged.
    """
    match = _HEX_RE.fullmatch(text)
    if not match:
        return text
    sign, digits = match.groups()
    value = min(int(digits, 16), _LONG_MAX)
    if sign == "-":
        value = -value
    return f"{prefix}{value & 0xFFFFFFFF:04x}"


def parse_android_serial(text: str) -> str | None:
    """Serial number from the first line of a kernel command line."""
    line = text.split("\n", 1)[0]
    start = line.find(_SERIAL_MARKER)
    if start < 0:
        logger.warning("no serial found")
        return None
    serial = _SERIAL_BREAK.split(line[start + len(_SERIAL_MARKER):], 1)[0]
    if not serial:
        logger.warning("empty serial found")
        return None
    return serial


def read_android_serial(path: str | Path = CMDLINE_PATH) -> str | None:
    """Read the android serial number from the kernel command line."""
    try:
        with open(path, encoding="utf-8", errors="replace") as handle:
            line = handle.readline()
    except OSError as exc:
        logger.warning("%s: can't open: %s", path, exc)
        return None
    return parse_android_serial(line)


class AndroidGadget:
    """The android0 gadget exposed by the android_usb kernel driver."""

    def __init__(
        self,
        root: str | Path = ANDROID0_DIRECTORY,
        cmdline_path: str | Path = CMDLINE_PATH,
    ) -> None:
        self.root = Path(root)
        self.cmdline_path = Path(cmdline_path)
        self._probed: bool | None = None

    @property
    def enable_path(self) -> Path:
        return self.root / "enable"

    def _write(self, path: Path, text: str) -> bool:
        logger.debug("WRITE %s '%s'", path, text)
        data = f"{text}\n"[:_WRITE_MAX]
        try:
            with open(path, "w", encoding="utf-8") as handle:
                handle.write(data)
        except OSError as exc:
            logger.warning("%s: write failed: %s", path, exc)
            return False
        return True

    def probe(self) -> bool:
        """Detect the gadget; detection is repeated until it succeeds once."""
        if not self._probed:
            self._probed = self.enable_path.exists()
            logger.warning("ANDROID0 %sdetected", "" if self._probed else "not ")
        return self.in_use()

    def in_use(self) -> bool:
        """True when the gadget has been detected."""
        if self._probed is None:
            logger.debug("in_use() called before probe()")
        return bool(self._probed)

    def init(self, config: _AndroidSettings | None, mac_address: str | None = None) -> bool:
        """Disable the gadget and write identity and function defaults."""
        if not self.probe():
            return self.in_use()

        self.set_enabled(False)

        serial = read_android_serial(self.cmdline_path)
        if serial:
            self._write(self.root / "iSerial", serial)

        if config is not None:
            manufacturer = config.android_manufacturer()
            if manufacturer is not None:
                self._write(self.root / "iManufacturer", manufacturer)
            vendor_id = config.android_vendor_id()
            if vendor_id is not None:
                self.set_vendorid(vendor_id)
            product = config.android_product()
            if product is not None:
                self._write(self.root / "iProduct", product)
            product_id = config.android_product_id()
            if product_id is not None:
                self.set_productid(product_id)

        if mac_address:
            self.set_attr("f_rndis", "ethaddr", mac_address)
        # needed for rndis discovery on newer Windows hosts
        self.set_attr("f_rndis", "wceis", "1")

        # leftovers of mass-storage mode must not disturb charging modes
        self.set_attr("f_mass_storage", "lun/nofua", "0")
        self.set_attr("f_mass_storage", "lun/file", "")

        return self.in_use()

    def quit(self) -> None:
        """Release backend resources; nothing is held."""

    def set_enabled(self, enable: bool) -> bool:
        """Enable or disable the gadget."""
        ack = False
        if self.in_use():
            ack = self._write(self.enable_path, "1" if enable else "0")
        logger.debug("ANDROID set_enabled(%d) -> %d", enable, ack)
        return ack

    def set_charging_mode(self) -> bool:
        """Configure and enable a mass-storage-only charging gadget."""
        ack = (
            self.in_use()
            and self.set_function("mass_storage")
            and self.set_productid("0AFE")
            and self.set_enabled(True)
        )
        logger.debug("ANDROID set_charging_mode() -> %d", ack)
        return bool(ack)

    def set_function(self, function: str | None) -> bool:
        """Disable the gadget and select its function; it is left disabled."""
        ack = (
            function is not None
            and self.in_use()
            and self.set_enabled(False)
            and self._write(self.root / "functions", function)
        )
        logger.debug("ANDROID set_function(%s) -> %d", function, ack)
        return bool(ack)

    def set_productid(self, product_id: str | None) -> bool:
        """Write the USB product id."""
        ack = False
        if product_id is not None and self.in_use():
            product_id = format_usb_id(product_id)
            ack = self._write(self.root / "idProduct", product_id)
        logger.debug("ANDROID set_productid(%s) -> %d", product_id, ack)
        return ack

    def set_vendorid(self, vendor_id: str | None) -> bool:
        """Write the USB vendor id."""
        ack = False
        if vendor_id is not None and self.in_use():
            vendor_id = format_usb_id(vendor_id)
            ack = self._write(self.root / "idVendor", vendor_id)
        logger.debug("ANDROID set_vendorid(%s) -> %d", vendor_id, ack)
        return ack

    def set_attr(self, function: str | None, attr: str | None, value: str | None) -> bool:
        """Write an attribute of a gadget function."""
        ack = False
        if function is not None and attr is not None and value is not None and self.in_use():
            ack = self._write(self.root / function / attr, value)
        logger.debug("ANDROID set_attr(%s, %s, %s) -> %d", function, attr, value, ack)
        return ack