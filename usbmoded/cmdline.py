"""Kernel command line parsing for network overrides."""

from __future__ import annotations

import logging
import re
import shlex
from pathlib import Path

logger = logging.getLogger(__name__)

NETWORK_IP_KEY = "ip"
NETWORK_GATEWAY_KEY = "gateway"
NETWORK_NETMASK_KEY = "netmask"

_CMDLINE_MAX = 1023
_IP_RE = re.compile(r"([0-9]{1,3})\.([0-9]{1,3})\.([0-9]{1,3})\.([0-9]{1,3})")


def validate_ip(ipadd: str) -> bool:
    """Return True if ipadd is a dotted-quad IPv4 address."""
    match = _IP_RE.fullmatch(ipadd)
    if not match:
        return False
    return all(int(part) <= 255 for part in match.groups())


def parse_kernel_cmdline(text: str, entry: str) -> str | None:
    """Extract an ip, gateway or netmask value from a usb_moded_ip argument.

    The argument looks like
    ``usb_moded_ip=192.168.3.100::192.168.3.1:255.255.255.0::usb0:on``.
    """
    try:
        argv = shlex.split(text)
    except ValueError:
        return None

    result: str | None = None
    for arg in argv:
        name, sep, value = arg.partition("=")
        if name.lower() != "usb_moded_ip" or not sep:
            continue
        tokens = value.split(":", 6)
        if len(tokens) < 6:
            continue
        if "usb" not in tokens[5] and "rndis" not in tokens[5]:
            continue
        if entry == NETWORK_IP_KEY:
            result = tokens[0]
            logger.debug("Command line ip = %s", result)
        elif entry == NETWORK_GATEWAY_KEY:
            # gateway may be empty; never hand out an empty string
            if len(tokens[2]) > 2:
                result = tokens[2]
                logger.debug("Command line gateway = %s", result)
        elif entry == NETWORK_NETMASK_KEY:
            result = tokens[3]
            logger.debug("Command line netmask = %s", result)
    return result


def read_kernel_cmdline(entry: str, path: str | Path = "/proc/cmdline") -> str | None:
    """Read the kernel command line and extract a network setting from it."""
    try:
        with open(path, "rb") as handle:
            data = handle.read(_CMDLINE_MAX)
    except OSError:
        logger.debug("could not read %s", path)
        return None
    if not data:
        logger.debug("kernel command line was empty")
        return None
    return parse_kernel_cmdline(data.decode("utf-8", errors="replace"), entry)