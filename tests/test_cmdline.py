import pytest

from usbmoded.cmdline import parse_kernel_cmdline, read_kernel_cmdline, validate_ip

CMDLINE = (
    "console=ttyS0 quiet "
    "usb_moded_ip=192.168.3.100::192.168.3.1:255.255.255.0::usb0:on rootwait"
)


@pytest.mark.parametrize(
    "address", ["192.168.2.15", "0.0.0.0", "255.255.255.255", "001.2.3.4"]
)
def test_valid_addresses(address):
    assert validate_ip(address) is True


@pytest.mark.parametrize(
    "address",
    ["", "256.1.1.1", "1.2.3", "1.2.3.4.5", "1234.1.1.1", "1.2.3.4 ", "a.b.c.d", "1..2.3"],
)
def test_invalid_addresses(address):
    assert validate_ip(address) is False


def test_parse_ip_gateway_netmask():
    assert parse_kernel_cmdline(CMDLINE, "ip") == "192.168.3.100"
    assert parse_kernel_cmdline(CMDLINE, "gateway") == "192.168.3.1"
    assert parse_kernel_cmdline(CMDLINE, "netmask") == "255.255.255.0"


def test_parse_unknown_entry_and_missing_argument():
    assert parse_kernel_cmdline(CMDLINE, "mode") is None
    assert parse_kernel_cmdline("console=ttyS0 quiet", "ip") is None


def test_parse_requires_usb_or_rndis_interface():
    text = "usb_moded_ip=10.0.0.2::10.0.0.1:255.0.0.0::eth0:on"
    assert parse_kernel_cmdline(text, "ip") is None
    text = "usb_moded_ip=10.0.0.2::10.0.0.1:255.0.0.0::rndis0:on"
    assert parse_kernel_cmdline(text, "ip") == "10.0.0.2"


def test_parse_empty_gateway_is_ignored():
    text = "USB_MODED_IP=10.0.0.2:::255.0.0.0::usb0:on"
    assert parse_kernel_cmdline(text, "gateway") is None
    assert parse_kernel_cmdline(text, "ip") == "10.0.0.2"


def test_parse_bad_quoting_and_short_values():
    assert parse_kernel_cmdline('foo="unterminated ' + CMDLINE, "ip") is None
    assert parse_kernel_cmdline("usb_moded_ip=1.2.3.4:usb0", "ip") is None
    assert parse_kernel_cmdline("usb_moded_ip", "ip") is None


def test_read_from_file(tmp_path):
    path = tmp_path / "cmdline"
    path.write_text(CMDLINE + "\n", encoding="utf-8")
    assert read_kernel_cmdline("ip", path) == "192.168.3.100"


def test_read_missing_or_empty(tmp_path):
    assert read_kernel_cmdline("ip", tmp_path / "absent") is None
    empty = tmp_path / "empty"
    empty.write_bytes(b"")
    assert read_kernel_cmdline("ip", empty) is None