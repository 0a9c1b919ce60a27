import os

from usbmoded.configfs_fs import (
    FileType,
    file_type,
    find_udc,
    make_dir,
    read_file,
    remove_dir,
    write_file,
)


def test_file_type_kinds(tmp_path):
    regular = tmp_path / "file"
    regular.write_text("x")
    link = tmp_path / "link"
    os.symlink(regular, link)
    assert file_type(tmp_path) is FileType.DIRECTORY
    assert file_type(regular) is FileType.REGULAR
    assert file_type(link) is FileType.SYMLINK
    assert file_type(tmp_path / "missing") is None
    assert file_type(None) is None


def test_make_dir_creates_and_accepts_existing(tmp_path):
    target = tmp_path / "func"
    assert make_dir(target) is True
    assert file_type(target) is FileType.DIRECTORY
    assert make_dir(target) is True


def test_make_dir_rejects_file(tmp_path):
    target = tmp_path / "func"
    target.write_text("x")
    assert make_dir(target) is False


def test_make_dir_fails_without_parent(tmp_path):
    assert make_dir(tmp_path / "a" / "b") is False


def test_remove_dir(tmp_path):
    target = tmp_path / "lun.0"
    target.mkdir()
    assert remove_dir(target) is True
    assert not target.exists()
    assert remove_dir(target) is True


def test_remove_dir_non_empty_fails(tmp_path):
    target = tmp_path / "full"
    target.mkdir()
    (target / "inner").write_text("x")
    assert remove_dir(target) is False
    assert target.exists()


def test_write_file_appends_newline(tmp_path):
    target = tmp_path / "idVendor"
    target.write_text("")
    assert write_file(target, "0x2931") is True
    assert target.read_text() == "0x2931\n"


def test_write_file_does_not_create(tmp_path):
    target = tmp_path / "missing"
    assert write_file(target, "1") is False
    assert not target.exists()
    assert write_file(None, "1") is False
    assert write_file(target, None) is False


def test_write_file_truncates_long_text(tmp_path):
    target = tmp_path / "product"
    target.write_text("")
    assert write_file(target, "x" * 100) is True
    assert len(target.read_text()) == 63


def test_read_write_round_trip(tmp_path):
    target = tmp_path / "UDC"
    target.write_text("")
    write_file(target, "musb-hdrc.0")
    assert read_file(target) == "musb-hdrc.0"


def test_read_file_normalises_whitespace(tmp_path):
    target = tmp_path / "UDC"
    target.write_text("  a \n\t b \n")
    assert read_file(target) == "a b"


def test_read_file_missing(tmp_path):
    assert read_file(tmp_path / "missing") is None
    assert read_file(None) is None


def test_find_udc(tmp_path):
    udc = tmp_path / "udc"
    udc.mkdir()
    (udc / "plain").write_text("x")
    os.symlink(tmp_path, udc / ".hidden")
    assert find_udc(udc) is None
    os.symlink(tmp_path, udc / "ci_hdrc.0")
    assert find_udc(udc) == "ci_hdrc.0"


def test_find_udc_missing_dir(tmp_path):
    assert find_udc(tmp_path / "nope") is None