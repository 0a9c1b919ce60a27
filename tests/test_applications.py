from pathlib import Path

import pytest

from usbmoded.applications import AppState, Application, load_applications
from usbmoded.keyfile import KeyFileError


def write_app(directory: Path, filename: str, **values: str) -> Path:
    lines = ["[info]"] + [f"{key}={value}" for key, value in values.items()]
    path = directory / filename
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return path


def test_load_systemd_application(tmp_path):
    path = write_app(tmp_path, "a.ini", name="sshd", mode="developer_mode", systemd="1")
    app = Application.load(path)
    assert app.name == "sshd"
    assert app.mode == "developer_mode"
    assert app.systemd is True
    assert app.launch is None
    assert app.post is False
    assert app.state is AppState.DONTCARE


def test_load_launch_application_with_post(tmp_path):
    path = write_app(
        tmp_path, "b.ini", name="mtp", mode="mtp_mode", launch="org.example.Mtp", post="1"
    )
    app = Application.load(path)
    assert app.launch == "org.example.Mtp"
    assert app.post is True
    assert app.systemd is False


def test_non_integer_flags_read_as_false(tmp_path):
    path = write_app(
        tmp_path, "c.ini", name="x", mode="m", launch="l", systemd="yes", post="maybe"
    )
    app = Application.load(path)
    assert app.systemd is False
    assert app.post is False


def test_missing_name_is_invalid(tmp_path):
    path = write_app(tmp_path, "d.ini", mode="m", systemd="1")
    with pytest.raises(ValueError):
        Application.load(path)


def test_missing_mode_is_invalid(tmp_path):
    path = write_app(tmp_path, "d.ini", name="n", systemd="1")
    with pytest.raises(ValueError):
        Application.load(path)


def test_no_start_method_is_invalid(tmp_path):
    path = write_app(tmp_path, "e.ini", name="n", mode="m", systemd="0")
    with pytest.raises(ValueError):
        Application.load(path)


def test_unparsable_file_raises_keyfile_error(tmp_path):
    path = tmp_path / "bad.ini"
    path.write_text("this is not a key file\n", encoding="utf-8")
    with pytest.raises(KeyFileError):
        Application.load(path)


def test_missing_file_raises_keyfile_error(tmp_path):
    with pytest.raises(KeyFileError):
        Application.load(tmp_path / "nothing.ini")


def test_is_valid_rules():
    assert Application(name="n", mode="m", systemd=True).is_valid()
    assert Application(name="n", mode="m", launch="l").is_valid()
    assert not Application(name=None, mode="m", launch="l").is_valid()
    assert not Application(name="n", mode="m").is_valid()


def test_load_applications_sorted_case_insensitively(tmp_path):
    write_app(tmp_path, "a.ini", name="Gamma", mode="m", systemd="1")
    write_app(tmp_path, "b.ini", name="beta", mode="m", systemd="1")
    write_app(tmp_path, "c.ini", name="alpha", mode="m", launch="l")
    apps = load_applications(tmp_path)
    assert [app.name for app in apps] == ["alpha", "beta", "Gamma"]


def test_load_applications_skips_invalid_and_non_ini(tmp_path):
    write_app(tmp_path, "good.ini", name="good", mode="m", systemd="1")
    write_app(tmp_path, "invalid.ini", name="invalid", mode="m")
    (tmp_path / "broken.ini").write_text("garbage\n", encoding="utf-8")
    write_app(tmp_path, "other.conf", name="other", mode="m", systemd="1")
    apps = load_applications(tmp_path)
    assert [app.name for app in apps] == ["good"]


def test_load_applications_missing_dir(tmp_path):
    assert load_applications(tmp_path / "absent") == []