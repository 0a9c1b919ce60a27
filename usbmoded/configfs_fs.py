"""Filesystem primitives used to drive a configfs USB gadget."""

from __future__ import annotations

import enum
import errno
import logging
import os
import stat
from pathlib import Path

from .configfs_layout import strip_whitespace

logger = logging.getLogger(__name__)

UDC_CLASS_DIR = "/sys/class/udc"

_IO_MAX = 63


class FileType(enum.Enum):
    """Kind of filesystem object, as reported by lstat()."""

    DIRECTORY = stat.S_IFDIR
    SYMLINK = stat.S_IFLNK
    REGULAR = stat.S_IFREG
    CHARACTER_DEVICE = stat.S_IFCHR
    BLOCK_DEVICE = stat.S_IFBLK
    FIFO = stat.S_IFIFO
    SOCKET = stat.S_IFSOCK


def file_type(path: str | Path | None) -> FileType | None:
    """Type of the object at path without following links; None if missing."""
    if path is None:
        return None
    try:
        mode = os.lstat(path).st_mode
    except OSError:
        return None
    return FileType(stat.S_IFMT(mode))


def make_dir(path: str | Path) -> bool:
    """Create a directory if needed; True if a directory is there afterwards."""
    try:
        os.mkdir(path, 0o775)
    except FileExistsError:
        pass
    except OSError as exc:
        logger.error("%s: mkdir failed: %s", path, exc.strerror)
        return False
    if file_type(path) is not FileType.DIRECTORY:
        logger.error("%s: is not a directory", path)
        return False
    return True


def remove_dir(path: str | Path) -> bool:
    """Remove a directory; a missing directory counts as success."""
    try:
        os.rmdir(path)
    except OSError as exc:
        if exc.errno != errno.ENOENT:
            logger.error("%s: rmdir failed: %s", path, exc.strerror)
            return False
    return True


def write_file(path: str | Path | None, text: str | None) -> bool:
    """Write a newline terminated value to an existing control file."""
    if path is None or text is None:
        return False
    logger.debug("WRITE %s '%s'", path, text)
    data = f"{text}\n".encode()[:_IO_MAX]
    try:
        fd = os.open(path, os.O_WRONLY)
    except OSError as exc:
        logger.error("%s: can't open for writing: %s", path, exc.strerror)
        return False
    try:
        written = os.write(fd, data)
    except OSError as exc:
        logger.error("%s: write failure: %s", path, exc.strerror)
        return False
    finally:
        os.close(fd)
    if written != len(data):
        logger.error("%s: write failure: partial success", path)
        return False
    return True


def read_file(path: str | Path | None) -> str | None:
    """Read a short control file value with whitespace normalised."""
    if path is None:
        return None
    try:
        fd = os.open(path, os.O_RDONLY)
    except OSError as exc:
        logger.error("%s: can't open for reading: %s", path, exc.strerror)
        return None
    try:
        data = os.read(fd, _IO_MAX)
    except OSError as exc:
        logger.error("%s: read failure: %s", path, exc.strerror)
        return None
    finally:
        os.close(fd)
    text = strip_whitespace(data.decode("utf-8", errors="replace"))
    logger.debug("READ %s '%s'", path, text)
    return text


def find_udc(udc_class_dir: str | Path = UDC_CLASS_DIR) -> str | None:
    """Name of the first USB device controller link, or None."""
    try:
        with os.scandir(udc_class_dir) as entries:
            for entry in entries:
                if entry.name.startswith("."):
                    continue
                if entry.is_symlink():
                    return entry.name
    except OSError as exc:
        logger.debug("%s: %s", udc_class_dir, exc)
    return None