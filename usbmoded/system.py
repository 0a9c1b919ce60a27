"""Blocking system helpers: sysfs writes, wakelocks, commands and waits."""

from __future__ import annotations

import enum
import errno
import logging
import os
import signal
import subprocess
import time
from collections.abc import Callable
from pathlib import Path

logger = logging.getLogger(__name__)

SUSPEND_DELAY_MAXIMUM_MS = 10_000
WAKE_LOCK_PATH = "/sys/power/wake_lock"
WAKE_UNLOCK_PATH = "/sys/power/wake_unlock"

_NAP_MS = 200


class WaitResult(enum.Enum):
    """Outcome of a blocking wait."""

    FAILED = 0
    READY = 1
    TIMEOUT = 2


def write_to_sysfs_file(path: str | Path | None, text: str | None) -> bool:
    """Write text to an already existing file; missing files are ignored.

    Returns True if the text was written.
    """
    if path is None or text is None:
        return False
    try:
        fd = os.open(path, os.O_WRONLY)
    except OSError as exc:
        if exc.errno != errno.ENOENT:
            logger.warning("%s: open for writing failed: %s", path, exc.strerror)
        return False
    try:
        os.write(fd, text.encode())
    except OSError as exc:
        logger.warning("%s: write failed : %s", path, exc.strerror)
        return False
    finally:
        os.close(fd)
    return True


def acquire_wakelock(wakelock_name: str, lock_path: str | Path = WAKE_LOCK_PATH) -> bool:
    """Acquire a self-expiring wakelock so a hang cannot block suspend forever."""
    text = f"{wakelock_name} {SUSPEND_DELAY_MAXIMUM_MS * 1_000_000}"
    return write_to_sysfs_file(lock_path, text)


def release_wakelock(wakelock_name: str, unlock_path: str | Path = WAKE_UNLOCK_PATH) -> bool:
    """Release a wakelock acquired with acquire_wakelock()."""
    return write_to_sysfs_file(unlock_path, wakelock_name)


def run_command(command: str) -> int:
    """Run a shell command; return its exit code, or -1 if it did not exit."""
    logger.debug("EXEC %s", command)
    try:
        completed = subprocess.run(command, shell=True, check=False)
    except OSError as exc:
        logger.warning("EXEC %s; exec=failed (%s) result=-1", command, exc)
        return -1

    code = completed.returncode
    if code < 0:
        try:
            name = signal.Signals(-code).name
        except ValueError:
            name = str(-code)
        logger.warning("EXEC %s; signal=%s result=-1", command, name)
        return -1
    if code != 0:
        logger.warning("EXEC %s; exit_code=%d result=%d", command, code, code)
    return code


def open_pipe(command: str, mode: str = "r") -> subprocess.Popen:
    """Start a shell command with a pipe to read its output or feed its input."""
    logger.debug("EXEC %s", command)
    if mode == "r":
        return subprocess.Popen(command, shell=True, stdout=subprocess.PIPE, text=True)
    if mode == "w":
        return subprocess.Popen(command, shell=True, stdin=subprocess.PIPE, text=True)
    raise ValueError(f"invalid pipe mode: {mode!r}")


def wait(
    total_ms: int,
    ready: Callable[[], bool] | None = None,
    bailing_out: Callable[[], bool] | None = None,
) -> WaitResult:
    """Sleep in short naps until ready() holds, time runs out, or bail-out."""
    remaining = max(0, total_ms)
    while True:
        if ready is not None and ready():
            return WaitResult.READY
        if remaining <= 0:
            return WaitResult.TIMEOUT
        if bailing_out is not None and bailing_out():
            logger.warning("wait canceled")
            return WaitResult.FAILED
        nap = min(_NAP_MS, remaining)
        time.sleep(nap / 1000)
        remaining -= nap


def msleep(msec: int, bailing_out: Callable[[], bool] | None = None) -> bool:
    """Sleep msec milliseconds; return False if the sleep was cut short."""
    logger.debug("SLEEP %u.%03u seconds", msec // 1000, msec % 1000)
    return wait(msec, None, bailing_out) is WaitResult.TIMEOUT