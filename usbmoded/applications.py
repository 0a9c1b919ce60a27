"""Applications that are started and stopped along with USB modes."""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from pathlib import Path

from .keyfile import KeyFile, KeyFileError

logger = logging.getLogger(__name__)

APP_INFO_ENTRY = "info"
APP_INFO_MODE_KEY = "mode"
APP_INFO_NAME_KEY = "name"
APP_INFO_LAUNCH_KEY = "launch"
APP_INFO_SYSTEMD_KEY = "systemd"
APP_INFO_POST = "post"


class AppState(enum.IntEnum):
    """Activation state of an application."""

    DONTCARE = 0
    """Not relevant for the current mode."""
    INACTIVE = 1
    """Should be started."""
    ACTIVE = 2
    """Should be stopped when the mode is left."""


@dataclass
class Application:
    """An application tied to a USB mode, described by an ini file."""

    name: str | None
    mode: str | None
    launch: str | None = None
    systemd: bool = False
    post: bool = False
    state: AppState = AppState.DONTCARE

    @classmethod
    def load(cls, filename: str | Path) -> Application:
        """Load an application description.

        Raises KeyFileError if the file cannot be read or parsed, and
        ValueError if it lacks a name, a mode, or a way to start it.
        """
        logger.debug("loading appsync file: %s", filename)
        try:
            keyfile = KeyFile.load(filename)
        except KeyFileError:
            logger.warning("failed to load appsync file: %s", filename)
            raise

        application = cls(
            name=keyfile.get_value(APP_INFO_ENTRY, APP_INFO_NAME_KEY),
            mode=keyfile.get_value(APP_INFO_ENTRY, APP_INFO_MODE_KEY),
            launch=keyfile.get_value(APP_INFO_ENTRY, APP_INFO_LAUNCH_KEY),
            systemd=bool(keyfile.get_int(APP_INFO_ENTRY, APP_INFO_SYSTEMD_KEY)),
            post=bool(keyfile.get_int(APP_INFO_ENTRY, APP_INFO_POST)),
        )
        logger.debug(
            "Appname = %s, Launch = %s, Launch mode = %s, Systemd control = %d, post = %d",
            application.name or "<unset>",
            application.launch or "<unset>",
            application.mode or "<unset>",
            application.systemd,
            application.post,
        )

        if not application.is_valid():
            logger.warning("discarding invalid appsync file: %s", filename)
            raise ValueError(f"{filename}: invalid appsync file")
        return application

    def is_valid(self) -> bool:
        """True if name, mode and either systemd control or a launch name are set."""
        return (
            self.name is not None
            and self.mode is not None
            and (self.systemd or self.launch is not None)
        )


def load_applications(conf_dir: str | Path) -> list[Application]:
    """Load all valid ``*.ini`` application files, sorted by name ignoring case."""
    paths = sorted(Path(conf_dir).glob("*.ini"))
    if not paths:
        logger.debug("no appsync ini-files found")

    applications = []
    for path in paths:
        try:
            applications.append(Application.load(path))
        except ValueError:
            continue

    # services for a mode are run in alphabetical order
    applications.sort(key=lambda app: (app.name or "").lower())
    return applications