"""Minimal ini-style key file store with merge and purge helpers."""

from __future__ import annotations

import logging
import re
from collections.abc import Iterator
from pathlib import Path

logger = logging.getLogger(__name__)

_INT_RE = re.compile(r"[+-]?[0-9]+")


class KeyFileError(ValueError):
    """Raised when key file data cannot be parsed or stored."""


class KeyFile:
    """Ordered collection of groups holding key/value string pairs."""

    def __init__(self) -> None:
        self._groups: dict[str, dict[str, str]] = {}

    @classmethod
    def from_text(cls, text: str) -> KeyFile:
        """Parse key file text."""
        keyfile = cls()
        current: str | None = None
        for lineno, raw in enumerate(text.splitlines(), start=1):
            line = raw.strip()
            if not line or line.startswith("#"):
                continue
            if line.startswith("["):
                if not line.endswith("]") or len(line) < 3:
                    raise KeyFileError(f"line {lineno}: malformed group header: {raw!r}")
                current = line[1:-1]
                if "[" in current or "]" in current:
                    raise KeyFileError(f"line {lineno}: invalid group name: {current!r}")
                keyfile._groups.setdefault(current, {})
                continue
            key, sep, value = line.partition("=")
            key = key.strip()
            if not sep or not key:
                raise KeyFileError(
                    f"line {lineno}: not a key-value pair, group, or comment: {raw!r}"
                )
            if current is None:
                raise KeyFileError(f"line {lineno}: key {key!r} outside of any group")
            keyfile._groups[current][key] = value.strip()
        return keyfile

    @classmethod
    def load(cls, path: str | Path) -> KeyFile:
        """Read and parse a key file from disk."""
        try:
            text = Path(path).read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise KeyFileError(f"{path}: can't load: {exc}") from exc
        return cls.from_text(text)

    def __contains__(self, group: object) -> bool:
        return group in self._groups

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._groups))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, KeyFile):
            return NotImplemented
        return self._groups == other._groups

    def groups(self) -> list[str]:
        """Names of all groups, in insertion order."""
        return list(self._groups)

    def keys(self, group: str) -> list[str]:
        """Keys of a group; empty when the group does not exist."""
        return list(self._groups.get(group, {}))

    def get_value(self, group: str, key: str) -> str | None:
        """Raw value of a key, or None when it is not set."""
        return self._groups.get(group, {}).get(key)

    def get_int(self, group: str, key: str) -> int:
        """Integer value of a key; zero when missing or not an integer."""
        value = self.get_value(group, key)
        if value is None:
            return 0
        value = value.strip()
        if not _INT_RE.fullmatch(value):
            return 0
        return int(value)

    def set_value(self, group: str, key: str, value: str) -> None:
        """Store a value, creating the group when needed."""
        if any(ch in group for ch in "[]\n\r"):
            raise KeyFileError(f"invalid group name: {group!r}")
        if not key or any(ch in key for ch in "=\n\r"):
            raise KeyFileError(f"invalid key name: {key!r}")
        if "\n" in value or "\r" in value:
            raise KeyFileError(f"value for {key!r} contains a line break")
        self._groups.setdefault(group, {})[key] = value

    def remove_key(self, group: str, key: str) -> bool:
        """Remove a key; return True if it existed."""
        entries = self._groups.get(group)
        if entries is None or key not in entries:
            return False
        del entries[key]
        return True

    def remove_group(self, group: str) -> bool:
        """Remove a group and its keys; return True if it existed."""
        return self._groups.pop(group, None) is not None

    def merge(self, other: KeyFile) -> None:
        """Copy every value of another key file over this one."""
        for group, entries in other._groups.items():
            for key, value in entries.items():
                self.set_value(group, key, value)

    def merge_file(self, path: str | Path) -> bool:
        """Merge values from a file; return False if it could not be loaded."""
        try:
            other = KeyFile.load(path)
        except KeyFileError as exc:
            logger.debug("%s", exc)
            return False
        self.merge(other)
        return True

    def purge(self, defaults: KeyFile) -> None:
        """Drop values that are identical to those in defaults."""
        for group, entries in defaults._groups.items():
            for key, default in entries.items():
                current = self.get_value(group, key)
                if current is not None and current == default:
                    logger.debug("purge redundant: [%s] %s = %s", group, key, current)
                    self.remove_key(group, key)

    def purge_empty_groups(self) -> None:
        """Remove groups that hold no keys."""
        for group in [g for g, entries in self._groups.items() if not entries]:
            logger.debug("purge redundant group: [%s]", group)
            del self._groups[group]

    def to_data(self) -> str:
        """Serialise to key file text."""
        blocks = []
        for group, entries in self._groups.items():
            lines = [f"[{group}]"]
            lines.extend(f"{key}={value}" for key, value in entries.items())
            blocks.append("\n".join(lines) + "\n")
        return "\n".join(blocks)