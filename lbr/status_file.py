from __future__ import annotations

import os
from enum import Enum

from .settings import settings

KINDS = ("up", "down")


class OverrideStatus(str, Enum):
    NONE = "none"
    FORCED_UP = "forced_up"
    FORCED_DOWN = "forced_down"


class StatusFile:
    """Operator marker file forcing a cluster up or down.

    Stored as `<status_dir>/<name>/<kind>`; the file content is the reason.
    """

    def __init__(self, kind: str, name: str, status_dir: str | None = None):
        if kind not in KINDS:
            raise ValueError(f"Unknown status kind {kind!r}; expected one of {KINDS}.")
        if not name or "/" in name or name.startswith("."):
            raise ValueError(f"Invalid cluster name for a status file: {name!r}")
        self.kind = kind
        self.name = name
        self.status_dir = status_dir or settings.status_dir

    @property
    def path(self) -> str:
        return os.path.join(self.status_dir, self.name, self.kind)

    def create(self, reason: str) -> None:
        os.makedirs(os.path.dirname(self.path), exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            f.write(reason)

    def delete(self) -> None:
        try:
            os.remove(self.path)
        except FileNotFoundError:
            return

    def exists(self) -> bool:
        return os.path.isfile(self.path)

    @property
    def content(self) -> str:
        with open(self.path, encoding="utf-8") as f:
            return f.read()


class StatusOverride:
    """Read-only view of the marker files used by clusters."""

    def __init__(self, status_dir: str | None = None):
        self.status_dir = status_dir

    def file(self, kind: str, name: str) -> StatusFile:
        return StatusFile(kind, name, self.status_dir)

    def exists(self, kind: str, name: str) -> bool:
        return self.file(kind, name).exists()

    def override_status(self, name: str) -> OverrideStatus:
        if self.exists("up", name):
            return OverrideStatus.FORCED_UP
        if self.exists("down", name):
            return OverrideStatus.FORCED_DOWN
        return OverrideStatus.NONE
