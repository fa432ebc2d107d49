from __future__ import annotations

import datetime as dt
import enum
from dataclasses import dataclass


class Op(enum.Enum):
    CREATE = "CREATE"
    WRITE = "WRITE"
    REMOVE = "REMOVE"
    RENAME = "RENAME"
    CHMOD = "CHMOD"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class RawEvent:
    """One notification as it comes off the observer, before filtering."""

    op: Op
    path: str


@dataclass(frozen=True)
class FileEvent:
    op: Op
    path: str
    size: int
    timestamp: dt.datetime
    is_dir: bool

    def describe(self) -> str:
        return f"[EVENT] {str(self.op):<8} {self.path!r} (Size: {self.size}, Dir: {self.is_dir})"


# Put on the outbound queue when the watcher loop exits.
QUEUE_CLOSED = object()
