"""Where a session writes its reconciled archive."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Union


@dataclass(frozen=True)
class PathTarget:
    """Archive backed by a file; rewritten atomically and reopened after a flush."""

    path: Path
    permission: int = 0o644


@dataclass(frozen=True)
class StreamTarget:
    """Archive emitted to a caller-owned binary writer."""

    writer: BinaryIO


ArchiveTarget = Union[PathTarget, StreamTarget]
