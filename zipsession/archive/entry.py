"""Archive member model shared by the transfer engine and sessions."""

from __future__ import annotations

import zipfile
from dataclasses import dataclass
from pathlib import Path
from typing import Callable


class VisitorAbort(Exception):
    """Raised by a visitor to stop the traversal it was called from."""


class EntrySizeMismatch(OSError):
    """A packed member's byte count differs from the size declared in its header."""

    def __init__(self, name: str, declared: int, actual: int) -> None:
        super().__init__(f"size mismatch for {name}: declared {declared} bytes, wrote {actual}")
        self.name = name
        self.declared = declared
        self.actual = actual


class SessionClosedError(RuntimeError):
    """Operation attempted on a closed archive session."""


@dataclass(frozen=True)
class EntryInfo:
    """Metadata handed to visitors."""

    is_dir: bool
    size: int


Visitor = Callable[[str, EntryInfo], None]


def normalize_name(name: str) -> str:
    return str(name).replace("\\", "/")


def dir_name(name: str) -> str:
    """Normalize ``name`` as a directory marker (trailing slash)."""
    name = normalize_name(name).strip("/")
    return f"{name}/" if name else ""


@dataclass
class ArchiveEntry:
    """One logical member of a session.

    Content comes either from ``info`` (a member of the session's source archive)
    or from ``abs_path`` (a filesystem file bound by a mutation). A bound path wins
    over the archive member when both are set.
    """

    name: str
    size: int = 0
    info: zipfile.ZipInfo | None = None
    abs_path: Path | None = None

    def __post_init__(self) -> None:
        self.name = normalize_name(self.name)

    @property
    def is_dir(self) -> bool:
        return self.name.endswith("/")

    def entry_info(self) -> EntryInfo:
        return EntryInfo(is_dir=self.is_dir, size=0 if self.is_dir else int(self.size))

    @classmethod
    def from_zipinfo(cls, info: zipfile.ZipInfo) -> ArchiveEntry:
        name = normalize_name(info.filename)
        if info.is_dir() and not name.endswith("/"):
            name += "/"
        size = 0 if name.endswith("/") else int(info.file_size)
        return cls(name=name, size=size, info=info)

    @classmethod
    def from_path(cls, name: str, path: Path) -> ArchiveEntry:
        path = Path(path)
        if path.is_dir():
            return cls(name=dir_name(name), size=0, abs_path=path)
        return cls(name=normalize_name(name).lstrip("/"), size=path.stat().st_size, abs_path=path)
