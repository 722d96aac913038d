"""Stateful handle over one ZIP archive.

A session mirrors the archive's members as an ordered list of
``ArchiveEntry`` objects. Mutations only touch that list and mark the
session dirty; ``flush`` hands the list to an ``ArchiveRewriter`` which
produces a complete new archive at the session target.
"""

from __future__ import annotations

import zipfile
from pathlib import Path
from typing import BinaryIO

from omegaconf import DictConfig

from zipsession.archive.entry import (
    ArchiveEntry,
    SessionClosedError,
    Visitor,
    dir_name,
    normalize_name,
)
from zipsession.archive.rewriter import ArchiveRewriter, RepackRewriter
from zipsession.archive.target import ArchiveTarget, PathTarget, StreamTarget
from zipsession.archive.transfer import (
    extract_entries,
    is_excluded,
    make_extract_visitor,
    make_pack_visitor,
)
from zipsession.utils.config import exclude_names, load_config, scratch_root
from zipsession.utils.logger import setup_logger

log = setup_logger(__name__)


class ArchiveSession:
    """Open or new ZIP archive with pending in-memory changes.

    Use ``open``, ``create`` or ``create_writer`` rather than the constructor.
    """

    def __init__(
        self,
        target: ArchiveTarget,
        *,
        cfg: DictConfig | None = None,
        rewriter: ArchiveRewriter | None = None,
    ) -> None:
        self.cfg = cfg if cfg is not None else load_config()
        self.target = target
        self.files: list[ArchiveEntry] = []
        self.changed = False
        self.closed = False
        self._reader: zipfile.ZipFile | None = None
        self._exclude = exclude_names(self.cfg)
        self._verbose = bool(self.cfg.general.verbose)
        self._rewriter: ArchiveRewriter = rewriter or RepackRewriter(
            scratch_root=scratch_root(self.cfg),
            scratch_prefix=str(self.cfg.session.scratch_prefix),
            visitor=make_pack_visitor(verbose=self._verbose),
        )

    @classmethod
    def open(
        cls,
        path: str | Path,
        *,
        cfg: DictConfig | None = None,
        rewriter: ArchiveRewriter | None = None,
    ) -> ArchiveSession:
        path = Path(path)
        permission = path.stat().st_mode & 0o777
        session = cls(PathTarget(path=path, permission=permission), cfg=cfg, rewriter=rewriter)
        session._load(path)
        return session

    @classmethod
    def create(
        cls,
        path: str | Path,
        *,
        permission: int | None = None,
        cfg: DictConfig | None = None,
        rewriter: ArchiveRewriter | None = None,
    ) -> ArchiveSession:
        """New path-backed archive; written on the first flush."""
        cfg = cfg if cfg is not None else load_config()
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        if permission is None:
            permission = int(cfg.session.default_permission)
        session = cls(PathTarget(path=path, permission=permission), cfg=cfg, rewriter=rewriter)
        session.changed = True
        return session

    @classmethod
    def create_writer(
        cls,
        writer: BinaryIO,
        *,
        cfg: DictConfig | None = None,
        rewriter: ArchiveRewriter | None = None,
    ) -> ArchiveSession:
        """New archive emitted to ``writer`` on the first flush."""
        session = cls(StreamTarget(writer=writer), cfg=cfg, rewriter=rewriter)
        session.changed = True
        return session

    def __enter__(self) -> ArchiveSession:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc_type is None:
            self.close()
            return
        if self.changed:
            log.warning("Discarding pending changes to %s", self.file_name or "stream")
        self._close_reader()
        self.closed = True

    def __repr__(self) -> str:
        state = "closed" if self.closed else ("dirty" if self.changed else "clean")
        return f"ArchiveSession({self.file_name or 'stream'!r}, entries={len(self.files)}, {state})"

    @property
    def file_name(self) -> str:
        if isinstance(self.target, PathTarget):
            return str(self.target.path)
        return ""

    @property
    def permission(self) -> int | None:
        if isinstance(self.target, PathTarget):
            return self.target.permission
        return None

    @property
    def has_writer(self) -> bool:
        return isinstance(self.target, StreamTarget)

    def _ensure_open(self) -> None:
        if self.closed:
            raise SessionClosedError(f"archive session is closed: {self.file_name or 'stream'}")

    def _load(self, path: Path) -> None:
        reader = zipfile.ZipFile(path, "r")
        self._close_reader()
        self._reader = reader
        self.files = [ArchiveEntry.from_zipinfo(info) for info in reader.infolist()]
        self.changed = False

    def _close_reader(self) -> None:
        if self._reader is not None:
            self._reader.close()
            self._reader = None

    def _index_of(self, name: str) -> int:
        for idx, entry in enumerate(self.files):
            if entry.name == name:
                return idx
        return -1

    def _check_path_conflict(self, name: str) -> None:
        """Refuse a member whose path is already taken by the other kind of member."""
        for entry in self.files:
            if not entry.is_dir and name.startswith(f"{entry.name}/"):
                raise ValueError(f"{name!r} would nest under file member {entry.name!r}")
            if not name.endswith("/") and entry.name.startswith(f"{name}/"):
                raise ValueError(f"file member {name!r} clashes with directory member {entry.name!r}")

    def list(self, prefix: str = "") -> list[str]:
        self._ensure_open()
        prefix = normalize_name(prefix)
        return [entry.name for entry in self.files if entry.name.startswith(prefix)]

    def add_empty_dir(self, name: str) -> bool:
        """Append a directory marker; False when it already exists."""
        self._ensure_open()
        name = dir_name(name)
        if not name:
            raise ValueError("directory name must not be empty")
        if self._index_of(name) >= 0:
            return False
        self._check_path_conflict(name)
        self.files.append(ArchiveEntry(name=name))
        self.changed = True
        return True

    def add_file(self, name: str, src_path: str | Path) -> ArchiveEntry:
        """Bind ``src_path`` as the content of member ``name``.

        An existing member with the same name is rebound in place.
        """
        self._ensure_open()
        src = Path(src_path)
        if not src.is_file():
            raise FileNotFoundError(f"not a file: {src}")
        entry = ArchiveEntry.from_path(name, src)
        if not entry.name or entry.is_dir:
            raise ValueError(f"invalid file member name: {name!r}")
        self._check_path_conflict(entry.name)

        idx = self._index_of(entry.name)
        if idx >= 0:
            self.files[idx] = entry
        else:
            self.files.append(entry)
        self.changed = True
        return entry

    def add_dir(self, name: str, src_dir: str | Path) -> int:
        """Add ``src_dir`` and its subtree under the member prefix ``name``.

        Returns the number of entries added or rebound.
        """
        self._ensure_open()
        src = Path(src_dir)
        if not src.is_dir():
            raise NotADirectoryError(f"not a directory: {src}")
        prefix = dir_name(name)
        count = 0
        if prefix and self.add_empty_dir(prefix):
            count += 1
        for child in src.iterdir():
            if is_excluded(child.name, self._exclude):
                continue
            child_name = f"{prefix}{child.name}"
            if child.is_dir():
                count += self.add_dir(child_name, child)
            else:
                self.add_file(child_name, child)
                count += 1
        self.changed = True
        return count

    def delete_index(self, index: int) -> ArchiveEntry:
        self._ensure_open()
        if index < 0 or index >= len(self.files):
            raise IndexError(f"entry index out of range: {index}")
        self.changed = True
        return self.files.pop(index)

    def delete_name(self, name: str) -> bool:
        """Remove the member ``name``; a directory name removes its subtree too."""
        self._ensure_open()
        name = normalize_name(name)
        prefix = dir_name(name)
        kept = [
            entry
            for entry in self.files
            if entry.name != name and not (prefix and entry.name.startswith(prefix))
        ]
        if len(kept) == len(self.files):
            return False
        self.files = kept
        self.changed = True
        return True

    def extract_to_func(self, dest_root: str | Path, visitor: Visitor, *names: str) -> int:
        """Extract all members, or only ``names``, below ``dest_root``.

        Reads the archive as it is on disk; call ``flush`` first to include
        pending changes. Returns the number of members materialized.
        """
        self._ensure_open()
        if self._reader is None:
            raise FileNotFoundError(f"no archive to extract from: {self.file_name or 'stream'}")
        dest = Path(normalize_name(str(dest_root)))
        if self._verbose:
            log.info("Unzipping %s...", self.file_name)
        dest.mkdir(parents=True, exist_ok=True)
        return extract_entries(self._reader, dest, visitor, names)

    def extract_to(self, dest_root: str | Path, *names: str) -> int:
        return self.extract_to_func(dest_root, make_extract_visitor(verbose=self._verbose), *names)

    def flush(self) -> None:
        """Write pending changes to the session target.

        The previous archive file is replaced only once the new one is fully
        written, then reopened so reads see the new content.
        """
        self._ensure_open()
        if not self.changed:
            return

        source = self._reader if isinstance(self.target, PathTarget) else None
        self._rewriter.rewrite(self.files, source, self.target)

        if isinstance(self.target, PathTarget):
            self._load(self.target.path)
        self.changed = False
        log.debug("Flushed %d entries to %s", len(self.files), self.file_name or "stream")

    def close(self) -> None:
        """Flush, then release the archive handle.

        If the flush raises, the session stays open and dirty.
        """
        if self.closed:
            return
        self.flush()
        self._close_reader()
        self.closed = True
