"""Reconcile a session's logical entry list into a complete archive.

ZIP archives cannot be edited in place, so ``RepackRewriter`` stages every
entry in a scratch tree and packs that tree again. Sessions only depend on the
``ArchiveRewriter`` protocol.
"""

from __future__ import annotations

import shutil
import tempfile
import zipfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import BinaryIO, Protocol, Sequence

from zipsession.archive.entry import ArchiveEntry, Visitor
from zipsession.archive.pack import write_atomic
from zipsession.archive.target import ArchiveTarget, PathTarget, StreamTarget
from zipsession.archive.transfer import extract_entry, make_pack_visitor, member_path, pack_entries
from zipsession.utils.logger import setup_logger

log = setup_logger(__name__)


class ArchiveRewriter(Protocol):
    def rewrite(
        self,
        entries: Sequence[ArchiveEntry],
        source: zipfile.ZipFile | None,
        target: ArchiveTarget,
    ) -> None:
        ...


@dataclass
class RepackRewriter:
    """Whole-archive re-pack through a per-call scratch directory."""

    scratch_root: Path | None = None
    scratch_prefix: str = "zipsession-"
    visitor: Visitor = field(default_factory=lambda: make_pack_visitor(verbose=False))

    def rewrite(
        self,
        entries: Sequence[ArchiveEntry],
        source: zipfile.ZipFile | None,
        target: ArchiveTarget,
    ) -> None:
        label = target.path.name if isinstance(target, PathTarget) else "stream"
        if self.scratch_root is not None:
            Path(self.scratch_root).mkdir(parents=True, exist_ok=True)

        with tempfile.TemporaryDirectory(prefix=f"{self.scratch_prefix}{label}-", dir=self.scratch_root) as tmp_dir:
            scratch = Path(tmp_dir)
            log.debug("Staging %d entries in %s", len(entries), scratch)
            for entry in entries:
                self._materialize(entry, source, scratch)
            self._emit(scratch, entries, target)

    def _materialize(self, entry: ArchiveEntry, source: zipfile.ZipFile | None, scratch: Path) -> None:
        if entry.is_dir:
            member_path(scratch, entry.name).mkdir(parents=True, exist_ok=True)
            return

        if entry.abs_path is not None:
            staged = member_path(scratch, entry.name)
            staged.parent.mkdir(parents=True, exist_ok=True)
            if staged.is_dir():
                raise IsADirectoryError(f"file member collides with a directory member: {entry.name}")
            shutil.copy2(entry.abs_path, staged)
            return

        if source is None or entry.info is None:
            raise FileNotFoundError(f"no source for archive entry: {entry.name}")
        extract_entry(source, entry.info, scratch, entry.name)

    def _emit(self, scratch: Path, entries: Sequence[ArchiveEntry], target: ArchiveTarget) -> None:
        def _write(fw: BinaryIO) -> None:
            with zipfile.ZipFile(fw, "w", compression=zipfile.ZIP_DEFLATED) as zf:
                pack_entries(scratch, entries, zf, self.visitor)

        if isinstance(target, StreamTarget):
            _write(target.writer)
        elif isinstance(target, PathTarget):
            write_atomic(target.path, _write, permission=target.permission)
        else:
            raise TypeError(f"unsupported archive target: {target!r}")
