"""Move bytes between archive members and filesystem paths.

Extraction walks the members of an open ``zipfile.ZipFile`` in stored order and
materializes them under a destination root. Packing walks a filesystem tree and
emits one member per file or directory. Both directions call a visitor before
touching the filesystem or the archive; an exception raised by the visitor
aborts the whole traversal.
"""

from __future__ import annotations

import logging
import os
import stat
import time
import zipfile
from pathlib import Path
from typing import BinaryIO, Iterable

from zipsession.archive.entry import (
    ArchiveEntry,
    EntryInfo,
    EntrySizeMismatch,
    Visitor,
    normalize_name,
)
from zipsession.utils.logger import setup_logger

log = setup_logger(__name__)

DEFAULT_EXCLUDE = frozenset({".git", ".svn", ".hg", ".DS_Store"})
_CHUNK_SIZE = 1024 * 1024


def make_extract_visitor(verbose: bool = True, logger: logging.Logger | None = None) -> Visitor:
    """Visitor that logs each extracted member when ``verbose`` is set."""
    out = logger or log

    def _visit(full_name: str, info: EntryInfo) -> None:
        if verbose:
            out.info("Unzipping %s...%s", "dir" if info.is_dir else "file", full_name)

    return _visit


def make_pack_visitor(verbose: bool = True, logger: logging.Logger | None = None) -> Visitor:
    """Visitor that logs each packed member when ``verbose`` is set."""
    out = logger or log

    def _visit(full_name: str, info: EntryInfo) -> None:
        if verbose:
            out.info("Adding %s...%s", "dir" if info.is_dir else "file", full_name)

    return _visit


def is_excluded(name: str, exclude: Iterable[str] = DEFAULT_EXCLUDE) -> bool:
    return name in exclude


def _copy_stream(src: BinaryIO, dst: BinaryIO) -> int:
    written = 0
    for chunk in iter(lambda: src.read(_CHUNK_SIZE), b""):
        dst.write(chunk)
        written += len(chunk)
    return written


def member_path(dest_root: Path, name: str) -> Path:
    root = dest_root.resolve()
    target = (root / name).resolve()
    if target != root and root not in target.parents:
        raise ValueError(f"archive member escapes destination: {name}")
    return target


def _restore_metadata(info: zipfile.ZipInfo, target: Path) -> None:
    mode = (info.external_attr >> 16) & 0o777
    if mode:
        os.chmod(target, mode)
    try:
        mtime = time.mktime((*info.date_time, 0, 0, -1))
    except (OverflowError, ValueError):
        return
    os.utime(target, (mtime, mtime))


def extract_entry(zf: zipfile.ZipFile, info: zipfile.ZipInfo, dest_root: Path, name: str | None = None) -> Path:
    """Write one file member under ``dest_root`` and return the written path.

    ``name`` overrides the member's stored name as the relative destination.
    Directory members are the caller's job.
    """
    rel = normalize_name(name if name is not None else info.filename)
    target = member_path(Path(dest_root), rel)
    target.parent.mkdir(parents=True, exist_ok=True)
    if target.is_file():
        # a previous extract may have left it read-only
        target.unlink()
    with zf.open(info, "r") as src, target.open("wb") as dst:
        _copy_stream(src, dst)
    _restore_metadata(info, target)
    return target


def extract_entries(
    zf: zipfile.ZipFile,
    dest_root: Path,
    visitor: Visitor,
    selected: Iterable[str] = (),
) -> int:
    """Materialize all members, or only those named in ``selected``.

    Returns the number of members materialized.
    """
    dest_root = Path(dest_root)
    wanted = {normalize_name(n) for n in selected}
    count = 0
    for info in zf.infolist():
        entry = ArchiveEntry.from_zipinfo(info)
        raw_name = normalize_name(info.filename)
        if wanted and raw_name not in wanted and entry.name not in wanted:
            continue

        visitor(entry.name, entry.entry_info())
        if entry.is_dir:
            member_path(dest_root, entry.name).mkdir(parents=True, exist_ok=True)
        else:
            extract_entry(zf, info, dest_root, entry.name)
        count += 1
    return count


def pack_file(src_path: Path, recorded_name: str, zf: zipfile.ZipFile) -> zipfile.ZipInfo:
    """Write one member for ``src_path`` recorded as ``recorded_name``.

    Directories become zero-size members whose name ends in ``/``. Files are
    declared with their stat size before the body is streamed; a body of a
    different length raises ``EntrySizeMismatch``.
    """
    src_path = Path(src_path)
    zinfo = zipfile.ZipInfo.from_file(src_path, recorded_name, strict_timestamps=False)
    if zinfo.is_dir():
        zf.writestr(zinfo, b"")
        return zinfo

    zinfo.compress_type = zf.compression
    declared = zinfo.file_size
    with src_path.open("rb") as src, zf.open(zinfo, "w") as dst:
        written = _copy_stream(src, dst)
    if written != declared:
        raise EntrySizeMismatch(zinfo.filename, declared, written)
    return zinfo


def pack_dir(
    src_path: Path,
    recorded_prefix: str,
    zf: zipfile.ZipFile,
    visitor: Visitor,
    exclude: Iterable[str] = DEFAULT_EXCLUDE,
) -> None:
    """Recursively pack the children of ``src_path`` under ``recorded_prefix``."""
    src_path = Path(src_path)
    for child in src_path.iterdir():
        if is_excluded(child.name, exclude):
            continue
        recorded = f"{recorded_prefix}/{child.name}" if recorded_prefix else child.name
        is_dir = child.is_dir()
        size = 0 if is_dir else child.stat().st_size
        visitor(child.as_posix(), EntryInfo(is_dir=is_dir, size=size))

        pack_file(child, recorded, zf)
        if is_dir:
            pack_dir(child, recorded, zf, visitor, exclude)


def pack_entries(root: Path, entries: Iterable[ArchiveEntry], zf: zipfile.ZipFile, visitor: Visitor) -> None:
    """Pack files staged under ``root`` in the order of ``entries``."""
    root = Path(root)
    for entry in entries:
        visitor(entry.name, entry.entry_info())
        rel = entry.name.rstrip("/")
        pack_file(root / rel, rel, zf)


def pack_to_writer(
    src_path: Path,
    writer: BinaryIO,
    visitor: Visitor,
    include_root_dir: bool = False,
    exclude: Iterable[str] = DEFAULT_EXCLUDE,
) -> None:
    """Pack a file or a directory tree into a new archive written to ``writer``.

    A directory is flattened at the archive root unless ``include_root_dir`` is
    set, in which case its basename prefixes every member.
    """
    src_path = Path(src_path)
    st = src_path.stat()
    # "." and ".." have no name of their own
    base = src_path.name
    if base in ("", ".."):
        base = src_path.resolve().name

    with zipfile.ZipFile(writer, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        if stat.S_ISDIR(st.st_mode):
            prefix = ""
            if include_root_dir:
                prefix = base
                visitor(src_path.as_posix(), EntryInfo(is_dir=True, size=0))
                pack_file(src_path, prefix, zf)
            pack_dir(src_path, prefix, zf, visitor, exclude)
            return

        visitor(src_path.as_posix(), EntryInfo(is_dir=False, size=st.st_size))
        pack_file(src_path, base, zf)
