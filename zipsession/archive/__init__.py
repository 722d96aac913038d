"""ZIP archive sessions, extraction and packing."""

from zipsession.archive.entry import (
    ArchiveEntry,
    EntryInfo,
    EntrySizeMismatch,
    SessionClosedError,
    VisitorAbort,
)
from zipsession.archive.pack import pack_to, pack_to_func
from zipsession.archive.rewriter import ArchiveRewriter, RepackRewriter
from zipsession.archive.session import ArchiveSession
from zipsession.archive.target import PathTarget, StreamTarget

__all__ = [
    "ArchiveEntry",
    "EntryInfo",
    "EntrySizeMismatch",
    "SessionClosedError",
    "VisitorAbort",
    "pack_to",
    "pack_to_func",
    "ArchiveRewriter",
    "RepackRewriter",
    "ArchiveSession",
    "PathTarget",
    "StreamTarget",
]
