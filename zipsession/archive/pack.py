"""Single-shot packing of a filesystem path into a fresh archive file."""

from __future__ import annotations

import os
import tempfile
from pathlib import Path
from typing import BinaryIO, Callable

from omegaconf import DictConfig

from zipsession.archive.entry import Visitor
from zipsession.archive.transfer import make_pack_visitor, pack_to_writer
from zipsession.utils.config import exclude_names, load_config
from zipsession.utils.logger import setup_logger

log = setup_logger(__name__)


def write_atomic(dest: Path, write: Callable[[BinaryIO], None], permission: int | None = None) -> None:
    """Produce ``dest`` through a sibling temp file that replaces it only on success."""
    dest = Path(dest)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{dest.name}.", suffix=".tmp", dir=dest.parent)
    tmp_path = Path(tmp_name)
    try:
        with os.fdopen(fd, "wb") as fw:
            write(fw)
        if permission is not None:
            os.chmod(tmp_path, permission)
        tmp_path.replace(dest)
    except BaseException:
        tmp_path.unlink(missing_ok=True)
        raise


def _target_permission(dest: Path, cfg: DictConfig) -> int:
    if dest.exists():
        return dest.stat().st_mode & 0o777
    return int(cfg.session.default_permission)


def pack_to_func(
    src_path: str | Path,
    dest_path: str | Path,
    visitor: Visitor,
    include_root_dir: bool = False,
    *,
    cfg: DictConfig | None = None,
) -> Path:
    """Pack ``src_path`` into the archive ``dest_path``, calling ``visitor`` per member.

    Args:
        src_path: File or directory to pack.
        dest_path: Archive to create or replace.
        visitor: Called before each member is written; raising aborts.
        include_root_dir: Record a directory's own basename as the member prefix.
        cfg: Loaded configuration (defaults are loaded when omitted).

    Returns:
        The resolved archive path.
    """
    cfg = cfg if cfg is not None else load_config()
    src = Path(src_path)
    dest = Path(dest_path)
    permission = _target_permission(dest, cfg)
    exclude = exclude_names(cfg)

    write_atomic(
        dest,
        lambda fw: pack_to_writer(src, fw, visitor, include_root_dir=include_root_dir, exclude=exclude),
        permission=permission,
    )
    log.debug("Packed %s into %s", src, dest)
    return dest


def pack_to(
    src_path: str | Path,
    dest_path: str | Path,
    include_root_dir: bool = False,
    *,
    cfg: DictConfig | None = None,
) -> Path:
    """Same as ``pack_to_func`` with the logging visitor."""
    cfg = cfg if cfg is not None else load_config()
    visitor = make_pack_visitor(verbose=bool(cfg.general.verbose))
    return pack_to_func(src_path, dest_path, visitor, include_root_dir, cfg=cfg)
