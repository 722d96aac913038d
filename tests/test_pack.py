from __future__ import annotations

import zipfile
from pathlib import Path

import pytest
from omegaconf import DictConfig

from zipsession.archive.entry import EntryInfo, VisitorAbort
from zipsession.archive.pack import pack_to, pack_to_func
from zipsession.archive.session import ArchiveSession


def _tree_snapshot(root: Path) -> dict[str, bytes | None]:
    return {
        p.relative_to(root).as_posix(): (None if p.is_dir() else p.read_bytes())
        for p in root.rglob("*")
    }


def test_pack_to_include_root_dir_prefixes_members(sample_tree: Path, tmp_path: Path, cfg: DictConfig) -> None:
    zip_path = tmp_path / "x.zip"
    pack_to(sample_tree, zip_path, include_root_dir=True, cfg=cfg)

    with zipfile.ZipFile(zip_path) as zf:
        names = zf.namelist()
    assert set(names) == {"out/", "out/a.txt", "out/sub/", "out/sub/b.txt"}
    assert all(name.startswith("out/") for name in names)


def test_pack_then_extract_round_trip(sample_zip: Path, tmp_path: Path, cfg: DictConfig) -> None:
    first = tmp_path / "first"
    with ArchiveSession.open(sample_zip, cfg=cfg) as session:
        session.extract_to(first)

    repacked = tmp_path / "repacked.zip"
    pack_to(first, repacked, cfg=cfg)

    second = tmp_path / "second"
    with ArchiveSession.open(repacked, cfg=cfg) as session:
        session.extract_to(second)

    assert _tree_snapshot(first) == _tree_snapshot(second)
    with zipfile.ZipFile(sample_zip) as a, zipfile.ZipFile(repacked) as b:
        assert set(a.namelist()) == set(b.namelist())
        for info in b.infolist():
            if info.is_dir():
                assert info.file_size == 0
            else:
                assert info.file_size == len(b.read(info.filename))


def test_pack_to_func_abort_leaves_no_archive(sample_tree: Path, tmp_path: Path, cfg: DictConfig) -> None:
    (sample_tree / "sub" / "c.txt").write_text("!", encoding="utf-8")
    dest_dir = tmp_path / "dist"
    dest_dir.mkdir()
    zip_path = dest_dir / "x.zip"
    seen: list[str] = []
    err = VisitorAbort("third")

    def _visit(name: str, info: EntryInfo) -> None:
        seen.append(name)
        if len(seen) == 3:
            raise err

    with pytest.raises(VisitorAbort) as excinfo:
        pack_to_func(sample_tree, zip_path, _visit, cfg=cfg)

    assert excinfo.value is err
    assert len(seen) == 3
    assert list(dest_dir.iterdir()) == []


def test_pack_to_func_failure_keeps_existing_archive(sample_tree: Path, sample_zip: Path, cfg: DictConfig) -> None:
    before = sample_zip.read_bytes()

    def _reject(name: str, info: EntryInfo) -> None:
        raise VisitorAbort(name)

    with pytest.raises(VisitorAbort):
        pack_to_func(sample_tree, sample_zip, _reject, cfg=cfg)

    assert sample_zip.read_bytes() == before


def test_pack_to_new_archive_uses_default_permission(sample_tree: Path, tmp_path: Path, cfg: DictConfig) -> None:
    zip_path = tmp_path / "x.zip"
    pack_to(sample_tree, zip_path, cfg=cfg)

    assert zip_path.stat().st_mode & 0o777 == 0o644


def test_pack_to_existing_archive_keeps_permission(sample_tree: Path, sample_zip: Path, cfg: DictConfig) -> None:
    sample_zip.chmod(0o600)
    pack_to(sample_tree, sample_zip, cfg=cfg)

    assert sample_zip.stat().st_mode & 0o777 == 0o600
    with zipfile.ZipFile(sample_zip) as zf:
        assert zf.read("sub/b.txt") == b"world"
