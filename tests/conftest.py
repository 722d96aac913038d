from __future__ import annotations

import zipfile
from pathlib import Path

import pytest
from omegaconf import DictConfig

from zipsession.utils.config import load_config


@pytest.fixture()
def scratch_dir(tmp_path: Path) -> Path:
    return tmp_path / "scratch"


@pytest.fixture()
def cfg(scratch_dir: Path) -> DictConfig:
    return load_config(
        overrides={
            "general.verbose": False,
            "session.scratch_root": str(scratch_dir),
        }
    )


@pytest.fixture()
def sample_tree(tmp_path: Path) -> Path:
    root = tmp_path / "out"
    (root / "sub").mkdir(parents=True)
    (root / "a.txt").write_text("hello", encoding="utf-8")
    (root / "sub" / "b.txt").write_text("world", encoding="utf-8")
    return root


@pytest.fixture()
def sample_zip(tmp_path: Path) -> Path:
    zip_path = tmp_path / "sample.zip"
    with zipfile.ZipFile(zip_path, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        zf.writestr("a.txt", b"hello")
        zf.writestr("sub/", b"")
        zf.writestr("sub/b.txt", b"world")
    return zip_path
