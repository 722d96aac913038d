from __future__ import annotations

import zipfile
from pathlib import Path

from click.testing import CliRunner

from zipsession.cli import cli


def test_cli_registers_archive_commands() -> None:
    expected = {"extract", "pack", "list", "add", "delete"}
    missing = sorted(name for name in expected if name not in cli.commands)
    assert missing == []


def test_cli_pack_list_extract(sample_tree: Path, tmp_path: Path) -> None:
    runner = CliRunner()
    zip_path = tmp_path / "x.zip"

    res = runner.invoke(cli, ["-q", "pack", str(sample_tree), str(zip_path), "--include-root-dir"])
    assert res.exit_code == 0, res.output

    res = runner.invoke(cli, ["-q", "list", str(zip_path), "--prefix", "out/sub"])
    assert res.exit_code == 0, res.output
    assert sorted(res.output.split()) == ["out/sub/", "out/sub/b.txt"]

    dest = tmp_path / "dest"
    res = runner.invoke(cli, ["-q", "extract", str(zip_path), str(dest), "out/a.txt"])
    assert res.exit_code == 0, res.output
    assert "Extracted 1 entries" in res.output
    assert (dest / "out" / "a.txt").read_text(encoding="utf-8") == "hello"
    assert not (dest / "out" / "sub").exists()


def test_cli_add_and_delete(sample_tree: Path, tmp_path: Path) -> None:
    runner = CliRunner()
    zip_path = tmp_path / "new.zip"

    res = runner.invoke(cli, ["-q", "add", str(zip_path), str(sample_tree), "--name", "docs"])
    assert res.exit_code == 0, res.output
    with zipfile.ZipFile(zip_path) as zf:
        assert set(zf.namelist()) == {"docs/", "docs/a.txt", "docs/sub/", "docs/sub/b.txt"}

    res = runner.invoke(cli, ["-q", "delete", str(zip_path), "docs/sub", "missing.txt"])
    assert res.exit_code == 0, res.output
    assert "Deleted 1 of 2" in res.output
    with zipfile.ZipFile(zip_path) as zf:
        assert set(zf.namelist()) == {"docs/", "docs/a.txt"}


def test_cli_reports_archive_errors(tmp_path: Path) -> None:
    bogus = tmp_path / "bogus.zip"
    bogus.write_bytes(b"not a zip")

    res = CliRunner().invoke(cli, ["-q", "list", str(bogus)])

    assert res.exit_code == 1
    assert "Error" in res.output
