"""Archive extract/pack/edit CLI command registrations."""

from __future__ import annotations

import zipfile
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

import click

from zipsession.archive.entry import VisitorAbort


@contextmanager
def _archive_errors() -> Iterator[None]:
    try:
        yield
    except (OSError, ValueError, VisitorAbort, zipfile.BadZipFile) as exc:
        raise click.ClickException(str(exc)) from exc


@click.command("extract")
@click.argument("archive", type=click.Path(exists=True, dir_okay=False))
@click.argument("dest")
@click.argument("names", nargs=-1)
@click.pass_context
def extract(ctx: click.Context, archive: str, dest: str, names: tuple[str, ...]) -> None:
    """Extract ARCHIVE (or only NAMES) into DEST."""
    from zipsession.archive.session import ArchiveSession

    with _archive_errors():
        session = ArchiveSession.open(archive, cfg=ctx.obj["cfg"])
        try:
            count = session.extract_to(dest, *names)
        finally:
            session.close()
    click.echo(f"Extracted {count} entries to {dest}")


@click.command("pack")
@click.argument("src", type=click.Path(exists=True))
@click.argument("dest")
@click.option("--include-root-dir", is_flag=True, help="Record SRC's own name as the member prefix")
@click.pass_context
def pack(ctx: click.Context, src: str, dest: str, include_root_dir: bool) -> None:
    """Pack SRC (file or directory) into the archive DEST."""
    from zipsession.archive.pack import pack_to

    with _archive_errors():
        out = pack_to(src, dest, include_root_dir, cfg=ctx.obj["cfg"])
    click.echo(f"Packed {src} into {out}")


@click.command("list")
@click.argument("archive", type=click.Path(exists=True, dir_okay=False))
@click.option("--prefix", default="", help="Only list members starting with this prefix")
@click.pass_context
def list_members(ctx: click.Context, archive: str, prefix: str) -> None:
    """List the members of ARCHIVE in stored order."""
    from zipsession.archive.session import ArchiveSession

    with _archive_errors():
        with ArchiveSession.open(archive, cfg=ctx.obj["cfg"]) as session:
            names = session.list(prefix)
    for name in names:
        click.echo(name)


@click.command("add")
@click.argument("archive")
@click.argument("src", type=click.Path(exists=True))
@click.option("--name", "member", default=None, help="Member name (default: SRC basename)")
@click.pass_context
def add(ctx: click.Context, archive: str, src: str, member: str | None) -> None:
    """Add a file or directory SRC to ARCHIVE, creating ARCHIVE if needed."""
    from zipsession.archive.session import ArchiveSession

    cfg = ctx.obj["cfg"]
    src_path = Path(src)
    name = member if member is not None else src_path.resolve().name

    with _archive_errors():
        if Path(archive).exists():
            session = ArchiveSession.open(archive, cfg=cfg)
        else:
            session = ArchiveSession.create(archive, cfg=cfg)
        with session:
            if src_path.is_dir():
                count = session.add_dir(name, src_path)
            else:
                session.add_file(name, src_path)
                count = 1
    click.echo(f"Added {count} entries to {archive}")


@click.command("delete")
@click.argument("archive", type=click.Path(exists=True, dir_okay=False))
@click.argument("names", nargs=-1, required=True)
@click.pass_context
def delete(ctx: click.Context, archive: str, names: tuple[str, ...]) -> None:
    """Remove NAMES (directories with their contents) from ARCHIVE."""
    from zipsession.archive.session import ArchiveSession

    missing: list[str] = []
    with _archive_errors():
        with ArchiveSession.open(archive, cfg=ctx.obj["cfg"]) as session:
            for name in names:
                if not session.delete_name(name):
                    missing.append(name)
    for name in missing:
        click.echo(f"Not found: {name}", err=True)
    click.echo(f"Deleted {len(names) - len(missing)} of {len(names)} names from {archive}")


def register_archive_commands(cli: click.Group) -> None:
    """Register archive extract/pack/edit commands."""
    cli.add_command(extract)
    cli.add_command(pack)
    cli.add_command(list_members)
    cli.add_command(add)
    cli.add_command(delete)
