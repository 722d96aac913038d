"""CLI interface for zipsession using Click."""

from __future__ import annotations

import click
from dotenv import load_dotenv

from zipsession.cli_commands import register_archive_commands

load_dotenv()


@click.group()
@click.option("--config", "-c", default=None, envvar="ZIPSESSION_CONFIG", help="Path to custom YAML config")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.option("--quiet", "-q", is_flag=True, help="Do not log each archive member")
@click.pass_context
def cli(ctx: click.Context, config: str | None, verbose: bool, quiet: bool) -> None:
    """zipsession: extract, pack and edit ZIP archives."""
    from zipsession.utils.config import load_config
    from zipsession.utils.logger import set_log_level, setup_logger

    overrides = {}
    if verbose:
        overrides["general.log_level"] = "DEBUG"
    if quiet:
        overrides["general.verbose"] = False

    cfg = load_config(overrides=overrides or None, config_path=config)
    ctx.ensure_object(dict)
    ctx.obj["cfg"] = cfg

    setup_logger("zipsession", level=cfg.general.log_level)
    set_log_level(cfg.general.log_level)


register_archive_commands(cli)


if __name__ == "__main__":
    cli()
