"""CLI command modules for zipsession."""

from zipsession.cli_commands.archive import register_archive_commands

__all__ = [
    "register_archive_commands",
]
