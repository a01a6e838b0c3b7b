"""CLI helpers."""

from apps.cli.indexer_cli.utils.async_wrapper import async_command

__all__ = ["async_command"]
