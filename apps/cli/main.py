"""Compatibility module exposing the CLI Typer app under ``apps.cli``.

Entry points and tests import ``apps.cli.main``; the implementation lives in
``apps.cli.indexer_cli``.
"""

from __future__ import annotations

from apps.cli.indexer_cli.main import app

__all__ = ["app"]
