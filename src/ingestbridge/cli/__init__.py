"""
CLI layer for ingest-bridge.

A Typer application that hosts one ``IngestProcessor`` per run and feeds it
files as flow files. All ingest logic lives in ``ingestbridge.framework``;
this package handles argument parsing, file routing and terminal output.

Entry point::

    ingest-bridge --help
"""

from ingestbridge.cli.app import app

__all__ = ["app"]
