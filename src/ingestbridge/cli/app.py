"""
Root Typer application for the ingest-bridge CLI.

Commands:
    run         Start a processor and ingest files, one flow file each
    schemas     List named schemas
    converters  List named converters and converter types

Every processor option falls back to its ``INGEST_*`` setting.
"""

from __future__ import annotations

import shutil
from pathlib import Path

import typer
from pydantic import ValidationError
from rich.markup import escape
from typer import Typer

from ingestbridge.cli.utils import console, err_console, fail, print_rows, read_inline
from ingestbridge.convert.registry import converter_registry
from ingestbridge.core.errors import IngestError
from ingestbridge.core.logging import configure_logging
from ingestbridge.core.settings import IngestSettings
from ingestbridge.framework.flowfile import FlowFile, InvocationReport
from ingestbridge.framework.processor import IngestProcessor
from ingestbridge.schema.registry import schema_registry

app = Typer(
    name="ingest-bridge",
    help="ingest-bridge: stream record files into a feature store.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


# ── Version callback ─────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        from ingestbridge import __version__

        typer.echo(f"ingest-bridge {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """ingest-bridge CLI: run the ingest processor and inspect its registries."""


# ── Helpers ──────────────────────────────────────────────────────────────


def _configure(log_level: str | None = None) -> IngestSettings:
    settings = IngestSettings()
    configure_logging(level=log_level or settings.log_level, json_format=settings.json_logs)
    return settings


def _load_registries(
    settings: IngestSettings, schema_files: list[Path], converter_files: list[Path]
) -> None:
    try:
        for path in [*settings.schema_files, *schema_files]:
            schema_registry.load_file(path)
        for path in [*settings.converter_files, *converter_files]:
            converter_registry.load_file(path)
    except IngestError as e:
        raise fail(e.message) from e


def _route(
    path: Path,
    report: InvocationReport,
    success_dir: Path | None,
    failure_dir: Path | None,
) -> str | None:
    target = success_dir if report.succeeded else failure_dir
    if target is None or not path.exists():
        return None
    target.mkdir(parents=True, exist_ok=True)
    destination = target / path.name
    shutil.move(str(path), str(destination))
    return str(destination)


# ── Commands ─────────────────────────────────────────────────────────────


@app.command("run")
def run(
    files: list[Path] = typer.Argument(..., help="Files to ingest, one flow file each"),
    schema_name: str | None = typer.Option(None, "--schema-name", "-s", help="Registered schema name"),
    schema_spec: str | None = typer.Option(
        None, "--schema-spec", help="Inline schema spec, or @file"
    ),
    feature_name: str | None = typer.Option(
        None, "--feature-name", "-f", help="Type name override for the schema"
    ),
    converter_name: str | None = typer.Option(
        None, "--converter-name", "-c", help="Registered converter name"
    ),
    converter_spec: str | None = typer.Option(
        None, "--converter-spec", help="Inline converter config (YAML/JSON), or @file"
    ),
    schema_file: list[Path] = typer.Option([], "--schema-file", help="YAML file of named schemas"),
    converter_file: list[Path] = typer.Option(
        [], "--converter-file", help="YAML file of named converters"
    ),
    backend_url: str | None = typer.Option(None, "--backend-url", "-b", help="Backend URL"),
    catalog: str | None = typer.Option(None, "--catalog", help="Backend catalog"),
    user: str | None = typer.Option(None, "--user", help="Backend user"),
    password: str | None = typer.Option(None, "--password", help="Backend password"),
    lenient: bool = typer.Option(
        False, "--lenient", help="Allow both a name and an inline spec; the name wins"
    ),
    success_dir: Path | None = typer.Option(None, "--success-dir", help="Move ingested files here"),
    failure_dir: Path | None = typer.Option(None, "--failure-dir", help="Move failed files here"),
    log_level: str | None = typer.Option(None, "--log-level", help="Log level"),
    json_out: bool = typer.Option(False, "--json", help="Print the summary as JSON"),
) -> None:
    """Start a processor, ingest every file, then stop it."""
    settings = _configure(log_level)
    _load_registries(settings, schema_file, converter_file)

    connection = settings.connection_params().model_copy(
        update={
            k: v
            for k, v in {
                "url": backend_url,
                "catalog": catalog,
                "user": user,
                "password": password,
            }.items()
            if v is not None
        }
    )
    try:
        config = settings.to_processor_config(
            schema_name=schema_name,
            schema_spec=read_inline(schema_spec),
            feature_name_override=feature_name,
            converter_name=converter_name,
            converter_spec=read_inline(converter_spec),
            strict_sources=False if lenient else None,
            connection=connection,
        )
    except ValidationError as e:
        raise fail(f"Invalid processor config: {e}") from e

    processor = IngestProcessor()
    started = processor.on_start(config)
    if started.is_err():
        error = started.error
        raise fail(error.message if isinstance(error, IngestError) else str(error))

    rows = []
    succeeded = failures = skipped = 0
    try:
        for path in files:
            report = processor.invoke(FlowFile.from_path(path))
            if report is None:
                rows.append(
                    {"file": str(path), "outcome": "skipped", "written": 0, "error": None, "moved_to": None}
                )
                skipped += 1
                continue
            if report.succeeded:
                succeeded += 1
            else:
                failures += 1
            moved = _route(path, report, success_dir, failure_dir)
            rows.append(
                {
                    "file": str(path),
                    "outcome": report.outcome.value,
                    "written": report.written,
                    "error": report.error.message if report.error else None,
                    "moved_to": moved,
                }
            )
    finally:
        processor.on_stop()

    print_rows(rows, title="Ingest Summary", as_json=json_out)
    if not json_out:
        console.print(f"{succeeded} succeeded, {failures} failed, {skipped} skipped")
    if failures:
        raise typer.Exit(code=1)


@app.command("schemas")
def schemas(
    schema_file: list[Path] = typer.Option([], "--schema-file", help="YAML file of named schemas"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """List registered schema names."""
    _load_registries(_configure(), schema_file, [])
    rows = []
    for name in schema_registry.list_names():
        try:
            schema = schema_registry.resolve_by_name(name)
            rows.append({"name": name, "spec": schema.to_spec()})
        except IngestError as e:
            err_console.print(f"[yellow]Warning:[/yellow] schema '{name}': {escape(e.message)}")
            rows.append({"name": name, "spec": None})
    print_rows(rows, title="Schemas", as_json=json_out)


@app.command("converters")
def converters(
    converter_file: list[Path] = typer.Option(
        [], "--converter-file", help="YAML file of named converters"
    ),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """List registered converter names and converter types."""
    _load_registries(_configure(), [], converter_file)
    rows = []
    for name in converter_registry.list_names():
        try:
            rows.append({"name": name, "type": converter_registry.resolve_config_by_name(name).type})
        except IngestError as e:
            err_console.print(f"[yellow]Warning:[/yellow] converter '{name}': {escape(e.message)}")
            rows.append({"name": name, "type": None})
    print_rows(rows, title="Converters", as_json=json_out)
    if not json_out:
        console.print(f"Types: {', '.join(converter_registry.list_types())}")
