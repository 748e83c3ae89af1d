"""
Shared pytest fixtures and configuration for ingest-bridge tests.

This module provides:
- Registry cleanup fixtures for test isolation
- The "obs" schema, converter config and sample CSV used across suites
- Processor configs wired to in-memory and SQLite backends
"""

import logging
import sys
from pathlib import Path
from typing import Generator

import pytest
import structlog

# Ensure ingestbridge package is importable
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from ingestbridge.convert.config import ConverterConfig
from ingestbridge.convert.registry import converter_registry
from ingestbridge.framework.processor import ProcessorConfig
from ingestbridge.schema.registry import schema_registry
from ingestbridge.schema.spec import parse_spec
from ingestbridge.schema.types import FeatureSchema
from ingestbridge.sink.memory import reset_catalogs
from ingestbridge.sink.protocol import ConnectionParams


OBS_SPEC = "id:String,ts:Timestamp,*geom:Point"

OBS_CONVERTER = """\
type: delimited-text
id-field: $1
fields:
  - name: id
    transform: $1
  - name: ts
    transform: dateTime($2)
  - name: geom
    transform: "point(toDouble($3), toDouble($4))"
user-data:
  source: $inputFilePath
"""

OBS_CSV = b"a,2020-01-01T00:00:00Z,10,20\nb,2020-01-02T00:00:00Z,11,21\n"

OBS_CSV_BAD_SECOND_LINE = b"a,2020-01-01T00:00:00Z,10,20\nBADLINE\n"


# =============================================================================
# Registry Cleanup Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def clean_registries_fixture() -> Generator[None, None, None]:
    """
    Clear the global schema/converter registries and shared memory catalogs.

    No test can affect another by leaving names registered or records committed.
    """
    schema_registry.clear()
    converter_registry.clear()
    reset_catalogs()
    yield
    schema_registry.clear()
    converter_registry.clear()
    reset_catalogs()


@pytest.fixture(autouse=True)
def reset_logging_fixture() -> Generator[None, None, None]:
    """Drop handlers installed by ``configure_logging`` (e.g. from CLI runs)."""
    yield
    logging.getLogger().handlers.clear()
    structlog.reset_defaults()


@pytest.fixture(autouse=True)
def isolated_env_fixture(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Run each test outside the repo so no stray ``.env`` or INGEST_* var leaks in."""
    import os

    for key in list(os.environ):
        if key.startswith("INGEST_"):
            monkeypatch.delenv(key)
    monkeypatch.chdir(tmp_path)


# =============================================================================
# Sample Fixtures
# =============================================================================


@pytest.fixture
def obs_schema() -> FeatureSchema:
    return parse_spec(OBS_SPEC, type_name="obs")


@pytest.fixture
def obs_converter_config() -> ConverterConfig:
    return ConverterConfig.from_yaml(OBS_CONVERTER)


@pytest.fixture
def obs_config() -> ProcessorConfig:
    """Inline schema + inline converter against a private in-memory backend."""
    return ProcessorConfig(
        schema_spec=OBS_SPEC,
        feature_name_override="obs",
        converter_spec=OBS_CONVERTER,
    )


@pytest.fixture
def sqlite_url(tmp_path: Path) -> str:
    return f"sqlite:///{tmp_path / 'ingest.db'}"


@pytest.fixture
def obs_sqlite_config(sqlite_url: str) -> ProcessorConfig:
    return ProcessorConfig(
        schema_spec=OBS_SPEC,
        feature_name_override="obs",
        converter_spec=OBS_CONVERTER,
        connection=ConnectionParams(url=sqlite_url, catalog="test"),
    )


@pytest.fixture
def obs_spec() -> str:
    return OBS_SPEC


@pytest.fixture
def obs_converter_yaml() -> str:
    return OBS_CONVERTER


@pytest.fixture
def obs_csv() -> bytes:
    """Two well-formed observation rows."""
    return OBS_CSV


@pytest.fixture
def obs_csv_bad_second_line() -> bytes:
    """One good row followed by a row with a single column."""
    return OBS_CSV_BAD_SECOND_LINE
