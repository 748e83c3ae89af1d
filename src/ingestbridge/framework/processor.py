"""
Ingest processor lifecycle: start, invoke per unit, stop.

States::

    STOPPED ──on_start──► INITIALIZING ──ok──► ACTIVE ──on_stop──► STOPPED
                               │
                               └──error──► STOPPED  (partial resources released)

Startup resolves the schema, connects to the backend and ensures the schema
exists there, builds the converter, then opens one append writer. All of it
is held until ``on_stop``; every ``on_invoke`` reuses the same handles.

Example:
    >>> processor = IngestProcessor()
    >>> result = processor.on_start(ProcessorConfig(
    ...     schema_spec="id:String,ts:Timestamp,*geom:Point",
    ...     feature_name_override="obs",
    ...     converter_name="obs-csv",
    ... ))
    >>> if result.is_ok():
    ...     processor.on_invoke(FlowFile.from_path("/in/obs.csv"))
    ...     processor.on_stop()
"""

from __future__ import annotations

import threading
from contextlib import nullcontext
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ingestbridge.convert.base import Converter
from ingestbridge.convert.registry import ConverterRegistry
from ingestbridge.convert.resolver import resolve_converter
from ingestbridge.core.errors import ConfigurationError, IngestError, ProcessorStateError
from ingestbridge.core.logging import get_logger
from ingestbridge.core.result import Err, Ok, Result
from ingestbridge.framework.flowfile import FlowFile, InvocationReport, Outcome
from ingestbridge.framework.pipeline import IngestPipeline
from ingestbridge.schema.registry import SchemaRegistry
from ingestbridge.schema.resolver import resolve_schema
from ingestbridge.schema.types import FeatureSchema
from ingestbridge.sink.connector import connect
from ingestbridge.sink.protocol import ConnectionParams, DataStore, FeatureWriter

logger = get_logger(__name__)


class ProcessorState(str, Enum):
    """Lifecycle states."""

    STOPPED = "stopped"
    INITIALIZING = "initializing"
    ACTIVE = "active"


class ProcessorConfig(BaseModel):
    """Processor properties, fixed for one active lifetime."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    schema_name: str | None = Field(
        default=None, description="Name of a schema in the schema registry"
    )
    schema_spec: str | None = Field(
        default=None, description="Inline schema spec (compact string or YAML/JSON mapping)"
    )
    feature_name_override: str | None = Field(
        default=None, description="Type name for the resolved schema"
    )
    converter_name: str | None = Field(
        default=None, description="Name of a converter in the converter registry"
    )
    converter_spec: str | None = Field(
        default=None, description="Inline converter config (YAML or JSON)"
    )
    strict_sources: bool = Field(
        default=True,
        description="Reject configs that set both the name and the inline spec of a schema or converter",
    )
    connection: ConnectionParams = Field(default_factory=ConnectionParams)

    @field_validator(
        "schema_name", "schema_spec", "feature_name_override", "converter_name", "converter_spec"
    )
    @classmethod
    def blank_to_none(cls, v: str | None) -> str | None:
        if v is None or not v.strip():
            return None
        return v


class IngestProcessor:
    """
    Owns the converter and writer handles for one active lifetime.

    Registries default to the global ones; tests inject their own.
    """

    def __init__(
        self,
        *,
        schema_registry: SchemaRegistry | None = None,
        converter_registry: ConverterRegistry | None = None,
    ):
        self._schema_registry = schema_registry
        self._converter_registry = converter_registry
        self._lock = threading.RLock()
        self._state = ProcessorState.STOPPED
        self._config: ProcessorConfig | None = None
        self._schema: FeatureSchema | None = None
        self._store: DataStore | None = None
        self._converter: Converter | None = None
        self._writer: FeatureWriter | None = None
        self._pipeline: IngestPipeline | None = None

    # ── accessors ────────────────────────────────────────────────

    @property
    def state(self) -> ProcessorState:
        return self._state

    @property
    def config(self) -> ProcessorConfig | None:
        return self._config

    @property
    def schema(self) -> FeatureSchema | None:
        return self._schema

    @property
    def store(self) -> DataStore | None:
        return self._store

    @property
    def converter(self) -> Converter | None:
        return self._converter

    @property
    def writer(self) -> FeatureWriter | None:
        return self._writer

    # ── lifecycle ────────────────────────────────────────────────

    def on_start(self, config: ProcessorConfig) -> Result[None]:
        """
        Acquire every handle needed to process units.

        Returns:
            Ok(None) once ACTIVE. Err(error) with the state left STOPPED and
            nothing held when resolution, connection or writer acquisition
            fails, or when the processor is not STOPPED.
        """
        with self._lock:
            if self._state is not ProcessorState.STOPPED:
                return Err(
                    ProcessorStateError(f"Cannot start processor in state {self._state.value}")
                )
            self._state = ProcessorState.INITIALIZING

            store: DataStore | None = None
            writer: FeatureWriter | None = None
            try:
                schema = resolve_schema(
                    config.schema_name,
                    config.schema_spec,
                    config.feature_name_override,
                    registry=self._schema_registry,
                    strict=config.strict_sources,
                )
                store = connect(config.connection)
                store.ensure_schema(schema)
                converter = resolve_converter(
                    config.converter_name,
                    config.converter_spec,
                    schema,
                    registry=self._converter_registry,
                    strict=config.strict_sources,
                )
                writer = store.open_writer(schema.type_name)
            except IngestError as e:
                self._release(writer, store)
                self._state = ProcessorState.STOPPED
                logger.error("processor_start_failed", **e.to_dict())
                return Err(e)
            except Exception:
                self._release(writer, store)
                self._state = ProcessorState.STOPPED
                raise

            self._config = config
            self._schema = schema
            self._store = store
            self._converter = converter
            self._writer = writer
            self._pipeline = IngestPipeline(converter, writer)
            self._state = ProcessorState.ACTIVE

        logger.info(
            "processor_initialized",
            type_name=schema.type_name,
            attributes=list(schema.attribute_names),
            backend=store.backend,
            converter=getattr(converter, "type_name", type(converter).__name__),
        )
        return Ok(None)

    def invoke(self, flow_file: FlowFile | None) -> InvocationReport | None:
        """Process one unit and return the full report."""
        pipeline = self._pipeline
        if self._state is not ProcessorState.ACTIVE or pipeline is None:
            raise ProcessorStateError(
                f"Cannot process flow files in state {self._state.value}"
            )
        return pipeline.process(flow_file)

    def on_invoke(self, flow_file: FlowFile | None) -> Outcome | None:
        """Process one unit. Returns ``None`` when there was nothing to process."""
        report = self.invoke(flow_file)
        return report.outcome if report is not None else None

    def on_stop(self) -> None:
        """Close the writer, dispose the store and drop every handle. Idempotent."""
        with self._lock:
            if self._state is ProcessorState.STOPPED and self._store is None:
                return
            writer, store, pipeline = self._writer, self._store, self._pipeline
            self._pipeline = None
            self._writer = None
            self._converter = None
            self._store = None
            self._schema = None
            self._state = ProcessorState.STOPPED
            # A unit already streaming finishes before its writer is closed
            with pipeline.exclusive() if pipeline is not None else nullcontext():
                self._release(writer, store)
        logger.info("processor_stopped")

    @staticmethod
    def _release(writer: FeatureWriter | None, store: DataStore | None) -> None:
        if writer is not None:
            try:
                writer.close()
            except Exception as e:
                logger.warning("writer_close_failed", error=str(e))
        if store is not None:
            try:
                store.dispose()
            except Exception as e:
                logger.warning("store_dispose_failed", error=str(e))


def start_processor(
    config: ProcessorConfig | dict,
    **kwargs,
) -> IngestProcessor:
    """
    Create and start a processor, raising on startup failure.

    Raises:
        ConfigurationError: ``config`` is not a valid processor config.
        IngestError: Startup failed.
    """
    if not isinstance(config, ProcessorConfig):
        try:
            config = ProcessorConfig.model_validate(config)
        except ValueError as e:
            raise ConfigurationError(f"Invalid processor config: {e}", cause=e) from e
    processor = IngestProcessor(**kwargs)
    processor.on_start(config).unwrap()
    return processor


__all__ = [
    "IngestProcessor",
    "ProcessorConfig",
    "ProcessorState",
    "start_processor",
]
