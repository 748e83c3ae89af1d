"""
ingest-bridge - stream structured records from flow files into a feature store.

Each flow file is converted record by record by a schema-bound converter and
appended to a storage backend through a long-lived writer:

    FlowFile ──► Converter ──► TypedRecord ──► FeatureWriter (auto-commit)

Quick start::

    from ingestbridge import FlowFile, IngestProcessor, ProcessorConfig

    processor = IngestProcessor()
    processor.on_start(ProcessorConfig(
        schema_spec="id:String,ts:Timestamp,*geom:Point",
        feature_name_override="obs",
        converter_spec=OBS_CSV,
    )).unwrap()
    processor.on_invoke(FlowFile.from_path("obs.csv"))
    processor.on_stop()
"""

__version__ = "0.1.0"

from ingestbridge.framework import (  # noqa: E402
    FlowFile,
    IngestProcessor,
    InvocationReport,
    Outcome,
    ProcessorConfig,
    ProcessorState,
)
from ingestbridge.sink import ConnectionParams  # noqa: E402

__all__ = [
    "__version__",
    "FlowFile",
    "IngestProcessor",
    "InvocationReport",
    "Outcome",
    "ProcessorConfig",
    "ProcessorState",
    "ConnectionParams",
]
