"""
Processing framework: units of work, the ingest pipeline and the processor lifecycle.
"""

from ingestbridge.framework.flowfile import FlowFile, InvocationReport, Outcome
from ingestbridge.framework.pipeline import IngestPipeline
from ingestbridge.framework.processor import (
    IngestProcessor,
    ProcessorConfig,
    ProcessorState,
    start_processor,
)

__all__ = [
    "FlowFile",
    "InvocationReport",
    "Outcome",
    "IngestPipeline",
    "IngestProcessor",
    "ProcessorConfig",
    "ProcessorState",
    "start_processor",
]
