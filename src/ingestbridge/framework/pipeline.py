"""
Per-unit streaming loop: byte stream to converter to writer.

    flow file ──► open stream ──► converter.process() ──► writer.next_slot()
                                   (lazy records)          set attrs / id / user data
                                                           writer.commit()

Every record is committed as soon as it is converted. A fault at record N
leaves records 1..N-1 committed and the unit is reported as FAILURE; no
partially populated slot is ever committed. Faults never escape ``process``.
"""

from __future__ import annotations

import threading
from collections.abc import Iterator
from contextlib import closing, contextmanager

from ingestbridge.convert.base import Converter
from ingestbridge.core.errors import (
    AppendError,
    ErrorCategory,
    IngestError,
    ParseError,
    StreamReadError,
    categorize_error,
)
from ingestbridge.core.logging import LogContext, get_logger
from ingestbridge.framework.flowfile import FlowFile, InvocationReport, Outcome
from ingestbridge.schema.types import TypedRecord
from ingestbridge.sink.protocol import FeatureWriter

logger = get_logger(__name__)


def classify_fault(error: Exception) -> IngestError:
    """Map an exception raised while reading or converting to a per-unit fault."""
    if isinstance(error, IngestError):
        return error
    match categorize_error(error):
        case ErrorCategory.SOURCE | ErrorCategory.NETWORK:
            return StreamReadError(f"Failed to read input: {error}", cause=error)
        case ErrorCategory.PARSE:
            return ParseError(f"Failed to parse input: {error}", cause=error)
    return IngestError(f"Unexpected failure: {type(error).__name__}: {error}", cause=error)


class IngestPipeline:
    """
    Streams flow files through one converter into one writer.

    The converter and writer are owned by the caller (the processor
    lifecycle) and must stay open while the pipeline is in use. Concurrent
    ``process`` calls are serialized on the shared writer.
    """

    def __init__(self, converter: Converter, writer: FeatureWriter):
        self._converter = converter
        self._writer = writer
        self._lock = threading.Lock()

    @property
    def converter(self) -> Converter:
        return self._converter

    @property
    def writer(self) -> FeatureWriter:
        return self._writer

    @contextmanager
    def exclusive(self) -> Iterator[None]:
        """Hold the writer, waiting for an in-flight unit to finish first."""
        with self._lock:
            yield

    def process(self, flow_file: FlowFile | None) -> InvocationReport | None:
        """
        Convert and append every record of ``flow_file``.

        Returns ``None`` without touching the writer when there is no flow
        file or it is known to be empty.
        """
        if flow_file is None or flow_file.size == 0:
            return None

        provenance = flow_file.provenance
        written = 0
        with LogContext(provenance=provenance):
            logger.info("converting_path", path=provenance)
            try:
                ctx = self._converter.create_evaluation_context({"inputFilePath": provenance})
                with self._lock:
                    with flow_file.open() as stream, closing(
                        self._converter.process(stream, ctx)
                    ) as records:
                        for record in records:
                            self._append(record)
                            written += 1
            except Exception as e:
                error = classify_fault(e)
                if error.context.provenance is None:
                    error.with_context(provenance=provenance)
                logger.error("flow_file_failed", written=written, **error.to_dict())
                return InvocationReport(Outcome.FAILURE, provenance, written, error)

            logger.info(
                "flow_file_ingested",
                written=written,
                skipped=ctx.failure,
                type_name=self._converter.schema.type_name,
            )
            return InvocationReport(Outcome.SUCCESS, provenance, written)

    def _append(self, record: TypedRecord) -> None:
        try:
            slot = self._writer.next_slot()
            slot.set_attributes(record.attributes)
            slot.set_id(record.id)
            slot.user_data.update(record.user_data)
            self._writer.commit(slot)
        except AppendError:
            raise
        except Exception as e:
            raise AppendError(f"Failed to append record '{record.id}': {e}", cause=e) from e


__all__ = ["IngestPipeline", "classify_fault"]
