"""
Delimited text converter (CSV, TSV, PSV).

Transforms see ``$0`` as the raw record (columns re-joined with the
delimiter) and ``$1..$N`` as the columns. Blank lines are skipped.
"""

from __future__ import annotations

import codecs
import csv
from collections.abc import Iterator
from typing import Any, BinaryIO

from ingestbridge.convert.base import BaseConverter
from ingestbridge.convert.context import EvaluationContext
from ingestbridge.convert.registry import register_converter


@register_converter("delimited-text")
class DelimitedTextConverter(BaseConverter):
    """Converter for delimited text, one record per row."""

    def _read(
        self, stream: BinaryIO, ctx: EvaluationContext
    ) -> Iterator[tuple[int, str, Any]]:
        options = self._config.options
        # Decode line by line; the caller owns and closes the byte stream
        lines = codecs.iterdecode(stream, options.encoding)
        reader = csv.reader(lines, delimiter=options.delimiter, quotechar=options.quote_char)
        for row in reader:
            if reader.line_num <= options.skip_lines:
                continue
            if not row or all(not cell.strip() for cell in row):
                continue
            yield reader.line_num, options.delimiter.join(row), row

    def _record_args(self, raw: str, record: Any) -> list[Any]:
        return [raw, *record]


__all__ = ["DelimitedTextConverter"]
