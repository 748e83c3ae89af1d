"""Per-invocation evaluation context handed to a converter."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass
class EvaluationContext:
    """
    Metadata and counters for one pass of a converter over one flow file.

    ``globals`` carries invocation metadata (``inputFilePath`` is set by the
    pipeline) and is readable from transforms as ``$inputFilePath``.
    ``fields`` holds the values computed so far for the current record.
    """

    globals: dict[str, Any] = field(default_factory=dict)
    line: int = 0
    success: int = 0
    failure: int = 0
    fields: dict[str, Any] = field(default_factory=dict)

    def lookup(self, name: str) -> Any:
        if name in self.fields:
            return self.fields[name]
        if name in self.globals:
            return self.globals[name]
        raise KeyError(name)

    def reset_record(self) -> None:
        self.fields.clear()

    @property
    def input_file_path(self) -> str:
        return self.globals.get("inputFilePath", "")


__all__ = ["EvaluationContext"]
