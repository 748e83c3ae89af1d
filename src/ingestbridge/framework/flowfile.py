"""Units of work and their outcomes."""

from __future__ import annotations

import io
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import BinaryIO

from ingestbridge.core.errors import IngestError


class Outcome(str, Enum):
    """Routing decision for a processed unit of work."""

    SUCCESS = "success"
    FAILURE = "failure"


@dataclass
class FlowFile:
    """
    One unit of work: a byte stream opener plus string attributes.

    The ``path`` and ``filename`` attributes identify the unit; their
    concatenation is its provenance string. ``size`` is ``None`` when the
    length of the content is not known up front.

    Examples:
        >>> ff = FlowFile.from_bytes(b"a,b\\n", filename="obs.csv", path="/in/")
        >>> ff.provenance
        '/in/obs.csv'
    """

    opener: Callable[[], BinaryIO]
    attributes: dict[str, str] = field(default_factory=dict)
    size: int | None = None

    @classmethod
    def from_path(cls, path: str | Path) -> FlowFile:
        path = Path(path)
        return cls(
            opener=lambda: path.open("rb"),
            attributes={"path": f"{path.parent}/", "filename": path.name},
            size=path.stat().st_size if path.exists() else None,
        )

    @classmethod
    def from_bytes(cls, data: bytes, *, filename: str = "", path: str = "") -> FlowFile:
        return cls(
            opener=lambda: io.BytesIO(data),
            attributes={"path": path, "filename": filename},
            size=len(data),
        )

    @property
    def provenance(self) -> str:
        return self.attributes.get("path", "") + self.attributes.get("filename", "")

    def open(self) -> BinaryIO:
        return self.opener()


@dataclass(frozen=True)
class InvocationReport:
    """What happened to one unit of work."""

    outcome: Outcome
    provenance: str
    written: int = 0
    error: IngestError | None = None

    @property
    def succeeded(self) -> bool:
        return self.outcome is Outcome.SUCCESS


__all__ = ["FlowFile", "InvocationReport", "Outcome"]
