"""Render result entities.

This module contains entities produced while rendering:
- Diagnostic: an error or warning reported by the rendering service
- RenderResponse: rendered contents plus diagnostics for one call
- FileOutcome: what happened to a single stencil in a batch
- BatchResult: aggregated outcomes for one batch run
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any


class DiagnosticKind(Enum):
    """Severity of a rendering diagnostic."""

    ERROR = "error"
    WARNING = "warning"

    @classmethod
    def parse(cls, value: str | None) -> "DiagnosticKind":
        """Parse a service-provided kind; anything unknown is an error."""
        if value and value.strip().lower() == "warning":
            return cls.WARNING
        return cls.ERROR


@dataclass(frozen=True)
class Diagnostic:
    """Classified message returned by the rendering service.

    Never persisted; surfaced to the operator and used to gate output.

    Attributes:
        kind: Error or warning
        text: Free-text description
        template: Name of the stencil the message refers to
    """

    kind: DiagnosticKind
    text: str
    template: str = ""

    def __str__(self) -> str:
        if self.template:
            return f"{self.text} in {self.template}"
        return self.text

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Diagnostic":
        return cls(
            kind=DiagnosticKind.parse(data.get("type") or data.get("kind")),
            text=str(data.get("text", "")),
            template=str(data.get("stencil") or data.get("template") or ""),
        )

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind.value, "text": self.text, "template": self.template}


@dataclass
class RenderResponse:
    """Result of one rendering service call.

    Attributes:
        contents: Rendered contents (may be empty when everything failed)
        diagnostics: Errors and warnings in service order
    """

    contents: list[str] = field(default_factory=list)
    diagnostics: list[Diagnostic] = field(default_factory=list)

    @property
    def errors(self) -> list[Diagnostic]:
        return [d for d in self.diagnostics if d.kind is DiagnosticKind.ERROR]

    @property
    def warnings(self) -> list[Diagnostic]:
        return [d for d in self.diagnostics if d.kind is DiagnosticKind.WARNING]


class FileStatus(Enum):
    """Outcome of a single stencil within a batch."""

    RENDERED = "rendered"  # output written (or printed in stdout mode)
    UNCHANGED = "unchanged"  # fingerprint matched, nothing to do
    SKIPPED = "skipped"  # empty or private stencil
    SUPPRESSED = "suppressed"  # diagnostics blocked the output
    FAILED = "failed"  # read, lookup, service or write failure


@dataclass
class FileOutcome:
    """What happened to one stencil.

    Attributes:
        source: Stencil path
        status: Final status
        output: Destination path (None in stdout mode)
        message: Human-readable reason for non-rendered statuses
        diagnostics: Diagnostics returned for this stencil
    """

    source: Path
    status: FileStatus
    output: Path | None = None
    message: str | None = None
    diagnostics: list[Diagnostic] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "source": str(self.source),
            "status": self.status.value,
            "output": str(self.output) if self.output else None,
            "message": self.message,
            "diagnostics": [d.to_dict() for d in self.diagnostics],
        }


@dataclass
class BatchResult:
    """Aggregated outcomes of a batch run, in enumeration order."""

    snapshot_id: str
    outcomes: list[FileOutcome] = field(default_factory=list)

    def by_status(self, status: FileStatus) -> list[FileOutcome]:
        return [o for o in self.outcomes if o.status is status]

    @property
    def failed(self) -> list[FileOutcome]:
        return self.by_status(FileStatus.FAILED)

    @property
    def suppressed(self) -> list[FileOutcome]:
        return self.by_status(FileStatus.SUPPRESSED)

    @property
    def rendered(self) -> list[FileOutcome]:
        return self.by_status(FileStatus.RENDERED)

    def exit_code(self) -> int:
        """Map outcomes to CLI exit codes.

        Returns:
            1 if any stencil failed, 2 if any output was suppressed, else 0
        """
        if self.failed:
            return 1
        if self.suppressed:
            return 2
        return 0
