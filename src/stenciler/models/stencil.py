"""Stencil entities.

This module contains entities describing what gets rendered:
- Stencil / Formation: the remote template catalog
- TemplateReference: a named stencil within a formation
- Snapshot: point-in-time reference templates are rendered against
- RenderInput: a stencil file and its bytes at submission time
- RenderedOutput: a rendered file and the fingerprint stamped into it
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

# Stencils starting with this prefix are include-only partials
PRIVATE_PREFIX = "_"

# Presence of this file in a watched folder pauses rendering
PAUSE_SENTINEL = ".pause"


def is_private_name(filename: str) -> bool:
    """Return True if the filename marks an include-only partial stencil."""
    return Path(filename).name.startswith(PRIVATE_PREFIX)


def is_sentinel_name(filename: str) -> bool:
    """Return True if the filename is the pause sentinel."""
    return Path(filename).name == PAUSE_SENTINEL


def is_hidden_name(filename: str) -> bool:
    """Return True for dotfiles (the sentinel, editor swap files, .DS_Store)."""
    return Path(filename).name.startswith(".")


@dataclass(frozen=True)
class Stencil:
    """A template registered in a formation catalog.

    Attributes:
        uid: Catalog identifier of the stencil
        filename: Filename the stencil is registered under
        sequence: Ordering hint within the formation
    """

    uid: str
    filename: str
    sequence: int = 0

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Stencil":
        return cls(
            uid=str(data["uid"]),
            filename=str(data["filename"]),
            sequence=int(data.get("sequence") or 0),
        )


@dataclass
class Formation:
    """A named collection of stencils for a deployment target.

    Attributes:
        uid: Formation identifier
        name: Human-readable formation name
        stencils: Registered stencils
    """

    uid: str
    name: str
    stencils: list[Stencil] = field(default_factory=list)

    def find_stencil(self, filename: str) -> Stencil | None:
        """Find a registered stencil by filename."""
        for stencil in self.stencils:
            if stencil.filename == filename:
                return stencil
        return None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Formation":
        return cls(
            uid=str(data["uid"]),
            name=str(data["name"]),
            stencils=[Stencil.from_dict(s) for s in data.get("stencils") or []],
        )


@dataclass(frozen=True)
class TemplateReference:
    """Identifies a named stencil within a formation catalog.

    Attributes:
        catalog_id: Formation identifier
        filename: Stencil filename within the formation
    """

    catalog_id: str
    filename: str


@dataclass(frozen=True)
class Snapshot:
    """Immutable point-in-time reference for rendering.

    Attributes:
        uid: Snapshot identifier
        created_at: Creation time in UTC
    """

    uid: str
    created_at: datetime

    def __post_init__(self) -> None:
        """Ensure created_at is timezone-aware UTC."""
        if self.created_at.tzinfo is None:
            object.__setattr__(self, "created_at", self.created_at.replace(tzinfo=UTC))

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Snapshot":
        created_at = data.get("created_at")
        if isinstance(created_at, str):
            timestamp = datetime.fromisoformat(created_at.replace("Z", "+00:00"))
        elif isinstance(created_at, datetime):
            timestamp = created_at
        else:
            timestamp = datetime.fromtimestamp(0, UTC)
        return cls(uid=str(data["uid"]), created_at=timestamp)


@dataclass(frozen=True)
class RenderInput:
    """A stencil file and its raw bytes at the moment of submission.

    Read fresh for every render attempt; never cached across passes.

    Attributes:
        path: Source stencil path
        body: Raw file content
    """

    path: Path
    body: bytes

    @classmethod
    def from_path(cls, path: Path) -> "RenderInput":
        """Read a stencil from disk.

        Raises:
            OSError: If the file cannot be read
        """
        return cls(path=path, body=path.read_bytes())

    @property
    def name(self) -> str:
        """Stencil filename as registered in the catalog."""
        return self.path.name

    @property
    def is_empty(self) -> bool:
        return len(self.body) == 0

    @property
    def is_private(self) -> bool:
        return is_private_name(self.path.name)


@dataclass(frozen=True)
class RenderedOutput:
    """A rendered file as persisted by the output writer.

    Attributes:
        path: Destination path
        content: Full file content including the fingerprint marker line
        fingerprint: Fingerprint embedded in the marker line
    """

    path: Path
    content: str
    fingerprint: str
