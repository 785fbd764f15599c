"""Stenciler data models.

This module exports all core entities used throughout the application:
- Formation / Stencil / TemplateReference: the template catalog
- Snapshot: point-in-time rendering reference
- RenderInput / RenderedOutput: what goes in and what is written
- Diagnostic / RenderResponse: what the rendering service returns
- FileOutcome / BatchResult: per-file and per-batch results
- WatchState: watch loop pause state
"""

from stenciler.models.render import (
    BatchResult,
    Diagnostic,
    DiagnosticKind,
    FileOutcome,
    FileStatus,
    RenderResponse,
)
from stenciler.models.stencil import (
    PAUSE_SENTINEL,
    PRIVATE_PREFIX,
    Formation,
    RenderedOutput,
    RenderInput,
    Snapshot,
    Stencil,
    TemplateReference,
    is_hidden_name,
    is_private_name,
    is_sentinel_name,
)
from stenciler.models.watch import WatchState

__all__ = [
    "PAUSE_SENTINEL",
    "PRIVATE_PREFIX",
    "BatchResult",
    "Diagnostic",
    "DiagnosticKind",
    "FileOutcome",
    "FileStatus",
    "Formation",
    "RenderInput",
    "RenderResponse",
    "RenderedOutput",
    "Snapshot",
    "Stencil",
    "TemplateReference",
    "WatchState",
    "is_hidden_name",
    "is_private_name",
    "is_sentinel_name",
]
