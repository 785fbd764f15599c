"""Stenciler engine - the render-and-watch core.

Components, leaves first:
- fingerprint: decides render vs. skip from the marker in the previous output
- invoker: calls the rendering service and triages diagnostics
- writer: stamps and atomically writes rendered output
- batch: enumerates stencils and drives one render per file
- watch: re-runs the batch per filesystem event, with pause and debounce
"""

from stenciler.engine.batch import BatchOrchestrator, BatchTarget, RenderSession
from stenciler.engine.fingerprint import (
    generate_checksum,
    looks_rendered,
    read_magic_comment,
    should_render,
)
from stenciler.engine.invoker import Invocation, RenderInvoker
from stenciler.engine.watch import EventKind, WatchEvent, WatchLoop
from stenciler.engine.writer import render_filepath, write_output

__all__ = [
    "BatchOrchestrator",
    "BatchTarget",
    "EventKind",
    "Invocation",
    "RenderInvoker",
    "RenderSession",
    "WatchEvent",
    "WatchLoop",
    "generate_checksum",
    "looks_rendered",
    "read_magic_comment",
    "render_filepath",
    "should_render",
    "write_output",
]
