"""Stenciler exception hierarchy.

Setup failures (configuration, watch subscription) end the current command.
Per-file failures are caught by the batch orchestrator and reported at file
granularity instead of being raised.
"""

from pathlib import Path


class StencilerError(Exception):
    """Base class for all Stenciler errors."""


class ConfigurationError(StencilerError):
    """Raised when a command cannot start with the given options or state.

    Examples: no snapshot available, nothing to render, conflicting options.
    """


class OutputWriteError(StencilerError):
    """Raised when a rendered output cannot be persisted."""

    def __init__(self, path: Path, message: str) -> None:
        self.path = path
        self.message = message
        super().__init__(f"Failed to write {path}: {message}")


class WatchError(StencilerError):
    """Raised when the filesystem subscription cannot be established or dies."""
