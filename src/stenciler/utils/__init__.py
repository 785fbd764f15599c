"""Stenciler utility modules.

- logging: Standardized logging with human/verbose/JSON modes
"""

from stenciler.utils.logging import get_logger, log_structured, setup_logging

__all__ = [
    "get_logger",
    "log_structured",
    "setup_logging",
]
