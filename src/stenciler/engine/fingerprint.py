"""Fingerprint gate: decides whether a stencil needs rendering.

Rendered files start with a marker comment carrying the fingerprint of the
stencil bytes that produced them:

    # stenciler.checksum: 9f86d081884c7d65...

The marker is parsed leniently. A missing, unreadable or malformed marker means
"no previous fingerprint", never an error.
"""

import hashlib
import logging
import re
from pathlib import Path

logger = logging.getLogger(__name__)

MARKER_PREFIX = "# stenciler."
CHECKSUM_KEY = "checksum"

_MARKER_PATTERN = re.compile(r"^#\s*stenciler\.(?P<key>[\w-]+):\s*(?P<value>\S+)")


def generate_checksum(body: bytes) -> str:
    """Return the fingerprint of a stencil body (SHA-256 hex digest)."""
    return hashlib.sha256(body).hexdigest()


def format_marker(value: str, key: str = CHECKSUM_KEY) -> str:
    """Build the marker line (without newline) embedding a value."""
    return f"{MARKER_PREFIX}{key}: {value}"


def parse_marker(line: str, key: str = CHECKSUM_KEY) -> str | None:
    """Extract a marker value from a single line.

    Unknown trailing fields after the value are ignored.

    Returns:
        The value, or None if the line is not a marker for key
    """
    match = _MARKER_PATTERN.match(line.strip())
    if match is None or match.group("key") != key:
        return None
    return match.group("value")


def read_magic_comment(path: Path, key: str = CHECKSUM_KEY) -> str | None:
    """Read a marker value from the first line of a file.

    Args:
        path: File to inspect
        key: Marker key to look for

    Returns:
        Marker value, or None when the file or marker is absent or unreadable
    """
    try:
        with open(path, encoding="utf-8") as f:
            first_line = f.readline()
    except FileNotFoundError:
        return None
    except (OSError, UnicodeDecodeError) as e:
        logger.debug("Cannot read fingerprint from %s: %s", path, e)
        return None

    return parse_marker(first_line, key)


def should_render(body: bytes, existing_output: Path | None) -> bool:
    """Decide whether a stencil body must be rendered.

    Args:
        body: Current stencil bytes
        existing_output: Previously rendered file (may not exist)

    Returns:
        False only if the output carries a fingerprint equal to the body's
    """
    if existing_output is None:
        return True

    previous = read_magic_comment(existing_output)
    if previous is None:
        return True

    return previous != generate_checksum(body)


def looks_rendered(path: Path) -> bool:
    """Return True if a file already carries a fingerprint marker.

    Used to flag rendered output that ended up among the stencils.
    """
    return read_magic_comment(path) is not None
