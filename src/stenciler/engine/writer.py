"""Output writer: stamps rendered content and persists it.

Writes go through a temporary file in the destination folder followed by an
atomic replace, so a failed write never leaves a truncated output behind.
"""

import logging
import os
import tempfile
from pathlib import Path
from typing import TextIO

from stenciler.engine.fingerprint import format_marker
from stenciler.exceptions import OutputWriteError
from stenciler.models import RenderedOutput

logger = logging.getLogger(__name__)

# Stencil filenames use this character for scoping (e.g. web@deployment.yml)
COLLISION_CHAR = "@"
COLLISION_REPLACEMENT = "-"

STDOUT_SEPARATOR = "---"


def render_filepath(outdir: Path, stencil_filename: str) -> Path:
    """Return the destination path for a rendered stencil.

    The scoping character is replaced so a rendered file never carries the same
    name as its stencil and cannot be committed back by mistake.

    Args:
        outdir: Output folder
        stencil_filename: Stencil filename or path

    Returns:
        Destination path inside outdir
    """
    basename = Path(stencil_filename).name
    render_name = basename.replace(COLLISION_CHAR, COLLISION_REPLACEMENT)
    return outdir / render_name


def ensure_dir(path: Path) -> None:
    """Create a folder and its parents if missing.

    Raises:
        OutputWriteError: If the folder cannot be created
    """
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise OutputWriteError(path, str(e)) from e


def stamp(content: str, fingerprint: str) -> str:
    """Prefix rendered content with the fingerprint marker line."""
    return f"{format_marker(fingerprint)}\n{content}"


def atomic_write_text(path: Path, text: str, mode: int = 0o644) -> None:
    """Write text to a file atomically using a temporary file.

    Args:
        path: Destination file path
        text: Text content to write
        mode: File permissions (octal)
    """
    ensure_dir(path.parent)

    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", dir=str(path.parent))
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as tmp:
            tmp.write(text)
            tmp.flush()
            os.fsync(tmp.fileno())
        os.replace(tmp_name, path)
        os.chmod(path, mode)
    finally:
        if os.path.exists(tmp_name):
            os.remove(tmp_name)


def write_output(content: str, destination: Path, fingerprint: str) -> RenderedOutput:
    """Stamp and persist one rendered content.

    Args:
        content: Rendered content as returned by the service
        destination: Output file path
        fingerprint: Fingerprint of the stencil that produced content

    Returns:
        The persisted output

    Raises:
        OutputWriteError: If the file cannot be written
    """
    stamped = stamp(content, fingerprint)
    try:
        atomic_write_text(destination, stamped)
    except OSError as e:
        raise OutputWriteError(destination, str(e)) from e

    logger.debug("Wrote %s (%d bytes)", destination, len(stamped))
    return RenderedOutput(path=destination, content=stamped, fingerprint=fingerprint)


def write_stdout(contents: list[str], stream: TextIO) -> None:
    """Print rendered contents, each followed by a separator line."""
    for content in contents:
        stream.write(content)
        if not content.endswith("\n"):
            stream.write("\n")
        stream.write(f"{STDOUT_SEPARATOR}\n")
    stream.flush()
