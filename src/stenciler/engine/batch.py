"""Batch orchestrator: enumerates stencils and drives one render per file.

Pipeline per stencil, in enumeration order:
    read bytes -> fingerprint gate -> render invoker -> output writer

Setup problems (no snapshot, unknown formation, nothing to render) raise
ConfigurationError. Per-stencil problems are caught and recorded in the
BatchResult so sibling stencils still render.
"""

import logging
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import TextIO

from stenciler.engine.fingerprint import generate_checksum, looks_rendered, should_render
from stenciler.engine.invoker import RenderInvoker
from stenciler.engine.writer import ensure_dir, render_filepath, write_output, write_stdout
from stenciler.exceptions import ConfigurationError, OutputWriteError
from stenciler.models import (
    BatchResult,
    FileOutcome,
    FileStatus,
    Formation,
    RenderInput,
    is_hidden_name,
    is_private_name,
)
from stenciler.services import (
    CatalogService,
    FormationNotFoundError,
    ServiceError,
    SnapshotService,
)

logger = logging.getLogger(__name__)

LATEST_SNAPSHOT = "latest"


@dataclass(frozen=True)
class BatchTarget:
    """What to render and where to put it.

    Exactly one of folder/file is set. In folder mode output is the output
    folder; in file mode it is the output file. No output means stdout.

    Attributes:
        folder: Stencil folder
        file: Single stencil file
        output: Output folder or file, None for stdout
    """

    folder: Path | None = None
    file: Path | None = None
    output: Path | None = None

    def __post_init__(self) -> None:
        if (self.folder is None) == (self.file is None):
            raise ConfigurationError("A batch target needs either a stencil folder or a file")

    @property
    def is_folder(self) -> bool:
        return self.folder is not None

    @property
    def to_stdout(self) -> bool:
        return self.output is None

    @property
    def output_dir(self) -> Path | None:
        """Folder receiving rendered files."""
        if self.output is None:
            return None
        return self.output if self.is_folder else self.output.parent

    def destination_for(self, source: Path) -> Path | None:
        """Return where the rendered form of source is written."""
        if self.output is None:
            return None
        if self.is_folder:
            return render_filepath(self.output, source.name)
        return self.output

    def enumerate(self) -> list[Path]:
        """List the stencils to render.

        In folder mode: regular files, sorted by name, without hidden files
        (the pause sentinel, editor swap files) or partial stencils.

        Raises:
            ConfigurationError: If the folder cannot be listed
        """
        if self.folder is None:
            return [self.file] if self.file is not None else []

        try:
            entries = sorted(self.folder.iterdir())
        except OSError as e:
            raise ConfigurationError(
                f"Failed to fetch all files from folder {self.folder}: {e}"
            ) from e

        files = []
        for entry in entries:
            if not entry.is_file():
                continue
            if is_hidden_name(entry.name) or is_private_name(entry.name):
                continue
            if looks_rendered(entry):
                logger.warning(
                    "%s contains a checksum which suggests it is a rendered stencil", entry
                )
            files.append(entry)
        return files


@dataclass
class RenderSession:
    """State resolved once per batch and reused by the watch loop.

    Attributes:
        formation: Catalog stencils are resolved against (reloadable)
        snapshot_id: Snapshot every render uses
        target: What to render and where
    """

    formation: Formation
    snapshot_id: str
    target: BatchTarget


class BatchOrchestrator:
    """Resolves a render session and renders stencils sequentially.

    Attributes:
        stack: Stack the stencils belong to
    """

    def __init__(
        self,
        stack: str,
        snapshots: SnapshotService,
        catalog: CatalogService,
        invoker: RenderInvoker,
        stdout: TextIO | None = None,
    ) -> None:
        self.stack = stack
        self._snapshots = snapshots
        self._catalog = catalog
        self._invoker = invoker
        self._stdout = stdout

    # =========================================================================
    # Setup
    # =========================================================================

    def resolve_snapshot(self, snapshot_ref: str | None) -> str:
        """Resolve a snapshot reference to an identifier.

        None or "latest" means the most recent snapshot of the stack.

        Raises:
            ConfigurationError: If no snapshot exists
        """
        if snapshot_ref and snapshot_ref != LATEST_SNAPSHOT:
            return snapshot_ref

        snapshots = self._snapshots.list_snapshots(self.stack)
        if not snapshots:
            raise ConfigurationError("No snapshots found")

        snapshot_id = snapshots[0].uid
        logger.debug("Using latest snapshot %s", snapshot_id)
        return snapshot_id

    def load_formation(self, name: str) -> Formation:
        """Fetch a formation from the catalog.

        Raises:
            ConfigurationError: If the formation does not exist
        """
        try:
            return self._catalog.load_formation(self.stack, name)
        except FormationNotFoundError as e:
            raise ConfigurationError(str(e)) from e

    def open_session(
        self,
        target: BatchTarget,
        formation_name: str,
        snapshot_ref: str | None = None,
    ) -> RenderSession:
        """Resolve snapshot and formation and prepare the output folder.

        Raises:
            ConfigurationError: If the snapshot or formation cannot be resolved
            OutputWriteError: If the output folder cannot be created
        """
        snapshot_id = self.resolve_snapshot(snapshot_ref)
        formation = self.load_formation(formation_name)

        if target.output_dir is not None:
            ensure_dir(target.output_dir)

        return RenderSession(formation=formation, snapshot_id=snapshot_id, target=target)

    def reload_formation(self, session: RenderSession) -> None:
        """Refresh the session catalog to pick up newly registered stencils.

        A failed reload keeps the previous catalog.
        """
        try:
            session.formation = self.load_formation(session.formation.name)
        except (ConfigurationError, ServiceError) as e:
            logger.warning("Failed to reload formation %s: %s", session.formation.name, e)

    # =========================================================================
    # Rendering
    # =========================================================================

    def run(
        self,
        target: BatchTarget,
        formation_name: str,
        snapshot_ref: str | None = None,
    ) -> tuple[RenderSession, BatchResult]:
        """Open a session and render every enumerated stencil.

        Raises:
            ConfigurationError: On setup failure or when nothing is to render
        """
        session = self.open_session(target, formation_name, snapshot_ref)
        return session, self.render_all(session)

    def render_all(
        self,
        session: RenderSession,
        files: list[Path] | None = None,
    ) -> BatchResult:
        """Render stencils within an open session.

        Args:
            session: Open render session
            files: Explicit stencils (watch-triggered); enumerate target if None

        Raises:
            ConfigurationError: If the enumerated target is empty
        """
        if files is None:
            files = session.target.enumerate()
            if not files:
                raise ConfigurationError("No files found to render")

        result = BatchResult(snapshot_id=session.snapshot_id)
        for path in files:
            result.outcomes.append(self.render_file(session, path))
        return result

    def render_file(self, session: RenderSession, path: Path) -> FileOutcome:
        """Render one stencil. Never raises for per-file problems."""
        destination = session.target.destination_for(path)

        if not path.is_file():
            logger.error("Cannot find %s", path)
            return FileOutcome(path, FileStatus.FAILED, destination, message="file not found")

        try:
            render_input = RenderInput.from_path(path)
        except OSError as e:
            logger.error("Failed to read %s: %s", path, e)
            return FileOutcome(path, FileStatus.FAILED, destination, message=str(e))

        if destination is not None:
            if not should_render(render_input.body, destination):
                logger.info("No change found in %s", destination)
                return FileOutcome(path, FileStatus.UNCHANGED, destination)
            logger.info(
                "[%s] Rendering %s to %s", session.formation.name, path, destination
            )

        invocation = self._invoker.render(session.formation, render_input, session.snapshot_id)
        outcome = FileOutcome(
            path,
            invocation.status,
            destination,
            message=invocation.message,
            diagnostics=invocation.diagnostics,
        )
        if invocation.status is not FileStatus.RENDERED:
            return outcome

        if destination is None:
            write_stdout(invocation.contents, self._stdout or sys.stdout)
            return outcome

        fingerprint = generate_checksum(render_input.body)
        try:
            for content in invocation.contents:
                write_output(content, destination, fingerprint)
        except OutputWriteError as e:
            logger.error(str(e))
            outcome.status = FileStatus.FAILED
            outcome.message = e.message

        return outcome
