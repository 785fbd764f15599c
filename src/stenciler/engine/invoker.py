"""Render invoker: one rendering service call plus diagnostic triage.

Triage is errors first, warnings second. Unignored errors suppress the output
even when warnings are ignored, and vice versa. Diagnostics are always reported
to the operator, whether or not they suppress the output.
"""

import logging
from dataclasses import dataclass, field

from stenciler.models import (
    Diagnostic,
    FileStatus,
    Formation,
    RenderInput,
    TemplateReference,
)
from stenciler.services import (
    CatalogService,
    RenderingService,
    ServiceError,
    TemplateNotFoundError,
)
from stenciler.utils.logging import log_structured

logger = logging.getLogger(__name__)


@dataclass
class Invocation:
    """Result of invoking the rendering service for one stencil.

    Attributes:
        status: RENDERED when contents should be emitted, otherwise why not
        contents: Rendered contents returned by the service
        diagnostics: All diagnostics returned, ignored or not
        message: Reason for SKIPPED/SUPPRESSED/FAILED
    """

    status: FileStatus
    contents: list[str] = field(default_factory=list)
    diagnostics: list[Diagnostic] = field(default_factory=list)
    message: str | None = None


class RenderInvoker:
    """Calls the rendering service and applies the ignore policy.

    Attributes:
        stack: Stack the stencils belong to
        ignore_errors: Emit output despite error diagnostics
        ignore_warnings: Emit output despite warning diagnostics
    """

    def __init__(
        self,
        catalog: CatalogService,
        renderer: RenderingService,
        stack: str,
        ignore_errors: bool = False,
        ignore_warnings: bool = False,
    ) -> None:
        self._catalog = catalog
        self._renderer = renderer
        self.stack = stack
        self.ignore_errors = ignore_errors
        self.ignore_warnings = ignore_warnings

    def render(
        self,
        formation: Formation,
        render_input: RenderInput,
        snapshot_id: str,
    ) -> Invocation:
        """Render one stencil against a snapshot.

        Never raises for per-stencil problems; they are reported and returned
        as a FAILED invocation so sibling stencils can proceed.

        Args:
            formation: Catalog the stencil is registered in
            render_input: Stencil path and bytes
            snapshot_id: Snapshot to render against

        Returns:
            Invocation describing what to emit
        """
        if render_input.is_private:
            logger.debug("Skipping partial stencil %s", render_input.name)
            return Invocation(FileStatus.SKIPPED, message="partial stencil")

        if render_input.is_empty:
            logger.warning("File %s is empty", render_input.path)
            return Invocation(FileStatus.SKIPPED, message="empty file")

        reference = TemplateReference(catalog_id=formation.uid, filename=render_input.name)

        try:
            template_id = self._catalog.resolve_template(formation, reference.filename)
        except TemplateNotFoundError as e:
            logger.error(
                "%s\nIf this is a new stencil, you can try again once it's fully "
                "created in the formation in a few seconds",
                e,
            )
            return Invocation(FileStatus.FAILED, message=str(e))

        try:
            response = self._renderer.render(
                self.stack,
                snapshot_id,
                reference.catalog_id,
                template_id,
                render_input.body,
            )
        except ServiceError as e:
            logger.error("Failed to render %s: %s", render_input.path, e)
            return Invocation(FileStatus.FAILED, message=str(e))

        errors = response.errors
        warnings = response.warnings
        if errors:
            self._report("Error during rendering of stencils:", errors, logging.ERROR)
        if warnings:
            self._report("Warning during rendering of stencils:", warnings, logging.WARNING)

        if errors and not self.ignore_errors:
            return Invocation(
                FileStatus.SUPPRESSED,
                diagnostics=response.diagnostics,
                message=f"{len(errors)} error(s)",
            )
        if warnings and not self.ignore_warnings:
            return Invocation(
                FileStatus.SUPPRESSED,
                diagnostics=response.diagnostics,
                message=f"{len(warnings)} warning(s)",
            )

        return Invocation(
            FileStatus.RENDERED,
            contents=response.contents,
            diagnostics=response.diagnostics,
        )

    def _report(self, heading: str, diagnostics: list[Diagnostic], level: int) -> None:
        logger.log(level, heading)
        for diagnostic in diagnostics:
            log_structured(
                logger,
                level,
                f"\t{diagnostic}",
                kind=diagnostic.kind.value,
                template=diagnostic.template,
            )
