"""Offline backend rendering stencils with Jinja2.

The formation is the stencil folder itself: every file in it is a registered
stencil whose identifier is its filename, so partials can be included by name.
Template failures become error diagnostics and undefined variables become
warning diagnostics, mirroring what the remote service reports.
"""

import logging
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import yaml
from jinja2 import Environment, FileSystemLoader, TemplateError, Undefined

from stenciler.models import (
    Diagnostic,
    DiagnosticKind,
    Formation,
    RenderResponse,
    Snapshot,
    Stencil,
    is_hidden_name,
)
from stenciler.services.base import ServiceBackend, ServiceError

logger = logging.getLogger(__name__)


def _recording_undefined(missing: list[str]) -> type[Undefined]:
    """Build an Undefined class that records every variable rendered empty."""

    class RecordingUndefined(Undefined):
        def __str__(self) -> str:
            if self._undefined_name and self._undefined_name not in missing:
                missing.append(self._undefined_name)
            return ""

    return RecordingUndefined


class LocalBackend(ServiceBackend):
    """Renders stencils from a local folder.

    Attributes:
        stencil_dir: Folder acting as the formation catalog
        snapshot_id: Identifier of the single local snapshot
    """

    def __init__(
        self,
        name: str,
        stencil_dir: Path,
        variables_path: Path | None = None,
        snapshot_id: str = "local",
    ) -> None:
        super().__init__(name)
        self.stencil_dir = stencil_dir
        self.variables_path = variables_path
        self.snapshot_id = snapshot_id

    def _load_variables(self) -> dict[str, Any]:
        if self.variables_path is None:
            return {}
        try:
            with open(self.variables_path) as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ServiceError(self.name, f"Failed to load variables: {e}") from e
        if not isinstance(data, dict):
            raise ServiceError(self.name, f"Variables file {self.variables_path} must hold a mapping")
        return data

    def list_snapshots(self, stack: str) -> list[Snapshot]:
        return [Snapshot(uid=self.snapshot_id, created_at=datetime.now(UTC))]

    def list_formations(self, stack: str) -> list[Formation]:
        stencils = []
        if self.stencil_dir.is_dir():
            files = sorted(p for p in self.stencil_dir.iterdir() if p.is_file())
            stencils = [
                Stencil(uid=p.name, filename=p.name, sequence=index)
                for index, p in enumerate(files)
                if not is_hidden_name(p.name)
            ]
        return [Formation(uid=self.stencil_dir.name, name=self.stencil_dir.name, stencils=stencils)]

    def load_formation(self, stack: str, name: str) -> Formation:
        # The stencil folder is the only formation, whatever it is called
        formation = self.list_formations(stack)[0]
        return Formation(uid=formation.uid, name=name, stencils=formation.stencils)

    def render(
        self,
        stack: str,
        snapshot_id: str,
        formation_id: str,
        template_id: str,
        body: bytes,
    ) -> RenderResponse:
        missing: list[str] = []
        env = Environment(
            loader=FileSystemLoader(str(self.stencil_dir)),
            undefined=_recording_undefined(missing),
            autoescape=False,
            keep_trailing_newline=True,
        )
        context = {"stack": stack, "snapshot": snapshot_id, **self._load_variables()}

        try:
            template = env.from_string(body.decode("utf-8"))
            content = template.render(**context)
        except (TemplateError, UnicodeDecodeError, TypeError, ValueError) as e:
            logger.debug("Local render of %s failed: %s", template_id, e)
            return RenderResponse(
                diagnostics=[Diagnostic(DiagnosticKind.ERROR, str(e), template_id)]
            )

        warnings = [
            Diagnostic(DiagnosticKind.WARNING, f"Undefined variable '{name}'", template_id)
            for name in missing
        ]
        return RenderResponse(contents=[content], diagnostics=warnings)
