"""Shared pytest fixtures for Stenciler tests.

Fixtures are organized by category:
- Service fixtures: an in-memory backend recording every call
- Folder fixtures: stencil and output folders in tmp_path
- Engine fixtures: invoker and orchestrator wired to the fake backend
"""

import logging
from collections.abc import Iterator
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import pytest

from stenciler.engine import BatchOrchestrator, BatchTarget, RenderInvoker
from stenciler.models import (
    Diagnostic,
    DiagnosticKind,
    Formation,
    RenderResponse,
    Snapshot,
    Stencil,
)
from stenciler.services import ServiceBackend, ServiceError


@pytest.fixture(autouse=True)
def reset_stenciler_logger() -> Iterator[None]:
    """Undo CLI logging setup so handlers never outlive a test."""
    yield
    logger = logging.getLogger("stenciler")
    logger.handlers.clear()
    logger.setLevel(logging.NOTSET)


# =============================================================================
# Service Fixtures
# =============================================================================


class FakeBackend(ServiceBackend):
    """In-memory backend recording render calls.

    By default a render echoes the stencil body upper-cased. Per-template
    responses or errors can be configured through `responses` and `failures`.
    """

    def __init__(
        self,
        formations: list[Formation] | None = None,
        snapshots: list[Snapshot] | None = None,
    ) -> None:
        super().__init__("fake")
        self.formations = formations or []
        self.snapshots = snapshots if snapshots is not None else []
        self.responses: dict[str, RenderResponse] = {}
        self.failures: dict[str, ServiceError] = {}
        self.render_calls: list[dict[str, Any]] = []
        self.formation_loads = 0

    def list_snapshots(self, stack: str) -> list[Snapshot]:
        return list(self.snapshots)

    def list_formations(self, stack: str) -> list[Formation]:
        self.formation_loads += 1
        return list(self.formations)

    def render(
        self,
        stack: str,
        snapshot_id: str,
        formation_id: str,
        template_id: str,
        body: bytes,
    ) -> RenderResponse:
        self.render_calls.append(
            {
                "stack": stack,
                "snapshot_id": snapshot_id,
                "formation_id": formation_id,
                "template_id": template_id,
                "body": body,
            }
        )
        if template_id in self.failures:
            raise self.failures[template_id]
        if template_id in self.responses:
            return self.responses[template_id]
        return RenderResponse(contents=[body.decode().upper()])


def error(text: str, template: str = "app.yml") -> Diagnostic:
    return Diagnostic(DiagnosticKind.ERROR, text, template)


def warning(text: str, template: str = "app.yml") -> Diagnostic:
    return Diagnostic(DiagnosticKind.WARNING, text, template)


@pytest.fixture
def formation() -> Formation:
    """Return a formation with a few registered stencils."""
    return Formation(
        uid="frm-1",
        name="web",
        stencils=[
            Stencil(uid="st-app", filename="app.yml", sequence=1),
            Stencil(uid="st-db", filename="db.yml", sequence=2),
            Stencil(uid="st-svc", filename="web@service.yml", sequence=3),
        ],
    )


@pytest.fixture
def snapshots() -> list[Snapshot]:
    """Return snapshots, most recent first."""
    return [
        Snapshot(uid="snap-new", created_at=datetime(2024, 2, 1, tzinfo=UTC)),
        Snapshot(uid="snap-old", created_at=datetime(2024, 1, 1, tzinfo=UTC)),
    ]


@pytest.fixture
def backend(formation: Formation, snapshots: list[Snapshot]) -> FakeBackend:
    """Return a fake backend serving the formation and snapshots."""
    return FakeBackend(formations=[formation], snapshots=snapshots)


# =============================================================================
# Folder Fixtures
# =============================================================================


@pytest.fixture
def stencil_dir(tmp_path: Path) -> Path:
    """Create a stencil folder with two stencils and a partial."""
    folder = tmp_path / "stencils"
    folder.mkdir()
    (folder / "app.yml").write_text("app: A\n")
    (folder / "db.yml").write_text("db: B\n")
    (folder / "_partial.yml").write_text("shared: true\n")
    return folder


@pytest.fixture
def output_dir(tmp_path: Path) -> Path:
    """Return a not-yet-existing output folder."""
    return tmp_path / "renders"


# =============================================================================
# Engine Fixtures
# =============================================================================


@pytest.fixture
def invoker(backend: FakeBackend) -> RenderInvoker:
    """Return an invoker with the strict default policy."""
    return RenderInvoker(catalog=backend, renderer=backend, stack="stack-1")


@pytest.fixture
def orchestrator(backend: FakeBackend, invoker: RenderInvoker) -> BatchOrchestrator:
    """Return an orchestrator wired to the fake backend."""
    return BatchOrchestrator(
        stack="stack-1",
        snapshots=backend,
        catalog=backend,
        invoker=invoker,
    )


@pytest.fixture
def folder_target(stencil_dir: Path, output_dir: Path) -> BatchTarget:
    """Return a folder-mode batch target."""
    return BatchTarget(folder=stencil_dir, output=output_dir)
