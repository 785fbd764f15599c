"""Abstract interfaces for the external services the engine consumes.

Every backend MUST implement these contracts. Each backend:
1. Talks to its service (remote API, local filesystem, ...)
2. Parses service-specific payloads
3. Returns canonical entities (Snapshot, Formation, RenderResponse)
4. Raises ServiceError for transport or protocol failures
"""

from abc import ABC, abstractmethod
from typing import Any

from stenciler.models import Formation, RenderResponse, Snapshot


class ServiceAdapter(ABC):
    """Common base for service adapters.

    Attributes:
        name: Backend identifier (e.g., "http", "local")
    """

    def __init__(self, name: str) -> None:
        self.name = name

    def get_metadata(self) -> dict[str, Any]:
        """Get adapter metadata for logging and debugging."""
        return {"name": self.name, "type": type(self).__name__}


class SnapshotService(ServiceAdapter):
    """Lists the snapshots templates can be rendered against."""

    @abstractmethod
    def list_snapshots(self, stack: str) -> list[Snapshot]:
        """Return the stack's snapshots, most recent first.

        Raises:
            ServiceError: If the snapshots cannot be fetched
        """


class CatalogService(ServiceAdapter):
    """Resolves formations and stencil filenames to identifiers."""

    @abstractmethod
    def list_formations(self, stack: str) -> list[Formation]:
        """Return all formations of a stack with their stencils.

        Raises:
            ServiceError: If the catalog cannot be fetched
        """

    def load_formation(self, stack: str, name: str) -> Formation:
        """Fetch a formation by name.

        Raises:
            FormationNotFoundError: If no formation has that name
            ServiceError: If the catalog cannot be fetched
        """
        for formation in self.list_formations(stack):
            if formation.name == name:
                return formation
        raise FormationNotFoundError(name)

    def resolve_template(self, formation: Formation, filename: str) -> str:
        """Resolve a stencil filename to its identifier within a formation.

        Raises:
            TemplateNotFoundError: If the formation has no such stencil
        """
        stencil = formation.find_stencil(filename)
        if stencil is None:
            raise TemplateNotFoundError(filename, formation.name)
        return stencil.uid


class RenderingService(ServiceAdapter):
    """Renders a stencil body against a snapshot."""

    @abstractmethod
    def render(
        self,
        stack: str,
        snapshot_id: str,
        formation_id: str,
        template_id: str,
        body: bytes,
    ) -> RenderResponse:
        """Render one stencil.

        Returns:
            Rendered contents (possibly none) and diagnostics

        Raises:
            ServiceError: If the call itself fails
        """


class ServiceBackend(SnapshotService, CatalogService, RenderingService):
    """A backend providing all three services."""


class ServiceError(Exception):
    """Raised when a service call fails at the transport or protocol level."""

    def __init__(
        self,
        service: str,
        message: str,
        status_code: int | None = None,
    ) -> None:
        self.service = service
        self.message = message
        self.status_code = status_code
        full_message = f"{service} request failed: {message}"
        if status_code is not None:
            full_message += f" (status: {status_code})"
        super().__init__(full_message)


class FormationNotFoundError(Exception):
    """Raised when a formation name cannot be found in the catalog."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"No formation with name {name} found")


class TemplateNotFoundError(Exception):
    """Raised when a stencil filename is not registered in the formation."""

    def __init__(self, filename: str, formation: str) -> None:
        self.filename = filename
        self.formation = formation
        super().__init__(f"No stencil named '{filename}' found in formation '{formation}'")
