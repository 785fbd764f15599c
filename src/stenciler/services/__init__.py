"""Stenciler services - the external collaborators of the render engine.

Backends:
- http: remote stack management API (snapshots, formations, rendering)
- local: offline Jinja2 rendering of a stencil folder
"""

from stenciler.services.base import (
    CatalogService,
    FormationNotFoundError,
    RenderingService,
    ServiceBackend,
    ServiceError,
    SnapshotService,
    TemplateNotFoundError,
)
from stenciler.services.http import HttpBackend
from stenciler.services.local import LocalBackend
from stenciler.services.registry import (
    ServiceRegistry,
    get_registry,
    reset_registry,
    setup_default_backends,
)

__all__ = [
    "CatalogService",
    "FormationNotFoundError",
    "HttpBackend",
    "LocalBackend",
    "RenderingService",
    "ServiceBackend",
    "ServiceError",
    "ServiceRegistry",
    "SnapshotService",
    "TemplateNotFoundError",
    "get_registry",
    "reset_registry",
    "setup_default_backends",
]
