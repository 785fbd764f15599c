"""Backend registry for pluggable services.

The registry maps backend names to factories. The backend is chosen in YAML
config, not hardcoded.

Configuration example:
    service:
      backend: http     # -> HttpBackend (remote API)
      backend: local    # -> LocalBackend (offline Jinja2)

Adding a new backend:
    1. Implement ServiceBackend
    2. Register a factory building it from StencilerConfig
    3. No changes needed to the engine
"""

from collections.abc import Callable
from pathlib import Path

from stenciler.config import StencilerConfig
from stenciler.exceptions import ConfigurationError
from stenciler.services.base import ServiceBackend
from stenciler.services.http import HttpBackend
from stenciler.services.local import LocalBackend

# Factory signature: (name, config, stencil_dir) -> backend
BackendFactory = Callable[[str, StencilerConfig, Path | None], ServiceBackend]


class ServiceRegistry:
    """Registry of available service backends."""

    def __init__(self) -> None:
        """Initialize empty registry."""
        self._factories: dict[str, BackendFactory] = {}
        self._default: str | None = None

    def register_backend(
        self,
        name: str,
        factory: BackendFactory,
        is_default: bool = False,
    ) -> None:
        """Register a backend factory.

        Args:
            name: Backend identifier (e.g., "http")
            factory: Callable building the backend
            is_default: Whether this is the default backend
        """
        self._factories[name] = factory
        if is_default:
            self._default = name

    def create_backend(
        self,
        config: StencilerConfig,
        stencil_dir: Path | None = None,
        name: str | None = None,
    ) -> ServiceBackend:
        """Instantiate a backend.

        Args:
            config: Loaded configuration
            stencil_dir: Folder holding the stencils being rendered
            name: Backend name (uses config, then the default, if None)

        Returns:
            Instantiated backend

        Raises:
            ConfigurationError: If the backend is unknown or misconfigured
        """
        backend_name = name or config.service.backend or self._default
        if backend_name is None:
            raise ConfigurationError("No service backend configured")

        if backend_name not in self._factories:
            available = self.list_backends()
            raise ConfigurationError(
                f"Service backend '{backend_name}' not registered. Available: {available}"
            )

        return self._factories[backend_name](backend_name, config, stencil_dir)

    def list_backends(self) -> list[str]:
        """Get list of registered backend names."""
        return list(self._factories.keys())


def _create_http_backend(
    name: str, config: StencilerConfig, stencil_dir: Path | None
) -> ServiceBackend:
    if not config.service.api_key:
        raise ConfigurationError(f"api_key is required for the {name} backend")
    return HttpBackend(
        name,
        api_base=config.service.api_base,
        api_key=config.service.api_key,
        timeout=config.service.timeout,
    )


def _create_local_backend(
    name: str, config: StencilerConfig, stencil_dir: Path | None
) -> ServiceBackend:
    if stencil_dir is None:
        raise ConfigurationError(f"The {name} backend needs a stencil folder")
    variables = None
    if config.local.variables:
        variables = Path(config.local.variables).expanduser()
        if not variables.is_absolute() and config.config_path is not None:
            variables = config.config_path.parent / variables
    return LocalBackend(
        name,
        stencil_dir=stencil_dir,
        variables_path=variables,
        snapshot_id=config.local.snapshot,
    )


def setup_default_backends(registry: ServiceRegistry | None = None) -> ServiceRegistry:
    """Register all default backends.

    Args:
        registry: Registry to populate (uses global if None)

    Returns:
        Populated ServiceRegistry
    """
    if registry is None:
        registry = get_registry()

    registry.register_backend("http", _create_http_backend, is_default=True)
    registry.register_backend("local", _create_local_backend)

    return registry


# Global registry instance
_registry: ServiceRegistry | None = None


def get_registry() -> ServiceRegistry:
    """Get the global service registry instance."""
    global _registry
    if _registry is None:
        _registry = ServiceRegistry()
    return _registry


def reset_registry() -> None:
    """Reset the global registry (primarily for testing)."""
    global _registry
    _registry = None
