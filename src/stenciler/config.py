"""Stenciler configuration system.

Configuration is YAML-based with per-run CLI overrides (--formation, --snapshot,
--ignore-errors, ...). Supports environment variable substitution (${VAR}) in
config files so API keys never have to be committed.

Configuration file discovery (in priority order):
1. CLI --config argument
2. ./.stenciler/config.yaml
3. ./stenciler.yaml
"""

import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

DEFAULT_API_BASE = "https://app.cloud66.com/api/3"
DEFAULT_DEBOUNCE_SECONDS = 10.0
VALID_BACKENDS = frozenset({"http", "local"})

# =============================================================================
# Configuration Dataclasses
# =============================================================================


@dataclass
class ServiceConfig:
    """Rendering/catalog service connection.

    Attributes:
        backend: Service backend (http, local)
        api_base: API base URL for the http backend
        api_key: API token for the http backend
        timeout: Request timeout in seconds
    """

    backend: str = "http"
    api_base: str = DEFAULT_API_BASE
    api_key: str | None = None
    timeout: float = 30.0

    def __post_init__(self) -> None:
        """Validate service configuration."""
        self.backend = self.backend.lower().strip()
        if self.backend not in VALID_BACKENDS:
            raise ValueError(
                f"Invalid service backend: {self.backend}. Valid: {sorted(VALID_BACKENDS)}"
            )
        if self.timeout <= 0:
            raise ValueError(f"timeout must be positive (got {self.timeout})")
        self.api_base = self.api_base.rstrip("/")


@dataclass
class LocalConfig:
    """Settings for the offline (local) backend.

    Attributes:
        variables: YAML file holding the template context
        snapshot: Snapshot identifier reported by the local backend
    """

    variables: str | None = None
    snapshot: str = "local"


@dataclass
class RenderConfig:
    """Render and watch behaviour.

    Attributes:
        debounce_seconds: Delay before rendering a newly created stencil
        ignore_errors: Write output even when the service reports errors
        ignore_warnings: Write output even when the service reports warnings
        home: Root folder used by --default-folders
    """

    debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS
    ignore_errors: bool = False
    ignore_warnings: bool = False
    home: str = "~/stenciler/formations"

    def __post_init__(self) -> None:
        """Validate render configuration."""
        if self.debounce_seconds < 0:
            raise ValueError(
                f"debounce_seconds cannot be negative (got {self.debounce_seconds})"
            )

    @property
    def home_path(self) -> Path:
        return Path(self.home).expanduser()


@dataclass
class DefaultsConfig:
    """Values used when the CLI does not name them.

    Attributes:
        stack: Stack identifier
        formation: Formation name
    """

    stack: str | None = None
    formation: str | None = None


@dataclass
class StencilerConfig:
    """Top-level Stenciler configuration.

    Attributes:
        service: Service backend settings
        local: Offline backend settings
        render: Render and watch settings
        defaults: Default stack and formation
    """

    service: ServiceConfig = field(default_factory=ServiceConfig)
    local: LocalConfig = field(default_factory=LocalConfig)
    render: RenderConfig = field(default_factory=RenderConfig)
    defaults: DefaultsConfig = field(default_factory=DefaultsConfig)

    # Runtime overrides (set by CLI)
    _config_path: Path | None = field(default=None, repr=False)

    @property
    def config_path(self) -> Path | None:
        """Get the path to the config file that was loaded."""
        return self._config_path


# =============================================================================
# Environment Variable Substitution
# =============================================================================


def substitute_env_vars(value: Any) -> Any:
    """Substitute environment variables in config values.

    Supports ${VAR} syntax for environment variable substitution.
    Example: ${STENCILER_API_KEY} -> value of STENCILER_API_KEY

    Args:
        value: Config value (string, dict, list, or other)

    Returns:
        Value with environment variables substituted

    Raises:
        ValueError: If a referenced variable is not set
    """
    if isinstance(value, str):
        pattern = re.compile(r"\$\{([^}]+)\}")

        def replace_var(match: re.Match[str]) -> str:
            var_name = match.group(1)
            env_value = os.environ.get(var_name)
            if env_value is None:
                raise ValueError(f"Environment variable not set: {var_name}")
            return env_value

        return pattern.sub(replace_var, value)

    elif isinstance(value, dict):
        return {k: substitute_env_vars(v) for k, v in value.items()}

    elif isinstance(value, list):
        return [substitute_env_vars(v) for v in value]

    return value


# =============================================================================
# Config File Discovery
# =============================================================================


def find_config_file(start_path: Path | None = None) -> Path | None:
    """Find configuration file in standard locations.

    Search order:
    1. ./.stenciler/config.yaml
    2. ./stenciler.yaml

    Args:
        start_path: Starting directory for search (defaults to cwd)

    Returns:
        Path to config file if found, None otherwise
    """
    if start_path is None:
        start_path = Path.cwd()

    start_path = start_path.resolve()

    candidates = [
        start_path / ".stenciler" / "config.yaml",
        start_path / "stenciler.yaml",
    ]

    for candidate in candidates:
        if candidate.exists():
            return candidate

    return None


# =============================================================================
# Config Loading
# =============================================================================


def load_config_from_dict(data: dict[str, Any]) -> StencilerConfig:
    """Load configuration from a dictionary.

    Args:
        data: Configuration dictionary

    Returns:
        StencilerConfig instance

    Raises:
        ValueError: If a value is invalid or a referenced env var is unset
    """
    data = substitute_env_vars(data)

    config = StencilerConfig()

    if "service" in data:
        service_data = data["service"] or {}
        config.service = ServiceConfig(
            backend=service_data.get("backend", config.service.backend),
            api_base=service_data.get("api_base", config.service.api_base),
            api_key=service_data.get("api_key"),
            timeout=float(service_data.get("timeout", config.service.timeout)),
        )

    if "local" in data:
        local_data = data["local"] or {}
        config.local = LocalConfig(
            variables=local_data.get("variables"),
            snapshot=str(local_data.get("snapshot", config.local.snapshot)),
        )

    if "render" in data:
        render_data = data["render"] or {}
        config.render = RenderConfig(
            debounce_seconds=float(
                render_data.get("debounce_seconds", config.render.debounce_seconds)
            ),
            ignore_errors=bool(render_data.get("ignore_errors", False)),
            ignore_warnings=bool(render_data.get("ignore_warnings", False)),
            home=render_data.get("home", config.render.home),
        )

    if "defaults" in data:
        defaults_data = data["defaults"] or {}
        config.defaults = DefaultsConfig(
            stack=defaults_data.get("stack"),
            formation=defaults_data.get("formation"),
        )

    return config


def load_config(
    config_path: Path | None = None,
    auto_discover: bool = True,
) -> StencilerConfig:
    """Load configuration from file.

    Args:
        config_path: Explicit path to config file
        auto_discover: Whether to search for config file if not specified

    Returns:
        StencilerConfig instance

    Raises:
        FileNotFoundError: If config_path specified but doesn't exist
    """
    if config_path is not None:
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")
        found_path = config_path
    elif auto_discover:
        found_path = find_config_file()
    else:
        found_path = None

    if found_path is not None:
        with open(found_path) as f:
            data = yaml.safe_load(f) or {}
        config = load_config_from_dict(data)
        config._config_path = found_path
    else:
        config = StencilerConfig()

    return config


def create_default_config() -> str:
    """Create default configuration YAML content.

    Returns:
        YAML string with default configuration and comments
    """
    return f'''# Stenciler Configuration

# Rendering service
service:
  backend: "http"        # http (remote API), local (offline Jinja2)
  api_base: "{DEFAULT_API_BASE}"
  # api_key: "${{STENCILER_API_KEY}}"  # Required for the http backend
  timeout: 30

# Offline backend (service.backend: local)
# local:
#   variables: "variables.yaml"
#   snapshot: "local"

# Render and watch behaviour
render:
  debounce_seconds: {DEFAULT_DEBOUNCE_SECONDS}  # wait before rendering newly created stencils
  ignore_errors: false
  ignore_warnings: false
  home: "~/stenciler/formations"  # used by --default-folders

# Used when --stack / --formation are not given
# defaults:
#   stack: "my-stack"
#   formation: "web"
'''
