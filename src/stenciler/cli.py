"""Stenciler CLI interface.

Commands:
- render: Render stencils once, or keep re-rendering them with --watch
- init: Initialize Stenciler configuration

Global options:
- --config: Path to configuration file
- --verbose: Enable verbose output with timestamps
- --quiet: Suppress info messages
- --ci: JSON log lines
- --version: Show version and exit
"""

import logging
from pathlib import Path
from typing import Annotated

import typer

from stenciler import __version__
from stenciler.config import StencilerConfig, create_default_config, load_config
from stenciler.utils.logging import configure_from_cli, get_logger, log_structured

app = typer.Typer(
    name="stenciler",
    help="Render stencils through a rendering service and watch them for changes",
    add_completion=False,
    no_args_is_help=True,
)

# Global state
_config: StencilerConfig | None = None
_logger = get_logger()


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"stenciler {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    config: Annotated[
        Path | None,
        typer.Option(
            "--config",
            "-c",
            help="Path to configuration file",
            exists=True,
            dir_okay=False,
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Enable verbose output with timestamps"),
    ] = False,
    quiet: Annotated[
        bool,
        typer.Option("--quiet", "-q", help="Suppress info messages (warnings and errors only)"),
    ] = False,
    ci: Annotated[
        bool,
        typer.Option("--ci", help="Emit log lines as JSON"),
    ] = False,
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            callback=version_callback,
            is_eager=True,
            help="Show version and exit",
        ),
    ] = False,
) -> None:
    """Stenciler - stencil render-and-watch engine."""
    global _config

    configure_from_cli(verbose=verbose, quiet=quiet, ci=ci)

    try:
        _config = load_config(config_path=config)
        if _config.config_path:
            _logger.debug(f"Loaded config from: {_config.config_path}")
    except FileNotFoundError as e:
        _logger.error(str(e))
        raise typer.Exit(1)
    except Exception as e:
        _logger.error(f"Failed to load config: {e}")
        raise typer.Exit(1)


# =============================================================================
# render command
# =============================================================================


def _default_folders(config: StencilerConfig, formation: str) -> tuple[Path, Path]:
    """Create and return <home>/<formation>/{stencils,renders}."""
    base = config.render.home_path / formation
    stencils = base / "stencils"
    renders = base / "renders"
    stencils.mkdir(parents=True, exist_ok=True)
    renders.mkdir(parents=True, exist_ok=True)
    return stencils, renders


@app.command()
def render(
    formation: Annotated[
        str | None,
        typer.Option("--formation", help="Formation to use (overrides config defaults)"),
    ] = None,
    stack: Annotated[
        str | None,
        typer.Option("--stack", "-s", help="Stack identifier (overrides config defaults)"),
    ] = None,
    stencil_file: Annotated[
        Path | None,
        typer.Option(
            "--stencil-file",
            help="Stencil file. The file name must match the one registered in the formation",
        ),
    ] = None,
    stencil_folder: Annotated[
        Path | None,
        typer.Option(
            "--stencil-folder",
            help="Render all files within the folder",
            file_okay=False,
        ),
    ] = None,
    default_folders: Annotated[
        bool,
        typer.Option(
            "--default-folders",
            help="Use <home>/<formation>/stencils and <home>/<formation>/renders",
        ),
    ] = False,
    snapshot: Annotated[
        str | None,
        typer.Option("--snapshot", help="Snapshot ID. Defaults to the latest snapshot"),
    ] = None,
    output: Annotated[
        Path | None,
        typer.Option(
            "--output",
            "-o",
            help="Output file (single stencil) or folder. Prints to stdout if missing",
        ),
    ] = None,
    watch: Annotated[
        bool,
        typer.Option("--watch", help="Watch the file or folder and re-render on every change"),
    ] = False,
    ignore_errors: Annotated[
        bool,
        typer.Option("--ignore-errors", help="Write whatever could be rendered despite errors"),
    ] = False,
    ignore_warnings: Annotated[
        bool,
        typer.Option(
            "--ignore-warnings", help="Write whatever could be rendered despite warnings"
        ),
    ] = False,
    debounce: Annotated[
        float | None,
        typer.Option(
            "--debounce",
            help="Seconds to wait before rendering a newly created stencil",
            min=0,
        ),
    ] = None,
) -> None:
    """Render stencils without committing them to the formation.

    Exit codes:
        0: Everything rendered or unchanged
        1: Setup error, or at least one stencil failed
        2: At least one output was suppressed by errors or warnings
    """
    from stenciler.engine import BatchOrchestrator, BatchTarget, RenderInvoker, WatchLoop
    from stenciler.exceptions import StencilerError
    from stenciler.services import ServiceError, get_registry, setup_default_backends

    config = _config or StencilerConfig()

    stack_name = stack or config.defaults.stack
    if not stack_name:
        _logger.error("No stack provided. Please use --stack or set defaults.stack in config")
        raise typer.Exit(1)

    formation_name = formation or config.defaults.formation
    if not formation_name:
        _logger.error(
            "No formation provided. Please use --formation or set defaults.formation in config"
        )
        raise typer.Exit(1)

    if stencil_file is None and stencil_folder is None and not default_folders:
        _logger.error(
            "No stencil file or folder provided. Please use --stencil-file or "
            "--stencil-folder to specify a stencil file or folder. "
            "Alternatively you can use --default-folders"
        )
        raise typer.Exit(1)
    if stencil_file is not None and stencil_folder is not None:
        _logger.error("Both --stencil-file and --stencil-folder provided. Please use only one")
        raise typer.Exit(1)
    if default_folders and (stencil_file is not None or stencil_folder is not None):
        _logger.error(
            "Both --stencil-file or --stencil-folder and --default-folders used. "
            "Please use only one method to set the folders"
        )
        raise typer.Exit(1)

    if default_folders:
        try:
            stencil_folder, output = _default_folders(config, formation_name)
        except OSError as e:
            _logger.error(f"Failed to create default folders: {e}")
            raise typer.Exit(1)

    if watch and output is None:
        _logger.error("Cannot use --watch without --output")
        raise typer.Exit(1)

    _logger.info(f"Stencils: {stencil_folder or stencil_file}")
    _logger.info(f"Renders: {output or 'stdout'}")

    target = BatchTarget(folder=stencil_folder, file=stencil_file, output=output)
    stencil_dir = stencil_folder or (stencil_file.parent if stencil_file else None)

    setup_default_backends()
    try:
        backend = get_registry().create_backend(config, stencil_dir=stencil_dir)
    except StencilerError as e:
        _logger.error(str(e))
        raise typer.Exit(1)

    _logger.debug(f"Service backend: {backend.get_metadata()}")

    invoker = RenderInvoker(
        catalog=backend,
        renderer=backend,
        stack=stack_name,
        ignore_errors=ignore_errors or config.render.ignore_errors,
        ignore_warnings=ignore_warnings or config.render.ignore_warnings,
    )
    orchestrator = BatchOrchestrator(
        stack=stack_name,
        snapshots=backend,
        catalog=backend,
        invoker=invoker,
    )

    try:
        session, result = orchestrator.run(target, formation_name, snapshot)
    except (StencilerError, ServiceError) as e:
        _logger.error(str(e))
        raise typer.Exit(1)

    for outcome in result.outcomes:
        log_structured(
            _logger,
            logging.DEBUG,
            f"{outcome.source}: {outcome.status.value}",
            **outcome.to_dict(),
        )
    _logger.debug(
        f"Snapshot {result.snapshot_id}: {len(result.rendered)} rendered, "
        f"{len(result.suppressed)} suppressed, {len(result.failed)} failed"
    )

    if not watch:
        raise typer.Exit(result.exit_code())

    loop = WatchLoop(
        orchestrator,
        session,
        debounce_seconds=debounce if debounce is not None else config.render.debounce_seconds,
    )
    try:
        loop.run()
    except StencilerError as e:
        _logger.error(str(e))
        raise typer.Exit(1)

    raise typer.Exit(0)


# =============================================================================
# init command
# =============================================================================


@app.command()
def init(
    force: Annotated[
        bool,
        typer.Option("--force", help="Overwrite existing config"),
    ] = False,
) -> None:
    """Initialize Stenciler configuration.

    Creates .stenciler/config.yaml with commented defaults.
    """
    config_dir = Path(".stenciler")
    config_dir.mkdir(exist_ok=True)
    config_file = config_dir / "config.yaml"

    if config_file.exists() and not force:
        _logger.error(f"Config already exists: {config_file}")
        _logger.info("Use --force to overwrite")
        raise typer.Exit(1)

    config_file.write_text(create_default_config())
    _logger.info(f"Created config: {config_file}")

    typer.echo("\n✅ Stenciler configuration initialized")
    typer.echo(f"   Config: {config_file}")
    raise typer.Exit(0)


if __name__ == "__main__":
    app()
