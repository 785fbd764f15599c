"""Entry point for running Stenciler as a module.

Usage:
    python -m stenciler [command] [options]

Example:
    python -m stenciler render --formation web --stencil-folder stencils --output renders
    python -m stenciler init
"""

from stenciler.cli import app

if __name__ == "__main__":
    app()
