"""DecisionFlow package entrypoints."""

from decisionflow.cli import app
from decisionflow.constants import PACKAGE_VERSION

__all__ = ["app", "main", "__version__"]
__version__ = PACKAGE_VERSION


def main() -> None:
    """Launch the CLI."""
    app()
