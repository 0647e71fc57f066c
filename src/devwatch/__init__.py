"""devwatch: Build/watch orchestrator for local development."""

__version__ = "0.1.0"

# Public API
from devwatch.controller import BuildController
from devwatch.retest import RetestController

__all__ = [
    "__version__",
    # Primary components
    "BuildController",
    "RetestController",
]
