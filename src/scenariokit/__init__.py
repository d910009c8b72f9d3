from __future__ import annotations

# Runtime package version, taken from the installed distribution metadata.
try:
    from importlib.metadata import version as _pkg_version

    __version__ = _pkg_version("scenariokit")
except Exception:  # pragma: no cover
    # fallback for source checkouts that were never installed
    __version__ = "0.0.0"

from .api.errors import (
    ConfigurationError,
    CreationError,
    MissingKeysError,
    ScenarioError,
    UnresolvableReferenceError,
    WipeError,
)
from .core.config import ScenarioOptions
from .runtime.orchestrator import Progress, Scenario
from .storage import DocumentStore, MongoStore, ObjectRef, Ref

__all__ = [
    "ConfigurationError",
    "CreationError",
    "DocumentStore",
    "MissingKeysError",
    "MongoStore",
    "ObjectRef",
    "Progress",
    "Ref",
    "Scenario",
    "ScenarioError",
    "ScenarioOptions",
    "UnresolvableReferenceError",
    "WipeError",
    "__version__",
]
