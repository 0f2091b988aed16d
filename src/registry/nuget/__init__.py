"""NuGet package feeds.

This package provides the single-source feeds the oracle falls back across:
- client.py: remote NuGet V2 registries (package-versions JSON, OData Atom XML)
- local.py: local directories of .nupkg archives
"""

# Patch points exposed for tests (e.g., monkeypatch in tests)
from common.http_client import safe_get  # noqa: F401

# Public API re-exports
from .client import NuGetFeed, parse_dependency_string  # noqa: F401
from .local import LocalFeed  # noqa: F401

__all__ = [
    "NuGetFeed",
    "LocalFeed",
    "parse_dependency_string",
    # Patch points for tests
    "safe_get",
]
