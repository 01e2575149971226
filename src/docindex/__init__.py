"""docindex: local, searchable index of a remote documentation archive."""

from __future__ import annotations

import warnings
from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("docindex")
except PackageNotFoundError:
    # Running from a source checkout without installed metadata.
    warnings.warn(
        "Package metadata for 'docindex' not found; using fallback version '0.0.0+unknown'.",
        RuntimeWarning,
        stacklevel=2,
    )
    __version__ = "0.0.0+unknown"
