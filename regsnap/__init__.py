"""regsnap: snapshot, edit and replay registry subtrees with a restore transcript.

Only `regsnap` and `regsnap.errors` are public. Everything else is internal.
"""
from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version as _pkg_version

from . import errors as errors  # re-export; noqa: F401
from .engine.apply import apply_flat
from .engine.flatten import flatten
from .engine.restore import replay
from .engine.types import FlatObject, IntValue, MultiStringValue, StringValue


def _version_from_metadata() -> str | None:
    try:
        return _pkg_version("regsnap")
    except PackageNotFoundError:
        return None


__version__ = _version_from_metadata() or "0+unknown"

# Star-export surface (deterministic ordering)
__all__ = [
    "FlatObject",
    "IntValue",
    "MultiStringValue",
    "StringValue",
    "__version__",
    "apply_flat",
    "errors",
    "flatten",
    "replay",
]
