"""Typed error taxonomy.

Only `regsnap` and `regsnap.errors` are public import roots. Everything else is internal.
This module exposes the operator-facing error classes and a small helper `format_error`.
"""
from __future__ import annotations

from typing import Any

__all__ = [
    "RegsnapError",
    "NotFoundError",
    "InvalidArgumentError",
    "StoreWriteError",
    "PermissionDeniedError",
    "StoreUnavailableError",
    "UnsupportedValueError",
    "ConfigError",
    "SnapshotError",
    "TranscriptError",
    "CLIError",
    "format_error",
]


class RegsnapError(Exception):
    """Base class for all typed, operator-facing errors in regsnap."""
    pass


class NotFoundError(RegsnapError):
    """A key or value addressed by a locator does not exist."""
    pass


class InvalidArgumentError(RegsnapError):
    """Locator does not address a registry key, or an argument/payload is malformed."""
    pass


class StoreWriteError(RegsnapError):
    """A write to the store failed. Fatal to an apply run.

    When raised out of `apply_flat`, `result` carries the partial ApplyResult
    (records and restore commands accumulated before the failure).
    """

    def __init__(self, message: str = "", *, result: Any = None) -> None:
        super().__init__(message)
        self.result = result


class PermissionDeniedError(StoreWriteError):
    """The store refused a write for lack of rights. Recoverable via confirmation."""
    pass


class UnsupportedValueError(RegsnapError):
    """A live value exists but has a type the engine cannot represent or restore.

    Apply records such keys as failed and leaves the live value untouched.
    """
    pass


class StoreUnavailableError(RegsnapError):
    """The live registry backend cannot be used on this platform."""
    pass


class ConfigError(RegsnapError):
    """Configuration invalid, unknown keys, wrong version, etc."""
    pass


class SnapshotError(RegsnapError):
    """Snapshot file missing, unreadable or malformed."""
    pass


class TranscriptError(RegsnapError):
    """A restore transcript line could not be parsed."""
    pass


class CLIError(RegsnapError):
    """Generic CLI failure wrapper for unexpected errors in CLI code paths."""
    pass


def format_error(e: BaseException) -> str:
    """Return a short, uniform operator-facing message like 'ConfigError: detail'."""
    name = e.__class__.__name__
    msg = str(e).strip()
    return f"{name}: {msg}" if msg else name


# Keep star-export order deterministic for tests and tooling
__all__ = sorted(__all__)
