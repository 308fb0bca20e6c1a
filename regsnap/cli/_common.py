from __future__ import annotations

import argparse
from typing import Any, Dict, Optional

from ..engine.types import Config
from ..errors import (
    ConfigError,
    InvalidArgumentError,
    NotFoundError,
    RegsnapError,
    SnapshotError,
    TranscriptError,
    format_error,
)
from ..store import open_provider
from ._exit import INTERNAL, IO_ERR, USER_ERR
from ._io import eprint_once

__all__ = ["add_common_flags", "store_settings", "open_store", "save_store", "report_error"]


def add_common_flags(sp: argparse.ArgumentParser) -> None:
    sp.add_argument(
        "--store",
        metavar="FILE",
        help="use a JSON registry file instead of the live registry (saved back after changes)",
    )
    sp.add_argument("--quiet", action="store_true", help="suppress non-essential stderr")
    sp.add_argument("--verbose", action="store_true", help="increase stderr verbosity")


def store_settings(ns: argparse.Namespace, cfg: Config) -> Dict[str, Any]:
    """--store on the command line beats the config's store section."""
    if getattr(ns, "store", None):
        return {"backend": "file", "path": ns.store}
    return dict(cfg.store)


def open_store(ns: argparse.Namespace, cfg: Config):
    return open_provider(store_settings(ns, cfg))


def save_store(provider, settings: Dict[str, Any]) -> None:
    if settings.get("backend") == "file":
        provider.save(settings["path"])


def report_error(e: BaseException, command: Optional[str] = None) -> int:
    """Print a one-line operator message and map the error to an exit code."""
    prefix = f"{command}: " if command else ""
    eprint_once(prefix + format_error(e))
    if isinstance(e, (NotFoundError, InvalidArgumentError, ConfigError, SnapshotError, TranscriptError)):
        return USER_ERR
    if isinstance(e, (RegsnapError, OSError)):
        return IO_ERR
    return INTERNAL
