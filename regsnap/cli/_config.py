from __future__ import annotations

import logging
import os
import sys
from pathlib import Path
from typing import Any, Mapping, Optional, TextIO, Tuple

from ..engine.types import Config
from ..io.config import load_config
from ..io.log import set_events_enabled

# Relative default searched under the current working directory
DEFAULT_REL = Path("configs") / "config.yaml"
# XDG subpath under $XDG_CONFIG_HOME (or ~/.config if unset)
XDG_SUBPATH = Path("regsnap") / "config.yaml"


def _coerce_candidate(p: Path) -> Optional[Path]:
    """Return a concrete config file path if the candidate exists.

    Directories are resolved to "config.yaml" inside that directory.
    """
    if p.is_dir():
        p = p / "config.yaml"
    if p.is_file():
        return p.resolve()
    return None


def discover_config_path(
    explicit: Optional[str],
    cwd: Optional[Path] = None,
    env: Optional[Mapping[str, str]] = None,
) -> Tuple[Optional[Path], str]:
    """Deterministic config discovery.

    Order (only when `explicit`/`--config` is not provided):
      1) $REGSNAP_CONFIG (file or dir -> config.yaml)
      2) CWD: ./configs/config.yaml
      3) XDG: ${XDG_CONFIG_HOME:-$HOME/.config}/regsnap/config.yaml

    Returns a tuple: (selected_path or None, source_tag).
    Source tags: 'explicit', 'explicit-missing', 'env:REGSNAP_CONFIG',
    'cwd:configs/config.yaml', 'xdg', 'none'.
    """
    cwd = cwd or Path.cwd()
    env = dict(env or {})

    if explicit:
        expanded = Path(os.path.expandvars(explicit)).expanduser()
        sel = _coerce_candidate(expanded)
        if sel is not None:
            return sel, "explicit"
        return expanded, "explicit-missing"

    cenv = env.get("REGSNAP_CONFIG")
    if cenv:
        sel = _coerce_candidate(Path(os.path.expandvars(cenv)).expanduser())
        if sel is not None:
            return sel, "env:REGSNAP_CONFIG"

    sel = _coerce_candidate(cwd / DEFAULT_REL)
    if sel is not None:
        return sel, "cwd:configs/config.yaml"

    xdg_base = env.get("XDG_CONFIG_HOME") or str(Path.home() / ".config")
    sel = _coerce_candidate(Path(xdg_base).expanduser() / XDG_SUBPATH)
    if sel is not None:
        return sel, "xdg"

    return None, "none"


def maybe_log_selected(
    path: Optional[Path], source: str, *, verbose: bool = False, stream: Optional[TextIO] = None
) -> None:
    """Emit a one-line message about the selected config when verbose (stderr)."""
    if not verbose:
        return
    stream = stream or sys.stderr
    stream.write(f"[regsnap] config: selected={path if path else 'none'} (source={source})\n")
    stream.flush()


def load_runtime_config(explicit: Optional[str], *, verbose: bool = False) -> Config:
    """Discover, load and validate the config, then apply its logging section.

    An explicit --config that does not exist is an error (ConfigError from the
    loader); discovered locations are optional.
    """
    selected, source = discover_config_path(explicit, Path.cwd(), os.environ)
    maybe_log_selected(selected, source, verbose=verbose)
    cfg = load_config(str(selected) if selected is not None else None)
    level = "DEBUG" if verbose else str(cfg.logging.get("level", "WARNING"))
    logging.basicConfig(level=getattr(logging, level, logging.WARNING), format="%(levelname)s %(name)s: %(message)s")
    logging.getLogger().setLevel(getattr(logging, level, logging.WARNING))
    set_events_enabled(bool(cfg.logging.get("events", True)))
    return cfg


__all__ = [
    "DEFAULT_REL",
    "XDG_SUBPATH",
    "discover_config_path",
    "load_runtime_config",
    "maybe_log_selected",
]
