"""
Configuration validation and normalization for regsnap.

Public API:
    validate_config(cfg: dict) -> dict
    validate_config_api(cfg: dict) -> (ok, errors, normalized_or_None)

- Raises ConfigError with every problem found (field paths + constraints), one per line.
- Returns a **new** normalized dict with defaults merged; the input is not mutated.
"""
from __future__ import annotations
import copy
from typing import Any, Dict, List, Tuple

from regsnap.errors import ConfigError

__all__ = ["CONFIG_VERSION", "DEFAULTS", "validate_config", "validate_config_api"]

CONFIG_VERSION = "v1"


# ------------------------------
# Utilities
# ------------------------------

def _ensure_dict(x: Any) -> Dict[str, Any]:
    return dict(x) if isinstance(x, dict) else {}


def _coerce_bool(v: Any) -> Tuple[bool, bool]:
    """Return (value, ok)."""
    if isinstance(v, bool):
        return v, True
    if isinstance(v, str):
        s = v.strip().lower()
        if s in {"1", "true", "yes", "on"}:
            return True, True
        if s in {"0", "false", "no", "off"}:
            return False, True
    return False, False


def _coerce_int(v: Any) -> Tuple[int, bool]:
    if isinstance(v, bool):
        return 0, False
    try:
        return int(v), True
    except (TypeError, ValueError):
        return 0, False


def _lev(a: str, b: str) -> int:
    """Tiny Levenshtein distance (edit distance) for did-you-mean suggestions."""
    la, lb = len(a), len(b)
    dp = list(range(lb + 1))
    for i, ca in enumerate(a, 1):
        prev = dp[0]
        dp[0] = i
        for j, cb in enumerate(b, 1):
            ins = dp[j] + 1
            dele = dp[j - 1] + 1
            sub = prev + (0 if ca == cb else 1)
            prev, dp[j] = dp[j], min(ins, dele, sub)
    return dp[-1]


def _suggest_key(bad: str, allowed) -> str | None:
    """Return closest allowed key within distance ≤2, else None."""
    best_key, best_dist = None, 99
    for k in sorted(allowed):
        d = _lev(bad, k)
        if d < best_dist:
            best_key, best_dist = k, d
    return best_key if best_dist <= 2 else None


def _err(errors: List[str], path: str, msg: str) -> None:
    errors.append(f"{path} {msg}")


# ------------------------------
# Defaults
# ------------------------------

DEFAULTS: Dict[str, Any] = {
    "version": CONFIG_VERSION,
    "flatten": {
        "max_depth": 3,        # >= 0
        "max_children": 256,   # >= 1
    },
    "apply": {
        "force": False,
        "backup_dir": None,    # None -> paths.backups_dir()
    },
    "store": {
        "backend": "winreg",   # winreg | file
        "path": None,          # JSON tree, required for backend=file
    },
    "logging": {
        "level": "WARNING",
        "events": True,
    },
}

_BACKENDS = {"winreg", "file"}
_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


def _check_unknown(errors: List[str], section: str, raw: Dict[str, Any]) -> None:
    allowed = set(DEFAULTS[section].keys())
    for k in raw.keys():
        if k not in allowed:
            sug = _suggest_key(str(k), allowed)
            hint = f" (did you mean '{sug}')" if sug else ""
            _err(errors, f"{section}.{k}", f"unknown key{hint}")


# ------------------------------
# Main validator
# ------------------------------

def _validate_config_normalize_impl(cfg: Dict[str, Any]) -> Dict[str, Any]:
    cfg_in = _ensure_dict(cfg)
    errors: List[str] = []
    out = copy.deepcopy(DEFAULTS)

    for k in cfg_in.keys():
        if k not in DEFAULTS:
            sug = _suggest_key(str(k), DEFAULTS.keys())
            if sug:
                _err(errors, str(k), f"unknown top-level key (did you mean '{sug}')")
            else:
                _err(errors, str(k), "unknown top-level key")

    version = cfg_in.get("version", CONFIG_VERSION)
    if version != CONFIG_VERSION:
        _err(errors, "version", f"must be '{CONFIG_VERSION}' (got {version!r})")

    for section in ("flatten", "apply", "store", "logging"):
        if section in cfg_in and cfg_in[section] is not None and not isinstance(cfg_in[section], dict):
            _err(errors, section, "must be a mapping")

    raw_flatten = _ensure_dict(cfg_in.get("flatten"))
    raw_apply = _ensure_dict(cfg_in.get("apply"))
    raw_store = _ensure_dict(cfg_in.get("store"))
    raw_logging = _ensure_dict(cfg_in.get("logging"))
    _check_unknown(errors, "flatten", raw_flatten)
    _check_unknown(errors, "apply", raw_apply)
    _check_unknown(errors, "store", raw_store)
    _check_unknown(errors, "logging", raw_logging)

    # flatten
    if "max_depth" in raw_flatten:
        v, ok = _coerce_int(raw_flatten["max_depth"])
        if not ok or v < 0:
            _err(errors, "flatten.max_depth", "must be an integer >= 0")
        out["flatten"]["max_depth"] = v
    if "max_children" in raw_flatten:
        v, ok = _coerce_int(raw_flatten["max_children"])
        if not ok or v < 1:
            _err(errors, "flatten.max_children", "must be an integer >= 1")
        out["flatten"]["max_children"] = v

    # apply
    if "force" in raw_apply:
        b, ok = _coerce_bool(raw_apply["force"])
        if not ok:
            _err(errors, "apply.force", "must be a boolean")
        out["apply"]["force"] = b
    if "backup_dir" in raw_apply:
        bd = raw_apply["backup_dir"]
        if bd is not None and not (isinstance(bd, str) and bd.strip()):
            _err(errors, "apply.backup_dir", "must be a non-empty string or null")
        out["apply"]["backup_dir"] = bd

    # store
    if "backend" in raw_store:
        be = str(raw_store["backend"]).strip().lower()
        if be not in _BACKENDS:
            _err(errors, "store.backend", f"must be one of {sorted(_BACKENDS)}")
        out["store"]["backend"] = be
    if "path" in raw_store:
        sp = raw_store["path"]
        if sp is not None and not (isinstance(sp, str) and sp.strip()):
            _err(errors, "store.path", "must be a non-empty string or null")
        out["store"]["path"] = sp
    if out["store"]["backend"] == "file" and not out["store"]["path"]:
        _err(errors, "store.path", "is required when store.backend is 'file'")

    # logging
    if "level" in raw_logging:
        lvl = str(raw_logging["level"]).strip().upper()
        if lvl not in _LEVELS:
            _err(errors, "logging.level", f"must be one of {sorted(_LEVELS)}")
        out["logging"]["level"] = lvl
    if "events" in raw_logging:
        b, ok = _coerce_bool(raw_logging["events"])
        if not ok:
            _err(errors, "logging.events", "must be a boolean")
        out["logging"]["events"] = b

    if errors:
        raise ConfigError("\n".join(errors))
    return out


def validate_config_api(cfg: Dict[str, Any]):
    """Non-raising form.

    Returns a tuple: (ok: bool, errs: list[str], cfg_or_none).
    """
    try:
        normalized = _validate_config_normalize_impl(cfg)
        return True, [], normalized
    except ConfigError as e:
        msg = str(e).strip()
        errs = msg.split("\n") if msg else ["invalid configuration"]
        return False, errs, None


def validate_config(cfg: Dict[str, Any]) -> Dict[str, Any]:
    """Return the normalized config dict or raise ConfigError."""
    return _validate_config_normalize_impl(cfg)
