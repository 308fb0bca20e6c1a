from __future__ import annotations
from typing import Any, Dict
import os

import yaml

from ..engine.types import Config
from ..errors import ConfigError


def _parse_bool_env(v: str) -> bool:
    return str(v).strip().lower() in {"1", "true", "yes", "on"}


def _apply_env_overrides(cfg: Config) -> Config:
    """
    Merge env overrides into the loaded config (no effect if env vars absent).
    Supported:
      - REGSNAP_FORCE=true|false      -> apply.force
      - REGSNAP_STORE_FILE=<path>     -> store.backend = "file", store.path = <path>
    """
    force_env = os.getenv("REGSNAP_FORCE")
    if force_env is not None:
        cfg.apply["force"] = _parse_bool_env(force_env)
    store_env = os.getenv("REGSNAP_STORE_FILE")
    if store_env:
        cfg.store["backend"] = "file"
        cfg.store["path"] = store_env
    return cfg


def load_config(path: str | None = None) -> Config:
    """
    Load and validate a YAML config; without a path, return defaults.

    Sections present in the file replace the corresponding defaults after
    normalization by `configs.validate.validate_config`, so every section is
    complete. Invalid files raise ConfigError listing every problem found.
    """
    if not path:
        return _apply_env_overrides(Config())

    from configs.validate import validate_config

    try:
        with open(path, "r", encoding="utf-8") as f:
            data: Dict[str, Any] = yaml.safe_load(f) or {}
    except FileNotFoundError:
        raise ConfigError(f"config file not found: {path}") from None
    except yaml.YAMLError as e:
        raise ConfigError(f"{path}: not valid YAML: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"{path}: top level must be a mapping")

    normalized = validate_config(data)
    cfg = Config(
        flatten=normalized["flatten"],
        apply=normalized["apply"],
        store=normalized["store"],
        logging=normalized["logging"],
    )
    return _apply_env_overrides(cfg)
