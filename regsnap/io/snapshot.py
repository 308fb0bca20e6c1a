"""Snapshot files: a FlatObject on disk as JSON or YAML (chosen by suffix)."""
from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict

import yaml

from ..engine.types import FlatObject
from ..errors import InvalidArgumentError, SnapshotError
from .atomic import atomic_write_json, atomic_write_text

__all__ = ["write_flat", "read_flat", "is_yaml_path"]


def is_yaml_path(path: Path | str) -> bool:
    return Path(path).suffix.lower() in (".yaml", ".yml")


def write_flat(path: Path | str, flat: FlatObject) -> Path:
    """Write `flat` to `path`. Identity fields come first, data keys keep their order."""
    p = Path(path)
    data = flat.to_dict()
    if is_yaml_path(p):
        atomic_write_text(p, yaml.safe_dump(data, sort_keys=False, allow_unicode=True, default_flow_style=False))
    else:
        atomic_write_json(p, data, sort_keys=False)
    return p


def read_flat(path: Path | str) -> FlatObject:
    p = Path(path)
    try:
        with open(p, "r", encoding="utf-8") as f:
            if is_yaml_path(p):
                data: Dict[str, Any] = yaml.safe_load(f)
            else:
                data = json.load(f)
    except FileNotFoundError:
        raise SnapshotError(f"snapshot not found: {p}") from None
    except (OSError, ValueError, yaml.YAMLError) as e:
        raise SnapshotError(f"cannot read snapshot {p}: {e}") from e
    if not isinstance(data, dict):
        raise SnapshotError(f"snapshot {p} must hold a mapping")
    try:
        return FlatObject.from_dict(data)
    except InvalidArgumentError as e:
        raise SnapshotError(f"snapshot {p}: {e}") from e
