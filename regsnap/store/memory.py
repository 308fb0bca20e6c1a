from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Set

from ..engine.types import SEP, Payload, RegistryNode, coerce_payload, make_node
from ..errors import InvalidArgumentError, NotFoundError, PermissionDeniedError, SnapshotError
from ..io.atomic import atomic_write_json
from .base import DRIVES, parse_locator

__all__ = ["MemoryRegistry"]


class _Key:
    """One key of the in-memory tree. Lookups are case-insensitive, case is preserved."""

    __slots__ = ("name", "values", "children")

    def __init__(self, name: str) -> None:
        self.name = name
        self.values: Dict[str, tuple[str, Payload]] = {}  # lower name -> (name, payload)
        self.children: Dict[str, "_Key"] = {}  # lower name -> key

    def child(self, name: str) -> Optional["_Key"]:
        return self.children.get(name.lower())

    def add_child(self, name: str) -> "_Key":
        k = self.children.get(name.lower())
        if k is None:
            k = _Key(name)
            self.children[name.lower()] = k
        return k


class MemoryRegistry:
    """In-memory registry tree implementing the provider interface.

    Children and values enumerate in insertion order. Use `deny_writes(path)` to
    make a subtree refuse writes with PermissionDeniedError. The whole tree can be
    persisted as JSON with `save()` and read back with `load()`; this is what the
    CLI's file backend uses.
    """

    def __init__(self, drives: Iterable[str] = ("HKCU", "HKLM")) -> None:
        self._roots: Dict[str, _Key] = {}
        for d in drives:
            d = d.upper()
            if d not in DRIVES:
                raise InvalidArgumentError(f"unknown registry drive {d!r}")
            self._roots[d] = _Key(d)
        self._denied: Set[str] = set()

    # ---- internal lookup ----

    def _parts(self, locator: str) -> tuple[str, List[str]]:
        drive, subpath = parse_locator(locator)
        if drive not in self._roots:
            raise InvalidArgumentError(f"drive {drive!r} is not mounted")
        return drive, [p for p in subpath.split(SEP) if p]

    def _find(self, drive: str, parts: List[str]) -> Optional[_Key]:
        cur = self._roots[drive]
        for p in parts:
            cur = cur.child(p)
            if cur is None:
                return None
        return cur

    def _is_denied(self, drive: str, parts: List[str]) -> bool:
        prefix = drive
        if prefix.lower() in self._denied:
            return True
        for p in parts:
            prefix = prefix + SEP + p
            if prefix.lower() in self._denied:
                return True
        return False

    def _key_for(self, node: RegistryNode) -> _Key:
        drive, parts = self._parts(node.path)
        key = self._find(drive, parts)
        if key is None:
            raise NotFoundError(f"registry key {node.path!r} does not exist")
        return key

    # ---- provider interface ----

    def resolve_node(self, locator: str) -> RegistryNode:
        drive, parts = self._parts(locator)
        key = self._find(drive, parts)
        if key is None:
            raise NotFoundError(f"registry key {locator!r} does not exist")
        # Report the stored casing, not the caller's
        names: List[str] = []
        cur = self._roots[drive]
        for p in parts:
            cur = cur.child(p)  # type: ignore[assignment]
            names.append(cur.name)
        return make_node(drive, SEP.join(names))

    def read_values(self, node: RegistryNode) -> Dict[str, Payload]:
        key = self._key_for(node)
        return {name: payload for name, payload in key.values.values()}

    def read_value(self, node_path: str, name: str) -> Optional[Payload]:
        drive, parts = self._parts(node_path)
        key = self._find(drive, parts)
        if key is None:
            return None
        hit = key.values.get(name.lower())
        return hit[1] if hit else None

    def list_children(self, node: RegistryNode) -> List[RegistryNode]:
        key = self._key_for(node)
        base = node.path.split(":", 1)[1].strip(SEP)
        return [make_node(node.drive, (base + SEP + c.name) if base else c.name) for c in key.children.values()]

    def ensure_node(self, locator: str) -> RegistryNode:
        drive, parts = self._parts(locator)
        if self._find(drive, parts) is None and self._is_denied(drive, parts):
            raise PermissionDeniedError(f"access to {locator!r} is denied")
        cur = self._roots[drive]
        for p in parts:
            cur = cur.add_child(p)
        return self.resolve_node(locator)

    def write_value(self, node: RegistryNode, name: str, payload: Payload) -> None:
        if not name:
            raise InvalidArgumentError("value names cannot be empty")
        drive, parts = self._parts(node.path)
        if self._is_denied(drive, parts):
            raise PermissionDeniedError(f"access to {node.path!r} is denied")
        key = self._key_for(node)
        hit = key.values.get(name.lower())
        stored_name = hit[0] if hit else name
        key.values[name.lower()] = (stored_name, coerce_payload(payload))

    def remove_value(self, node_path: str, name: str) -> None:
        drive, parts = self._parts(node_path)
        key = self._find(drive, parts)
        if key is None or name.lower() not in key.values:
            raise NotFoundError(f"value {name!r} does not exist under {node_path!r}")
        if self._is_denied(drive, parts):
            raise PermissionDeniedError(f"access to {node_path!r} is denied")
        del key.values[name.lower()]

    # ---- test and fixture helpers ----

    def deny_writes(self, locator: str) -> None:
        drive, parts = self._parts(locator)
        self._denied.add(SEP.join([drive, *parts]).lower())

    def set(self, locator: str, name: str, value: Any) -> None:
        """Create the key if needed and store a plain Python value."""
        node = self.ensure_node(locator)
        self.write_value(node, name, coerce_payload(value))

    # ---- persistence ----

    def to_dict(self) -> Dict[str, Any]:
        def dump(key: _Key) -> Dict[str, Any]:
            return {
                "values": {n: p.to_python() for n, p in key.values.values()},
                "keys": {c.name: dump(c) for c in key.children.values()},
            }

        return {drive: dump(root) for drive, root in self._roots.items()}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MemoryRegistry":
        reg = cls(drives=list(data.keys()) or ("HKCU", "HKLM"))

        def fill(key: _Key, body: Dict[str, Any]) -> None:
            for n, v in (body.get("values") or {}).items():
                if not n:
                    raise InvalidArgumentError("value names cannot be empty")
                key.values[n.lower()] = (n, coerce_payload(v))
            for n, sub in (body.get("keys") or {}).items():
                fill(key.add_child(n), sub or {})

        for drive, body in data.items():
            fill(reg._roots[drive.upper()], body or {})
        return reg

    @classmethod
    def load(cls, path: Path | str) -> "MemoryRegistry":
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            raise SnapshotError(f"store file not found: {path}") from None
        except (OSError, ValueError) as e:
            raise SnapshotError(f"cannot read store file {path}: {e}") from e
        if not isinstance(data, dict):
            raise SnapshotError(f"store file {path} must hold a JSON object")
        return cls.from_dict(data)

    def save(self, path: Path | str) -> None:
        atomic_write_json(path, self.to_dict(), sort_keys=False)
