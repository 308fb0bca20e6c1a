from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Literal, MutableMapping, Optional, Tuple, Union

from ..errors import InvalidArgumentError

# Separator between path segments in locators and FlatKeys.
SEP = "\\"

# Identity fields of a FlatObject in its serialized form. Never data keys.
RESERVED_KEYS: Tuple[str, ...] = ("_path", "_drive", "_parent_path", "_child_name")


# ---- Value payloads (closed tagged variant) ----


def _quote(text: str) -> str:
    # Single-quoted literal; an embedded quote is doubled.
    return "'" + text.replace("'", "''") + "'"


@dataclass(frozen=True)
class StringValue:
    value: str
    kind: Literal["string"] = field(default="string", init=False)

    def literal(self) -> str:
        return _quote(self.value)

    def to_python(self) -> str:
        return self.value


@dataclass(frozen=True)
class IntValue:
    value: int
    kind: Literal["integer"] = field(default="integer", init=False)

    def literal(self) -> str:
        return str(int(self.value))

    def to_python(self) -> int:
        return self.value


@dataclass(frozen=True)
class MultiStringValue:
    value: Tuple[str, ...]
    kind: Literal["multistring"] = field(default="multistring", init=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "value", tuple(self.value))

    def literal(self) -> str:
        return "@(" + ", ".join(_quote(v) for v in self.value) + ")"

    def to_python(self) -> List[str]:
        return list(self.value)


Payload = Union[StringValue, IntValue, MultiStringValue]
PAYLOAD_TYPES = (StringValue, IntValue, MultiStringValue)


def coerce_payload(obj: Any) -> Payload:
    """Convert a plain Python value into a payload.

    str -> StringValue, int -> IntValue, list/tuple of str -> MultiStringValue.
    Payload instances pass through. Anything else raises InvalidArgumentError.
    """
    if isinstance(obj, PAYLOAD_TYPES):
        return obj
    # bool is an int subclass; a registry has no boolean kind
    if isinstance(obj, bool):
        raise InvalidArgumentError(f"unsupported value kind: bool ({obj!r})")
    if isinstance(obj, int):
        return IntValue(obj)
    if isinstance(obj, str):
        return StringValue(obj)
    if isinstance(obj, (list, tuple)):
        items = tuple(obj)
        if not all(isinstance(x, str) for x in items):
            raise InvalidArgumentError(f"array values must contain only strings: {obj!r}")
        return MultiStringValue(items)
    raise InvalidArgumentError(f"unsupported value kind: {type(obj).__name__}")


# ---- Store nodes ----


@dataclass(frozen=True)
class RegistryNode:
    """A registry key as seen by the engine.

    Attributes
    ----------
    path: str
        Absolute identity path, e.g. ``HKCU:\\Software\\Contoso``.
    drive: str
        Short drive name, e.g. ``HKCU``.
    parent: str
        Parent identity path (``HKCU:\\`` style for keys directly under a drive).
    name: str
        Local key name; equals the drive for a drive root.
    """

    path: str
    drive: str
    parent: str
    name: str


def node_path(drive: str, subpath: str) -> str:
    subpath = subpath.strip(SEP)
    return f"{drive}:{SEP}{subpath}" if subpath else f"{drive}:{SEP}"


def make_node(drive: str, subpath: str) -> RegistryNode:
    parts = [p for p in subpath.split(SEP) if p]
    if not parts:
        return RegistryNode(path=node_path(drive, ""), drive=drive, parent="", name=drive)
    return RegistryNode(
        path=node_path(drive, SEP.join(parts)),
        drive=drive,
        parent=node_path(drive, SEP.join(parts[:-1])),
        name=parts[-1],
    )


def join_path(base: str, rel: str) -> str:
    """Join a node path and a relative path with a single separator."""
    if not rel:
        return base
    return base.rstrip(SEP) + SEP + rel.strip(SEP)


# ---- Flattened snapshot ----


class FlatObject(MutableMapping[str, Payload]):
    """Flat mapping FlatKey -> payload plus the identity of the root key.

    Assigning a plain Python value coerces it with `coerce_payload`. The identity
    fields live on attributes and are never part of the mapping.
    """

    def __init__(
        self,
        path: str,
        drive: str,
        parent_path: str,
        child_name: str,
        entries: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.path = path
        self.drive = drive
        self.parent_path = parent_path
        self.child_name = child_name
        self.truncated: Dict[str, int] = {}
        self._entries: Dict[str, Payload] = {}
        for k, v in (entries or {}).items():
            self[k] = v

    @classmethod
    def for_node(cls, node: RegistryNode) -> "FlatObject":
        return cls(path=node.path, drive=node.drive, parent_path=node.parent, child_name=node.name)

    def __getitem__(self, key: str) -> Payload:
        return self._entries[key]

    def __setitem__(self, key: str, value: Any) -> None:
        if key in RESERVED_KEYS:
            raise InvalidArgumentError(f"{key!r} is a reserved identity field")
        if not isinstance(key, str) or not key:
            raise InvalidArgumentError(f"invalid flat key {key!r}: empty value name")
        # "\\Name", "A\\\\B" and "A\\" would alias other keys or name nothing
        if any(not seg for seg in key.split(SEP)):
            raise InvalidArgumentError(f"invalid flat key {key!r}: empty path segment")
        self._entries[key] = coerce_payload(value)

    def __delitem__(self, key: str) -> None:
        del self._entries[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"FlatObject(path={self.path!r}, entries={len(self._entries)})"

    def identity(self) -> Dict[str, str]:
        return {
            "_path": self.path,
            "_drive": self.drive,
            "_parent_path": self.parent_path,
            "_child_name": self.child_name,
        }

    def to_dict(self) -> Dict[str, Any]:
        """Plain dict with identity fields first, then data keys as Python values."""
        out: Dict[str, Any] = dict(self.identity())
        for k, v in self._entries.items():
            out[k] = v.to_python()
        return out

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FlatObject":
        missing = [k for k in RESERVED_KEYS if not isinstance(data.get(k), str)]
        if missing:
            raise InvalidArgumentError(f"flat object is missing identity fields: {', '.join(missing)}")
        entries = {k: v for k, v in data.items() if k not in RESERVED_KEYS}
        return cls(
            path=data["_path"],
            drive=data["_drive"],
            parent_path=data["_parent_path"],
            child_name=data["_child_name"],
            entries=entries,
        )


# ---- Apply outcomes ----

ChangeKind = Literal["created", "updated", "unchanged", "skipped", "failed"]


@dataclass
class ChangeRecord:
    key: str
    kind: ChangeKind
    restore: Optional[str] = None  # inverse command for created/updated
    error: Optional[str] = None  # formatted error for failed


@dataclass
class ApplyResult:
    applied: int = 0  # created + updated
    records: List[ChangeRecord] = field(default_factory=list)
    restore_commands: List[str] = field(default_factory=list)
    aborted: bool = False  # user declined to continue after a permission denial

    def counts(self) -> Dict[str, int]:
        out = {"created": 0, "updated": 0, "unchanged": 0, "skipped": 0, "failed": 0}
        for r in self.records:
            out[r.kind] += 1
        return out


# ---- Config ----


@dataclass
class Config:
    flatten: Dict[str, Any] = field(
        default_factory=lambda: {
            "max_depth": 3,
            "max_children": 256,
        }
    )
    apply: Dict[str, Any] = field(
        default_factory=lambda: {
            "force": False,
            "backup_dir": None,
        }
    )
    store: Dict[str, Any] = field(
        default_factory=lambda: {
            "backend": "winreg",  # or "file"
            "path": None,
        }
    )
    logging: Dict[str, Any] = field(
        default_factory=lambda: {
            "level": "WARNING",
            "events": True,
        }
    )
