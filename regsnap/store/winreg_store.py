from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional

try:  # only present on Windows
    import winreg
except ImportError:
    winreg = None  # type: ignore[assignment]

from ..engine.types import SEP, IntValue, MultiStringValue, Payload, RegistryNode, StringValue, make_node
from ..errors import (
    InvalidArgumentError,
    NotFoundError,
    PermissionDeniedError,
    StoreUnavailableError,
    StoreWriteError,
    UnsupportedValueError,
)
from .base import DRIVES, parse_locator

__all__ = ["WinRegistry"]

_logger = logging.getLogger(__name__)

_DWORD_MAX = 0xFFFFFFFF
_QWORD_MASK = (1 << 64) - 1


def _ensure_winreg() -> Any:
    if winreg is None:
        raise StoreUnavailableError("Windows registry APIs are unavailable on this platform")
    return winreg


def _to_payload(value: Any, reg_type: int) -> Optional[Payload]:
    wr = _ensure_winreg()
    if reg_type in (wr.REG_SZ, wr.REG_EXPAND_SZ):
        return StringValue(str(value))
    if reg_type in (wr.REG_DWORD, wr.REG_QWORD):
        return IntValue(int(value))
    if reg_type == wr.REG_MULTI_SZ:
        return MultiStringValue(tuple(value or ()))
    return None


def _from_payload(payload: Payload, existing_type: Optional[int] = None) -> tuple[Any, int]:
    """Registry data and type for `payload`.

    An existing value of the same kind keeps its type (QWORD stays QWORD,
    EXPAND_SZ stays EXPAND_SZ), as `Set-ItemProperty` does. New values get
    DWORD or QWORD by range, and REG_SZ for strings.
    """
    wr = _ensure_winreg()
    if isinstance(payload, IntValue):
        if existing_type == wr.REG_QWORD or not 0 <= payload.value <= _DWORD_MAX:
            # Negative values are stored as their unsigned 64-bit pattern
            return payload.value & _QWORD_MASK, wr.REG_QWORD
        return payload.value, wr.REG_DWORD
    if isinstance(payload, MultiStringValue):
        return list(payload.value), wr.REG_MULTI_SZ
    if existing_type == wr.REG_EXPAND_SZ:
        return payload.value, wr.REG_EXPAND_SZ
    return payload.value, wr.REG_SZ


class WinRegistry:
    """Provider over the live registry through `winreg`.

    Only string (REG_SZ, REG_EXPAND_SZ), integer (REG_DWORD, REG_QWORD) and string
    array (REG_MULTI_SZ) values are visible; other types and the unnamed default
    value are skipped when flattening. Addressing such a value directly through
    `read_value` raises UnsupportedValueError so it is never mistaken for a
    missing one. Writes keep the type of an existing value of the same kind.
    """

    def __init__(self) -> None:
        _ensure_winreg()

    def _hive(self, drive: str) -> Any:
        wr = _ensure_winreg()
        return getattr(wr, DRIVES[drive])

    @contextmanager
    def _open(self, drive: str, subpath: str, access: Optional[int] = None) -> Iterator[Any]:
        wr = _ensure_winreg()
        mask = access if access is not None else wr.KEY_READ
        handle = wr.OpenKey(self._hive(drive), subpath, 0, mask)
        try:
            yield handle
        finally:
            wr.CloseKey(handle)

    def resolve_node(self, locator: str) -> RegistryNode:
        drive, subpath = parse_locator(locator)
        try:
            with self._open(drive, subpath):
                pass
        except FileNotFoundError:
            raise NotFoundError(f"registry key {locator!r} does not exist") from None
        except PermissionError as e:
            raise PermissionDeniedError(f"cannot open {locator!r}: {e}") from e
        return make_node(drive, subpath)

    def read_values(self, node: RegistryNode) -> Dict[str, Payload]:
        wr = _ensure_winreg()
        drive, subpath = parse_locator(node.path)
        out: Dict[str, Payload] = {}
        try:
            with self._open(drive, subpath) as handle:
                _, value_count, _ = wr.QueryInfoKey(handle)
                for index in range(value_count):
                    name, value, reg_type = wr.EnumValue(handle, index)
                    if not name:
                        continue
                    payload = _to_payload(value, reg_type)
                    if payload is None:
                        _logger.debug("skipping %s\\%s: unsupported registry type %s", node.path, name, reg_type)
                        continue
                    out[name] = payload
        except PermissionError as e:
            raise PermissionDeniedError(f"cannot read values of {node.path!r}: {e}") from e
        return out

    def read_value(self, node_path: str, name: str) -> Optional[Payload]:
        wr = _ensure_winreg()
        drive, subpath = parse_locator(node_path)
        try:
            with self._open(drive, subpath) as handle:
                value, reg_type = wr.QueryValueEx(handle, name)
        except FileNotFoundError:
            return None
        except PermissionError as e:
            raise PermissionDeniedError(f"cannot read {node_path}\\{name}: {e}") from e
        payload = _to_payload(value, reg_type)
        if payload is None:
            raise UnsupportedValueError(f"{node_path}\\{name} has unsupported registry type {reg_type}")
        return payload

    def list_children(self, node: RegistryNode) -> List[RegistryNode]:
        wr = _ensure_winreg()
        drive, subpath = parse_locator(node.path)
        try:
            with self._open(drive, subpath) as handle:
                subkey_count, _, _ = wr.QueryInfoKey(handle)
                names = [wr.EnumKey(handle, i) for i in range(subkey_count)]
        except PermissionError as e:
            raise PermissionDeniedError(f"cannot list subkeys of {node.path!r}: {e}") from e
        return [make_node(drive, f"{subpath}{SEP}{n}" if subpath else n) for n in names]

    def ensure_node(self, locator: str) -> RegistryNode:
        wr = _ensure_winreg()
        drive, subpath = parse_locator(locator)
        try:
            handle = wr.CreateKeyEx(self._hive(drive), subpath, 0, wr.KEY_READ)
            wr.CloseKey(handle)
        except PermissionError as e:
            raise PermissionDeniedError(f"cannot create {locator!r}: {e}") from e
        except OSError as e:
            raise StoreWriteError(f"cannot create {locator!r}: {e}") from e
        return make_node(drive, subpath)

    def write_value(self, node: RegistryNode, name: str, payload: Payload) -> None:
        wr = _ensure_winreg()
        if not name:
            raise InvalidArgumentError("value names cannot be empty")
        drive, subpath = parse_locator(node.path)
        try:
            with self._open(drive, subpath, wr.KEY_QUERY_VALUE | wr.KEY_SET_VALUE) as handle:
                try:
                    _, existing_type = wr.QueryValueEx(handle, name)
                except FileNotFoundError:
                    existing_type = None
                data, reg_type = _from_payload(payload, existing_type)
                wr.SetValueEx(handle, name, 0, reg_type, data)
        except PermissionError as e:
            raise PermissionDeniedError(f"cannot write {node.path}\\{name}: {e}") from e
        except OSError as e:
            raise StoreWriteError(f"cannot write {node.path}\\{name}: {e}") from e

    def remove_value(self, node_path: str, name: str) -> None:
        wr = _ensure_winreg()
        drive, subpath = parse_locator(node_path)
        try:
            with self._open(drive, subpath, wr.KEY_SET_VALUE) as handle:
                wr.DeleteValue(handle, name)
        except FileNotFoundError:
            raise NotFoundError(f"value {name!r} does not exist under {node_path!r}") from None
        except PermissionError as e:
            raise PermissionDeniedError(f"cannot remove {node_path}\\{name}: {e}") from e
        except OSError as e:
            raise StoreWriteError(f"cannot remove {node_path}\\{name}: {e}") from e
