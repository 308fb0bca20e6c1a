from __future__ import annotations

import re
from typing import Dict, List, Optional, Protocol, Tuple

from ..engine.types import SEP, Payload, RegistryNode
from ..errors import InvalidArgumentError

__all__ = ["DRIVES", "RegistryProvider", "parse_locator", "split_locator"]

# Short drive name -> hive name
DRIVES: Dict[str, str] = {
    "HKCU": "HKEY_CURRENT_USER",
    "HKLM": "HKEY_LOCAL_MACHINE",
    "HKCR": "HKEY_CLASSES_ROOT",
    "HKU": "HKEY_USERS",
    "HKCC": "HKEY_CURRENT_CONFIG",
}
_HIVES = {v: k for k, v in DRIVES.items()}

_PROVIDER_PREFIX = re.compile(r"^(?:Microsoft\.PowerShell\.Core\\)?Registry::", re.IGNORECASE)


class RegistryProvider(Protocol):
    """Collaborator interface between the engine and a concrete store."""

    def resolve_node(self, locator: str) -> RegistryNode: ...

    def read_values(self, node: RegistryNode) -> Dict[str, Payload]: ...

    def read_value(self, node_path: str, name: str) -> Optional[Payload]: ...

    def list_children(self, node: RegistryNode) -> List[RegistryNode]: ...

    def write_value(self, node: RegistryNode, name: str, payload: Payload) -> None: ...

    def ensure_node(self, locator: str) -> RegistryNode: ...

    def remove_value(self, node_path: str, name: str) -> None: ...


def split_locator(locator: str) -> Tuple[str, str]:
    """Split a locator into its raw drive token and the remaining subpath."""
    text = _PROVIDER_PREFIX.sub("", str(locator).strip()).replace("/", SEP)
    head, _, rest = text.partition(SEP)
    return head, rest


def parse_locator(locator: str) -> Tuple[str, str]:
    """Parse a registry locator into ``(drive, subpath)``.

    Accepted forms::

        HKCU:\\Software\\Contoso
        HKCU\\Software\\Contoso
        HKEY_CURRENT_USER\\Software\\Contoso
        Registry::HKEY_CURRENT_USER\\Software\\Contoso

    ``/`` is accepted as separator. The drive comes back in its short form and the
    subpath without leading/trailing or doubled separators. Raises
    InvalidArgumentError when the locator does not address a registry key at all.
    """
    if not locator or not str(locator).strip():
        raise InvalidArgumentError("empty locator")
    head, rest = split_locator(locator)
    token = head[:-1] if head.endswith(":") else head
    upper = token.upper()
    if upper in DRIVES:
        drive = upper
    elif upper in _HIVES:
        drive = _HIVES[upper]
    else:
        raise InvalidArgumentError(f"{locator!r} does not address a registry key")
    subpath = SEP.join(p for p in rest.split(SEP) if p)
    return drive, subpath
