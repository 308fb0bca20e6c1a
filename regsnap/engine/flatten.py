from __future__ import annotations

import logging

from ..errors import InvalidArgumentError
from .types import SEP, FlatObject, RegistryNode

__all__ = ["flatten", "flat_key"]

_logger = logging.getLogger(__name__)


def flat_key(rel: str, name: str) -> str:
    """FlatKey of value `name` on the key at relative path `rel` ("" for the root)."""
    return f"{rel}{SEP}{name}" if rel else name


def _walk(provider, node: RegistryNode, rel: str, depth: int, max_children: int, flat: FlatObject) -> None:
    for name, payload in provider.read_values(node).items():
        if not name:
            continue
        # Separator inside a value name can collide with a deeper key; last write wins.
        flat._entries[flat_key(rel, name)] = payload
    if depth <= 0:
        return
    children = provider.list_children(node)
    if len(children) > max_children:
        _logger.warning(
            "FLATTEN_TRUNCATED: %s has %d subkeys; visiting the first %d",
            node.path,
            len(children),
            max_children,
        )
        flat.truncated[node.path] = len(children)
        children = children[:max_children]
    for child in children:
        _walk(provider, child, flat_key(rel, child.name), depth - 1, max_children, flat)


def flatten(provider, locator: str, max_depth: int = 3, max_children: int = 256) -> FlatObject:
    """
    Snapshot the key at `locator` and its subkeys into a FlatObject.

    Values of each key are read before descending. `max_depth=0` reads only the
    root's own values. Keys with more than `max_children` subkeys are truncated to
    the first `max_children` in enumeration order, with a warning. Keys without
    values contribute nothing to the result.

    Raises NotFoundError when the key does not exist and InvalidArgumentError when
    `locator` is not a registry key locator or the bounds are out of range.
    """
    if isinstance(max_depth, bool) or not isinstance(max_depth, int) or max_depth < 0:
        raise InvalidArgumentError(f"max_depth must be an integer >= 0, got {max_depth!r}")
    if isinstance(max_children, bool) or not isinstance(max_children, int) or max_children < 1:
        raise InvalidArgumentError(f"max_children must be an integer >= 1, got {max_children!r}")
    root = provider.resolve_node(locator)
    flat = FlatObject.for_node(root)
    _walk(provider, root, "", max_depth, max_children, flat)
    return flat
