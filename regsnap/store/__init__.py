"""Registry providers: the store-facing side of the engine."""
from __future__ import annotations

from typing import Any, Dict

from .base import RegistryProvider, parse_locator
from .memory import MemoryRegistry

__all__ = ["MemoryRegistry", "RegistryProvider", "open_provider", "parse_locator"]


def open_provider(store_cfg: Dict[str, Any]):
    """Build the provider selected by the `store` config section."""
    backend = str(store_cfg.get("backend", "winreg")).lower()
    if backend == "file":
        return MemoryRegistry.load(store_cfg["path"])
    from .winreg_store import WinRegistry

    return WinRegistry()
