# tests/conftest.py
from __future__ import annotations

import pytest

from regsnap.store.memory import MemoryRegistry


@pytest.fixture(autouse=True)
def _isolate_dirs(monkeypatch: pytest.MonkeyPatch, tmp_path):
    """Keep JSONL logs, transcripts and config discovery inside the test's tmp dir."""
    monkeypatch.setenv("REGSNAP_LOG_DIR", str(tmp_path / "logs"))
    monkeypatch.setenv("REGSNAP_BACKUP_DIR", str(tmp_path / "backups"))
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))
    for var in ("REGSNAP_CONFIG", "REGSNAP_FORCE", "REGSNAP_STORE_FILE"):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path)
    yield


@pytest.fixture
def registry() -> MemoryRegistry:
    """A small HKCU tree:

    HKCU:\\Software\\Contoso
        Description = "Before test text."
        Retries = 3
        General\\
            WallpaperSource = "C:\\wall.png"
            Paths = ["a", "b"]
            Deep\\
                Level = 2
        Empty\\
            Child\\
                Leaf = "x"
    """
    reg = MemoryRegistry()
    root = r"HKCU:\Software\Contoso"
    reg.set(root, "Description", "Before test text.")
    reg.set(root, "Retries", 3)
    reg.set(root + r"\General", "WallpaperSource", r"C:\wall.png")
    reg.set(root + r"\General", "Paths", ["a", "b"])
    reg.set(root + r"\General\Deep", "Level", 2)
    reg.set(root + r"\Empty\Child", "Leaf", "x")
    return reg
