import os
import re
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional


def logs_dir() -> Path:
    """
    Resolve the logs directory with the following precedence:
    1) REGSNAP_LOG_DIR
    2) ./.logs under the current working directory
    3) {tempdir}/regsnap/logs (final fallback)

    Ensures the directory exists and returns a Path.
    """
    v = os.environ.get("REGSNAP_LOG_DIR")
    if v:
        p = Path(v)
        p.mkdir(parents=True, exist_ok=True)
        return p.resolve()

    p = Path.cwd() / ".logs"
    try:
        p.mkdir(parents=True, exist_ok=True)
        return p.resolve()
    except OSError:
        t = temp_root() / "regsnap" / "logs"
        t.mkdir(parents=True, exist_ok=True)
        return t.resolve()


def backups_dir(configured: Optional[str] = None) -> Path:
    """
    Resolve the directory holding restore transcripts:
    1) REGSNAP_BACKUP_DIR
    2) `configured` (apply.backup_dir from the config file)
    3) ./.data/backups under the current working directory
    4) {tempdir}/regsnap/backups (final fallback)
    """
    for v in (os.environ.get("REGSNAP_BACKUP_DIR"), configured):
        if v:
            p = Path(v).expanduser()
            p.mkdir(parents=True, exist_ok=True)
            return p.resolve()

    p = Path.cwd() / ".data" / "backups"
    try:
        p.mkdir(parents=True, exist_ok=True)
        return p.resolve()
    except OSError:
        t = temp_root() / "regsnap" / "backups"
        t.mkdir(parents=True, exist_ok=True)
        return t.resolve()


def temp_root() -> Path:
    """
    Return the platform's temporary directory as a Path.
    Allows override via REGSNAP_TMP for tests/CI.
    """
    env = os.environ.get("REGSNAP_TMP")
    return Path(env) if env else Path(tempfile.gettempdir())


_UNSAFE = re.compile(r"[^A-Za-z0-9._-]+")


def backup_name_for(root_path: str, when: Optional[datetime] = None) -> str:
    """File name of the restore transcript for an apply run against `root_path`.

    ``HKCU:\\Software\\Contoso`` at 2026-10-18 12:00:05 UTC becomes
    ``HKCU_Software_Contoso_20261018T120005Z.ps1``.
    """
    when = when or datetime.now(timezone.utc)
    stem = _UNSAFE.sub("_", root_path.replace(":", "")).strip("_") or "registry"
    return f"{stem}_{when.strftime('%Y%m%dT%H%M%SZ')}.ps1"


def backup_path_for(root_path: str, configured: Optional[str] = None, when: Optional[datetime] = None) -> Path:
    return backups_dir(configured) / backup_name_for(root_path, when)
