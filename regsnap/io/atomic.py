from __future__ import annotations

import errno
import json
import os
import tempfile
import time
from pathlib import Path
from typing import Any, Optional

__all__ = [
    "atomic_write_text",
    "atomic_write_bytes",
    "atomic_write_json",
    "atomic_replace",
]

_DEFAULT_PERMS = 0o644
_RETRYABLE = {errno.EACCES, errno.EPERM, errno.EBUSY}


def atomic_replace(tmp_path: Path, final_path: Path, *, retries: int = 40, backoff_ms: int = 10) -> None:
    """Replace *final_path* with *tmp_path*, retrying on sharing violations.

    Windows refuses os.replace while another process (an editor, an AV scanner)
    holds the target open; those surface as PermissionError or EACCES/EBUSY and
    are retried with a capped exponential backoff. The temp file is removed if
    the replace never succeeds.
    """
    final_path.parent.mkdir(parents=True, exist_ok=True)
    last_err: Optional[BaseException] = None
    delay = backoff_ms / 1000.0

    for _ in range(retries):
        try:
            os.replace(str(tmp_path), str(final_path))
            return
        except PermissionError as e:
            last_err = e
        except OSError as e:
            last_err = e
            if e.errno not in _RETRYABLE:
                break
        time.sleep(delay)
        delay = min(delay * 1.5, 0.25)

    try:
        if tmp_path.exists():
            tmp_path.unlink()
    finally:
        if last_err:
            raise last_err


def _make_tmp(final_path: Path) -> Path:
    final_path.parent.mkdir(parents=True, exist_ok=True)
    with tempfile.NamedTemporaryFile(prefix=final_path.name + ".", dir=str(final_path.parent), delete=False) as tf:
        return Path(tf.name)


def atomic_write_bytes(final_path: Path | str, data: bytes) -> None:
    """Write *data* to a sibling temp file, fsync it, then swap it into place.

    Existing permissions of the target are preserved.
    """
    final = Path(final_path)
    tmp = _make_tmp(final)
    try:
        with open(tmp, "wb", buffering=0) as f:
            f.write(data)
            os.fsync(f.fileno())
        try:
            os.chmod(tmp, final.stat().st_mode)
        except FileNotFoundError:
            os.chmod(tmp, _DEFAULT_PERMS)
        atomic_replace(tmp, final)
    except Exception:
        try:
            if tmp.exists():
                tmp.unlink()
        finally:
            raise


def atomic_write_text(final_path: Path | str, text: str, *, encoding: str = "utf-8") -> None:
    """Atomically write text with LF line endings."""
    atomic_write_bytes(final_path, text.replace("\r\n", "\n").encode(encoding))


def atomic_write_json(final_path: Path | str, obj: Any, *, sort_keys: bool = True, indent: int | None = 2) -> None:
    """Atomically write JSON, UTF-8, with a trailing newline.

    Snapshots and stores are meant to be hand-edited, so output is indented by
    default; pass ``indent=None`` for compact output.
    """
    payload = json.dumps(obj, sort_keys=sort_keys, indent=indent, ensure_ascii=False)
    atomic_write_text(final_path, payload + "\n")
