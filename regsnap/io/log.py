import json
import os
from datetime import datetime, timezone

from . import paths

# Feature gate flipped by the CLI from `logging.events` in the config.
_EVENTS_ENABLED = True


def set_events_enabled(enabled: bool) -> None:
    global _EVENTS_ENABLED
    _EVENTS_ENABLED = bool(enabled)


def _append_jsonl_unbuffered(filename: str, record: dict) -> None:
    base = paths.logs_dir()
    os.makedirs(base, exist_ok=True)
    path = os.path.join(base, filename)

    # Binary append avoids platform newline translation; one LF per record.
    line = (json.dumps(record, ensure_ascii=False) + "\n").encode("utf-8")
    with open(path, "ab") as f:
        f.write(line)


def append_jsonl(filename: str, record: dict, *, feature_guard: bool | None = None) -> None:
    """Append a JSON record to a log file under `paths.logs_dir()`.

    A `now` timestamp (UTC, ISO8601) is added unless the record already has one.
    Callers may pass `feature_guard=False` to suppress the write; events can also
    be disabled process-wide with `set_events_enabled(False)`.
    """
    if feature_guard is False or not _EVENTS_ENABLED:
        return
    rec = dict(record)
    rec.setdefault("now", datetime.now(timezone.utc).isoformat(timespec="seconds"))
    _append_jsonl_unbuffered(os.path.basename(str(filename)), rec)
