from __future__ import annotations

import json
import sys
from typing import Any, List, Mapping

# Set by --quiet; silences operator messages on stderr, never stdout.
QUIET = False


def set_quiet(quiet: bool = False) -> None:
    global QUIET
    QUIET = bool(quiet)


def eprint_once(msg: str) -> None:
    if not QUIET:
        print(msg, file=sys.stderr)


def print_json(obj: Any) -> None:
    sys.stdout.write(json.dumps(obj, ensure_ascii=False, indent=2) + "\n")


def print_table(rows: List[Mapping[str, Any]]) -> None:
    """Left-aligned columns headed by the keys of the first row."""
    if not rows:
        return
    headers = list(rows[0].keys())
    cells = [["" if r.get(h) is None else str(r.get(h)) for h in headers] for r in rows]
    widths = [max(len(h), *(len(c[i]) for c in cells)) for i, h in enumerate(headers)]
    lines = [headers, ["-" * w for w in widths], *cells]
    for line in lines:
        sys.stdout.write("  ".join(s.ljust(w) for s, w in zip(line, widths)).rstrip() + "\n")
