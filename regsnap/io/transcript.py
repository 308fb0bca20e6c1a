from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import IO, Iterator, List, Optional

__all__ = ["RestoreTranscript", "read_transcript"]


class RestoreTranscript:
    """Append-only restore transcript on disk.

    Used as a context manager around an apply run: every `append` writes one line
    and flushes, so the file stays valid if the run stops partway. The handle is
    closed on every exit path.
    """

    def __init__(self, path: Path | str, *, root: Optional[str] = None) -> None:
        self.path = Path(path)
        self.root = root
        self.lines: List[str] = []
        self._fh: Optional[IO[str]] = None

    def __enter__(self) -> "RestoreTranscript":
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fresh = not self.path.exists() or self.path.stat().st_size == 0
        self._fh = open(self.path, "a", encoding="utf-8", newline="\n")
        if fresh:
            stamp = datetime.now(timezone.utc).isoformat(timespec="seconds")
            self._write(f"# regsnap restore transcript ({stamp})")
            if self.root:
                self._write(f"# root: {self.root}")
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if self._fh is not None:
            try:
                self._fh.flush()
            finally:
                self._fh.close()
                self._fh = None

    def _write(self, text: str) -> None:
        assert self._fh is not None, "transcript is not open"
        self._fh.write(text + "\n")
        self._fh.flush()

    def append(self, line: str) -> None:
        self._write(line)
        self.lines.append(line)

    __call__ = append


def read_transcript(path: Path | str) -> Iterator[str]:
    """Yield the lines of a transcript without their line terminators."""
    with open(path, "r", encoding="utf-8") as f:
        for line in f:
            yield line.rstrip("\r\n")
