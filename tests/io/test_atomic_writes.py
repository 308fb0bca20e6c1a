import json
import os
import threading
from pathlib import Path

import pytest

from regsnap.io.atomic import (
    atomic_replace,
    atomic_write_json,
    atomic_write_text,
)


def test_atomic_write_text_lf_only(tmp_path: Path):
    p = tmp_path / "t.txt"
    # Intentionally include CRLF; writer must normalize to LF
    atomic_write_text(p, "a\r\nb\r\n")
    data = p.read_bytes()
    assert b"\r\n" not in data
    assert data == b"a\nb\n"


def test_atomic_write_json_is_indented_with_trailing_newline(tmp_path: Path):
    p = tmp_path / "obj.json"
    atomic_write_json(p, {"b": 1, "a": "é"})
    s = p.read_text("utf-8")
    assert s == '{\n  "a": "é",\n  "b": 1\n}\n'


def test_atomic_write_json_can_keep_insertion_order(tmp_path: Path):
    p = tmp_path / "obj.json"
    atomic_write_json(p, {"b": 1, "a": 2}, sort_keys=False, indent=None)
    assert p.read_text("utf-8") == '{"b": 1, "a": 2}\n'
    assert list(json.loads(p.read_text("utf-8"))) == ["b", "a"]


def test_atomic_write_creates_parent_dirs(tmp_path: Path):
    p = tmp_path / "deep" / "er" / "x.txt"
    atomic_write_text(p, "x")
    assert p.read_text("utf-8") == "x"


def test_atomic_replace_under_reader_contention(tmp_path: Path):
    # Simulate readers holding the file open while writers replace it repeatedly
    target = tmp_path / "state.txt"
    target.write_text("OLD\n", encoding="utf-8", newline="\n")

    stop = False
    seen = []

    def reader():
        # Every content must be exactly old or new, never partial
        while not stop:
            try:
                seen.append(target.read_text(encoding="utf-8"))
            except (FileNotFoundError, PermissionError):
                pass

    t = threading.Thread(target=reader, daemon=True)
    t.start()

    for i in range(20):
        tmp = tmp_path / f"tmp-{i}.txt"
        tmp.write_text(f"NEW-{i}\n", encoding="utf-8", newline="\n")
        atomic_replace(tmp, target)

    stop = True
    t.join(timeout=2)

    valid = {"OLD\n"} | {f"NEW-{i}\n" for i in range(20)}
    assert all(s in valid for s in seen)
    assert not any(p.name.startswith("tmp-") for p in tmp_path.iterdir())


def test_atomic_write_retries_share_violation(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    """Force replace failure once and ensure tmp is cleaned and final is written."""
    p = tmp_path / "x.txt"

    calls = {"n": 0}
    real_replace = os.replace

    def flaky_replace(src, dst):  # noqa: ANN001 - signature must match os.replace
        calls["n"] += 1
        if calls["n"] < 2:
            raise PermissionError("simulated share violation")
        return real_replace(src, dst)

    monkeypatch.setattr(os, "replace", flaky_replace)

    atomic_write_text(p, "hello\n")
    assert p.read_text("utf-8") == "hello\n"
    assert not [x for x in tmp_path.iterdir() if x.name.startswith(p.name + ".")]


def test_atomic_write_gives_up_and_cleans_tmp(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    p = tmp_path / "y.txt"

    def always_fail(src, dst):  # noqa: ANN001
        raise PermissionError("locked")

    monkeypatch.setattr(os, "replace", always_fail)
    monkeypatch.setattr("regsnap.io.atomic.time.sleep", lambda _s: None)
    with pytest.raises(PermissionError):
        atomic_write_text(p, "nope")
    assert not p.exists()
    assert not [x for x in tmp_path.iterdir() if x.name.startswith(p.name + ".")]
