from __future__ import annotations

import pytest

from regsnap.io.transcript import RestoreTranscript, read_transcript


def test_fresh_transcript_gets_header_and_lines(tmp_path):
    p = tmp_path / "bk" / "t.ps1"
    with RestoreTranscript(p, root=r"HKCU:\Software\Contoso") as t:
        t.append("Remove-ItemProperty -LiteralPath 'HKCU:\\X' -Name 'a'")
        t("Remove-ItemProperty -LiteralPath 'HKCU:\\X' -Name 'b'")
    lines = list(read_transcript(p))
    assert lines[0].startswith("# regsnap restore transcript (")
    assert lines[1] == r"# root: HKCU:\Software\Contoso"
    assert lines[2:] == t.lines
    assert len(t.lines) == 2
    assert b"\r\n" not in p.read_bytes()


def test_existing_transcript_is_appended_without_new_header(tmp_path):
    p = tmp_path / "t.ps1"
    with RestoreTranscript(p) as t:
        t.append("first")
    with RestoreTranscript(p, root="HKCU:\\X") as t:
        t.append("second")
    lines = list(read_transcript(p))
    assert [line for line in lines if line.startswith("#")] == [lines[0]]
    assert lines[1:] == ["first", "second"]


def test_lines_written_before_an_error_survive(tmp_path):
    p = tmp_path / "t.ps1"
    with pytest.raises(RuntimeError):
        with RestoreTranscript(p) as t:
            t.append("kept")
            raise RuntimeError("boom")
    assert list(read_transcript(p))[-1] == "kept"


def test_append_outside_context_fails(tmp_path):
    t = RestoreTranscript(tmp_path / "t.ps1")
    with pytest.raises(AssertionError):
        t.append("x")
