"""Restore commands: the inverse of each applied change.

Commands use PowerShell syntax so a transcript can be run directly on the host:

    Remove-ItemProperty -LiteralPath 'HKCU:\\Software\\Contoso' -Name 'Description'
    Set-ItemProperty -LiteralPath 'HKCU:\\Software\\Contoso' -Name 'Description' -Value 'Before'
    Set-ItemProperty -LiteralPath 'HKCU:\\Software\\Contoso' -Name 'Retries' -Value 3
    Set-ItemProperty -LiteralPath 'HKCU:\\Software\\Contoso' -Name 'Paths' -Value @('a', 'b')

The value literal is chosen by the payload tag (see `types.*Value.literal`), so
`replay` can reconstruct the exact prior payload from the text alone.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

from ..errors import TranscriptError
from .types import IntValue, MultiStringValue, Payload, StringValue, _quote

__all__ = ["RestoreCommand", "remove_command", "set_command", "parse_command", "replay"]

_logger = logging.getLogger(__name__)

_TOKEN = re.compile(
    r"\s*(?:"
    r"(?P<str>'(?:[^']|'')*')"
    r"|(?P<arr>@\()"
    r"|(?P<close>\))"
    r"|(?P<comma>,)"
    r"|(?P<int>-?\d+)(?![\w-])"
    r"|(?P<param>-[A-Za-z]+)"
    r"|(?P<word>[A-Za-z][\w-]*)"
    r")"
)


@dataclass(frozen=True)
class RestoreCommand:
    verb: str  # "Set-ItemProperty" | "Remove-ItemProperty"
    path: str
    name: str
    payload: Optional[Payload] = None


def remove_command(node_path: str, name: str) -> str:
    return f"Remove-ItemProperty -LiteralPath {_quote(node_path)} -Name {_quote(name)}"


def set_command(node_path: str, name: str, payload: Payload) -> str:
    return f"Set-ItemProperty -LiteralPath {_quote(node_path)} -Name {_quote(name)} -Value {payload.literal()}"


def _tokenize(line: str) -> List[Tuple[str, str]]:
    out: List[Tuple[str, str]] = []
    pos = 0
    text = line.rstrip()
    while pos < len(text):
        m = _TOKEN.match(text, pos)
        if m is None or m.end() == pos:
            raise TranscriptError(f"unexpected input at column {pos + 1}: {line!r}")
        kind = m.lastgroup or ""
        out.append((kind, m.group(kind)))
        pos = m.end()
    return out


def _unquote(tok: str) -> str:
    return tok[1:-1].replace("''", "'")


def _parse_value(tokens: List[Tuple[str, str]], line: str) -> Payload:
    if not tokens:
        raise TranscriptError(f"-Value has no argument: {line!r}")
    kind, tok = tokens.pop(0)
    if kind == "str":
        return StringValue(_unquote(tok))
    if kind == "int":
        return IntValue(int(tok))
    if kind == "arr":
        items: List[str] = []
        expect_item = True
        while tokens:
            kind, tok = tokens.pop(0)
            if kind == "close":
                return MultiStringValue(tuple(items))
            if expect_item and kind == "str":
                items.append(_unquote(tok))
                expect_item = False
            elif not expect_item and kind == "comma":
                expect_item = True
            else:
                break
        raise TranscriptError(f"malformed array literal: {line!r}")
    raise TranscriptError(f"unsupported value literal {tok!r}: {line!r}")


def parse_command(line: str) -> RestoreCommand:
    """Parse one command produced by `set_command` / `remove_command`."""
    tokens = _tokenize(line)
    if not tokens or tokens[0][0] != "word":
        raise TranscriptError(f"missing command name: {line!r}")
    verb = tokens.pop(0)[1]
    if verb.lower() not in ("set-itemproperty", "remove-itemproperty"):
        raise TranscriptError(f"unsupported command {verb!r}")
    params = {}
    while tokens:
        kind, tok = tokens.pop(0)
        if kind != "param":
            raise TranscriptError(f"expected a parameter, got {tok!r}: {line!r}")
        pname = tok[1:].lower()
        if pname == "value":
            params["value"] = _parse_value(tokens, line)
            continue
        if not tokens or tokens[0][0] != "str":
            raise TranscriptError(f"-{tok[1:]} expects a quoted string: {line!r}")
        params[pname] = _unquote(tokens.pop(0)[1])

    path = params.get("literalpath") or params.get("path")
    name = params.get("name")
    if path is None or name is None:
        raise TranscriptError(f"command needs -LiteralPath and -Name: {line!r}")
    if verb.lower() == "set-itemproperty":
        if "value" not in params:
            raise TranscriptError(f"Set-ItemProperty needs -Value: {line!r}")
        return RestoreCommand("Set-ItemProperty", path, name, params["value"])
    return RestoreCommand("Remove-ItemProperty", path, name)


def replay(provider, lines: Iterable[str]) -> int:
    """Execute restore commands in order against `provider`.

    Blank lines and ``#`` comments are skipped. Store errors propagate; commands
    already executed stay executed. Returns the number of commands run.
    """
    done = 0
    for raw in lines:
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        cmd = parse_command(line)
        if cmd.payload is not None:
            node = provider.ensure_node(cmd.path)
            provider.write_value(node, cmd.name, cmd.payload)
        else:
            provider.remove_value(cmd.path, cmd.name)
        _logger.debug("restored %s %s\\%s", cmd.verb, cmd.path, cmd.name)
        done += 1
    return done
