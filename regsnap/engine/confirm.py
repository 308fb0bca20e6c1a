"""Confirmation protocol for apply runs.

Each prompt kind (create, update, continue-after-denial) keeps its own sticky
`ConfirmState`. Once yes-to-all is set, later prompts of that kind proceed without
asking; once no-to-all is set, they are declined without asking. States are plain
objects owned by the caller of `apply_flat`; nothing here is process-global.
"""
from __future__ import annotations

import sys
from dataclasses import dataclass
from typing import Iterable, List, Literal, Optional, Protocol, TextIO

__all__ = [
    "PromptKind",
    "ConfirmState",
    "Confirmer",
    "ask",
    "ScriptedConfirmer",
    "ConsoleConfirmer",
]

PromptKind = Literal["create", "update", "continue"]

_CAPTIONS = {
    "create": "Create registry value",
    "update": "Update registry value",
    "continue": "Permission denied",
}


@dataclass
class ConfirmState:
    yes_to_all: bool = False
    no_to_all: bool = False


class Confirmer(Protocol):
    def confirm(self, kind: PromptKind, message: str, state: ConfirmState) -> bool:
        """Return True to proceed. May set `state.yes_to_all` / `state.no_to_all`."""
        ...


def ask(confirmer: Confirmer, kind: PromptKind, message: str, state: ConfirmState) -> bool:
    """Consult the sticky state first; only prompt when neither flag is set."""
    if state.yes_to_all:
        return True
    if state.no_to_all:
        return False
    return bool(confirmer.confirm(kind, message, state))


def _apply_answer(answer: str, state: ConfirmState) -> Optional[bool]:
    """Map one PowerShell-style answer letter to a decision; None if unrecognized."""
    a = answer.strip().lower()
    if a in ("y", "yes"):
        return True
    if a in ("a", "yes to all"):
        state.yes_to_all = True
        return True
    if a in ("n", "no"):
        return False
    if a in ("l", "no to all"):
        state.no_to_all = True
        return False
    return None


class ScriptedConfirmer:
    """Answers prompts from a fixed script of ``y``/``a``/``n``/``l`` letters.

    Every prompt is recorded in `prompts` as ``(kind, message)``. Running out of
    answers declines.
    """

    def __init__(self, answers: Iterable[str] = ()) -> None:
        self._answers: List[str] = list(answers)
        self.prompts: List[tuple] = []

    def confirm(self, kind: PromptKind, message: str, state: ConfirmState) -> bool:
        self.prompts.append((kind, message))
        if not self._answers:
            return False
        decision = _apply_answer(self._answers.pop(0), state)
        return bool(decision)


class ConsoleConfirmer:
    """Interactive prompt on a terminal. Waits indefinitely; EOF declines."""

    def __init__(self, stdin: Optional[TextIO] = None, stderr: Optional[TextIO] = None) -> None:
        self.stdin = stdin or sys.stdin
        self.stderr = stderr or sys.stderr

    def confirm(self, kind: PromptKind, message: str, state: ConfirmState) -> bool:
        self.stderr.write(f"\n{_CAPTIONS.get(kind, kind)}\n{message}\n")
        while True:
            self.stderr.write('[Y] Yes  [A] Yes to All  [N] No  [L] No to All  (default is "Y"): ')
            self.stderr.flush()
            line = self.stdin.readline()
            if not line:
                return False
            if not line.strip():
                return True
            decision = _apply_answer(line, state)
            if decision is not None:
                return decision
