"""Flatten/diff/apply engine."""
from .apply import apply_flat, split_flat_key
from .confirm import ConfirmState, ConsoleConfirmer, ScriptedConfirmer
from .flatten import flat_key, flatten
from .restore import parse_command, replay
from .types import ApplyResult, ChangeRecord, FlatObject, coerce_payload

__all__ = [
    "ApplyResult",
    "ChangeRecord",
    "ConfirmState",
    "ConsoleConfirmer",
    "FlatObject",
    "ScriptedConfirmer",
    "apply_flat",
    "coerce_payload",
    "flat_key",
    "flatten",
    "parse_command",
    "replay",
    "split_flat_key",
]
