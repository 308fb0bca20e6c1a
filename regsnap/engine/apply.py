from __future__ import annotations

import logging
from typing import Callable, Optional, Tuple

from ..errors import PermissionDeniedError, StoreWriteError, UnsupportedValueError, format_error
from .confirm import ConfirmState, Confirmer, ConsoleConfirmer, ask
from .restore import remove_command, set_command
from .types import RESERVED_KEYS, SEP, ApplyResult, ChangeRecord, FlatObject, Payload, join_path

__all__ = ["apply_flat", "split_flat_key"]

_logger = logging.getLogger(__name__)


def split_flat_key(key: str) -> Tuple[str, str]:
    """Split a FlatKey on its last separator into (relative key path, value name).

    A key without separator addresses a value on the root key: ("", key).
    """
    rel, sep, name = key.rpartition(SEP)
    if not sep:
        return "", key
    return rel, name


def _record(result: ApplyResult, rec: ChangeRecord, on_record: Optional[Callable[[ChangeRecord], None]]) -> None:
    result.records.append(rec)
    if on_record is not None:
        on_record(rec)


def _go_on_after_denial(
    confirmer: Confirmer,
    state: ConfirmState,
    result: ApplyResult,
    key: str,
    target: str,
    name: str,
    err: PermissionDeniedError,
    on_record: Optional[Callable[[ChangeRecord], None]],
) -> bool:
    _logger.warning("APPLY_DENIED: %s (%s)", key, err)
    _record(result, ChangeRecord(key, "failed", error=format_error(err)), on_record)
    prompt = f"Access to '{target}' was denied while handling '{name}'. Continue with the remaining values?"
    return ask(confirmer, "continue", prompt, state)


def apply_flat(
    provider,
    flat: FlatObject,
    *,
    force: bool = False,
    confirmer: Optional[Confirmer] = None,
    on_restore: Optional[Callable[[str], None]] = None,
    on_record: Optional[Callable[[ChangeRecord], None]] = None,
    create_state: Optional[ConfirmState] = None,
    update_state: Optional[ConfirmState] = None,
    continue_state: Optional[ConfirmState] = None,
) -> ApplyResult:
    """
    Write the entries of `flat` back to the store under `flat.path`.

    Each key is handled on its own, in mapping order:
      * live value missing -> create (confirmed), restore removes the value
      * live value equal   -> unchanged, nothing written
      * live value differs -> update (confirmed), restore sets the prior value

    `force=True` seeds the create and update states with yes-to-all. Restore
    commands are appended to the result and handed to `on_restore` right after
    the write they undo, so a caller streaming them to disk keeps a usable
    transcript if the run stops early.

    A PermissionDeniedError on read or write records the key as failed and asks
    whether to go on; declining ends the run with `aborted=True`. A live value of
    a type that cannot be restored (UnsupportedValueError) is recorded as failed
    and never written. Any other StoreWriteError is
    re-raised with the partial result attached as `err.result`.
    """
    if confirmer is None:
        confirmer = ConsoleConfirmer()
    create_state = create_state or ConfirmState()
    update_state = update_state or ConfirmState()
    continue_state = continue_state or ConfirmState()
    if force:
        create_state.yes_to_all = True
        update_state.yes_to_all = True

    result = ApplyResult()

    for key in list(flat.keys()):
        if key in RESERVED_KEYS:
            continue
        new: Payload = flat[key]
        rel, name = split_flat_key(key)
        target = join_path(flat.path, rel)
        try:
            current = provider.read_value(target, name)
        except UnsupportedValueError as e:
            # The live value exists but cannot be restored; leave it alone
            _logger.warning("APPLY_UNSUPPORTED: %s (%s)", key, e)
            _record(result, ChangeRecord(key, "failed", error=format_error(e)), on_record)
            continue
        except PermissionDeniedError as e:
            if not _go_on_after_denial(confirmer, continue_state, result, key, target, name, e, on_record):
                result.aborted = True
                return result
            continue

        if current is None:
            kind, state = "created", create_state
            message = f"Create value '{name}' under '{target}' = {new.literal()}"
            restore = remove_command(target, name)
        elif current == new:
            _record(result, ChangeRecord(key, "unchanged"), on_record)
            continue
        else:
            kind, state = "updated", update_state
            message = f"Update value '{name}' under '{target}': {current.literal()} -> {new.literal()}"
            restore = set_command(target, name, current)

        if not ask(confirmer, "create" if kind == "created" else "update", message, state):
            _record(result, ChangeRecord(key, "skipped"), on_record)
            continue

        try:
            node = provider.ensure_node(target)
            provider.write_value(node, name, new)
        except PermissionDeniedError as e:
            if not _go_on_after_denial(confirmer, continue_state, result, key, target, name, e, on_record):
                result.aborted = True
                return result
            continue
        except StoreWriteError as e:
            _record(result, ChangeRecord(key, "failed", error=format_error(e)), on_record)
            e.result = result
            raise

        result.applied += 1
        result.restore_commands.append(restore)
        if on_restore is not None:
            on_restore(restore)
        _record(result, ChangeRecord(key, kind, restore=restore), on_record)

    return result
