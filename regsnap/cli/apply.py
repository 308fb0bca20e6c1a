"""CLI subcommand `apply`: write an edited snapshot back, recording a restore transcript."""
from __future__ import annotations

import argparse
from dataclasses import asdict

from ..engine.apply import apply_flat
from ..engine.confirm import ConsoleConfirmer
from ..engine.types import ApplyResult, ChangeRecord
from ..errors import RegsnapError, StoreWriteError
from ..io import paths
from ..io.log import append_jsonl
from ..io.snapshot import read_flat
from ..io.transcript import RestoreTranscript
from ..store import open_provider
from ._common import add_common_flags, report_error, save_store, store_settings
from ._config import load_runtime_config
from ._exit import ABORTED, OK
from ._io import eprint_once, print_json, print_table, set_quiet


def register(subparsers: argparse._SubParsersAction) -> None:
    sp = subparsers.add_parser(
        "apply",
        help="apply an edited snapshot to the registry",
        description=(
            "Compare each value of SNAPSHOT with the registry and create or update the ones that differ. "
            "Every change is confirmed unless --force is given; the inverse commands are appended to a "
            "restore transcript as they are applied."
        ),
    )
    sp.add_argument("snapshot", help="snapshot file written by `regsnap snapshot`")
    sp.add_argument("--force", action="store_true", default=None, help="apply without prompting")
    sp.add_argument("--backup-dir", metavar="DIR", help="directory for the restore transcript")
    sp.add_argument("--json", action="store_true", help="print the per-key outcome as JSON")
    add_common_flags(sp)
    sp.set_defaults(command="apply", func=_run)


def _log_record(root: str, rec: ChangeRecord) -> None:
    append_jsonl("apply.jsonl", {"root": root, **asdict(rec)})


def _summary(result: ApplyResult, transcript: str) -> dict:
    return {
        "applied": result.applied,
        "aborted": result.aborted,
        "counts": result.counts(),
        "transcript": transcript,
    }


def _run(ns: argparse.Namespace) -> int:
    set_quiet(ns.quiet)
    try:
        cfg = load_runtime_config(getattr(ns, "config", None), verbose=ns.verbose)
        flat = read_flat(ns.snapshot)
        settings = store_settings(ns, cfg)
        provider = open_provider(settings)
    except RegsnapError as e:
        return report_error(e, "apply")

    force = bool(cfg.apply.get("force")) if ns.force is None else True
    backup = paths.backup_path_for(flat.path, ns.backup_dir or cfg.apply.get("backup_dir"))
    result = ApplyResult()
    failure = None
    with RestoreTranscript(backup, root=flat.path) as transcript:
        try:
            result = apply_flat(
                provider,
                flat,
                force=force,
                confirmer=ConsoleConfirmer(),
                on_restore=transcript.append,
                on_record=lambda rec: _log_record(flat.path, rec),
            )
        except StoreWriteError as e:
            failure = e
            result = e.result or result
        except RegsnapError as e:
            failure = e
        # The store file is saved even after a failure: the transcript lists what was applied.
        if result.applied:
            save_store(provider, settings)

    summary = _summary(result, str(backup))
    append_jsonl("apply.jsonl", {"root": flat.path, "summary": summary})
    if ns.json:
        print_json({**summary, "records": [asdict(r) for r in result.records]})
    elif not ns.quiet and result.records:
        print_table([{"key": r.key, "outcome": r.kind, "error": r.error or ""} for r in result.records])
    eprint_once(
        f"apply: {result.applied} change(s) applied; restore transcript: {backup}"
        + (" (aborted)" if result.aborted else "")
    )
    if failure is not None:
        return report_error(failure, "apply")
    return ABORTED if result.aborted else OK
