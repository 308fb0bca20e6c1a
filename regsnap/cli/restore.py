"""CLI subcommand `restore`: replay a restore transcript written by `apply`."""
from __future__ import annotations

import argparse

from ..engine.restore import replay
from ..errors import RegsnapError, SnapshotError
from ..io.log import append_jsonl
from ..io.transcript import read_transcript
from ..store import open_provider
from ._common import add_common_flags, report_error, save_store, store_settings
from ._config import load_runtime_config
from ._exit import OK
from ._io import eprint_once, set_quiet


def register(subparsers: argparse._SubParsersAction) -> None:
    sp = subparsers.add_parser(
        "restore",
        help="replay a restore transcript",
        description="Execute the commands of TRANSCRIPT in order, undoing an earlier apply run.",
    )
    sp.add_argument("transcript", help="restore transcript (.ps1) written by `regsnap apply`")
    add_common_flags(sp)
    sp.set_defaults(command="restore", func=_run)


def _run(ns: argparse.Namespace) -> int:
    set_quiet(ns.quiet)
    done = 0
    try:
        cfg = load_runtime_config(getattr(ns, "config", None), verbose=ns.verbose)
        settings = store_settings(ns, cfg)
        provider = open_provider(settings)
        try:
            lines = list(read_transcript(ns.transcript))
        except FileNotFoundError:
            raise SnapshotError(f"transcript not found: {ns.transcript}") from None
        done = replay(provider, lines)
        save_store(provider, settings)
    except RegsnapError as e:
        return report_error(e, "restore")
    append_jsonl("restore.jsonl", {"transcript": str(ns.transcript), "commands": done})
    eprint_once(f"restore: {done} command(s) replayed from {ns.transcript}")
    return OK
