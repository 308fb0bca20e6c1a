"""CLI subcommand `snapshot`: flatten a registry key into a snapshot file."""
from __future__ import annotations

import argparse

from ..engine.flatten import flatten
from ..errors import RegsnapError
from ..io.log import append_jsonl
from ..io.snapshot import write_flat
from ._common import add_common_flags, open_store, report_error
from ._config import load_runtime_config
from ._exit import OK
from ._io import eprint_once, print_json, set_quiet


def register(subparsers: argparse._SubParsersAction) -> None:
    sp = subparsers.add_parser(
        "snapshot",
        help="flatten a registry key into a snapshot file",
        description="Flatten LOCATOR and its subkeys into a flat key/value snapshot (JSON or YAML by suffix).",
    )
    sp.add_argument("locator", help=r"registry key, e.g. HKCU:\Software\Contoso")
    sp.add_argument("-o", "--output", metavar="FILE", help="snapshot file to write (.json, .yaml, .yml)")
    sp.add_argument("--depth", type=int, help="levels of subkeys to descend (default from config)")
    sp.add_argument("--max-children", type=int, help="subkeys visited per key (default from config)")
    sp.add_argument("--json", action="store_true", help="print the snapshot as JSON on stdout")
    add_common_flags(sp)
    sp.set_defaults(command="snapshot", func=_run)


def _run(ns: argparse.Namespace) -> int:
    set_quiet(ns.quiet)
    try:
        cfg = load_runtime_config(getattr(ns, "config", None), verbose=ns.verbose)
        depth = ns.depth if ns.depth is not None else int(cfg.flatten["max_depth"])
        max_children = ns.max_children if ns.max_children is not None else int(cfg.flatten["max_children"])
        provider = open_store(ns, cfg)
        flat = flatten(provider, ns.locator, max_depth=depth, max_children=max_children)
        if ns.output:
            out = write_flat(ns.output, flat)
            eprint_once(f"snapshot: {len(flat)} values from {flat.path} -> {out}")
    except RegsnapError as e:
        return report_error(e, "snapshot")

    if ns.json or not ns.output:
        print_json(flat.to_dict())
    append_jsonl(
        "snapshot.jsonl",
        {
            "root": flat.path,
            "values": len(flat),
            "depth": depth,
            "max_children": max_children,
            "truncated": dict(flat.truncated),
            "output": ns.output,
        },
    )
    return OK
