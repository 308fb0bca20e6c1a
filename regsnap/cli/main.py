# regsnap/cli/main.py
import argparse
import sys
from typing import List

from . import apply, restore, snapshot
from ._common import report_error
from ._exit import ABORTED, USER_ERR


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="regsnap",
        description="Snapshot, edit and replay registry subtrees with a restore transcript",
        allow_abbrev=False,
    )
    from regsnap import __version__ as _VER

    parser.add_argument("--version", action="version", version=f"regsnap {_VER}")
    parser.add_argument(
        "-c",
        "--config",
        dest="config",
        help="config file (default: discovered, see docs in configs/config.yaml)",
    )
    subparsers = parser.add_subparsers(dest="command")

    snapshot.register(subparsers)
    apply.register(subparsers)
    restore.register(subparsers)

    return parser


def main(argv: List[str] | None = None) -> int:
    if argv is None:
        argv = sys.argv[1:]
    parser = build_parser()
    ns = parser.parse_args(argv)
    if not hasattr(ns, "func"):
        parser.print_help(sys.stderr)
        return USER_ERR
    try:
        return ns.func(ns)
    except KeyboardInterrupt:
        return ABORTED
    except Exception as e:  # last-resort mapping to an exit code
        return report_error(e, ns.command)


if __name__ == "__main__":
    raise SystemExit(main())
