from __future__ import annotations

# Process exit codes shared by all subcommands.
OK = 0
USER_ERR = 1  # bad arguments, missing key, invalid config
IO_ERR = 2  # store or filesystem failure
ABORTED = 3  # apply stopped after the user declined to continue
INTERNAL = 4

__all__ = ["OK", "USER_ERR", "IO_ERR", "ABORTED", "INTERNAL"]
