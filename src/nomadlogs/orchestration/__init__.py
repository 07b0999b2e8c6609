"""Command-level orchestration.

This package provides:
- Target parsing (`task` / `job:task`)
- Tail orchestration (run_tail) over one Watcher per target
- The allocation listing report used by `ls`
"""

from nomadlogs.orchestration.listing import ListingRow, build_rows, fetch_rows, render_table
from nomadlogs.orchestration.tail import run_tail
from nomadlogs.orchestration.targets import parse_target, parse_targets

__all__ = [
    "ListingRow",
    "build_rows",
    "fetch_rows",
    "render_table",
    "run_tail",
    "parse_target",
    "parse_targets",
]
