"""Allocation discovery and merged log streaming.

This package provides:
- Watcher: discovery loop + per-allocation consumers for one target
- WatchedSet: the IDs currently streamed by a Watcher
- OutputSequence: bounded fan-in channel of log lines
- consume_allocation: the per-allocation stdout/stderr consumer
"""

from nomadlogs.watching.consumer import consume_allocation, split_lines
from nomadlogs.watching.sequence import OutputSequence
from nomadlogs.watching.watched_set import WatchedSet
from nomadlogs.watching.watcher import Watcher, matches, next_delay

__all__ = [
    "Watcher",
    "WatchedSet",
    "OutputSequence",
    "consume_allocation",
    "split_lines",
    "matches",
    "next_delay",
]
