from __future__ import annotations

from .core.config import ClientConfig, TailConfig, WatcherConfig
from .core.models import Allocation, LogLine, Target, TaskState
from .formatting import format_line
from .orchestration.tail import run_tail
from .orchestration.targets import parse_target, parse_targets
from .watching.watcher import Watcher

__all__ = [
    "ClientConfig",
    "TailConfig",
    "WatcherConfig",
    "Allocation",
    "LogLine",
    "Target",
    "TaskState",
    "format_line",
    "run_tail",
    "parse_target",
    "parse_targets",
    "Watcher",
]
