"""Core data models, configuration, interfaces and errors.

This package provides:
- Data models (Target, Allocation, TaskState, LogFrame, LogLine)
- Configuration classes (ClientConfig, WatcherConfig, TailConfig)
- The allocations provider protocol
- The exception hierarchy
"""

from nomadlogs.core.config import ClientConfig, TailConfig, WatcherConfig, resolve_address
from nomadlogs.core.errors import LogStreamError, NomadAPIError, NomadLogsError, TargetSpecError
from nomadlogs.core.interfaces import IAllocationsProvider
from nomadlogs.core.models import Allocation, LogFrame, LogLine, Target, TaskState

__all__ = [
    "ClientConfig",
    "TailConfig",
    "WatcherConfig",
    "resolve_address",
    "LogStreamError",
    "NomadAPIError",
    "NomadLogsError",
    "TargetSpecError",
    "IAllocationsProvider",
    "Allocation",
    "LogFrame",
    "LogLine",
    "Target",
    "TaskState",
]
