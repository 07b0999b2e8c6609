"""Exception hierarchy shared by the client facade, watcher and CLI."""

from __future__ import annotations

import logging
import re

logger = logging.getLogger(__name__)

UNKNOWN_TASK_MARKER = "unknown task name"
_UNKNOWN_TASK_RE = re.compile(r"unknown task name", re.IGNORECASE)
_UNKNOWN_TASK_STATUSES = frozenset({400, 404, 500})


class NomadLogsError(Exception):
    """Base class for all nomadlogs errors."""


class TargetSpecError(NomadLogsError, ValueError):
    """A `job:task` argument could not be parsed, or none were given."""


class NomadAPIError(NomadLogsError):
    """The orchestrator API answered with an error or could not be reached."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code

    def __str__(self) -> str:
        if self.status_code is None:
            return self.message
        return f"{self.status_code}: {self.message}"


class LogStreamError(NomadAPIError):
    """Terminal error reported by a single log stream."""

    @property
    def is_unknown_task(self) -> bool:
        """True when the allocation no longer knows the task (teardown race)."""
        if self.status_code is not None:
            return self.status_code in _UNKNOWN_TASK_STATUSES and bool(
                _UNKNOWN_TASK_RE.search(self.message)
            )
        matched = UNKNOWN_TASK_MARKER in self.message
        if matched:
            logger.debug("classified stream error by message text only: %s", self.message)
        return matched
