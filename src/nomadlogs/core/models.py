"""Core data models for allocation discovery and log streaming.

This module defines:
- `Target`: which allocations a Watcher cares about (job filter + task name).
- `Allocation` / `TaskState`: read-only snapshots of Nomad allocations.
- `LogFrame`: one decoded frame from a Nomad log stream.
- `LogLine`: a single line of output tagged with its origin.

Design notes
------------
- All records are immutable; snapshots are replaced, never mutated.
- Allocation IDs are opaque strings; only the first 8 characters are shown.
"""

from __future__ import annotations

import base64
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Literal

StreamName = Literal["stdout", "stderr"]

RUNNING = "running"
SHORT_ID_LEN = 8


# === Selection ===


@dataclass(slots=True, frozen=True)
class Target:
    """A (job filter, task name) pair. Empty `job_filter` matches any job."""

    task_name: str
    job_filter: str = ""

    def __str__(self) -> str:
        return f"{self.job_filter}:{self.task_name}" if self.job_filter else self.task_name


# === Allocation snapshots ===


@dataclass(slots=True, frozen=True)
class TaskState:
    """State of one task inside an allocation."""

    state: str
    last_restart: datetime | None = None


@dataclass(slots=True, frozen=True)
class Allocation:
    """Allocation snapshot as reported by the orchestrator."""

    id: str
    job_id: str
    client_status: str
    task_states: dict[str, TaskState] = field(default_factory=dict)
    job_name: str = ""
    task_group: str = ""

    @property
    def short_id(self) -> str:
        return self.id[:SHORT_ID_LEN]

    @property
    def display_name(self) -> str:
        """Job name when the detail lookup provided one, job ID otherwise."""
        return self.job_name or self.job_id


# === Streaming ===


@dataclass(slots=True, frozen=True)
class LogFrame:
    """One frame of a Nomad log stream (heartbeats carry no data)."""

    data: bytes = b""
    file: str = ""
    offset: int = 0
    file_event: str = ""

    @classmethod
    def from_api(cls, raw: dict[str, Any]) -> LogFrame:
        data = raw.get("Data") or ""
        return cls(
            data=base64.b64decode(data) if data else b"",
            file=raw.get("File") or "",
            offset=int(raw.get("Offset") or 0),
            file_event=raw.get("FileEvent") or "",
        )

    @property
    def is_heartbeat(self) -> bool:
        return not self.data and not self.file_event


@dataclass(slots=True, frozen=True)
class LogLine:
    """A single log line plus the target and allocation it came from."""

    target: Target
    allocation: Allocation
    text: str
