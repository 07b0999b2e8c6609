from __future__ import annotations

from collections.abc import Sequence

from nomadlogs.core.errors import TargetSpecError
from nomadlogs.core.models import Target


def parse_target(spec: str) -> Target:
    """Parse `task` or `job:task` into a Target."""
    parts = spec.split(":")
    if len(parts) > 2:
        raise TargetSpecError(f"expecting 'job:task' or 'task', got {spec}")
    if len(parts) == 2:
        job, task = parts
    else:
        job, task = "", parts[0]
    if not task:
        raise TargetSpecError(f"empty task name in {spec!r}")
    return Target(task_name=task, job_filter=job)


def parse_targets(specs: Sequence[str]) -> list[Target]:
    """Parse every positional argument; at least one is required."""
    if not specs:
        raise TargetSpecError("no tasks specified")
    return [parse_target(s) for s in specs]
