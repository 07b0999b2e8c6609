"""Static allocation report for `nomadlogs ls`.

One row per (allocation, task), sorted stably by job ID + task name.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime

from rich.console import Console
from rich.measure import Measurement
from rich.table import Table
from rich.text import Text

from nomadlogs.core.interfaces import IAllocationsProvider
from nomadlogs.core.models import SHORT_ID_LEN, Allocation

MAX_TABLE_WIDTH = 1000

RESTART_FORMAT = "%Y-%m-%dT%H:%M:%S"

STATE_STYLES = {
    "running": "green",
    "dead": "red",
}


@dataclass(frozen=True)
class ListingRow:
    allocation_id: str
    job_id: str
    task: str
    state: str
    task_group: str = ""
    last_restart: datetime | None = None

    @property
    def sort_key(self) -> str:
        return self.job_id + self.task


def build_rows(allocations: Iterable[Allocation]) -> list[ListingRow]:
    rows = [
        ListingRow(
            allocation_id=alloc.id,
            job_id=alloc.job_id,
            task=task,
            state=ts.state,
            task_group=alloc.task_group,
            last_restart=ts.last_restart,
        )
        for alloc in allocations
        for task, ts in alloc.task_states.items()
    ]
    return sorted(rows, key=lambda r: r.sort_key)


async def fetch_rows(provider: IAllocationsProvider) -> list[ListingRow]:
    return build_rows(await provider.list_allocations())


def render_table(rows: Iterable[ListingRow]) -> Table:
    table = Table("Allocation", "Job ID", "Task", "State", "Last Restart")
    for row in rows:
        last_restart = row.last_restart.strftime(RESTART_FORMAT) if row.last_restart else ""
        table.add_row(
            row.allocation_id[:SHORT_ID_LEN],
            row.job_id,
            row.task,
            Text(row.state, style=STATE_STYLES.get(row.state, "")),
            last_restart,
        )
    return table


def table_width(console: Console, table: Table) -> int:
    """Width the table needs to show every cell without cropping."""
    options = console.options.update_width(MAX_TABLE_WIDTH)
    return Measurement.get(console, options, table).maximum
