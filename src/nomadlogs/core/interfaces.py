from __future__ import annotations

from collections.abc import AsyncIterator
from typing import List, Protocol, runtime_checkable

from nomadlogs.core.models import Allocation, LogFrame, StreamName


# ---------------------------------------------------------------------------
# IAllocationsProvider
# ---------------------------------------------------------------------------

@runtime_checkable
class IAllocationsProvider(Protocol):
    """
    Abstract access to the orchestrator's allocation and log APIs.

    Domain expectations:
    - Allocation snapshots are returned as internal `Allocation` models.
    - Log streams are async iterators of `LogFrame`; a clean end of the
      stream ends iteration, a terminal failure raises `LogStreamError`.
    - One provider instance is shared by every task of a Watcher and must be
      safe for concurrent use.
    """

    async def list_allocations(self) -> List[Allocation]:
        """
        Return a snapshot of every allocation known to the cluster.

        Implementations:
        - Nomad HTTP client (`NomadClient`)
        - In-memory provider for testing
        """
        ...

    async def allocation_info(self, alloc_id: str) -> Allocation:
        """Return the full allocation (job name included) for one ID."""
        ...

    def stream_logs(
        self,
        allocation: Allocation,
        task: str,
        stream: StreamName,
        *,
        follow: bool = True,
        origin: str = "end",
        offset: int = 0,
    ) -> AsyncIterator[LogFrame]:
        """Open one log stream (stdout or stderr) for a task of an allocation."""
        ...
