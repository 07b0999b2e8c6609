import asyncio
from collections.abc import Callable
from unittest.mock import AsyncMock

import pytest

from nomadlogs.core.models import Allocation, LogFrame, TaskState


def make_alloc(
    alloc_id: str,
    *,
    job_id: str = "web",
    task: str = "app",
    status: str = "running",
    job_name: str | None = None,
) -> Allocation:
    return Allocation(
        id=alloc_id,
        job_id=job_id,
        client_status=status,
        task_states={task: TaskState(state="running" if status == "running" else "dead")},
        job_name=job_name if job_name is not None else job_id,
    )


async def wait_for(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    """Yield to the loop until `predicate()` holds."""
    async def _poll() -> None:
        while not predicate():
            await asyncio.sleep(0.005)

    await asyncio.wait_for(_poll(), timeout)


class ScriptedProvider:
    """In-memory allocations provider whose log streams are fed from queues.

    Put `bytes` on a feed to deliver a frame, an exception to fail the
    stream, or `None` to end it cleanly.
    """

    def __init__(self, allocations: list[Allocation] | None = None) -> None:
        self.allocations = list(allocations or [])
        self.list_error: Exception | None = None
        self.info_errors: dict[str, Exception] = {}
        self.list_calls = 0
        self.opened: list[tuple[str, str, str, str]] = []
        self.closed: list[tuple[str, str]] = []
        self._feeds: dict[tuple[str, str], asyncio.Queue] = {}

    def feed(self, alloc_id: str, stream: str) -> asyncio.Queue:
        return self._feeds.setdefault((alloc_id, stream), asyncio.Queue())

    async def list_allocations(self) -> list[Allocation]:
        self.list_calls += 1
        if self.list_error is not None:
            raise self.list_error
        return list(self.allocations)

    async def allocation_info(self, alloc_id: str) -> Allocation:
        if alloc_id in self.info_errors:
            raise self.info_errors.pop(alloc_id)
        return next(a for a in self.allocations if a.id == alloc_id)

    async def stream_logs(self, allocation, task, stream, *, follow=True, origin="end", offset=0):
        self.opened.append((allocation.id, task, stream, origin))
        queue = self.feed(allocation.id, stream)
        try:
            while True:
                item = await queue.get()
                if item is None:
                    return
                if isinstance(item, Exception):
                    raise item
                yield LogFrame(data=item)
        finally:
            self.closed.append((allocation.id, stream))


@pytest.fixture
def provider() -> ScriptedProvider:
    return ScriptedProvider()


@pytest.fixture
def mock_provider():
    provider = AsyncMock()
    provider.list_allocations = AsyncMock(return_value=[])
    provider.allocation_info = AsyncMock()
    return provider
