"""Watcher: discovery polling + per-allocation consumers + fan-in.

A Watcher turns one `Target` into a single `OutputSequence` of log lines
coming from every running allocation that matches it:

1) The discovery loop lists allocations every `poll_interval_s` seconds.
2) Each matching allocation not already in the `WatchedSet` is looked up in
   detail, added to the set and handed to its own consumer task.
3) Consumers push lines into the shared sequence and remove their
   allocation from the set when they finish, whatever the reason.

Failures to list allocations never stop the loop. The wait before the next
poll doubles on consecutive failures, up to `max_backoff_s`.
"""

from __future__ import annotations

import asyncio
import logging

from nomadlogs.core.config import WatcherConfig
from nomadlogs.core.interfaces import IAllocationsProvider
from nomadlogs.core.models import RUNNING, Allocation, Target
from nomadlogs.watching.consumer import consume_allocation
from nomadlogs.watching.sequence import OutputSequence
from nomadlogs.watching.watched_set import WatchedSet

logger = logging.getLogger(__name__)


def matches(target: Target, allocation: Allocation) -> bool:
    """True when `allocation` should be streamed for `target`."""
    if target.task_name not in allocation.task_states:
        return False
    if target.job_filter and target.job_filter != allocation.job_id:
        return False
    return allocation.client_status == RUNNING


def next_delay(config: WatcherConfig, failures: int) -> float:
    """Seconds to wait before the next poll after `failures` consecutive failures."""
    if failures <= 1:
        return config.poll_interval_s
    return min(config.poll_interval_s * 2 ** (failures - 1), max(config.max_backoff_s, config.poll_interval_s))


class Watcher:
    """Discover and stream every running allocation of one target."""

    def __init__(
        self,
        target: Target,
        provider: IAllocationsProvider,
        config: WatcherConfig | None = None,
    ) -> None:
        self.target = target
        self.provider = provider
        self.config = config or WatcherConfig()
        self.watched = WatchedSet()
        self.output = OutputSequence(self.config.buffer_size)
        self._poll_task: asyncio.Task[None] | None = None
        self._consumers: set[asyncio.Task[None]] = set()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> OutputSequence:
        """Start discovery in the background and return the output sequence."""
        if self._poll_task is None:
            self._poll_task = asyncio.create_task(self._poll_loop(), name=f"discover[{self.target}]")
        return self.output

    async def stop(self) -> None:
        """Cancel discovery and all consumers, then close the output sequence."""
        tasks = [t for t in (self._poll_task, *self._consumers) if t is not None]
        for t in tasks:
            t.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self.output.close()

    async def __aenter__(self) -> Watcher:
        self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.stop()

    def active_ids(self) -> frozenset[str]:
        return self.watched.snapshot()

    # ------------------------------------------------------------------
    # Discovery
    # ------------------------------------------------------------------

    async def _poll_loop(self) -> None:
        failures = 0
        while True:
            try:
                await self.poll_once()
                failures = 0
            except Exception as e:
                failures += 1
                logger.warning(
                    "%s: could not list nomad allocations. waiting %.1fs before trying again: %s",
                    self.target,
                    next_delay(self.config, failures),
                    e,
                )
            await asyncio.sleep(next_delay(self.config, failures))

    async def poll_once(self) -> list[str]:
        """Run one discovery step; return the allocation IDs it started streaming."""
        allocations = await self.provider.list_allocations()
        started: list[str] = []
        for alloc in allocations:
            if self.watched.contains(alloc.id) or not matches(self.target, alloc):
                continue
            try:
                detail = await self.provider.allocation_info(alloc.id)
            except Exception as e:
                logger.warning("%s: could not retrieve allocation %s: %s", self.target, alloc.id, e)
                continue
            if not self.watched.try_add(alloc.id):
                continue
            self._spawn(alloc.id, detail)
            started.append(alloc.id)
        return started

    def _spawn(self, alloc_id: str, allocation: Allocation) -> None:
        task = asyncio.create_task(self._run_consumer(alloc_id, allocation), name=f"stream[{alloc_id[:8]}]")
        self._consumers.add(task)
        task.add_done_callback(self._consumers.discard)

    async def _run_consumer(self, alloc_id: str, allocation: Allocation) -> None:
        logger.debug("%s: streaming allocation %s", self.target, alloc_id)
        try:
            await consume_allocation(
                provider=self.provider,
                target=self.target,
                allocation=allocation,
                output=self.output,
                follow=self.config.follow,
            )
        finally:
            self.watched.remove(alloc_id)
            logger.debug("%s: stopped streaming allocation %s", self.target, alloc_id)
