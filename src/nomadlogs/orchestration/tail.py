"""Tail orchestration: one Watcher per target, all drained concurrently."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Sequence

from nomadlogs.core.config import WatcherConfig
from nomadlogs.core.errors import TargetSpecError
from nomadlogs.core.interfaces import IAllocationsProvider
from nomadlogs.core.models import LogLine, Target
from nomadlogs.watching.watcher import Watcher

logger = logging.getLogger(__name__)


async def _drain(watcher: Watcher, emit: Callable[[LogLine], None]) -> None:
    async for line in watcher.start():
        try:
            emit(line)
        except Exception:
            logger.exception("%s: could not print line from allocation %s", watcher.target, line.allocation.short_id)


async def run_tail(
    *,
    provider: IAllocationsProvider,
    targets: Sequence[Target],
    emit: Callable[[LogLine], None],
    config: WatcherConfig | None = None,
) -> None:
    """Stream merged logs of every target into `emit` until cancelled.

    Output sequences only end when their Watcher is stopped, so under
    normal operation this runs until the surrounding task is cancelled;
    all Watchers are stopped before returning.
    """
    if not targets:
        raise TargetSpecError("no tasks specified")
    watchers = [Watcher(t, provider, config) for t in targets]
    logger.debug("tailing %s", ", ".join(str(t) for t in targets))
    try:
        await asyncio.gather(*(_drain(w, emit) for w in watchers))
    finally:
        await asyncio.gather(*(w.stop() for w in watchers), return_exceptions=True)
