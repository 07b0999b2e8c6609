"""Bounded, closable channel of log lines (one reader, many writers)."""

from __future__ import annotations

import asyncio

from nomadlogs.core.models import LogLine

DEFAULT_BUFFER_SIZE = 1000

_EOF = object()


class OutputSequence:
    """Merged delivery channel for all stream consumers of one Watcher.

    - `push` waits while the buffer is full (backpressure on the producer).
    - Async iteration yields lines in arrival order.
    - After `close`, iteration ends once the buffered lines are drained.
    """

    def __init__(self, maxsize: int = DEFAULT_BUFFER_SIZE) -> None:
        if maxsize <= 0:
            raise ValueError("maxsize must be positive")
        self._queue: asyncio.Queue[object] = asyncio.Queue(maxsize)
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def maxsize(self) -> int:
        return self._queue.maxsize

    def __len__(self) -> int:
        return self._queue.qsize()

    async def push(self, line: LogLine) -> None:
        if self._closed:
            raise RuntimeError("push to a closed OutputSequence")
        await self._queue.put(line)

    def close(self) -> None:
        """Mark the sequence finished. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        try:
            self._queue.put_nowait(_EOF)
        except asyncio.QueueFull:
            # the reader is not blocked on an empty queue, it will see `closed`
            pass

    def __aiter__(self) -> OutputSequence:
        return self

    async def __anext__(self) -> LogLine:
        if self._closed and self._queue.empty():
            raise StopAsyncIteration
        item = await self._queue.get()
        if item is _EOF:
            raise StopAsyncIteration
        return item  # type: ignore[return-value]
