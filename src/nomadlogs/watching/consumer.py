"""Per-allocation stream consumer.

One consumer follows the stdout and stderr log streams of a single
allocation task and pushes every non-empty line onto the Watcher's
`OutputSequence`. It waits on both streams at once and handles whichever
is ready first; stdout and stderr have no priority over each other.

The consumer ends when either stream ends or fails:
- clean end of a stream: a final "<stream> stream closed" line is pushed
- "unknown task name" error: the task exited before the request was
  served, so the consumer stops without reporting anything
- any other error: logged with the target and allocation, then stop

Both streams are closed on every exit path, including cancellation.
"""

from __future__ import annotations

import asyncio
import codecs
import logging
from collections.abc import AsyncIterator

from nomadlogs.core.errors import LogStreamError
from nomadlogs.core.interfaces import IAllocationsProvider
from nomadlogs.core.models import Allocation, LogFrame, LogLine, StreamName, Target
from nomadlogs.watching.sequence import OutputSequence

logger = logging.getLogger(__name__)

STREAMS: tuple[StreamName, ...] = ("stdout", "stderr")


def split_lines(text: str) -> list[str]:
    """Split decoded frame text on newlines, dropping empty fragments."""
    return [line for line in text.split("\n") if line]


async def _close_stream(stream: AsyncIterator[LogFrame]) -> None:
    aclose = getattr(stream, "aclose", None)
    if aclose is None:
        return
    try:
        await aclose()
    except Exception as e:
        logger.debug("error while closing log stream: %s", e)


async def consume_allocation(
    *,
    provider: IAllocationsProvider,
    target: Target,
    allocation: Allocation,
    output: OutputSequence,
    follow: bool = True,
) -> None:
    """Stream stdout/stderr of `allocation` into `output` until either ends."""
    streams: dict[StreamName, AsyncIterator[LogFrame]] = {
        name: provider.stream_logs(
            allocation,
            target.task_name,
            name,
            follow=follow,
            origin="end",
            offset=0,
        )
        for name in STREAMS
    }
    # one decoder per stream so multi-byte characters may span frames
    decoders = {name: codecs.getincrementaldecoder("utf-8")(errors="replace") for name in STREAMS}
    pending: dict[asyncio.Future[LogFrame], StreamName] = {
        asyncio.ensure_future(anext(stream)): name for name, stream in streams.items()
    }
    try:
        while True:
            done, _ = await asyncio.wait(pending, return_when=asyncio.FIRST_COMPLETED)
            fut = next(iter(done))
            name = pending.pop(fut)
            try:
                frame = fut.result()
            except StopAsyncIteration:
                await output.push(LogLine(target, allocation, f"{name} stream closed"))
                return
            except LogStreamError as e:
                if e.is_unknown_task:
                    logger.debug("%s: task gone from allocation %s", target, allocation.short_id)
                else:
                    logger.warning(
                        "%s: got error on %s of allocation %s (allocation probably shutting down): %s",
                        target,
                        name,
                        allocation.short_id,
                        e,
                    )
                return
            except Exception as e:
                logger.warning(
                    "%s: %s stream of allocation %s failed: %s: %s",
                    target,
                    name,
                    allocation.short_id,
                    type(e).__name__,
                    e,
                )
                return

            for text in split_lines(decoders[name].decode(frame.data)):
                await output.push(LogLine(target, allocation, text))
            pending[asyncio.ensure_future(anext(streams[name]))] = name
    finally:
        for fut in pending:
            fut.cancel()
        await asyncio.gather(*pending, return_exceptions=True)
        for stream in streams.values():
            await _close_stream(stream)
