import asyncio

import pytest

from nomadlogs.core.config import WatcherConfig
from nomadlogs.core.errors import TargetSpecError
from nomadlogs.core.models import LogLine, Target
from nomadlogs.formatting import format_line
from nomadlogs.orchestration.tail import run_tail

from conftest import ScriptedProvider, make_alloc, wait_for


@pytest.mark.asyncio
async def test_run_tail_requires_targets(provider: ScriptedProvider) -> None:
    with pytest.raises(TargetSpecError):
        await run_tail(provider=provider, targets=[], emit=lambda line: None)


@pytest.mark.asyncio
async def test_run_tail_merges_targets_until_cancelled(provider: ScriptedProvider) -> None:
    provider.allocations = [
        make_alloc("web-alloc", job_id="web", task="app"),
        make_alloc("api-alloc", job_id="api", task="srv"),
    ]
    seen: list[LogLine] = []
    task = asyncio.create_task(
        run_tail(
            provider=provider,
            targets=[Target("app", "web"), Target("srv")],
            emit=seen.append,
            config=WatcherConfig(poll_interval_s=0.01),
        )
    )
    await wait_for(lambda: len(provider.opened) == 4)
    provider.feed("web-alloc", "stdout").put_nowait(b"from web\n")
    provider.feed("api-alloc", "stderr").put_nowait(b"from api\n")
    await wait_for(lambda: len(seen) == 2)

    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    assert {(line.target.task_name, line.text) for line in seen} == {("app", "from web"), ("srv", "from api")}
    # every stream was closed when the watchers stopped
    assert len(provider.closed) == 4


@pytest.mark.asyncio
async def test_bad_lines_do_not_stop_tailing(provider: ScriptedProvider) -> None:
    provider.allocations = [make_alloc("web-alloc", job_id="web", task="app")]
    printed: list[str] = []

    def emit(line: LogLine) -> None:
        if line.text == "explode":
            raise RuntimeError("terminal went away")
        printed.append(format_line(line))

    task = asyncio.create_task(
        run_tail(
            provider=provider,
            targets=[Target("app")],
            emit=emit,
            config=WatcherConfig(poll_interval_s=0.01),
        )
    )
    await wait_for(lambda: len(provider.opened) == 2)
    stdout = provider.feed("web-alloc", "stdout")
    out_of_range = '{"level":"info","time":"0001-01-01T00:00:00+01:00","message":"hi"}'
    stdout.put_nowait(f"{out_of_range}\nexplode\nafter\n".encode())
    await wait_for(lambda: len(printed) == 2)

    assert not task.done()
    assert printed == [f"web(web-allo): {out_of_range}", "web(web-allo): after"]
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task
