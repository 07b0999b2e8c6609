import base64
import json
from datetime import datetime, timezone

import httpx
import pytest

from nomadlogs.clients.frames import FrameDecoder
from nomadlogs.clients.nomad import NomadClient, allocation_from_api, parse_timestamp
from nomadlogs.core.config import ClientConfig
from nomadlogs.core.errors import LogStreamError, NomadAPIError

from conftest import make_alloc

ALLOC_STUB = {
    "ID": "0123456789abcdef",
    "JobID": "web",
    "TaskGroup": "frontend",
    "ClientStatus": "running",
    "TaskStates": {
        "app": {"State": "running", "LastRestart": "2023-05-01T10:20:30.123456789Z"},
        "sidecar": {"State": "dead", "LastRestart": "0001-01-01T00:00:00Z"},
    },
}


def _frame(text: str) -> dict:
    return {"Data": base64.b64encode(text.encode()).decode(), "File": "alloc/logs/app.stdout.0", "Offset": 10}


def _client(handler) -> NomadClient:
    config = ClientConfig(address="http://nomad.test:4646", token="secret", namespace="prod")
    return NomadClient(config, transport=httpx.MockTransport(handler))


def test_parse_timestamp() -> None:
    assert parse_timestamp("0001-01-01T00:00:00Z") is None
    assert parse_timestamp(None) is None
    assert parse_timestamp("garbage") is None
    assert parse_timestamp("2023-05-01T10:20:30.123456789Z") == datetime(
        2023, 5, 1, 10, 20, 30, 123456, tzinfo=timezone.utc
    )


def test_allocation_from_api_stub_and_detail() -> None:
    alloc = allocation_from_api(ALLOC_STUB)
    assert alloc.id == "0123456789abcdef"
    assert alloc.short_id == "01234567"
    assert alloc.job_id == "web"
    assert alloc.job_name == ""
    assert alloc.task_states["app"].state == "running"
    assert alloc.task_states["sidecar"].last_restart is None

    detail = allocation_from_api({**ALLOC_STUB, "Job": {"ID": "web", "Name": "web-frontend"}})
    assert detail.job_name == "web-frontend"
    assert detail.display_name == "web-frontend"


def test_frame_decoder_handles_split_frames_and_heartbeats() -> None:
    body = "{}" + json.dumps(_frame("hello\n")) + "\n" + json.dumps(_frame("world\n"))
    decoder = FrameDecoder()
    frames = []
    for i in range(0, len(body), 7):
        frames.extend(decoder.feed(body[i : i + 7]))
    assert [f.data for f in frames] == [b"", b"hello\n", b"world\n"]
    assert frames[0].is_heartbeat
    assert frames[1].file == "alloc/logs/app.stdout.0"
    assert decoder.pending == ""


@pytest.mark.asyncio
async def test_list_allocations_sends_token_and_namespace() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=[ALLOC_STUB])

    async with _client(handler) as client:
        allocs = await client.list_allocations()

    assert [a.id for a in allocs] == ["0123456789abcdef"]
    assert seen[0].url.path == "/v1/allocations"
    assert seen[0].headers["X-Nomad-Token"] == "secret"
    assert seen[0].url.params["namespace"] == "prod"


@pytest.mark.asyncio
async def test_allocation_info_error_is_wrapped() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/v1/allocation/missing"
        return httpx.Response(404, text="alloc not found")

    async with _client(handler) as client:
        with pytest.raises(NomadAPIError) as exc_info:
            await client.allocation_info("missing")
    assert exc_info.value.status_code == 404


@pytest.mark.asyncio
async def test_transport_failure_is_wrapped() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    async with _client(handler) as client:
        with pytest.raises(NomadAPIError, match="connection refused"):
            await client.list_allocations()


@pytest.mark.asyncio
async def test_stream_logs_yields_frames_with_tail_parameters() -> None:
    seen: list[httpx.Request] = []
    body = json.dumps(_frame("a\nb\n")) + "{}" + json.dumps(_frame("c\n"))

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, content=body.encode())

    async with _client(handler) as client:
        frames = [f async for f in client.stream_logs(make_alloc("alloc-1"), "app", "stderr")]

    assert [f.data for f in frames] == [b"a\nb\n", b"c\n"]
    params = seen[0].url.params
    assert seen[0].url.path == "/v1/client/fs/logs/alloc-1"
    assert params["task"] == "app"
    assert params["type"] == "stderr"
    assert params["follow"] == "true"
    assert params["origin"] == "end"
    assert params["offset"] == "0"


@pytest.mark.asyncio
async def test_stream_logs_unknown_task() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, text='unknown task name "app"')

    async with _client(handler) as client:
        with pytest.raises(LogStreamError) as exc_info:
            async for _ in client.stream_logs(make_alloc("alloc-1"), "app", "stdout"):
                pass
    assert exc_info.value.status_code == 500
    assert exc_info.value.is_unknown_task
