"""Async client for the Nomad HTTP API.

This module provides:
- `NomadClient`: one long-lived `httpx.AsyncClient` behind the three calls
  the watcher needs (list allocations, allocation detail, log stream)
- Helpers mapping API payloads onto `Allocation` / `TaskState` records

Every transport or HTTP failure surfaces as `NomadAPIError` (or
`LogStreamError` for log streams) so callers never see httpx types.
"""

from __future__ import annotations

import re
from collections.abc import AsyncIterator
from datetime import datetime
from typing import Any

import httpx

from nomadlogs.clients.frames import FrameDecoder
from nomadlogs.core.config import ClientConfig
from nomadlogs.core.errors import LogStreamError, NomadAPIError
from nomadlogs.core.models import Allocation, LogFrame, StreamName, TaskState

_FRACTION_RE = re.compile(r"(\.\d{6})\d+")
_ZERO_TIME_PREFIX = "0001-01-01"


def parse_timestamp(value: str | None) -> datetime | None:
    """Parse an RFC 3339 timestamp; Nomad's zero time maps to None."""
    if not value or value.startswith(_ZERO_TIME_PREFIX):
        return None
    value = _FRACTION_RE.sub(r"\1", value)
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        return None


def allocation_from_api(raw: dict[str, Any]) -> Allocation:
    """Map an allocation (stub or full) payload onto `Allocation`."""
    task_states = {
        name: TaskState(
            state=str(ts.get("State") or ""),
            last_restart=parse_timestamp(ts.get("LastRestart")),
        )
        for name, ts in (raw.get("TaskStates") or {}).items()
    }
    job = raw.get("Job") or {}
    return Allocation(
        id=raw["ID"],
        job_id=raw.get("JobID") or job.get("ID") or "",
        client_status=raw.get("ClientStatus") or "",
        task_states=task_states,
        job_name=job.get("Name") or "",
        task_group=raw.get("TaskGroup") or "",
    )


class NomadClient:
    """Minimal async Nomad API client.

    Parameters
    ----------
    config : ClientConfig
        Address, ACL token, namespace/region and request timeout.
    transport : httpx.AsyncBaseTransport | None
        Optional transport override (used by tests).
    """

    def __init__(self, config: ClientConfig, *, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self.config = config
        headers = {"X-Nomad-Token": config.token} if config.token else {}
        try:
            self.client = httpx.AsyncClient(
                base_url=config.address,
                headers=headers,
                timeout=httpx.Timeout(config.timeout_s),
                transport=transport,
            )
        except (httpx.InvalidURL, ValueError) as e:
            raise NomadAPIError(f"invalid Nomad address {config.address!r}: {e}") from e

    def _params(self, **extra: Any) -> dict[str, Any]:
        params: dict[str, Any] = {}
        if self.config.namespace:
            params["namespace"] = self.config.namespace
        if self.config.region:
            params["region"] = self.config.region
        params.update(extra)
        return params

    async def _get_json(self, path: str) -> Any:
        try:
            r = await self.client.get(path, params=self._params())
        except httpx.HTTPError as e:
            raise NomadAPIError(f"GET {path} failed: {type(e).__name__}: {e}") from e
        if r.is_error:
            raise NomadAPIError(r.text.strip() or r.reason_phrase, status_code=r.status_code)
        return r.json()

    async def list_allocations(self) -> list[Allocation]:
        """Return allocation stubs for the whole cluster."""
        data = await self._get_json("/v1/allocations")
        return [allocation_from_api(a) for a in data or []]

    async def allocation_info(self, alloc_id: str) -> Allocation:
        """Return one allocation with its job embedded."""
        return allocation_from_api(await self._get_json(f"/v1/allocation/{alloc_id}"))

    async def stream_logs(
        self,
        allocation: Allocation,
        task: str,
        stream: StreamName,
        *,
        follow: bool = True,
        origin: str = "end",
        offset: int = 0,
    ) -> AsyncIterator[LogFrame]:
        """Yield log frames for one task stream until the server closes it."""
        path = f"/v1/client/fs/logs/{allocation.id}"
        params = self._params(
            task=task,
            type=stream,
            follow=str(follow).lower(),
            origin=origin,
            offset=offset,
        )
        # followed streams may stay idle for a long time between frames
        timeout = httpx.Timeout(self.config.timeout_s, read=None)
        decoder = FrameDecoder()
        try:
            async with self.client.stream("GET", path, params=params, timeout=timeout) as r:
                if r.is_error:
                    body = (await r.aread()).decode("utf-8", errors="replace").strip()
                    raise LogStreamError(body or r.reason_phrase, status_code=r.status_code)
                async for chunk in r.aiter_text():
                    for frame in decoder.feed(chunk):
                        if not frame.is_heartbeat:
                            yield frame
        except httpx.HTTPError as e:
            raise LogStreamError(f"{stream} stream failed: {type(e).__name__}: {e}") from e

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self.client.aclose()

    async def __aenter__(self) -> NomadClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()
