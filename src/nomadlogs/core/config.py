from __future__ import annotations

import os
from dataclasses import dataclass, field

from nomadlogs.core.models import Target

DEFAULT_ADDRESS = "http://127.0.0.1:4646"


def resolve_address(cli_value: str | None = None) -> str:
    """Pick the Nomad address: explicit flag, then NOMAD_ADDR, then the default."""
    if cli_value:
        return cli_value
    return os.environ.get("NOMAD_ADDR") or DEFAULT_ADDRESS


@dataclass(frozen=True)
class ClientConfig:
    """Connection settings for the Nomad HTTP API."""

    address: str = DEFAULT_ADDRESS
    token: str | None = None
    namespace: str | None = None
    region: str | None = None
    timeout_s: float = 30.0

    @classmethod
    def from_env(cls, address: str | None = None, *, timeout_s: float = 30.0) -> ClientConfig:
        return cls(
            address=resolve_address(address),
            token=os.environ.get("NOMAD_TOKEN") or None,
            namespace=os.environ.get("NOMAD_NAMESPACE") or None,
            region=os.environ.get("NOMAD_REGION") or None,
            timeout_s=timeout_s,
        )


@dataclass(frozen=True)
class WatcherConfig:
    """Discovery and buffering settings for one Watcher."""

    poll_interval_s: float = 5.0
    buffer_size: int = 1000
    # Upper bound for the wait between polls after repeated list failures
    max_backoff_s: float = 60.0
    follow: bool = True


@dataclass(frozen=True)
class TailConfig:
    """Configuration for the `tail` command."""

    targets: list[Target]
    raw: bool = False
    lines: str = "10"
    follow: bool = False
    watcher: WatcherConfig = field(default_factory=WatcherConfig)
