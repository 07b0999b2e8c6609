"""Orchestrator client facade (Nomad HTTP API)."""

from nomadlogs.clients.frames import FrameDecoder
from nomadlogs.clients.nomad import NomadClient, allocation_from_api, parse_timestamp

__all__ = [
    "FrameDecoder",
    "NomadClient",
    "allocation_from_api",
    "parse_timestamp",
]
