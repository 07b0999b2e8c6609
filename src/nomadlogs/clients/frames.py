"""Incremental decoder for Nomad's streamed log frames.

The log endpoint answers with a body of back-to-back JSON objects (no
separator guaranteed), each one a frame::

    {"Data": "<base64>", "File": "alloc/logs/app.stdout.0", "Offset": 1024}

Heartbeat frames are empty objects. Chunks read off the wire may split a
frame anywhere, so the decoder keeps the unparsed tail between feeds.
"""

from __future__ import annotations

import json

from nomadlogs.core.models import LogFrame

_WHITESPACE = " \t\r\n"


class FrameDecoder:
    """Split a text stream into `LogFrame` records."""

    def __init__(self) -> None:
        self._buf = ""
        self._decoder = json.JSONDecoder()

    def feed(self, chunk: str) -> list[LogFrame]:
        """Add text and return every frame completed by it."""
        self._buf += chunk
        out: list[LogFrame] = []
        pos = 0
        while True:
            while pos < len(self._buf) and self._buf[pos] in _WHITESPACE:
                pos += 1
            if pos >= len(self._buf):
                break
            try:
                obj, end = self._decoder.raw_decode(self._buf, pos)
            except json.JSONDecodeError:
                # incomplete frame, wait for more input
                break
            if isinstance(obj, dict):
                out.append(LogFrame.from_api(obj))
            pos = end
        self._buf = self._buf[pos:]
        return out

    @property
    def pending(self) -> str:
        """Unparsed text carried over to the next feed."""
        return self._buf
