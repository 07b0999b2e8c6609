"""Render log lines for the terminal.

Structured JSON log records of the shape::

    {"level": "info", "time": "2023-01-01T00:00:00Z", "message": "hello"}

are rendered as ``[2023-01-01T00:00:00Z] [info] hello``. Anything else
(plain text, invalid JSON, JSON without a message) passes through verbatim.
So does a record whose `time` is not an RFC 3339 string with an offset, or
falls outside the datetime range once converted to UTC.
Every line is prefixed with ``<job name>(<first 8 chars of alloc id>): ``.
"""

from __future__ import annotations

import re
from datetime import datetime, timezone

import click
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from nomadlogs.core.models import LogLine

ZERO_TIME = "0001-01-01T00:00:00Z"

_EXCESS_FRACTION_RE = re.compile(r"(\.\d{6})\d+")


class StructuredRecord(BaseModel):
    """Subset of a structured (JSON) log record we know how to render."""

    model_config = ConfigDict(populate_by_name=True)

    message: str
    level: str = ""
    time: datetime | None = None
    trace_id: str | None = Field(default=None, alias="trace.id")

    @field_validator("time", mode="before")
    @classmethod
    def _rfc3339_string(cls, v: object) -> object:
        if v is None:
            return v
        if not isinstance(v, str):
            raise ValueError("time must be an RFC 3339 string")
        return _EXCESS_FRACTION_RE.sub(r"\1", v)

    @field_validator("time")
    @classmethod
    def _normalize_to_utc(cls, v: datetime | None) -> datetime | None:
        if v is None:
            return v
        if v.tzinfo is None:
            raise ValueError("time must carry a UTC offset")
        try:
            return v.astimezone(timezone.utc)
        except OverflowError as e:
            raise ValueError(f"time out of range: {e}") from e


def parse_record(raw: str) -> StructuredRecord | None:
    """Return the structured record in `raw`, or None if it is not one."""
    try:
        return StructuredRecord.model_validate_json(raw)
    except ValidationError:
        return None


def format_time(ts: datetime | None) -> str:
    if ts is None:
        return ZERO_TIME
    # isoformat keeps the year zero-padded, strftime("%Y") does not on glibc
    return ts.replace(tzinfo=None).isoformat(timespec="seconds") + "Z"


def format_body(raw: str) -> str:
    """Render the text part of a line (without the origin prefix)."""
    record = parse_record(raw)
    if record is None:
        return raw
    return f"[{format_time(record.time)}] [{record.level}] {record.message}"


def format_prefix(line: LogLine) -> str:
    return f"{line.allocation.display_name}({line.allocation.short_id}): "


def format_line(line: LogLine) -> str:
    """Plain-text rendering of one line. Never raises on bad input."""
    return format_prefix(line) + format_body(line.text)


def render_line(line: LogLine, *, raw: bool = False) -> str:
    """Terminal rendering with a colored prefix; `raw` returns the text untouched.

    Only the prefix is styled. The body is kept byte for byte (tabs, carriage
    returns) and `click.echo` drops the styling when stdout is not a terminal.
    """
    if raw:
        return line.text
    return (
        click.style(line.allocation.display_name, fg="cyan")
        + "("
        + click.style(line.allocation.short_id, fg="green")
        + "): "
        + format_body(line.text)
    )
