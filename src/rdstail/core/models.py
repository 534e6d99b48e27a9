"""Core data models and marker arithmetic.

This module defines:
- `LogSegment`: one remote log file as reported by the listing API.
- `SegmentPage`: one bounded page of the listing API.
- `FetchResult`: one portion returned by the fetch API.
- `StreamPosition`: the (segment, marker) pair the tail loop polls from.

Design notes
------------
- Markers are opaque to the remote API but have the shape `hour:offset`
  once a fetch has succeeded; the sentinel `"0"` marks an hourly bucket
  boundary.
- Offsets count UTF-8 bytes, not characters.
- `LogSegment` equality ignores `name`: rotation renames files while the
  content (last write time and size) stays the same.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path

from rdstail.constants import SENTINEL_MARKER
from rdstail.core.errors import MalformedMarker


# === Marker arithmetic ===


def is_sentinel(marker: str | None) -> bool:
    """True for an absent marker, an empty one, or the rollover sentinel."""
    return marker is None or marker == "" or marker == SENTINEL_MARKER


def parse_marker(marker: str | None) -> tuple[int, int]:
    """Split `hour:offset` into two non-negative ints or raise `MalformedMarker`."""
    if marker is None:
        raise MalformedMarker(marker)
    parts = marker.split(":")
    if len(parts) != 2 or not all(p.isascii() and p.isdigit() for p in parts):
        raise MalformedMarker(marker)
    return int(parts[0]), int(parts[1])


def advance_marker(marker: str | None, delta: int) -> str:
    """Return a new marker `delta` bytes past `marker`. Pure."""
    if delta < 0:
        raise ValueError("delta must be non-negative")
    hour, offset = parse_marker(marker)
    return f"{hour}:{offset + delta}"


def byte_len(data: str | None) -> int:
    """Length of a chunk as the remote API counts it."""
    return len(data.encode("utf-8")) if data else 0


# === Remote records ===


@dataclass(frozen=True, eq=False)
class LogSegment:
    """A remote log file, e.g.

    name="error/postgresql.log.2024-05-01-13", size=2196, last_written=1474959300000
    """

    name: str
    size: int = 0  # bytes
    last_written: int = 0  # msec since epoch

    @property
    def last_written_at(self) -> datetime:
        return datetime.fromtimestamp(self.last_written / 1000, tz=timezone.utc)

    @property
    def basename(self) -> str:
        return self.name.rsplit("/", 1)[-1]

    def _content_key(self) -> tuple[int, int]:
        return (self.last_written, self.size)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, LogSegment):
            return NotImplemented
        return self._content_key() == other._content_key()

    def __hash__(self) -> int:
        return hash(self._content_key())

    def __str__(self) -> str:
        return f"{self.name:<35} (date: {self.last_written_at:%Y-%m-%d %H:%M:%S}, size: {self.size})"


@dataclass(slots=True, frozen=True)
class SegmentPage:
    """One page of the segment listing."""

    segments: list[LogSegment] = field(default_factory=list)
    next_token: str | None = None


@dataclass(slots=True, frozen=True)
class FetchResult:
    """One portion of a log file as returned by the remote API."""

    data: str | None = None
    marker: str | None = None
    more_pending: bool = False

    @property
    def has_data(self) -> bool:
        return bool(self.data)


# === Stream position ===


@dataclass(slots=True, frozen=True)
class StreamPosition:
    """Where the tail loop fetches from next.

    `marker=None` means "no marker yet": the next fetch is a single-line
    probe at the end of the file instead of a full page.
    """

    segment: LogSegment
    marker: str | None = None

    def __post_init__(self) -> None:
        if not is_sentinel(self.marker):
            parse_marker(self.marker)

    @property
    def is_probe(self) -> bool:
        return not self.marker

    @property
    def offset(self) -> int:
        """Byte offset within the current hour bucket (0 at a boundary)."""
        if is_sentinel(self.marker):
            return 0
        return parse_marker(self.marker)[1]

    def advance(self, delta: int) -> str:
        """Candidate marker `delta` bytes ahead; does not mutate the position."""
        return advance_marker(self.marker, delta)

    def with_marker(self, marker: str | None) -> StreamPosition:
        return StreamPosition(segment=self.segment, marker=marker)


class RotationMode(str, Enum):
    """How the tail loop looks for a newer log file once it catches up."""

    NONE = "none"  # fixed name, e.g. slowquery/mysql-slowquery.log
    TIME = "time"  # dated names, e.g. error/postgresql.log.2024-05-01-13
    SIZE = "size"  # rotates on size, e.g. audit/server_audit.log


@dataclass(slots=True, frozen=True)
class DownloadedSegment:
    segment: LogSegment
    path: Path
    bytes_written: int = 0
