from __future__ import annotations

from typing import Any, List, Protocol, runtime_checkable

from rdstail.core.models import FetchResult, SegmentPage


# ---------------------------------------------------------------------------
# ILogSegmentsProvider
# ---------------------------------------------------------------------------

@runtime_checkable
class ILogSegmentsProvider(Protocol):
    """
    Abstract remote log API.

    Domain expectations:
    - Listing is paginated; callers loop on `next_token`.
    - Fetching is bounded; callers loop on the returned marker.
    - Failures are raised as the categorized errors from `core.errors`
      (RateLimited, InaccessibleBinaryRange, SegmentNotFound,
      RemoteUnavailable) so the tail loop can classify them by type.
    """

    async def list_segments(self, instance_id: str, token: str | None = None) -> SegmentPage:
        """
        Return one page of log files for the instance.

        Implementations:
        - RDS-backed (`RDSLogsClient`)
        - In-memory provider for testing
        """
        ...

    async def fetch_portion(
        self,
        instance_id: str,
        segment_name: str,
        marker: str | None = None,
        max_lines: int | None = None,
    ) -> FetchResult:
        """
        Return one portion of `segment_name` starting at `marker`.

        With no marker the remote API returns the most recent `max_lines`
        lines of the file.
        """
        ...

    async def list_instances(self) -> List[str]:
        """Return the identifiers of all reachable database instances."""
        ...


# ---------------------------------------------------------------------------
# ISink
# ---------------------------------------------------------------------------

@runtime_checkable
class ISink(Protocol):
    """
    Destination for raw log chunks.

    Domain expectations:
    - `write` accepts arbitrary text, including the empty string (no-op).
    - `write` may be called repeatedly and must not block indefinitely;
      any fan-out (parse, publish) is the sink's own concern.
    """

    async def write(self, chunk: str) -> None:
        ...

    async def aclose(self) -> None:
        """Flush anything buffered."""
        ...


# ---------------------------------------------------------------------------
# ILineParser
# ---------------------------------------------------------------------------

@runtime_checkable
class ILineParser(Protocol):
    """Turn one raw log line into a field set, or None to drop it."""

    def parse(self, line: str) -> dict[str, Any] | None:
        ...
