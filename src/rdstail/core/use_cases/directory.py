"""Segment listing and selection.

Functions
---------
- select_by_prefix: keep segments whose name equals or starts with a prefix.
- select_latest: most recently written segment (stable on ties).

`SegmentDirectory` merges every page of the remote listing into one
list and optionally keeps it for the lifetime of the instance.
"""

from __future__ import annotations

from collections.abc import Sequence

from loguru import logger

from rdstail.core.errors import NoMatchingSegment, NoSegmentsAvailable
from rdstail.core.interfaces import ILogSegmentsProvider
from rdstail.core.models import LogSegment


def select_by_prefix(segments: Sequence[LogSegment], prefix: str) -> list[LogSegment]:
    """Return segments named `prefix` or `prefix*`, in listing order.

    Raises
    ------
    NoMatchingSegment
        When nothing matches; carries the full listing for diagnostics.
    """
    matching = [seg for seg in segments if seg.name.startswith(prefix)]
    if not matching:
        raise NoMatchingSegment(prefix, segments)
    return matching


def select_latest(segments: Sequence[LogSegment]) -> LogSegment:
    """Return the segment with the greatest `last_written` (last one wins ties)."""
    if not segments:
        raise NoSegmentsAvailable()
    return sorted(segments, key=lambda seg: seg.last_written)[-1]


class SegmentDirectory:
    """Paginated listing of an instance's log files.

    Parameters
    ----------
    provider : ILogSegmentsProvider
        Remote API.
    instance_id : str
        Database instance identifier.
    cache : bool
        Keep the first complete listing until `invalidate()` is called.
        Rotation checks always pass `refresh=True`.
    """

    def __init__(self, provider: ILogSegmentsProvider, instance_id: str, *, cache: bool = False) -> None:
        self._provider = provider
        self.instance_id = instance_id
        self._use_cache = cache
        self._cached: list[LogSegment] | None = None

    def invalidate(self) -> None:
        """Drop the cached listing (all of it)."""
        self._cached = None

    async def list_segments(self, *, refresh: bool = False) -> list[LogSegment]:
        """Return every log file of the instance, all pages merged."""
        if self._use_cache and not refresh and self._cached is not None:
            return list(self._cached)

        segments: list[LogSegment] = []
        token: str | None = None
        pages = 0
        while True:
            page = await self._provider.list_segments(self.instance_id, token)
            pages += 1
            segments.extend(page.segments)
            token = page.next_token
            if token is None:
                break

        logger.debug("Listed {} log files in {} page(s) for {}", len(segments), pages, self.instance_id)
        if self._use_cache and self._cached is None:
            self._cached = list(segments)
        return segments

    async def matching(self, prefix: str, *, refresh: bool = False) -> list[LogSegment]:
        return select_by_prefix(await self.list_segments(refresh=refresh), prefix)

    async def latest(self, prefix: str, *, refresh: bool = False) -> LogSegment:
        return select_latest(await self.matching(prefix, refresh=refresh))
