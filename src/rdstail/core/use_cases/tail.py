"""Tail loop: turn the bounded, throttled fetch API into a continuous stream.

One iteration (`TailService.step`) is:

    FETCH -> CLASSIFY -> [ROTATE-CHECK] -> ADVANCE -> [BACKOFF]

Throttling, binary ranges and segments that disappear mid-rotation are
handled inside the loop; anything else ends it. Delivery is
at-least-once: a retried fetch may hand the sink the same bytes twice.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timezone

from loguru import logger

from rdstail.constants import PROBE_NUM_LINES, ROLLOVER_GRACE_MINUTES, SENTINEL_MARKER
from rdstail.core.cancel import CancelToken
from rdstail.core.config import TailConfig
from rdstail.core.errors import InaccessibleBinaryRange, RateLimited, SegmentNotFound
from rdstail.core.interfaces import ILogSegmentsProvider, ISink
from rdstail.core.models import (
    FetchResult,
    RotationMode,
    StreamPosition,
    advance_marker,
    byte_len,
    is_sentinel,
)
from rdstail.core.use_cases.directory import SegmentDirectory


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Marker resolution
# ---------------------------------------------------------------------------


def get_next_marker(
    previous: str | None,
    result: FetchResult | None,
    now: datetime,
    *,
    grace_minutes: int = ROLLOVER_GRACE_MINUTES,
) -> str | None:
    """Decide which marker to poll from next.

    Parameters
    ----------
    previous : str | None
        Marker the fetch was issued with.
    result : FetchResult | None
        What the fetch returned.
    now : datetime
        Current time; only its UTC minute-of-hour is used.
    grace_minutes : int
        Minutes past the hour during which an empty end-of-bucket
        response is retried from `previous`.

    Notes
    -----
    - A marker other than the sentinel is authoritative and adopted as is.
    - The sentinel with data means the bucket is not really finished:
      the marker is advanced by the size of the data.
    - The sentinel without data right after the hour is usually the
      remote store lagging behind its hourly rollover, so the previous
      window is retried until the grace period ends.
    """
    if result is None or result.marker is None:
        logger.warning("No marker in fetch response; keeping {!r}", previous)
        return previous

    if result.marker != SENTINEL_MARKER:
        return result.marker

    if result.has_data:
        if is_sentinel(previous):
            logger.warning(
                "Cannot compute next marker from {!r}; reverting to {!r}", previous, SENTINEL_MARKER
            )
            return SENTINEL_MARKER
        return advance_marker(previous, byte_len(result.data))

    if now.astimezone(timezone.utc).minute > grace_minutes:
        return result.marker
    return previous


# ---------------------------------------------------------------------------
# Stats
# ---------------------------------------------------------------------------


@dataclass(kw_only=True)
class TailStats:
    """Counters for one tail run (reported on exit)."""

    fetches: int = 0
    bytes_written: int = 0
    throttled: int = 0
    skipped_ranges: int = 0
    not_found: int = 0
    rotations: int = 0
    resets: int = 0


# ---------------------------------------------------------------------------
# Tail service
# ---------------------------------------------------------------------------


class TailService:
    """
    Polling state machine over a single log stream.

    It owns the `StreamPosition` and is the only thing that replaces it;
    everything remote goes through `ILogSegmentsProvider` and everything
    fetched goes to `ISink`.
    """

    def __init__(
        self,
        provider: ILogSegmentsProvider,
        directory: SegmentDirectory,
        sink: ISink,
        config: TailConfig,
        cancel: CancelToken,
        *,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._provider = provider
        self._directory = directory
        self._sink = sink
        self._config = config
        self._cancel = cancel
        self._clock = clock
        self.stats = TailStats()

    async def seed(self) -> StreamPosition:
        """Start at the most recently written matching file, probing its last line."""
        segment = await self._directory.latest(self._config.log_file)
        logger.info("Tailing {}", segment.name)
        return StreamPosition(segment=segment)

    async def run(self) -> None:
        """Tail until cancelled or a fatal error; always ends by raising."""
        position = await self.seed()
        try:
            while True:
                position = await self.step(position)
        finally:
            logger.bind(**vars(self.stats)).info("Tail stopped at {!r} in {}", position.marker, position.segment.name)

    async def _fetch(self, position: StreamPosition) -> FetchResult:
        if position.is_probe:
            # no marker yet: grab only the newest line instead of back-filling history
            return await self._provider.fetch_portion(
                self._directory.instance_id, position.segment.name, None, PROBE_NUM_LINES
            )
        return await self._provider.fetch_portion(
            self._directory.instance_id, position.segment.name, position.marker, self._config.num_lines
        )

    async def step(self, position: StreamPosition) -> StreamPosition:
        """Run one fetch cycle and return the position for the next one."""
        cfg = self._config
        self._cancel.raise_if_cancelled()

        try:
            result = await self._fetch(position)
        except RateLimited:
            self.stats.throttled += 1
            logger.info("AWS rate limit hit; sleeping for {}s", cfg.backoff_s)
            await self._cancel.sleep(cfg.backoff_s)
            return position
        except InaccessibleBinaryRange:
            self.stats.skipped_ranges += 1
            new_marker = position.advance(cfg.skip_bytes)
            logger.warning("Binary data at marker {}, skipping {} bytes", position.marker, cfg.skip_bytes)
            return position.with_marker(new_marker)
        except SegmentNotFound:
            self.stats.not_found += 1
            logger.info("{} not found, probably rotating; retrying in {}s", position.segment.name, cfg.not_found_wait_s)
            await self._cancel.sleep(cfg.not_found_wait_s)
            return position

        self.stats.fetches += 1
        if result.has_data:
            await self._sink.write(result.data)
            self.stats.bytes_written += byte_len(result.data)

        next_marker = get_next_marker(position.marker, result, self._clock(), grace_minutes=cfg.grace_minutes)
        caught_up = not result.more_pending or next_marker == SENTINEL_MARKER

        if caught_up:
            rotated = await self._check_rotation(position, result)
            if rotated is not None:
                return rotated

        logger.bind(
            prev_marker=position.marker,
            new_marker=next_marker,
            file=position.segment.name,
        ).debug("Got new marker")
        position = position.with_marker(next_marker)

        if caught_up:
            await self._cancel.sleep(cfg.poll_interval_s)
        return position

    # -- rotation -----------------------------------------------------------

    async def _check_rotation(self, position: StreamPosition, result: FetchResult) -> StreamPosition | None:
        """Return a replacement position when a rotation was detected, else None."""
        mode = self._config.rotation
        if mode is RotationMode.TIME:
            return await self._check_time_rotation(position)
        if mode is RotationMode.SIZE:
            return await self._check_size_rotation(position, result)
        return None

    async def _check_time_rotation(self, position: StreamPosition) -> StreamPosition | None:
        newest = await self._directory.latest(self._config.log_file, refresh=True)
        if newest.name == position.segment.name:
            return None
        logger.bind(old_file=position.segment.name, new_file=newest.name).info("Found newer file")
        self.stats.rotations += 1
        return StreamPosition(segment=newest)

    async def _check_size_rotation(self, position: StreamPosition, result: FetchResult) -> StreamPosition | None:
        echoed = result.has_data and result.marker == position.marker
        drained = not result.more_pending and not result.has_data
        if not (echoed or drained):
            return None

        latest = await self._directory.latest(self._config.log_file, refresh=True)
        if latest.name != position.segment.name:
            logger.bind(file=position.segment.name, latest=latest.name).info(
                "Rotation in progress; retrying in {}s", self._config.not_found_wait_s
            )
            await self._cancel.sleep(self._config.not_found_wait_s)
            return position

        if position.offset > latest.size:
            logger.bind(file=latest.name, offset=position.offset, size=latest.size).info(
                "Offset is past the end of the file; restarting from the top"
            )
            self.stats.resets += 1
            return StreamPosition(segment=latest, marker=SENTINEL_MARKER)
        return None
