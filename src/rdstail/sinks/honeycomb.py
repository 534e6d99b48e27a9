"""Honeycomb output sink.

Chunks are split into lines, each line is parsed into a field set, and
events are posted in batches to the Honeycomb batch API. A batch goes out
when it is full or when its oldest event is `flush_interval_s` old. Send
failures are logged and dropped; the tail loop is never interrupted by them.
"""

from __future__ import annotations

import asyncio
import hashlib
import random
import time
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

import httpx
from loguru import logger

from rdstail.core.config import HoneycombConfig
from rdstail.core.interfaces import ILineParser

STATUS_UPDATE_INTERVAL_S = 60.0


def scrub(value: Any) -> str:
    """One-way hash of a field value (hex SHA-256)."""
    return hashlib.sha256(str(value).encode("utf-8")).hexdigest()


class HoneycombSink:
    """Parse-and-publish sink.

    Parameters
    ----------
    config : HoneycombConfig
        Write key, dataset, API host, sampling and scrubbing options.
    parser : ILineParser
        Turns one raw line into event fields.
    client : httpx.AsyncClient | None
        Injected HTTP client (tests use a MockTransport).
    """

    def __init__(
        self,
        config: HoneycombConfig,
        parser: ILineParser,
        *,
        client: httpx.AsyncClient | None = None,
        rng: random.Random | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if config.sample_rate < 1:
            raise ValueError("sample_rate must be a positive integer")
        self.config = config
        self.parser = parser
        self.client = client or httpx.AsyncClient(
            timeout=httpx.Timeout(config.timeout_s),
            headers={"User-Agent": "rdstail"},
        )
        self._rng = rng or random.Random()
        self._clock = clock
        self._buffer: list[dict[str, Any]] = []
        self._buffered_at: float | None = None
        self._timer: asyncio.Task[None] | None = None
        self.events_sent = 0
        self.events_failed = 0
        self._sent_since_update = 0
        self._last_update = clock()

    @property
    def batch_url(self) -> str:
        return f"{self.config.api_host.rstrip('/')}/1/batch/{self.config.dataset}"

    def _keep(self) -> bool:
        rate = self.config.sample_rate
        return rate == 1 or self._rng.randint(1, rate) == 1

    def build_event(self, fields: dict[str, Any]) -> dict[str, Any]:
        """Wrap parsed fields as one batch API event."""
        # static fields first so nothing parsed from the log gets overridden
        data: dict[str, Any] = dict(self.config.add_fields)
        data.update(fields)
        if self.config.scrub_query and "query" in data:
            data["query"] = scrub(data["query"])
        return {
            "time": datetime.now(timezone.utc).isoformat(),
            "samplerate": self.config.sample_rate,
            "data": data,
        }

    async def write(self, chunk: str) -> None:
        if not chunk:
            return
        for line in chunk.split("\n"):
            if not line:
                continue
            fields = self.parser.parse(line)
            if fields is None or not self._keep():
                continue
            if not self._buffer:
                self._buffered_at = self._clock()
            self._buffer.append(self.build_event(fields))
            if len(self._buffer) >= self.config.batch_size:
                await self.flush()

        if self._buffer and self._clock() - self._buffered_at >= self.config.flush_interval_s:
            await self.flush()
        if self._buffer:
            self._start_timer()

    def _start_timer(self) -> None:
        # sends a quiet stream's last events without waiting for the next write
        if self._timer is None or self._timer.done():
            self._timer = asyncio.get_running_loop().create_task(self._flush_later())

    async def _flush_later(self) -> None:
        await asyncio.sleep(self.config.flush_interval_s)
        await self.flush()

    async def flush(self) -> None:
        """Send everything buffered in one batch request."""
        if not self._buffer:
            return
        batch, self._buffer = self._buffer, []
        self._buffered_at = None
        try:
            r = await self.client.post(
                self.batch_url,
                json=batch,
                headers={"X-Honeycomb-Team": self.config.writekey},
            )
            r.raise_for_status()
            statuses = r.json() if r.content else []
            if not isinstance(statuses, list) or not all(isinstance(s, dict) for s in statuses):
                raise ValueError(f"unexpected batch response: {r.text[:200]!r}")
        except (httpx.HTTPError, ValueError) as e:
            self.events_failed += len(batch)
            logger.bind(error=str(e), events=len(batch)).error("Unexpected error sending events to Honeycomb")
            return

        rejected = [s for s in statuses if s.get("status") not in (200, 202)]
        if rejected:
            self.events_failed += len(rejected)
            logger.bind(rejected=len(rejected), first=rejected[0]).warning("Honeycomb rejected events")
        sent = len(batch) - len(rejected)
        self.events_sent += sent
        self._sent_since_update += sent
        self._status_update()

    def _status_update(self) -> None:
        # periodic proof of life for long-running tails
        now = self._clock()
        if now - self._last_update < STATUS_UPDATE_INTERVAL_S:
            return
        logger.bind(events_since_last_update=self._sent_since_update).info("status update")
        self._sent_since_update = 0
        self._last_update = now

    async def aclose(self) -> None:
        if self._timer is not None and not self._timer.done():
            self._timer.cancel()
            try:
                await self._timer
            except asyncio.CancelledError:
                pass
        await self.flush()
        await self.client.aclose()
