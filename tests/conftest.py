from collections import deque
from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest

from rdstail.core.cancel import CancelToken
from rdstail.core.config import TailConfig
from rdstail.core.models import FetchResult, LogSegment, RotationMode, SegmentPage


class ScriptedProvider:
    """In-memory ILogSegmentsProvider replaying scripted responses.

    `fetches` items are FetchResult instances or exceptions to raise. Once
    the script runs out the provider cancels `cancel` (if given) and
    answers with an empty, caught-up response.
    """

    def __init__(
        self,
        pages: dict[str | None, SegmentPage] | None = None,
        fetches: list[FetchResult | Exception] | None = None,
        instances: list[str] | None = None,
        cancel: CancelToken | None = None,
    ) -> None:
        self.pages = pages or {None: SegmentPage()}
        self.fetches = deque(fetches or [])
        self.instances = ["db-1"] if instances is None else instances
        self.cancel = cancel
        self.list_calls: list[str | None] = []
        self.fetch_calls: list[tuple[str, str | None, int | None]] = []

    def set_segments(self, *segments: LogSegment) -> None:
        self.pages = {None: SegmentPage(segments=list(segments))}

    async def list_segments(self, instance_id: str, token: str | None = None) -> SegmentPage:
        self.list_calls.append(token)
        return self.pages[token]

    async def fetch_portion(self, instance_id, segment_name, marker=None, max_lines=None) -> FetchResult:
        self.fetch_calls.append((segment_name, marker, max_lines))
        if not self.fetches:
            if self.cancel is not None:
                self.cancel.cancel("script exhausted")
            return FetchResult(data=None, marker=marker, more_pending=False)
        item = self.fetches.popleft()
        if isinstance(item, Exception):
            raise item
        return item

    async def list_instances(self) -> list[str]:
        return list(self.instances)


class RecordingSink:
    def __init__(self) -> None:
        self.chunks: list[str] = []
        self.closed = False

    async def write(self, chunk: str) -> None:
        if chunk:
            self.chunks.append(chunk)

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture
def cancel() -> CancelToken:
    return CancelToken()


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def slow_log() -> LogSegment:
    return LogSegment(name="slowquery/mysql-slowquery.log", size=4096, last_written=1_474_959_300_000)


@pytest.fixture
def provider(slow_log: LogSegment, cancel: CancelToken) -> ScriptedProvider:
    p = ScriptedProvider(cancel=cancel)
    p.set_segments(slow_log)
    return p


@pytest.fixture
def tail_config() -> TailConfig:
    return TailConfig(
        instance_id="db-1",
        num_lines=100,
        rotation=RotationMode.NONE,
        backoff_s=0,
        poll_interval_s=0,
        not_found_wait_s=0,
    )


@pytest.fixture
def late_in_hour() -> datetime:
    return datetime(2010, 6, 21, 15, 12, 5, tzinfo=timezone.utc)


@pytest.fixture
def early_in_hour() -> datetime:
    return datetime(2010, 6, 21, 15, 3, 5, tzinfo=timezone.utc)


@pytest.fixture
def mock_provider():
    provider = AsyncMock()
    provider.list_instances = AsyncMock(return_value=["db-1"])
    provider.list_segments = AsyncMock(return_value=SegmentPage())
    provider.fetch_portion = AsyncMock(return_value=FetchResult())
    return provider
