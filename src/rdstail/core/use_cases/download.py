from __future__ import annotations

from collections.abc import Callable, Sequence
from pathlib import Path

from loguru import logger

from rdstail.constants import SENTINEL_MARKER
from rdstail.core.cancel import CancelToken
from rdstail.core.interfaces import ILogSegmentsProvider
from rdstail.core.models import DownloadedSegment, LogSegment
from rdstail.storage.segment_file import SegmentFile

ProgressCallback = Callable[[LogSegment, int], None]


class DownloadService:
    """
    Bulk download of finite log files.

    The remote API only returns a bounded portion per call, so each file
    is paginated by hand: the marker from one response seeds the next
    request until the API stops reporting pending data. Files are
    processed strictly one after another.
    """

    def __init__(
        self,
        provider: ILogSegmentsProvider,
        instance_id: str,
        cancel: CancelToken,
        *,
        on_progress: ProgressCallback | None = None,
    ) -> None:
        self._provider = provider
        self._instance_id = instance_id
        self._cancel = cancel
        self._on_progress = on_progress

    async def download_all(self, segments: Sequence[LogSegment], download_dir: Path) -> list[DownloadedSegment]:
        """Download every segment into `download_dir`, keyed by base name."""
        logger.info("Downloading {} log file(s) to {}", len(segments), download_dir)
        downloaded: list[DownloadedSegment] = []
        for segment in segments:
            downloaded.append(await self.download(segment, Path(download_dir) / segment.basename))
        return downloaded

    async def download(self, segment: LogSegment, path: Path) -> DownloadedSegment:
        """Download one segment to `path`.

        On cancellation `Cancelled` is raised and the partial file is left
        in place.
        """
        out = SegmentFile(path)
        logger.info("Downloading {} to {}", segment.name, out.path)

        marker: str | None = SENTINEL_MARKER
        more_pending = True
        while more_pending:
            self._cancel.raise_if_cancelled()
            result = await self._provider.fetch_portion(self._instance_id, segment.name, marker)
            await out.append(result.data)
            if self._on_progress is not None:
                self._on_progress(segment, out.bytes_written)
            marker = result.marker
            more_pending = result.more_pending

        logger.bind(bytes=out.bytes_written).debug("Finished {}", segment.name)
        return DownloadedSegment(segment=segment, path=out.path, bytes_written=out.bytes_written)
