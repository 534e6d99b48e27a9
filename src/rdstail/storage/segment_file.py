from __future__ import annotations

import asyncio
import os
from pathlib import Path


class SegmentFile:
    """Local copy of a remote log file, appended chunk by chunk.

    Every append is flushed and fsynced so an interrupted download leaves
    a valid prefix of the remote file on disk.
    """

    def __init__(self, path: Path) -> None:
        """Create (or truncate) the file at `path`, making parent directories.

        Args:
            path: Destination file path
        """
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        open(self.path, "w").close()
        self.bytes_written = 0
        self._lock = asyncio.Lock()

    async def append(self, chunk: str | None) -> int:
        """Append a chunk and return the number of bytes written."""
        if not chunk:
            return 0
        data = chunk.encode("utf-8")
        async with self._lock:
            await asyncio.to_thread(self._write, self.path, data)
        self.bytes_written += len(data)
        return len(data)

    @staticmethod
    def _write(path: Path, data: bytes) -> None:
        with open(path, "ab") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
