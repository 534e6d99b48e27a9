from __future__ import annotations

import sys
from typing import TextIO


class StdoutSink:
    """Write chunks to stdout exactly as fetched."""

    def __init__(self, stream: TextIO | None = None) -> None:
        self._stream = stream

    @property
    def stream(self) -> TextIO:
        return self._stream or sys.stdout

    async def write(self, chunk: str) -> None:
        if not chunk:
            return
        self.stream.write(chunk)
        self.stream.flush()

    async def aclose(self) -> None:
        self.stream.flush()
