from __future__ import annotations

__version__ = "0.1.0"

from .core.cancel import CancelToken
from .core.config import DownloadConfig, HoneycombConfig, RunConfig, TailConfig
from .core.errors import (
    Cancelled,
    InaccessibleBinaryRange,
    MalformedMarker,
    NoMatchingSegment,
    NoSegmentsAvailable,
    RateLimited,
    RdsTailError,
    RemoteUnavailable,
    SegmentNotFound,
)
from .core.models import FetchResult, LogSegment, RotationMode, SegmentPage, StreamPosition, advance_marker
from .core.use_cases.tail import get_next_marker

__all__ = [
    "__version__",
    "CancelToken",
    "DownloadConfig",
    "HoneycombConfig",
    "RunConfig",
    "TailConfig",
    "Cancelled",
    "InaccessibleBinaryRange",
    "MalformedMarker",
    "NoMatchingSegment",
    "NoSegmentsAvailable",
    "RateLimited",
    "RdsTailError",
    "RemoteUnavailable",
    "SegmentNotFound",
    "FetchResult",
    "LogSegment",
    "RotationMode",
    "SegmentPage",
    "StreamPosition",
    "advance_marker",
    "get_next_marker",
]
