"""Core data models, configuration, errors and use cases.

This package provides:
- Data models (LogSegment, StreamPosition, FetchResult, SegmentPage)
- Configuration classes (TailConfig, DownloadConfig, HoneycombConfig, RunConfig)
- The error taxonomy and the cancellation token
"""

from rdstail.core.cancel import CancelToken
from rdstail.core.config import DownloadConfig, HoneycombConfig, RunConfig, TailConfig
from rdstail.core.models import FetchResult, LogSegment, RotationMode, SegmentPage, StreamPosition

__all__ = [
    "CancelToken",
    "DownloadConfig",
    "HoneycombConfig",
    "RunConfig",
    "TailConfig",
    "FetchResult",
    "LogSegment",
    "RotationMode",
    "SegmentPage",
    "StreamPosition",
]
