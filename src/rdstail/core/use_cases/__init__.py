"""Use cases: segment listing, tailing and bulk download."""

from rdstail.core.use_cases.directory import SegmentDirectory, select_by_prefix, select_latest
from rdstail.core.use_cases.download import DownloadService
from rdstail.core.use_cases.tail import TailService, TailStats, get_next_marker

__all__ = [
    "SegmentDirectory",
    "select_by_prefix",
    "select_latest",
    "DownloadService",
    "TailService",
    "TailStats",
    "get_next_marker",
]
