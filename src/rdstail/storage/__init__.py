"""Local storage for downloaded log files.

This package provides:
- SegmentFile: append-with-fsync writer for one downloaded log file
"""

from rdstail.storage.segment_file import SegmentFile

__all__ = [
    "SegmentFile",
]
