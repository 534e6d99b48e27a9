"""Wiring of the RDS client, sinks and use cases.

This package provides:
- tail_logs / download_logs: CLI-level entry points
- run_tail / run_download: interface-only entry points
- resolve_rotation, validate_instance, build_sink helpers
"""

from rdstail.orchestration.orchestrator import (
    build_sink,
    download_logs,
    resolve_rotation,
    run_download,
    run_tail,
    tail_logs,
    validate_instance,
)

__all__ = [
    "build_sink",
    "download_logs",
    "resolve_rotation",
    "run_download",
    "run_tail",
    "tail_logs",
    "validate_instance",
]
