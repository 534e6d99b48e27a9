from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from rdstail.constants import (
    BINARY_SKIP_BYTES,
    DEFAULT_HONEYCOMB_API_HOST,
    DEFAULT_NUM_LINES,
    NOT_FOUND_WAIT_S,
    POLL_INTERVAL_S,
    ROLLOVER_GRACE_MINUTES,
    THROTTLE_BACKOFF_S,
)
from rdstail.core.models import RotationMode


@dataclass(frozen=True)
class TailConfig:
    """Configuration for the tail loop."""

    instance_id: str
    log_file: str = ""  # name or prefix; empty matches every file
    num_lines: int = DEFAULT_NUM_LINES
    rotation: RotationMode = RotationMode.NONE
    backoff_s: float = THROTTLE_BACKOFF_S  # pause after a throttled request
    poll_interval_s: float = POLL_INTERVAL_S  # pause once caught up
    not_found_wait_s: float = NOT_FOUND_WAIT_S  # pause while a rotation settles
    skip_bytes: int = BINARY_SKIP_BYTES
    grace_minutes: int = ROLLOVER_GRACE_MINUTES


@dataclass(frozen=True)
class DownloadConfig:
    """Configuration for bulk downloads."""

    instance_id: str
    log_file: str = ""
    download_dir: Path = Path("./")


@dataclass(frozen=True)
class HoneycombConfig:
    """Configuration for the Honeycomb output sink."""

    writekey: str
    dataset: str
    api_host: str = DEFAULT_HONEYCOMB_API_HOST
    scrub_query: bool = False
    sample_rate: int = 1
    add_fields: dict[str, str] = field(default_factory=dict)
    batch_size: int = 500
    flush_interval_s: float = 0.1  # max age of a buffered event before it is sent
    timeout_s: int = 20


@dataclass(frozen=True)
class RunConfig:
    """Everything the command line resolves to (CLI layer)."""

    instance_id: str
    region: str = "us-east-1"
    db_type: str = "mysql"
    log_file: str = ""
    download: bool = False
    download_dir: Path = Path("./")
    num_lines: int = DEFAULT_NUM_LINES
    backoff_s: float = THROTTLE_BACKOFF_S
    rotation: str = "auto"  # "auto", "none", "time" or "size"
    output: str = "stdout"  # "stdout" or "honeycomb"
    honeycomb: HoneycombConfig | None = None
