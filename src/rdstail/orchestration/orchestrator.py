"""Orchestration: wire concrete clients and sinks to the use cases.

This module provides two layers:

1) `run_tail(...)` / `run_download(...)`:
   - Depend ONLY on interfaces (ILogSegmentsProvider, ISink).
   - Do NOT instantiate boto3 clients or sinks.
   - Do NOT manage lifecycle (closing sinks).

2) `tail_logs(...)` / `download_logs(...)`:
   - Build RDSLogsClient and the configured sink from a `RunConfig`.
   - Validate the instance, call the layer above and close the sink.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime
from pathlib import Path

from loguru import logger

from rdstail.clients.rds import RDSLogsClient
from rdstail.core.cancel import CancelToken
from rdstail.core.config import DownloadConfig, RunConfig, TailConfig
from rdstail.core.errors import ConfigurationError, InstanceNotFound, RdsTailError
from rdstail.core.interfaces import ILogSegmentsProvider, ISink
from rdstail.core.models import DownloadedSegment, RotationMode
from rdstail.core.use_cases.directory import SegmentDirectory
from rdstail.core.use_cases.download import DownloadService, ProgressCallback
from rdstail.core.use_cases.tail import TailService, utcnow
from rdstail.sinks.honeycomb import HoneycombSink
from rdstail.sinks.parsers import parser_for
from rdstail.sinks.stdout import StdoutSink

DB_TYPES = ("mysql", "postgresql")


def resolve_rotation(rotation: str, db_type: str, log_file: str = "") -> RotationMode:
    """Pick the rotation strategy; "auto" derives it from the database type and file.

    - audit logs rotate on size
    - postgres logs are dated (error/postgresql.log.YYYY-MM-DD-HH)
    - mysql logs keep a fixed name (slowquery/mysql-slowquery.log)
    """
    if rotation != "auto":
        try:
            return RotationMode(rotation)
        except ValueError as e:
            raise ConfigurationError(f"Unknown rotation value `{rotation}`") from e
    if log_file.startswith("audit/"):
        return RotationMode.SIZE
    if db_type == "postgresql":
        return RotationMode.TIME
    if db_type == "mysql":
        return RotationMode.NONE
    raise ConfigurationError(f"Unknown dbtype value `{db_type}`")


async def validate_instance(provider: ILogSegmentsProvider, instance_id: str) -> None:
    """Make sure `instance_id` names a reachable instance."""
    instances = await provider.list_instances()
    if not instances:
        raise RdsTailError(
            "The list of instances we got back from RDS is empty. Check the region and authentication?"
        )
    available = "\n\t".join(instances)
    if not instance_id:
        raise RdsTailError(
            f"No instance identifier specified. Available RDS instances:\n\t{available}\n"
            "Please specify an instance identifier using the --identifier flag"
        )
    if instance_id not in instances:
        raise InstanceNotFound(f"Instance identifier {instance_id} not found in list of instances:\n\t{available}")


def build_sink(config: RunConfig) -> ISink:
    """Create the output sink selected on the command line."""
    if config.output == "stdout":
        return StdoutSink()
    if config.output == "honeycomb":
        if config.honeycomb is None:
            raise ConfigurationError("writekey and dataset flags required when output is 'honeycomb'.")
        return HoneycombSink(config.honeycomb, parser_for(config.db_type))
    raise ConfigurationError("output target not recognized. use --help for usage info")


# ---------------------------------------------------------------------------
# 1) Interface-only layer
# ---------------------------------------------------------------------------


async def run_tail(
    *,
    provider: ILogSegmentsProvider,
    sink: ISink,
    config: TailConfig,
    cancel: CancelToken,
    clock: Callable[[], datetime] = utcnow,
) -> None:
    """Tail until cancelled or failed; always ends by raising."""
    directory = SegmentDirectory(provider, config.instance_id)
    service = TailService(provider, directory, sink, config, cancel, clock=clock)
    await service.run()


async def run_download(
    *,
    provider: ILogSegmentsProvider,
    config: DownloadConfig,
    cancel: CancelToken,
    on_progress: ProgressCallback | None = None,
) -> list[DownloadedSegment]:
    """Download every file matching `config.log_file` into `config.download_dir`."""
    directory = SegmentDirectory(provider, config.instance_id, cache=True)
    segments = await directory.matching(config.log_file)
    service = DownloadService(provider, config.instance_id, cancel, on_progress=on_progress)
    return await service.download_all(segments, Path(config.download_dir))


# ---------------------------------------------------------------------------
# 2) Concrete wiring
# ---------------------------------------------------------------------------


def tail_config_from(config: RunConfig) -> TailConfig:
    return TailConfig(
        instance_id=config.instance_id,
        log_file=config.log_file,
        num_lines=config.num_lines,
        rotation=resolve_rotation(config.rotation, config.db_type, config.log_file),
        backoff_s=config.backoff_s,
    )


async def tail_logs(
    config: RunConfig,
    cancel: CancelToken,
    *,
    provider: ILogSegmentsProvider | None = None,
    sink: ISink | None = None,
) -> None:
    """High-level tail entry point used by the CLI."""
    tail_config = tail_config_from(config)
    provider = provider or RDSLogsClient(config.region)
    await validate_instance(provider, config.instance_id)

    sink = sink or build_sink(config)
    try:
        await run_tail(provider=provider, sink=sink, config=tail_config, cancel=cancel)
    finally:
        await sink.aclose()
        logger.debug("Sink closed")


async def download_logs(
    config: RunConfig,
    cancel: CancelToken,
    *,
    provider: ILogSegmentsProvider | None = None,
    on_progress: ProgressCallback | None = None,
) -> list[DownloadedSegment]:
    """High-level download entry point used by the CLI."""
    provider = provider or RDSLogsClient(config.region)
    await validate_instance(provider, config.instance_id)
    return await run_download(
        provider=provider,
        config=DownloadConfig(
            instance_id=config.instance_id,
            log_file=config.log_file,
            download_dir=config.download_dir,
        ),
        cancel=cancel,
        on_progress=on_progress,
    )
