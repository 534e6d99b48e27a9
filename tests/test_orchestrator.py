from pathlib import Path
from unittest.mock import AsyncMock

import pytest

from rdstail.core.cancel import CancelToken
from rdstail.core.config import HoneycombConfig, RunConfig
from rdstail.core.errors import Cancelled, ConfigurationError, InstanceNotFound, RdsTailError
from rdstail.core.models import FetchResult, LogSegment, RotationMode
from rdstail.orchestration.orchestrator import (
    build_sink,
    download_logs,
    resolve_rotation,
    tail_config_from,
    tail_logs,
    validate_instance,
)
from rdstail.sinks import HoneycombSink, StdoutSink

from conftest import RecordingSink, ScriptedProvider


@pytest.mark.parametrize(
    "rotation, db_type, log_file, expected",
    [
        ("auto", "mysql", "slowquery/mysql-slowquery.log", RotationMode.NONE),
        ("auto", "postgresql", "error/postgresql.log", RotationMode.TIME),
        ("auto", "mysql", "audit/server_audit.log", RotationMode.SIZE),
        ("time", "mysql", "", RotationMode.TIME),
        ("none", "postgresql", "", RotationMode.NONE),
    ],
)
def test_resolve_rotation(rotation: str, db_type: str, log_file: str, expected: RotationMode) -> None:
    assert resolve_rotation(rotation, db_type, log_file) is expected


def test_resolve_rotation_rejects_unknown_values() -> None:
    with pytest.raises(ConfigurationError):
        resolve_rotation("hourly", "mysql")
    with pytest.raises(ConfigurationError):
        resolve_rotation("auto", "oracle")


@pytest.mark.asyncio
async def test_validate_instance(mock_provider) -> None:
    await validate_instance(mock_provider, "db-1")

    with pytest.raises(InstanceNotFound):
        await validate_instance(mock_provider, "db-2")

    with pytest.raises(RdsTailError) as exc:
        await validate_instance(mock_provider, "")
    assert "db-1" in str(exc.value)

    mock_provider.list_instances = AsyncMock(return_value=[])
    with pytest.raises(RdsTailError):
        await validate_instance(mock_provider, "db-1")


def test_build_sink() -> None:
    assert isinstance(build_sink(RunConfig(instance_id="db-1")), StdoutSink)

    hc = RunConfig(
        instance_id="db-1",
        output="honeycomb",
        honeycomb=HoneycombConfig(writekey="wk", dataset="rds"),
    )
    assert isinstance(build_sink(hc), HoneycombSink)

    with pytest.raises(ConfigurationError):
        build_sink(RunConfig(instance_id="db-1", output="honeycomb"))
    with pytest.raises(ConfigurationError):
        build_sink(RunConfig(instance_id="db-1", output="kafka"))


def test_tail_config_from_run_config() -> None:
    cfg = tail_config_from(
        RunConfig(instance_id="db-1", db_type="postgresql", log_file="error/", num_lines=50, backoff_s=1.5)
    )
    assert cfg.rotation is RotationMode.TIME
    assert cfg.num_lines == 50
    assert cfg.backoff_s == 1.5
    assert cfg.log_file == "error/"


@pytest.mark.asyncio
async def test_tail_logs_closes_sink_on_cancel(cancel: CancelToken, slow_log: LogSegment) -> None:
    provider = ScriptedProvider(fetches=[FetchResult(data="last line\n", marker="3:100", more_pending=False)])
    provider.set_segments(slow_log)

    class CancellingSink(RecordingSink):
        async def write(self, chunk: str) -> None:
            await super().write(chunk)
            cancel.cancel()

    sink = CancellingSink()

    with pytest.raises(Cancelled):
        await tail_logs(RunConfig(instance_id="db-1"), cancel, provider=provider, sink=sink)

    assert sink.closed
    assert sink.chunks == ["last line\n"]
    assert provider.fetch_calls == [(slow_log.name, None, 1)]


@pytest.mark.asyncio
async def test_tail_logs_validates_before_fetching(cancel: CancelToken) -> None:
    provider = ScriptedProvider(instances=["other"])
    sink = RecordingSink()

    with pytest.raises(InstanceNotFound):
        await tail_logs(RunConfig(instance_id="db-1"), cancel, provider=provider, sink=sink)

    assert provider.fetch_calls == []
    assert not sink.closed


@pytest.mark.asyncio
async def test_download_logs_writes_into_download_dir(tmp_path: Path) -> None:
    provider = ScriptedProvider(fetches=[FetchResult(data="x\n", marker="1:2", more_pending=False)])
    provider.set_segments(LogSegment("error/mysql-error.log", size=2, last_written=1))

    downloaded = await download_logs(
        RunConfig(instance_id="db-1", log_file="error/", download=True, download_dir=tmp_path),
        CancelToken(),
        provider=provider,
    )

    assert [d.path for d in downloaded] == [tmp_path / "mysql-error.log"]
    assert (tmp_path / "mysql-error.log").read_text() == "x\n"
