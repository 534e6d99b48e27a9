import asyncio
import configparser
import signal
from pathlib import Path
from typing import Any

import click
from loguru import logger
from rich.console import Console
from rich.progress import (
    BarColumn,
    DownloadColumn,
    Progress,
    SpinnerColumn,
    TextColumn,
    TimeElapsedColumn,
)

from rdstail import __version__
from rdstail.constants import DEFAULT_HONEYCOMB_API_HOST, DEFAULT_NUM_LINES
from rdstail.core.cancel import CancelToken
from rdstail.core.config import HoneycombConfig, RunConfig
from rdstail.core.errors import Cancelled, RdsTailError
from rdstail.core.models import LogSegment
from rdstail.logging_config import setup_logging
from rdstail.orchestration.orchestrator import DB_TYPES, download_logs, tail_logs

# stdout carries the tailed log data, so everything human-facing goes to stderr
console = Console(stderr=True)

CONFIG_SECTION = "rdstail"

USAGE = """Stream a log file from Amazon RDS to STDOUT or to Honeycomb.

\b
  rdstail --identifier my-rds-instance

AWS credentials are required and can be provided via IAM roles, AWS shared
config (~/.aws/config), AWS shared credentials (~/.aws/credentials), or the
environment variables AWS_ACCESS_KEY_ID and AWS_SECRET_ACCESS_KEY.

Passing --download downloads every log file whose name starts with --log-file
into --download-dir instead of tailing. (For example, --log-file=foo.log
downloads foo.log as well as foo.log.0, foo.log.1, ... foo.log.23.)

With --output honeycomb, --writekey and --dataset are required; lines are sent
to Honeycomb as events instead of being printed. --scrub-query, --sample-rate
and --add-field only apply to honeycomb output.

Tailing runs until interrupted. SIGINT or SIGTERM stops it cleanly with exit
status 0; errors exit with status 1 (2 for bad options).
"""


def _load_config_file(ctx: click.Context, _param: click.Parameter, value: str | None) -> str | None:
    """Use an INI file's [rdstail] section as option defaults."""
    if not value:
        return value
    path = Path(value)
    if not path.is_file():
        raise click.BadParameter(f"config file {value} doesn't exist")
    parser = configparser.ConfigParser()
    parser.read(path)
    if parser.has_section(CONFIG_SECTION):
        defaults = {k.replace("-", "_"): v for k, v in parser.items(CONFIG_SECTION)}
        if "add_fields" in defaults:
            defaults["add_fields"] = defaults["add_fields"].split()
        ctx.default_map = {**(ctx.default_map or {}), **defaults}
    return value


def _write_default_config(ctx: click.Context, _param: click.Parameter, value: bool) -> None:
    if not value or ctx.resilient_parsing:
        return
    lines = [f"[{CONFIG_SECTION}]"]
    for param in ctx.command.params:
        if not isinstance(param, click.Option) or param.is_eager or param.name in ("debug",):
            continue
        if param.help:
            lines.append(f"; {param.help}")
        default = param.default
        if isinstance(default, (list, tuple)):
            default = " ".join(str(d) for d in default)
        lines.append(f"; {param.name} = {'' if default is None else default}")
        lines.append("")
    click.echo("\n".join(lines))
    ctx.exit(0)


def _parse_add_fields(values: tuple[str, ...]) -> dict[str, str]:
    fields: dict[str, str] = {}
    for item in values:
        key, sep, val = item.partition("=")
        if not sep or not key:
            raise click.BadParameter(f"expected key=value, got {item!r}", param_hint="--add-field")
        fields[key] = val
    return fields


def _install_signal_handlers(cancel: CancelToken) -> None:
    loop = asyncio.get_running_loop()

    def _on_signal(sig: signal.Signals) -> None:
        console.print(f'[yellow]Aborting! Caught signal "{sig.name}"[/]. Cleaning up...')
        cancel.cancel(f"signal {sig.name} triggered exit")

    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, _on_signal, sig)
        except NotImplementedError:
            # Windows event loops: fall back to KeyboardInterrupt
            logger.debug("Signal handlers unavailable on this platform")


async def _tail(config: RunConfig) -> None:
    cancel = CancelToken()
    _install_signal_handlers(cancel)
    await tail_logs(config, cancel)


async def _download(config: RunConfig) -> None:
    cancel = CancelToken()
    _install_signal_handlers(cancel)

    progress = Progress(
        SpinnerColumn(),
        TextColumn("[bold]{task.description}[/]"),
        BarColumn(),
        DownloadColumn(),
        TextColumn("•"),
        TimeElapsedColumn(),
        console=console,
        transient=False,
        expand=True,
    )
    tasks: dict[str, Any] = {}

    def on_progress(segment: LogSegment, written: int) -> None:
        if segment.name not in tasks:
            tasks[segment.name] = progress.add_task(segment.name, total=segment.size or None)
        progress.update(tasks[segment.name], completed=written)

    with progress:
        downloaded = await download_logs(config, cancel, on_progress=on_progress)

    for item in downloaded:
        console.print(f"[green]done[/]: {item.segment.name} → {item.path} ({item.bytes_written:,} bytes)")


@click.command(help=USAGE, context_settings={"help_option_names": ["-h", "--help"]})
@click.option("-c", "--config", "config_file", type=click.Path(dir_okay=False), is_eager=True,
              expose_value=False, callback=_load_config_file, help="INI config file with option defaults")
@click.option("--write-default-config", is_flag=True, is_eager=True, expose_value=False,
              callback=_write_default_config, help="Write a default config file to STDOUT and exit")
@click.version_option(__version__, "-v", "--version", message="Version: %(version)s")
@click.option("--region", default="us-east-1", show_default=True, help="AWS region to use")
@click.option("-i", "--identifier", default="", help="RDS instance identifier")
@click.option("--dbtype", type=click.Choice(DB_TYPES), default="mysql", show_default=True,
              help="RDS database type")
@click.option("-f", "--log-file", default="", help="RDS log file (or name prefix) to retrieve")
@click.option("-d", "--download", is_flag=True, help="Download old logs instead of tailing the current log")
@click.option("--download-dir", type=click.Path(file_okay=False, path_type=Path), default=Path("./"),
              show_default=True, help="Directory in to which log files are downloaded")
@click.option("--num-lines", type=click.IntRange(min=1), default=DEFAULT_NUM_LINES, show_default=True,
              help="Lines to request at a time; larger is more efficient, smaller allows longer lines")
@click.option("--backoff-timer", type=click.IntRange(min=0), default=5, show_default=True,
              help="Seconds to pause when rate limited by AWS")
@click.option("--rotation", type=click.Choice(["auto", "none", "time", "size"]), default="auto",
              show_default=True, help="How to follow log rotation while tailing")
@click.option("-o", "--output", type=click.Choice(["stdout", "honeycomb"]), default="stdout",
              show_default=True, help="Output for the logs")
@click.option("--writekey", default="", help="Team write key, when output is honeycomb")
@click.option("--dataset", default="", help="Name of the dataset, when output is honeycomb")
@click.option("--api-host", default=DEFAULT_HONEYCOMB_API_HOST, show_default=True,
              help="Hostname for the Honeycomb API server")
@click.option("--scrub-query", is_flag=True, help="Replace the query field with a one-way hash of its contents")
@click.option("--sample-rate", type=int, default=1, show_default=True, help="Only send 1 / N log lines")
@click.option("--add-field", "add_fields", multiple=True, help="Extra key=value field for every event; repeat")
@click.option("--debug", is_flag=True, help="Turn on debugging output")
def cli(
    region: str,
    identifier: str,
    dbtype: str,
    log_file: str,
    download: bool,
    download_dir: Path,
    num_lines: int,
    backoff_timer: int,
    rotation: str,
    output: str,
    writekey: str,
    dataset: str,
    api_host: str,
    scrub_query: bool,
    sample_rate: int,
    add_fields: tuple[str, ...],
    debug: bool,
) -> None:
    setup_logging(debug)

    honeycomb: HoneycombConfig | None = None
    if output == "honeycomb":
        if not writekey or not dataset:
            raise click.UsageError("writekey and dataset flags required when output is 'honeycomb'.")
        if sample_rate < 1:
            raise click.UsageError("Sample rate must be a positive integer.")
        honeycomb = HoneycombConfig(
            writekey=writekey,
            dataset=dataset,
            api_host=api_host,
            scrub_query=scrub_query,
            sample_rate=sample_rate,
            add_fields=_parse_add_fields(add_fields),
        )
        console.print("Sending output to Honeycomb")
    else:
        console.print("Sending output to STDOUT")

    config = RunConfig(
        instance_id=identifier,
        region=region,
        db_type=dbtype,
        log_file=log_file,
        download=download,
        download_dir=download_dir,
        num_lines=num_lines,
        backoff_s=float(backoff_timer),
        rotation=rotation,
        output=output,
        honeycomb=honeycomb,
    )

    try:
        if config.download:
            console.print("Running in download mode - downloading old logs")
            asyncio.run(_download(config))
        else:
            console.print("Running in tail mode - streaming logs from RDS")
            asyncio.run(_tail(config))
    except Cancelled as e:
        console.print(f"[yellow]stopped[/]: {e}")
        return
    except KeyboardInterrupt:
        console.print("[yellow]stopped[/]: interrupted")
        return
    except RdsTailError as e:
        raise click.ClickException(str(e)) from e
    console.print("OK")


def main() -> None:
    cli(prog_name="rdstail")


if __name__ == "__main__":
    main()
