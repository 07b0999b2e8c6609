import asyncio

import click
from rich.console import Console

from nomadlogs.clients.nomad import NomadClient
from nomadlogs.core.config import ClientConfig, TailConfig, WatcherConfig
from nomadlogs.core.errors import NomadAPIError, TargetSpecError
from nomadlogs.core.models import LogLine
from nomadlogs.formatting import render_line
from nomadlogs.logs import setup_logging
from nomadlogs.orchestration.listing import fetch_rows, render_table, table_width
from nomadlogs.orchestration.tail import run_tail
from nomadlogs.orchestration.targets import parse_targets

console = Console(highlight=False, soft_wrap=True)

ADDR_HELP = "nomad address (e.g. http://127.0.0.1:4646); defaults to $NOMAD_ADDR"


def _make_client(addr: str) -> NomadClient:
    try:
        return NomadClient(ClientConfig.from_env(addr))
    except NomadAPIError as e:
        raise click.ClickException(f"could not create nomad client: {e}") from e


@click.group()
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default="WARNING",
    show_default=True,
    help="Level for diagnostics written to stderr",
)
@click.option("-v", "--verbose", is_flag=True, help="Shortcut for --log-level DEBUG")
def cli(log_level: str, verbose: bool) -> None:
    """nomadlogs: tail the logs of Nomad tasks across all their allocations."""
    setup_logging("DEBUG" if verbose else log_level)


@cli.command("ls")
@click.option("--addr", default="", help=ADDR_HELP)
def ls_cmd(addr: str) -> None:
    """List allocations and their tasks."""
    client = _make_client(addr)

    async def run():
        async with client:
            return await fetch_rows(client)

    try:
        rows = asyncio.run(run())
    except NomadAPIError as e:
        raise click.ClickException(f"could not get allocations: {e}") from e
    table = render_table(rows)
    if console.is_terminal:
        console.print(table)
    else:
        # piped output: size the table to its content instead of cropping to 80 columns
        Console(width=table_width(console, table), highlight=False).print(table)


@cli.command("tail")
@click.option("-n", "lines", default="10", show_default=True, help="last n lines of logs use +NUM to start at line NUM")
@click.option("-f", "follow", is_flag=True, help="follow logs")
@click.option("--addr", default="", help=ADDR_HELP)
@click.option("--json", "--raw", "raw", is_flag=True, help="Print raw log text instead of the formatted rendering")
@click.option("--poll-interval", type=float, default=5.0, show_default=True, help="Seconds between allocation polls")
@click.option("--buffer-size", type=click.IntRange(min=1), default=1000, show_default=True, help="Buffered lines per target")
@click.argument("targets", nargs=-1)
def tail_cmd(
    lines: str,
    follow: bool,
    addr: str,
    raw: bool,
    poll_interval: float,
    buffer_size: int,
    targets: tuple[str, ...],
) -> None:
    """Stream merged stdout/stderr of every running allocation of TARGETS (job:task or task)."""
    try:
        parsed = parse_targets(targets)
    except TargetSpecError as e:
        raise click.UsageError(str(e)) from e

    config = TailConfig(
        targets=parsed,
        raw=raw,
        lines=lines,
        follow=follow,
        watcher=WatcherConfig(poll_interval_s=poll_interval, buffer_size=buffer_size),
    )
    client = _make_client(addr)

    def emit(line: LogLine) -> None:
        click.echo(render_line(line, raw=config.raw))

    async def run() -> None:
        async with client:
            await run_tail(provider=client, targets=config.targets, emit=emit, config=config.watcher)

    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        raise SystemExit(130)


@cli.command("download")
def download_cmd() -> None:
    """Download logs (not implemented)."""
    click.echo("not implemented yet")
