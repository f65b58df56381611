from __future__ import annotations

import asyncio
import logging
import time

from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table
import typer

from .config import Settings
from .errors import MissingFieldError, RateQuotaError
from .headers import HeaderNames
from .probe import ProbeSample, run_probe
from .rate_limit import LimiterState, RateLimiter


app = typer.Typer(help="Throttle requests from server-reported rate limit headers", no_args_is_help=True)
console = Console()


@app.callback()
def main(verbose: bool = typer.Option(False, "--verbose", "-v")) -> None:
    level = logging.DEBUG if verbose else Settings().log_level.upper()
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def _state_table(state: LimiterState, title: str) -> Table:
    table = Table(title=title)
    table.add_column("Metric")
    table.add_column("Value", justify="right")
    table.add_row("Limit", str(state.limit))
    table.add_row("Remaining", str(state.remaining))
    table.add_row("Reset at (epoch)", f"{state.reset_at:.0f}")
    table.add_row("Reset in (s)", f"{state.reset_in:.1f}")
    return table


def _parse_header_line(line: str) -> tuple[str, str]:
    name, sep, value = line.partition(":")
    if not sep or not name.strip():
        raise typer.BadParameter(f"Expected 'Name: value', got {line!r}")
    return name.strip(), value.strip()


@app.command()
def inspect(
    header: list[str] = typer.Option(..., "--header", "-H", help="Response header as 'Name: value'"),
    header_prefix: str = typer.Option("X-RateLimit", help="Prefix of the quota headers"),
    limit: int = typer.Option(0, min=0, help="Initial limit before the headers are applied"),
) -> None:
    """Apply response headers to a fresh limiter and print the resulting quota state."""

    metadata = dict(_parse_header_line(line) for line in header)
    limiter = RateLimiter(limit=limit, reset_at=time.time(), header_names=HeaderNames.with_prefix(header_prefix))
    try:
        limiter.update(metadata)
    except MissingFieldError as exc:
        console.print(f"[bold red]Error:[/bold red] {exc} (field: {exc.field})")
        raise typer.Exit(code=1) from exc

    console.print(_state_table(limiter.state(), "Quota State"))


@app.command()
def probe(
    url: str = typer.Argument(..., help="Absolute URL to request repeatedly"),
    count: int = typer.Option(5, min=1),
    initial_limit: int | None = typer.Option(None, min=0),
    window: float | None = typer.Option(None, min=0.0, help="Seconds until the initial quota resets"),
    header_prefix: str | None = typer.Option(None),
    strict_headers: bool = typer.Option(False, "--strict-headers/--lenient-headers"),
) -> None:
    """Send COUNT throttled GET requests and report how the quota evolved."""

    settings = Settings(strict_headers=strict_headers)
    if initial_limit is not None:
        settings.initial_limit = initial_limit
    if window is not None:
        settings.initial_window_seconds = window
    if header_prefix is not None:
        settings.header_prefix = header_prefix

    def sample_callback(sample: ProbeSample, total: int) -> None:
        console.print(
            f"[{sample.index}/{total}] status={sample.status_code} "
            f"remaining={sample.state.remaining}/{sample.state.limit} waited={sample.waited_seconds:.2f}s"
        )

    try:
        result = asyncio.run(run_probe(url=url, count=count, settings=settings, callback=sample_callback))
    except RateQuotaError as exc:
        console.print(f"[bold red]Error:[/bold red] {exc}")
        raise typer.Exit(code=1) from exc

    samples = Table(title=f"Probe: {result.url}")
    samples.add_column("#", justify="right")
    samples.add_column("Status", justify="right")
    samples.add_column("Waited (s)", justify="right")
    samples.add_column("Remaining", justify="right")
    samples.add_column("Limit", justify="right")
    samples.add_column("Reset in (s)", justify="right")
    for sample in result.samples:
        samples.add_row(
            str(sample.index),
            str(sample.status_code),
            f"{sample.waited_seconds:.2f}",
            str(sample.state.remaining),
            str(sample.state.limit),
            f"{sample.state.reset_in:.1f}",
        )
    console.print(samples)

    summary = Table(title="Probe Summary")
    summary.add_column("Metric")
    summary.add_column("Value", justify="right")
    summary.add_row("Requests", str(result.telemetry.total_requests))
    summary.add_row("Retries", str(result.telemetry.retries))
    summary.add_row("429 responses", str(result.telemetry.rate_limited))
    summary.add_row("Header errors", str(result.telemetry.header_errors))
    summary.add_row("Throttled (s)", f"{result.telemetry.throttled_seconds:.2f}")
    summary.add_row("Mean latency (ms)", f"{result.telemetry.mean_latency_ms:.1f}")
    console.print(summary)


if __name__ == "__main__":
    app()
