"""Command line interface for drivestress.

Provides the ``single`` and ``multi`` stress commands plus ``show-config``.
Positional arguments follow the classic tool's lenient convention: an
invalid or non-positive value falls back to the default with a warning.
"""

from __future__ import annotations

import asyncio
import contextlib
import signal
from typing import Any, Callable

import click
from rich.console import Console
from rich.markup import escape

from drivestress.config.config import ConfigManager, init_config, set_config
from drivestress.core.base import StressLoop
from drivestress.core.cycle import SingleFileStressLoop
from drivestress.core.orchestrator import ConcurrentOrchestrator
from drivestress.models import MEGABYTE, Config, StressStats
from drivestress.utils.console_utils import (
    create_console,
    print_error,
    print_panel,
    print_table,
    print_warning,
)
from drivestress.utils.exceptions import ConfigurationError
from drivestress.utils.logging_config import get_logger
from drivestress.utils.shutdown import clear_shutdown, set_shutdown

logger = get_logger(__name__)


def parse_positive_int(
    raw: str | None,
    label: str,
    default: int,
    console: Console,
) -> int | None:
    """Parse a positional count, warning and returning ``default`` when invalid.

    None means the argument was omitted: keep the configured value.
    """
    if raw is None:
        return None
    try:
        value = int(raw)
    except ValueError:
        value = 0
    if value > 0:
        return value
    print_warning(f"Invalid {label} provided, using default: {default}", console)
    return default


def _stress_options(func: Callable[..., Any]) -> Callable[..., Any]:
    """Options shared by the stress commands."""
    options = [
        click.option("--chunk-kib", type=int, help="Chunk size in KiB (default 1024)"),
        click.option(
            "--target-dir",
            type=click.Path(file_okay=False),
            help="Directory for the test files",
        ),
        click.option(
            "--failure-delay",
            type=float,
            help="Pause in seconds after a failed iteration",
        ),
        click.option(
            "--iteration-delay",
            type=float,
            help="Pause in seconds between successful iterations",
        ),
        click.option(
            "--max-iterations",
            type=int,
            help="Stop after N iterations instead of running until interrupted",
        ),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def _load_config(ctx: click.Context, overrides: dict[str, Any]) -> Config:
    """Load file/env configuration, apply CLI overrides and set up logging."""
    obj = ctx.ensure_object(dict)
    try:
        manager: ConfigManager = init_config(obj.get("config_file"), configure_logging=False)
        manager.apply_overrides({**obj.get("overrides", {}), **overrides})
    except ConfigurationError as e:
        raise click.ClickException(e.message) from e
    set_config(manager.config)
    return manager.config


def _print_banner(title: str, rows: list[tuple[str, str]], console: Console) -> None:
    body = "\n".join(
        f"[bold]{label}:[/bold] {escape(str(value))}" for label, value in rows
    )
    print_panel(f"{body}\n\nPress Ctrl+C to stop.", title=title, console=console)


def _print_summary(stats: StressStats, console: Console) -> None:
    table = print_table(title="Stress test summary")
    table.add_column("Metric")
    table.add_column("Value", justify="right")
    table.add_row("Iterations", str(stats.iterations))
    table.add_row("Write failures", str(stats.write_failures))
    table.add_row("Verification failures", str(stats.verification_failures))
    table.add_row("Delete failures", str(stats.delete_failures))
    table.add_row("Files verified", str(stats.files_verified))
    table.add_row("Bytes written", f"{stats.bytes_written:,}")
    console.print(table)


async def _run_until_stopped(stress_loop: StressLoop) -> StressStats:
    loop = asyncio.get_running_loop()
    # SIGTERM finishes the current iteration; Ctrl+C interrupts immediately
    with contextlib.suppress(NotImplementedError, RuntimeError):
        loop.add_signal_handler(signal.SIGTERM, set_shutdown)
    return await stress_loop.run()


def _run_stress(stress_loop: StressLoop, console: Console) -> StressStats:
    clear_shutdown()
    try:
        stats = asyncio.run(_run_until_stopped(stress_loop))
    except KeyboardInterrupt:
        set_shutdown()
        stats = stress_loop.stats
        console.print("Stress test finished (interrupted).")
    logger.info("Stress test stopped after %d iterations", stats.iterations)
    _print_summary(stats, console)
    return stats


@click.group()
@click.option(
    "--config",
    "-c",
    "config_file",
    type=click.Path(exists=True, dir_okay=False),
    help="Path to drivestress.toml",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.option("--log-file", type=click.Path(dir_okay=False), help="Also log to this file")
@click.option("--structured-logs", is_flag=True, help="Emit JSON log lines")
@click.pass_context
def cli(ctx, config_file, verbose, log_file, structured_logs):
    """Write, sync, verify and delete pseudo-random files until interrupted."""
    ctx.ensure_object(dict)
    ctx.obj["config_file"] = config_file
    ctx.obj["overrides"] = {
        "observability.log_level": "DEBUG" if verbose else None,
        "observability.log_file": log_file,
        "observability.structured_logging": True if structured_logs else None,
    }


@cli.command()
@click.argument("size_mb", required=False)
@click.argument("filename", required=False)
@_stress_options
@click.pass_context
def single(ctx, size_mb, filename, **options):
    """Stress one file: SIZE_MB per iteration, written to FILENAME."""
    console = create_console()
    size = parse_positive_int(size_mb, "file size", 10, console)
    overrides = _stress_overrides(options)
    overrides["stress.file_size_mb"] = size
    overrides["stress.file_name"] = filename
    config = _load_config(ctx, overrides)
    stress = config.stress

    _print_banner(
        "Starting hard drive stress test",
        [
            ("Target file", str(stress.single_file_path())),
            ("File size per iteration", _format_size(stress.payload_size)),
            ("Buffer size", _format_size(stress.chunk_size)),
        ],
        console,
    )
    _run_stress(SingleFileStressLoop(stress), console)


@cli.command()
@click.argument("size_mb", required=False)
@click.argument("num_files", required=False)
@_stress_options
@click.pass_context
def multi(ctx, size_mb, num_files, **options):
    """Stress NUM_FILES concurrent files of SIZE_MB each per iteration."""
    console = create_console()
    size = parse_positive_int(size_mb, "file size", 10, console)
    count = parse_positive_int(num_files, "number of files", 2, console)
    overrides = _stress_overrides(options)
    overrides["stress.file_size_mb"] = size
    overrides["stress.num_files"] = count
    config = _load_config(ctx, overrides)
    stress = config.stress

    _print_banner(
        "Starting hard drive stress test",
        [
            ("Number of concurrent files", str(stress.num_files)),
            ("File size per file and iteration", _format_size(stress.payload_size)),
            ("Buffer size", _format_size(stress.chunk_size)),
            ("Target directory", stress.target_dir),
        ],
        console,
    )
    _run_stress(ConcurrentOrchestrator(stress), console)


@cli.command("show-config")
@click.option(
    "--format",
    "fmt",
    type=click.Choice(["toml", "json"]),
    default="toml",
    show_default=True,
)
@click.pass_context
def show_config(ctx, fmt):
    """Print the effective configuration."""
    obj = ctx.ensure_object(dict)
    try:
        manager = ConfigManager(obj.get("config_file"), configure_logging=False)
        manager.apply_overrides(obj.get("overrides", {}))
        click.echo(manager.export(fmt))
    except ConfigurationError as e:
        print_error(e.message, create_console())
        raise click.exceptions.Exit(1) from e


def _stress_overrides(options: dict[str, Any]) -> dict[str, Any]:
    return {
        "stress.chunk_size_kib": options.get("chunk_kib"),
        "stress.target_dir": options.get("target_dir"),
        "stress.failure_delay": options.get("failure_delay"),
        "stress.iteration_delay": options.get("iteration_delay"),
        "stress.max_iterations": options.get("max_iterations"),
    }


def _format_size(num_bytes: int) -> str:
    return f"{num_bytes / MEGABYTE:.2f} MB ({num_bytes} bytes)"


def main() -> None:
    """Console script entry point."""
    cli(obj={})
