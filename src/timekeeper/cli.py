"""
CLI for ``timekeeper``: inspect the wall clock and watch aligned ticks.
"""

from __future__ import annotations

import asyncio
import json
import time

import typer
from rich.console import Console

from timekeeper.enums import ALIGN_EVENT_KIND, AlignMode, EventKind
from timekeeper.errors import ConfigurationError
from timekeeper.events import TickEvent, TimezoneChangeEvent
from timekeeper.formatting import TimeFormat, format_instant
from timekeeper.logging import configure_logging
from timekeeper.settings import ClockSettings
from timekeeper.timezones import localize_instant

app = typer.Typer(
    name="timekeeper",
    help="timekeeper: wall-clock aligned ticks with drift correction.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

console = Console()
err_console = Console(stderr=True)


def _version_callback(value: bool) -> None:
    if value:
        from timekeeper import __version__

        typer.echo(f"timekeeper {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(  # noqa: UP007
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
    log_level: str | None = typer.Option(None, "--log-level", help="Log level (default from settings)."),
) -> None:
    """timekeeper CLI: current time and live boundary ticks."""
    settings = ClockSettings()
    configure_logging(level=log_level or settings.log_level, json_format=settings.json_logs)


@app.command("now")
def now(
    timezone: str | None = typer.Option(None, "--timezone", "-z", help="IANA timezone."),
    pattern: TimeFormat = typer.Option(TimeFormat.ISO_LOCAL, "--format", "-f", help="Output pattern."),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Print the current wall-clock time in a timezone."""
    tz = timezone or ClockSettings().timezone
    try:
        zoned = localize_instant(time.time() * 1000, tz)
    except ConfigurationError as e:
        err_console.print(f"[bold red]{e.message}[/bold red]")
        raise typer.Exit(code=1) from e

    text = format_instant(zoned, pattern)
    if json_out:
        console.print_json(json.dumps({"timezone": tz, "time": text, "iso": zoned.isoformat()}))
    else:
        console.print(f"{text} [dim]{tz}[/dim]")


@app.command("watch")
def watch(
    timezone: str | None = typer.Option(None, "--timezone", "-z", help="IANA timezone."),
    align: AlignMode | None = typer.Option(None, "--align", "-a", help="none | second | minute"),
    count: int = typer.Option(0, "--count", "-n", min=0, help="Stop after N ticks (0 = run until Ctrl-C)."),
    drift_threshold_ms: float | None = typer.Option(None, "--drift-threshold-ms", min=0),
    visibility: bool = typer.Option(True, "--visibility/--no-visibility", help="Realign on SIGCONT."),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Print each aligned tick as it happens."""
    options = ClockSettings().model_dump()
    overrides = {
        "timezone": timezone,
        "align": align,
        "drift_threshold_ms": drift_threshold_ms,
    }
    options.update({k: v for k, v in overrides.items() if v is not None})
    options["visibility_aware"] = visibility and options["visibility_aware"]
    try:
        settings = ClockSettings(**options)
    except ValueError as e:
        err_console.print(f"[bold red]Invalid options:[/bold red] {e}")
        raise typer.Exit(code=1) from e

    try:
        seen = asyncio.run(_watch(settings, count, json_out))
    except KeyboardInterrupt:
        seen = None
    if json_out:
        return
    if seen is None:
        console.print("[dim]interrupted[/dim]")
    else:
        console.print(f"[dim]stopped after {seen} tick(s)[/dim]")


async def _watch(settings: ClockSettings, count: int, json_out: bool) -> int:
    from timekeeper.service import TimeKeeper

    done = asyncio.Event()
    seen = 0
    kind = ALIGN_EVENT_KIND[settings.align] or EventKind.HOUR

    def on_tick(event: TickEvent) -> None:
        nonlocal seen
        seen += 1
        if json_out:
            console.print_json(json.dumps(event.to_dict()))
        else:
            console.print(f"[green]{event.kind.value:>6}[/green] {event.zoned_instant.isoformat()}")
        if count and seen >= count:
            done.set()

    def on_timezone_change(event: TimezoneChangeEvent) -> None:
        console.print(f"[yellow]timezone[/yellow] {event.from_tz} → {event.to_tz} ({event.mode.value})")

    with TimeKeeper.from_settings(settings) as clock:
        clock.on(kind, on_tick)
        clock.on(EventKind.TIMEZONE_CHANGE, on_timezone_change)
        await done.wait()
    return seen


if __name__ == "__main__":
    app()
