import asyncio
import datetime as dt
import json
import sys
from typing import List, Optional

import typer

from donut.core.countdown import CountdownEngine
from donut.core.dial import hour_ring, ring_scale
from donut.core.errors import DonutError
from donut.core.models import CalendarEvent
from donut.core.onboarding import get_calendar_manager
from donut.core.utils import parse_date, print_events_table
from donut.infra.settings import DEFAULT_TZ, TITLE_DISPLAY_WIDTH
from donut.services.calendar_service import (CalendarManager, day_range,
                                             week_range)
from donut.services.ticker import CountdownTicker

events_app = typer.Typer(help="Calendar queries")


def _now() -> dt.datetime:
    return dt.datetime.now(tz=DEFAULT_TZ)


def _fetch(calendar: CalendarManager, start: dt.datetime, end: dt.datetime) -> List[CalendarEvent]:
    try:
        return calendar.fetch_range(start, end)
    except DonutError as e:
        typer.secho(f"❌ {e.message}", fg=typer.colors.RED)
        raise typer.Exit(1)


def output_events_in_range(start: dt.datetime, end: dt.datetime, json_out: bool):
    """Helper function to fetch and print events in a given range."""
    events = _fetch(get_calendar_manager(), start, end)
    if json_out:
        typer.echo(json.dumps([e.to_dict() for e in events], ensure_ascii=False, indent=2))
    else:
        print_events_table(events, _now())


@events_app.command(name="today", help="List all events for today")
@events_app.command(name="t", hidden=True)  # alias
def today(json_out: bool = typer.Option(False, "--json", help="use JSON output")):
    output_events_in_range(*day_range(_now().date()), json_out)


@events_app.command(name="tomorrow", help="List all events for tomorrow")
@events_app.command(name="tmr", hidden=True)  # alias
def tomorrow(json_out: bool = typer.Option(False, "--json", help="use JSON output")):
    output_events_in_range(*day_range(_now().date() + dt.timedelta(days=1)), json_out)


@events_app.command(name="week", help="List all events for this week")
@events_app.command(name="w", hidden=True)  # alias
def week(json_out: bool = typer.Option(False, "--json", help="use JSON output")):
    output_events_in_range(*week_range(_now().date()), json_out)


@events_app.command("date", help="List all events for a specific date")
@events_app.command(name="d", hidden=True)  # alias
def date_cmd(
    date: str = typer.Argument(..., help="Date format: YYYY/MM/DD or YYYY-MM-DD"),
    json_out: bool = typer.Option(False, "--json", help="use JSON output"),
):
    try:
        target = parse_date(date)
    except ValueError as e:
        typer.secho("Invalid date format. Please use YYYY/MM/DD or YYYY-MM-DD", fg=typer.colors.RED)
        raise typer.Exit(1) from e
    output_events_in_range(*day_range(target), json_out)


@events_app.command(name="next", help="Print the countdown to the next event once")
def next_event(
    width: int = typer.Option(TITLE_DISPLAY_WIDTH, "--width", min=1, help="Title characters shown"),
    ascii_only: bool = typer.Option(False, "--ascii", help="Keep ASCII titles half-width"),
):
    calendar = get_calendar_manager()
    try:
        events = calendar.fetch_events()
    except DonutError as e:
        typer.secho(f"❌ {e.message}", fg=typer.colors.RED)
        raise typer.Exit(1)
    engine = CountdownEngine(width, full_width=not ascii_only, blank=" " if ascii_only else "　")
    engine.set_events(events, _now())
    typer.echo(engine.advance())
    if engine.next_event is not None:
        typer.echo(f"{engine.next_event.summary} ({engine.next_event.duration_label})")


@events_app.command(name="ring", help="Draw today as a 24-hour ring")
def ring(
    date: Optional[str] = typer.Argument(None, help="Date (defaults to today)"),
    offset: int = typer.Option(0, "--offset", min=0, max=23, help="Hour shown first on the ring"),
):
    now = _now()
    try:
        target = parse_date(date) if date else now.date()
    except ValueError as e:
        typer.secho("Invalid date format. Please use YYYY/MM/DD or YYYY-MM-DD", fg=typer.colors.RED)
        raise typer.Exit(1) from e
    events = _fetch(get_calendar_manager(), *day_range(target))
    typer.echo(hour_ring(events, target, now, DEFAULT_TZ, clock_offset=offset))
    typer.echo(ring_scale(offset))


@events_app.command(name="watch", help="Live countdown line (Ctrl-C to stop)")
def watch(
    width: int = typer.Option(TITLE_DISPLAY_WIDTH, "--width", min=1, help="Title characters shown"),
    duration: Optional[float] = typer.Option(None, "--duration", help="Stop after this many seconds"),
    ascii_only: bool = typer.Option(False, "--ascii", help="Keep ASCII titles half-width"),
):
    calendar = get_calendar_manager()

    def publish(text: str) -> None:
        line = text
        if engine.error_message:
            line = f"{text}  ({engine.error_message})"
        sys.stdout.write("\r\033[K" + line)
        sys.stdout.flush()

    engine = CountdownEngine(width, full_width=not ascii_only, blank=" " if ascii_only else "　", publish=publish)
    ticker = CountdownTicker(engine, calendar.fetch_events, clock=_now)
    try:
        asyncio.run(ticker.run(duration))
    except KeyboardInterrupt:
        pass
    finally:
        sys.stdout.write("\n")
