from __future__ import annotations

import datetime as dt
from typing import List

import typer
from tabulate import tabulate

from donut.core.models import CalendarEvent
from donut.infra.settings import DEFAULT_TZ


# ---- colours: one colour per row (multi-line safe) ----
class ANSI:
    RESET = "\033[0m"
    GRAY = "\033[90m"      # past
    GREEN = "\033[1;32m"   # ongoing
    WHITE = "\033[97m"     # upcoming


def colorize_multiline(text: str, color_code: str) -> str:
    """Apply the same colour to every line (not just the first)."""
    return "\n".join(f"{color_code}{line}{ANSI.RESET}" for line in (text.splitlines() or [""]))


def color_for_event(event: CalendarEvent, now: dt.datetime) -> str:
    if event.is_ongoing(now):
        return ANSI.GREEN
    if event.is_past(now):
        return ANSI.GRAY
    return ANSI.WHITE


def time_span_str(event: CalendarEvent, tz=DEFAULT_TZ) -> str:
    """Human readable span, handling single- and multi-day all-day events."""
    start, end = event.start.astimezone(tz), event.end.astimezone(tz)
    if event.is_all_day:
        disp_end = end - dt.timedelta(seconds=1)  # all-day end is exclusive (next 00:00)
        if disp_end.date() <= start.date():
            return f"{start.strftime('%Y/%m/%d')} (All Day)"
        return f"{start.strftime('%Y/%m/%d')} ~ {disp_end.strftime('%Y/%m/%d')}"
    return f"{start.strftime('%H:%M')} ~ {end.strftime('%H:%M')}"


def _legend_line() -> str:
    return "  ".join([
        f"{ANSI.GRAY}■{ANSI.RESET} Past",
        f"{ANSI.GREEN}■{ANSI.RESET} In Progress",
        f"{ANSI.WHITE}■{ANSI.RESET} Upcoming",
    ])


def print_events_table(events: List[CalendarEvent], now: dt.datetime) -> None:
    if not events:
        typer.echo("No events found.")
        return

    typer.echo(_legend_line())
    rows = []
    for ev in events:
        color = color_for_event(ev, now)
        rows.append([
            colorize_multiline(ev.summary, color),
            colorize_multiline(time_span_str(ev), color),
            colorize_multiline(ev.duration_label, color),
        ])
    typer.echo(tabulate(rows, headers=["Subject", "Time", "Length"], tablefmt="fancy_grid", disable_numparse=True))


def parse_date(s: str) -> dt.date:
    """Accept 'YYYY-MM-DD' or 'YYYY/MM/DD'."""
    s = s.strip()
    if "-" in s:
        return dt.date.fromisoformat(s)
    y, m, d = map(int, s.split("/"))
    return dt.date(y, m, d)
