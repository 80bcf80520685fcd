from __future__ import annotations

import datetime as dt
from typing import Iterable

from donut.core.models import CalendarEvent

BUSY = "█"
NOW = "▒"
FREE = "·"

DEGREES_PER_HOUR = 360.0 / 24.0


def angle_for_time(t: dt.datetime, clock_offset: int = 0) -> float:
    """Degrees clockwise from the top of a 24-hour dial whose top shows ``clock_offset`` o'clock."""
    fractional_hour = t.hour + t.minute / 60.0
    adjusted = (fractional_hour - clock_offset + 24) % 24
    return adjusted * DEGREES_PER_HOUR


def hour_ring(events: Iterable[CalendarEvent], day: dt.date, now: dt.datetime, tz,
              clock_offset: int = 0) -> str:
    """24 cells, one per hour of ``day``, starting at ``clock_offset`` o'clock.

    A cell is busy if any timed event overlaps the hour.
    """
    cells = [FREE] * 24
    timed = [e for e in events if not e.is_all_day]
    for hour in range(24):
        slot_start = dt.datetime.combine(day, dt.time(hour), tzinfo=tz)
        slot_end = slot_start + dt.timedelta(hours=1)
        index = int(angle_for_time(slot_start, clock_offset) // DEGREES_PER_HOUR)
        if slot_start <= now < slot_end:
            cells[index] = NOW
        elif any(e.start < slot_end and e.end > slot_start for e in timed):
            cells[index] = BUSY
    return "".join(cells)


def ring_scale(clock_offset: int = 0) -> str:
    """Hour labels aligned under ``hour_ring`` (every sixth hour)."""
    return "".join(f"{(clock_offset + h) % 24:<6d}" for h in range(0, 24, 6))
