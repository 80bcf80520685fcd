from __future__ import annotations

import datetime as dt
from dataclasses import dataclass
from enum import Enum
from typing import Optional


class EventStatus(str, Enum):
    CONFIRMED = "confirmed"
    TENTATIVE = "tentative"
    CANCELLED = "cancelled"

    @classmethod
    def parse(cls, raw: Optional[str]) -> "EventStatus":
        try:
            return cls(raw)
        except ValueError:
            return cls.CONFIRMED


# Google Calendar event palette (colorId -> name)
GOOGLE_COLORS = {
    "1": "Lavender",
    "2": "Sage",
    "3": "Grape",
    "4": "Flamingo",
    "5": "Banana",
    "6": "Tangerine",
    "7": "Peacock",
    "8": "Graphite",
    "9": "Blueberry",
    "10": "Basil",
    "11": "Tomato",
}


@dataclass(frozen=True)
class CalendarEvent:
    """One event as of the last fetch. Times are timezone-aware."""

    id: str
    summary: str
    start: dt.datetime
    end: dt.datetime
    is_all_day: bool = False
    status: EventStatus = EventStatus.CONFIRMED
    color_id: Optional[str] = None
    calendar_id: str = "primary"
    location: Optional[str] = None
    description: Optional[str] = None

    @property
    def duration(self) -> dt.timedelta:
        return self.end - self.start

    @property
    def duration_label(self) -> str:
        total = int(self.duration.total_seconds())
        hours, minutes = total // 3600, (total % 3600) // 60
        if hours > 0:
            return f"{hours}h {minutes}m" if minutes else f"{hours}h"
        return f"{minutes}m"

    @property
    def color_name(self) -> str:
        return GOOGLE_COLORS.get(self.color_id or "", "Default")

    def is_ongoing(self, now: dt.datetime) -> bool:
        return self.start <= now < self.end

    def is_past(self, now: dt.datetime) -> bool:
        return now >= self.end

    def is_upcoming(self, now: dt.datetime) -> bool:
        return now < self.start

    def time_until_start(self, now: dt.datetime) -> Optional[dt.timedelta]:
        """None while the event is ongoing or already over."""
        if self.is_ongoing(now) or self.is_past(now):
            return None
        return self.start - now

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "summary": self.summary,
            "start": self.start.isoformat(),
            "end": self.end.isoformat(),
            "is_all_day": self.is_all_day,
            "status": self.status.value,
            "color": self.color_name,
            "calendar_id": self.calendar_id,
            "location": self.location,
            "description": self.description,
        }
