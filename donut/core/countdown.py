# donut/core/countdown.py
"""Countdown text and marquee frames for the one-line event display.

The display is ``prefix + frame``: ``prefix`` is either ``HH:MM `` until the
next event starts or an "ongoing" marker, and ``frame`` is a fixed-width window
over the event title that scrolls when the title does not fit.
"""
from __future__ import annotations

import datetime as dt
import logging
from typing import Callable, Iterable, List, Optional

from donut.core.models import CalendarEvent

logger = logging.getLogger(__name__)

FULL_WIDTH_SPACE = "　"
NO_EVENTS = "no events"
ONGOING = "ongoing"

PREFIX_NONE = "none"
PREFIX_COUNTDOWN = "countdown"
PREFIX_ONGOING = "ongoing"


def select_next_event(events: Iterable[CalendarEvent], now: dt.datetime) -> Optional[CalendarEvent]:
    """The ongoing or soonest upcoming event, or None."""
    remaining = sorted((e for e in events if not e.is_past(now)), key=lambda e: e.start)
    return remaining[0] if remaining else None


def format_countdown(delta: dt.timedelta) -> str:
    """``HH:MM`` floored to the minute; anything under a minute is ``00:00``."""
    seconds = max(int(delta.total_seconds()), 0)
    hours, minutes = seconds // 3600, (seconds % 3600) // 60
    return f"{hours:02d}:{minutes:02d}"


def time_prefix(event: Optional[CalendarEvent], now: dt.datetime, ongoing: str = ONGOING) -> tuple[str, str]:
    """Return (prefix text, prefix kind) for ``event`` at ``now``."""
    if event is None:
        return "", PREFIX_NONE
    if event.is_ongoing(now):
        return f"{ongoing} ", PREFIX_ONGOING
    delta = event.time_until_start(now)
    if delta is None:
        return "", PREFIX_NONE
    return f"{format_countdown(delta)} ", PREFIX_COUNTDOWN


def to_full_width(text: str) -> str:
    """Map printable ASCII to its full-width form so every glyph is double width."""
    out = []
    for ch in text:
        code = ord(ch)
        if 0x21 <= code <= 0x7E:
            out.append(chr(code - 0x21 + 0xFF01))
        elif ch == " ":
            out.append(FULL_WIDTH_SPACE)
        else:
            out.append(ch)
    return "".join(out)


def marquee_cycle_length(text: str, width: int) -> int:
    return 1 if len(text) <= width else len(text) + 1


def marquee_frame(text: str, index: int, width: int, blank: str = FULL_WIDTH_SPACE) -> str:
    """Frame ``index`` of the marquee over ``text``.

    Titles that fit are shown as-is, padded to ``width``. Longer titles slide
    left one character per frame; the last frame of each cycle is all blank.
    """
    length = len(text)
    if length <= width:
        return text + blank * (width - length)
    offset = index % (length + 1)
    shown = text[offset:offset + min(width, length - offset)]
    return shown + blank * (width - len(shown))


def marquee_frames(text: str, width: int, blank: str = FULL_WIDTH_SPACE) -> List[str]:
    return [marquee_frame(text, i, width, blank) for i in range(marquee_cycle_length(text, width))]


class CountdownEngine:
    """Display state for the countdown line.

    ``set_events`` runs after each refetch, ``recompute`` on the 1 s tick and
    ``advance`` on the scroll tick. ``advance`` publishes every composed string.
    """

    def __init__(
        self,
        width: int = 5,
        *,
        blank: str = FULL_WIDTH_SPACE,
        no_events: str = NO_EVENTS,
        ongoing: str = ONGOING,
        full_width: bool = True,
        publish: Optional[Callable[[str], None]] = None,
    ):
        if width < 1:
            raise ValueError("width must be at least 1")
        self.width = width
        self.blank = blank
        self.no_events = no_events
        self.ongoing = ongoing
        self.full_width = full_width
        self.publish = publish

        self.events: List[CalendarEvent] = []
        self.next_event: Optional[CalendarEvent] = None
        self.prefix = ""
        self.prefix_kind = PREFIX_NONE
        self.event_name = no_events
        self.scroll_index = 0
        self.display_text = no_events
        self.error_message: Optional[str] = None

    def set_events(self, events: Iterable[CalendarEvent], now: dt.datetime) -> None:
        self.events = list(events)
        self.next_event = select_next_event(self.events, now)
        self.recompute(now)
        self.reset_scroll()
        self.error_message = None
        logger.debug("Events refreshed (%d), scroll reset", len(self.events))

    def set_error(self, message: str) -> None:
        self.error_message = message

    def reset_scroll(self) -> None:
        self.scroll_index = 0

    def recompute(self, now: dt.datetime) -> None:
        previous = (self.event_name, self.prefix_kind)

        event = self.next_event
        if event is not None and event.is_past(now):
            event = self.next_event = select_next_event(self.events, now)

        self.prefix, self.prefix_kind = time_prefix(event, now, self.ongoing)
        self.event_name = event.summary if self.prefix_kind != PREFIX_NONE else self.no_events

        if (self.event_name, self.prefix_kind) != previous:
            self.reset_scroll()

    def _title(self) -> str:
        return to_full_width(self.event_name) if self.full_width else self.event_name

    def frame(self) -> str:
        if self.prefix_kind == PREFIX_NONE:
            return self.no_events
        return self.prefix + marquee_frame(self._title(), self.scroll_index, self.width, self.blank)

    def advance(self) -> str:
        """Compose and publish the current frame, then step the scroll index."""
        text = self.frame()
        self.display_text = text
        if self.publish is not None:
            self.publish(text)
        if self.prefix_kind == PREFIX_NONE:
            self.reset_scroll()
        else:
            self.scroll_index = (self.scroll_index + 1) % marquee_cycle_length(self._title(), self.width)
        return text
