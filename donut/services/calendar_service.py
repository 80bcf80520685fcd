from __future__ import annotations

import datetime as dt
import json
import logging
import socket
from typing import Callable, Dict, List, Optional

import httplib2
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from donut.core.errors import CalendarAPIError, NetworkError
from donut.core.models import CalendarEvent, EventStatus
from donut.infra.google_http import BearerHttp
from donut.infra.settings import API_TIMEOUT, DEFAULT_TZ, MAX_RESULTS

logger = logging.getLogger(__name__)

DEFAULT_EVENT_LENGTH = dt.timedelta(hours=1)


def build_calendar_service(access_token: str, timeout: float = API_TIMEOUT):
    """Build a Google Calendar API resource object authorized with ``access_token``."""
    return build("calendar", "v3", http=BearerHttp(access_token, timeout), cache_discovery=False)


def _iso(dtobj: dt.datetime, tz=DEFAULT_TZ) -> str:
    # RFC3339 with offset, as events.list expects
    return dtobj.astimezone(tz).isoformat(timespec="seconds")


def day_range(target_date: dt.date, tz=DEFAULT_TZ) -> tuple[dt.datetime, dt.datetime]:
    """Half-open [00:00, next 00:00) window of a local day."""
    start = dt.datetime.combine(target_date, dt.time.min, tzinfo=tz)
    return start, start + dt.timedelta(days=1)


def today_and_tomorrow(now: dt.datetime, tz=DEFAULT_TZ) -> tuple[dt.datetime, dt.datetime]:
    """Start of today to the end of tomorrow: the window the countdown needs."""
    start, _ = day_range(now.astimezone(tz).date(), tz)
    return start, start + dt.timedelta(days=2)


def week_range(anchor_date: dt.date, tz=DEFAULT_TZ) -> tuple[dt.datetime, dt.datetime]:
    """Monday 00:00 to the following Monday 00:00."""
    monday = anchor_date - dt.timedelta(days=anchor_date.weekday())
    start = dt.datetime.combine(monday, dt.time.min, tzinfo=tz)
    return start, start + dt.timedelta(days=7)


def _parse_google_time(s: str, tz=DEFAULT_TZ) -> tuple[dt.datetime, bool]:
    """
    Parse a Google Calendar time string into (aware datetime, is_all_day).
    - dateTime: e.g. 2025-08-14T14:00:00+08:00 or ...Z
    - date:     e.g. 2025-08-14  (all-day; local 00:00, end date is exclusive)
    """
    if "T" in s:
        t = dt.datetime.fromisoformat(s.replace("Z", "+00:00"))
        if t.tzinfo is None:
            t = t.replace(tzinfo=tz)
        return t, False
    d = dt.date.fromisoformat(s)
    return dt.datetime.combine(d, dt.time.min, tzinfo=tz), True


def _raw_time(part: Optional[dict]) -> Optional[str]:
    part = part or {}
    return part.get("dateTime") or part.get("date")


def parse_event(item: Dict, tz=DEFAULT_TZ) -> Optional[CalendarEvent]:
    """Map one events.list item to a CalendarEvent; None for untitled or undated items."""
    summary = item.get("summary")
    if not summary:
        return None
    start_raw = _raw_time(item.get("start"))
    if not start_raw:
        return None
    try:
        start, all_day = _parse_google_time(start_raw, tz)
        end_raw = _raw_time(item.get("end"))
        end = _parse_google_time(end_raw, tz)[0] if end_raw else start + DEFAULT_EVENT_LENGTH
    except ValueError:
        logger.warning("Skipping event %s with unparseable times", item.get("id"))
        return None

    return CalendarEvent(
        id=item.get("id", ""),
        summary=summary,
        start=start,
        end=end,
        is_all_day=all_day,
        status=EventStatus.parse(item.get("status")),
        color_id=item.get("colorId"),
        calendar_id=item.get("calendarId", "primary"),
        location=item.get("location"),
        description=item.get("description"),
    )


def parse_events(items: List[Dict], tz=DEFAULT_TZ) -> List[CalendarEvent]:
    """Parse, drop cancelled, sort by start."""
    events = [e for e in (parse_event(i, tz) for i in items) if e is not None]
    return sorted((e for e in events if e.status != EventStatus.CANCELLED), key=lambda e: e.start)


class CalendarFetcher:
    """One events.list call per fetch. The caller hands in a fresh access token."""

    def __init__(self, service_factory: Callable[[str], object] = build_calendar_service,
                 calendar_id: str = "primary", max_results: int = MAX_RESULTS, tz=DEFAULT_TZ):
        self.service_factory = service_factory
        self.calendar_id = calendar_id
        self.max_results = max_results
        self.tz = tz

    def list_items(self, access_token: str, window_start: dt.datetime, window_end: dt.datetime) -> List[Dict]:
        service = self.service_factory(access_token)
        try:
            res = service.events().list(
                calendarId=self.calendar_id,
                timeMin=_iso(window_start, self.tz),
                timeMax=_iso(window_end, self.tz),
                singleEvents=True,
                orderBy="startTime",
                maxResults=self.max_results,
            ).execute()
        except HttpError as e:
            status = int(e.resp.status)
            logger.debug("events.list returned HTTP %d", status)
            raise CalendarAPIError(status) from e
        except json.JSONDecodeError as e:
            raise NetworkError(f"Malformed calendar response: {e}") from e
        except (httplib2.HttpLib2Error, socket.error) as e:
            raise NetworkError(f"Calendar request failed: {e}") from e

        if not isinstance(res, dict):
            raise NetworkError("Malformed calendar response: expected a JSON object")
        return res.get("items", [])

    def fetch_events(self, access_token: str, window_start: dt.datetime, window_end: dt.datetime) -> List[CalendarEvent]:
        items = self.list_items(access_token, window_start, window_end)
        events = parse_events(items, self.tz)
        logger.debug("Fetched %d items, kept %d events", len(items), len(events))
        return events


class CalendarManager:
    """Refreshes the token, fetches today and tomorrow, and keeps the last result."""

    def __init__(self, session_manager, fetcher: Optional[CalendarFetcher] = None,
                 clock: Callable[[], dt.datetime] = lambda: dt.datetime.now(DEFAULT_TZ), tz=DEFAULT_TZ):
        self.session_manager = session_manager
        self.fetcher = fetcher or CalendarFetcher(tz=tz)
        self.clock = clock
        self.tz = tz
        self.cached_events: List[CalendarEvent] = []
        self.last_fetch_time: Optional[dt.datetime] = None

    def fetch_events(self) -> List[CalendarEvent]:
        token = self.session_manager.valid_access_token()
        now = self.clock()
        start, end = today_and_tomorrow(now, self.tz)
        events = self.fetcher.fetch_events(token, start, end)
        self.cached_events = events
        self.last_fetch_time = now
        return events

    def fetch_range(self, start: dt.datetime, end: dt.datetime) -> List[CalendarEvent]:
        token = self.session_manager.valid_access_token()
        return self.fetcher.fetch_events(token, start, end)

    def clear_cache(self) -> None:
        self.cached_events = []
        self.last_fetch_time = None
