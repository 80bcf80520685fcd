"""
Pytest configuration and shared fixtures.
"""

import datetime as dt
import json
import os
import tempfile
from zoneinfo import ZoneInfo

# Keep settings away from the real ~/.config before donut is imported
os.environ.setdefault("DONUT_CONFIG_DIR", tempfile.mkdtemp(prefix="donut-test-"))
os.environ.setdefault("DONUT_TZ", "Asia/Tokyo")

import pytest

from donut.core.models import CalendarEvent, EventStatus
from donut.infra.token_store import TokenStore

TZ = ZoneInfo("Asia/Tokyo")


@pytest.fixture
def tz():
    return TZ


@pytest.fixture
def now():
    """Fixed 'current time' for deterministic checks."""
    return dt.datetime(2025, 11, 3, 9, 0, tzinfo=TZ)


@pytest.fixture
def make_event(now):
    def _make(summary="Standup", start_in=dt.timedelta(minutes=10),
              length=dt.timedelta(minutes=30), **kwargs):
        start = now + start_in
        return CalendarEvent(
            id=kwargs.pop("id", summary.lower().replace(" ", "-")),
            summary=summary,
            start=start,
            end=start + length,
            status=kwargs.pop("status", EventStatus.CONFIRMED),
            **kwargs,
        )
    return _make


@pytest.fixture
def token_store(tmp_path):
    return TokenStore(tmp_path / "secrets.json")


@pytest.fixture
def client_config():
    return {
        "installed": {
            "client_id": "client-123.apps.googleusercontent.com",
            "client_secret": "shh",
            "auth_uri": "https://accounts.google.com/o/oauth2/auth",
            "token_uri": "https://oauth2.googleapis.com/token",
            "redirect_uris": ["http://localhost"],
        }
    }


@pytest.fixture
def sample_items():
    """events.list items as Google returns them."""
    return [
        {
            "id": "later",
            "summary": "Design review",
            "status": "confirmed",
            "start": {"dateTime": "2025-11-03T14:00:00+09:00"},
            "end": {"dateTime": "2025-11-03T15:30:00+09:00"},
            "colorId": "11",
            "location": "Room 4",
        },
        {
            "id": "standup",
            "summary": "Standup",
            "start": {"dateTime": "2025-11-03T00:10:00Z"},
            "end": {"dateTime": "2025-11-03T00:40:00Z"},
        },
        {
            "id": "holiday",
            "summary": "Culture Day",
            "start": {"date": "2025-11-03"},
            "end": {"date": "2025-11-04"},
        },
        {
            "id": "untitled",
            "start": {"dateTime": "2025-11-03T10:00:00+09:00"},
            "end": {"dateTime": "2025-11-03T11:00:00+09:00"},
        },
        {
            "id": "cancelled",
            "summary": "Cancelled sync",
            "status": "cancelled",
            "start": {"dateTime": "2025-11-03T11:00:00+09:00"},
            "end": {"dateTime": "2025-11-03T12:00:00+09:00"},
        },
        {
            "id": "open-ended",
            "summary": "Lunch",
            "start": {"dateTime": "2025-11-03T12:00:00+09:00"},
        },
    ]


class FakeResponse:
    def __init__(self, status, payload):
        self.status = status
        self.headers = {"content-type": "application/json"}
        self.data = json.dumps(payload).encode("utf-8")


class FakeTransport:
    """Stands in for google.auth.transport.requests.Request."""

    def __init__(self, status=200, payload=None):
        self.status = status
        self.payload = payload if payload is not None else {
            "access_token": "access-refreshed",
            "expires_in": 3599,
            "token_type": "Bearer",
        }
        self.calls = []

    def __call__(self, url, method="GET", body=None, headers=None, timeout=None, **kwargs):
        self.calls.append({"url": url, "method": method, "body": body})
        return FakeResponse(self.status, self.payload)


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def make_transport():
    return FakeTransport
