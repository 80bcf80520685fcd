import datetime as dt

import pytest

from donut.core.dial import BUSY, FREE, NOW, angle_for_time, hour_ring, ring_scale


@pytest.mark.parametrize("hour, minute, offset, degrees", [
    (0, 0, 0, 0.0),
    (6, 0, 0, 90.0),
    (12, 30, 0, 187.5),
    (6, 0, 6, 0.0),
    (5, 0, 6, 345.0),
])
def test_angle_for_time(tz, hour, minute, offset, degrees):
    t = dt.datetime(2025, 11, 3, hour, minute, tzinfo=tz)
    assert angle_for_time(t, offset) == pytest.approx(degrees)


def _events(make_event):
    return [
        make_event("Standup", start_in=dt.timedelta(minutes=10)),              # 09:10-09:40 (now hour)
        make_event("Review", start_in=dt.timedelta(hours=5), length=dt.timedelta(minutes=90)),  # 14:00-15:30
        make_event("Holiday", start_in=dt.timedelta(hours=-9), length=dt.timedelta(days=1), is_all_day=True),
    ]


def test_hour_ring(make_event, now, tz):
    ring = hour_ring(_events(make_event), now.date(), now, tz)
    assert len(ring) == 24
    assert ring[9] == NOW
    assert ring[14] == BUSY and ring[15] == BUSY
    assert ring[16] == FREE and ring[0] == FREE
    assert ring_scale() == "0     6     12    18    "


def test_hour_ring_with_offset(make_event, now, tz):
    events = _events(make_event)
    base = hour_ring(events, now.date(), now, tz)
    ring = hour_ring(events, now.date(), now, tz, clock_offset=6)
    assert len(ring) == 24
    assert ring[3] == NOW
    assert ring[8] == BUSY and ring[9] == BUSY
    assert ring[18] == FREE  # midnight
    assert ring == base[6:] + base[:6]
    assert ring_scale(6) == "6     12    18    0     "
