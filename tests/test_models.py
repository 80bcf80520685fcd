import datetime as dt

import pytest

from donut.core.models import EventStatus

MIN = dt.timedelta(minutes=1)


@pytest.mark.parametrize("offset", [-60, -30, -1, 0, 1, 15, 29, 30, 31, 90])
def test_exactly_one_state_holds(make_event, now, offset):
    event = make_event(start_in=dt.timedelta(0), length=30 * MIN)
    at = now + offset * MIN
    states = [event.is_upcoming(at), event.is_ongoing(at), event.is_past(at)]
    assert states.count(True) == 1


def test_ongoing_window_is_half_open(make_event, now):
    event = make_event(start_in=dt.timedelta(0), length=30 * MIN)
    assert event.is_ongoing(now)
    assert not event.is_ongoing(event.end)
    assert event.is_past(event.end)


def test_time_until_start_only_for_upcoming(make_event, now):
    event = make_event(start_in=10 * MIN)
    assert event.time_until_start(now) == 10 * MIN
    assert event.time_until_start(event.start) is None
    assert event.time_until_start(event.end + MIN) is None


def test_duration_label(make_event):
    assert make_event(length=90 * MIN).duration_label == "1h 30m"
    assert make_event(length=120 * MIN).duration_label == "2h"
    assert make_event(length=45 * MIN).duration_label == "45m"


def test_color_name_and_status_parse(make_event):
    assert make_event(color_id="11").color_name == "Tomato"
    assert make_event(color_id="99").color_name == "Default"
    assert EventStatus.parse("tentative") is EventStatus.TENTATIVE
    assert EventStatus.parse(None) is EventStatus.CONFIRMED
    assert EventStatus.parse("weird") is EventStatus.CONFIRMED
