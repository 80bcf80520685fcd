import datetime as dt

import pytest

from donut.core.countdown import (FULL_WIDTH_SPACE, CountdownEngine,
                                  format_countdown, marquee_cycle_length,
                                  marquee_frame, marquee_frames,
                                  select_next_event, time_prefix,
                                  to_full_width)

MIN = dt.timedelta(minutes=1)


# ---- marquee ----
def test_marquee_example_sequence():
    frames = [marquee_frame("AAAAAAAA", t, 3, blank=" ") for t in range(10)]
    assert frames[:6] == ["AAA"] * 6
    assert frames[6:9] == ["AA ", "A  ", "   "]
    assert frames[9] == frames[0]


def test_marquee_cycle_is_length_plus_one():
    title = "Quarterly planning"
    frames = marquee_frames(title, 5, blank=" ")
    assert len(frames) == len(title) + 1 == marquee_cycle_length(title, 5)
    assert frames[-1] == " " * 5
    assert marquee_frame(title, len(title) + 1, 5, blank=" ") == frames[0]
    assert all(len(f) == 5 for f in frames)


def test_short_title_is_one_padded_frame():
    assert marquee_frames("Gym", 5) == ["Gym" + FULL_WIDTH_SPACE * 2]
    assert marquee_cycle_length("Gym", 5) == 1
    assert marquee_frame("Gym", 7, 5, blank=" ") == "Gym  "


def test_to_full_width():
    assert to_full_width("Ab1!") == "Ａｂ１！"
    assert to_full_width("a b") == "ａ" + FULL_WIDTH_SPACE + "ｂ"
    assert to_full_width("会議") == "会議"


# ---- prefix ----
def test_format_countdown_floors_to_minute():
    assert format_countdown(dt.timedelta(hours=2, minutes=5, seconds=59)) == "02:05"
    assert format_countdown(dt.timedelta(seconds=59)) == "00:00"


def test_prefix_example(make_event, now):
    event = make_event("Standup", start_in=10 * MIN, length=30 * MIN)
    assert time_prefix(event, now) == ("00:10 ", "countdown")


def test_prefix_ongoing_and_none(make_event, now):
    event = make_event(start_in=-5 * MIN)
    assert time_prefix(event, now) == ("ongoing ", "ongoing")
    assert time_prefix(None, now) == ("", "none")


def test_select_next_event_skips_past(make_event, now):
    past = make_event("Old", start_in=-60 * MIN, length=30 * MIN)
    ongoing = make_event("Now", start_in=-10 * MIN, length=30 * MIN)
    later = make_event("Later", start_in=60 * MIN)
    assert select_next_event([later, past, ongoing], now) is ongoing
    assert select_next_event([past], now) is None


# ---- engine ----
def test_engine_title_that_fits_does_not_scroll(make_event, now):
    published = []
    engine = CountdownEngine(7, full_width=False, blank=" ", publish=published.append)
    engine.set_events([make_event("Standup", start_in=10 * MIN)], now)
    assert engine.advance() == "00:10 Standup"
    assert engine.advance() == "00:10 Standup"
    assert published == ["00:10 Standup"] * 2


def test_engine_scrolls_long_title(make_event, now):
    engine = CountdownEngine(3, full_width=False, blank=" ")
    engine.set_events([make_event("ABCDE", start_in=10 * MIN)], now)
    frames = [engine.advance() for _ in range(7)]
    assert frames == [
        "00:10 ABC", "00:10 BCD", "00:10 CDE", "00:10 DE ",
        "00:10 E  ", "00:10    ", "00:10 ABC",
    ]


def test_engine_full_width_title(make_event, now):
    engine = CountdownEngine(5)
    engine.set_events([make_event("Gym", start_in=10 * MIN)], now)
    assert engine.advance() == "00:10 Ｇｙｍ" + FULL_WIDTH_SPACE * 2


def test_engine_no_events(now):
    engine = CountdownEngine(3)
    engine.set_events([], now)
    assert engine.advance() == "no events"
    assert engine.advance() == "no events"
    assert engine.scroll_index == 0


def test_scroll_resets_when_title_changes(make_event, now):
    engine = CountdownEngine(3, full_width=False, blank=" ")
    first = make_event("ABCDE", start_in=10 * MIN, length=10 * MIN)
    second = make_event("VWXYZ", start_in=30 * MIN)
    engine.set_events([first, second], now)
    engine.advance()
    engine.advance()
    assert engine.scroll_index == 2

    engine.recompute(now + 1 * MIN)  # same event, countdown ticks
    assert engine.scroll_index == 2

    engine.recompute(first.end)  # first is over, second takes over
    assert engine.next_event is second
    assert engine.scroll_index == 0


def test_scroll_resets_when_event_starts(make_event, now):
    engine = CountdownEngine(3, full_width=False, blank=" ")
    event = make_event("ABCDE", start_in=1 * MIN)
    engine.set_events([event], now)
    engine.advance()
    assert engine.scroll_index == 1
    engine.recompute(event.start)
    assert engine.prefix == "ongoing "
    assert engine.scroll_index == 0


def test_refetch_resets_scroll(make_event, now):
    engine = CountdownEngine(3, full_width=False, blank=" ")
    events = [make_event("ABCDE", start_in=10 * MIN)]
    engine.set_events(events, now)
    engine.advance()
    engine.set_events(events, now)
    assert engine.scroll_index == 0


def test_width_must_be_positive():
    with pytest.raises(ValueError):
        CountdownEngine(0)
