from __future__ import annotations

from datetime import date, datetime, timedelta
from itertools import combinations

import pytest

from alarm_clock.services.alarms import models, occurrence

MONDAY = date(2024, 1, 1)


def _make_alarm(
    time_local: str = "07:00",
    *,
    days: list | None = None,
    specific_date: date | None = None,
) -> models.AlarmDefinition:
    return models.AlarmDefinition(
        alarm_id="alarm-1",
        time=time_local,
        days=days or [],
        specific_date=specific_date,
    )


def test_one_shot_rings_today_when_time_is_ahead():
    alarm = _make_alarm("07:00")
    now = datetime(2024, 1, 1, 6, 59, 30)

    assert occurrence.next_occurrence(alarm, now) == datetime(2024, 1, 1, 7, 0)


def test_one_shot_rolls_to_tomorrow_once_time_has_passed():
    alarm = _make_alarm("07:00")

    assert occurrence.next_occurrence(alarm, datetime(2024, 1, 1, 7, 0)) == datetime(
        2024, 1, 2, 7, 0
    )
    assert occurrence.next_occurrence(alarm, datetime(2024, 1, 1, 23, 0)) == datetime(
        2024, 1, 2, 7, 0
    )


def test_one_shot_is_always_within_a_day_and_in_the_future():
    alarm = _make_alarm("13:45")
    now = datetime(2024, 1, 1, 0, 0, 15)
    for _ in range(0, 24 * 60, 7):
        result = occurrence.next_occurrence(alarm, now)
        assert now < result <= now + timedelta(days=1)
        now += timedelta(minutes=7)


def test_dated_alarm_in_the_future():
    alarm = _make_alarm("09:15", specific_date=date(2024, 3, 5))

    result = occurrence.next_occurrence(alarm, datetime(2024, 1, 1, 12, 0))

    assert result == datetime(2024, 3, 5, 9, 15)


@pytest.mark.parametrize(
    "now",
    [datetime(2024, 3, 5, 9, 15), datetime(2024, 3, 5, 10, 0), datetime(2024, 4, 1)],
)
def test_dated_alarm_in_the_past_never_fires_again(now):
    alarm = _make_alarm("09:15", specific_date=date(2024, 3, 5))

    assert occurrence.next_occurrence(alarm, now) is None


def test_specific_date_overrides_weekdays():
    alarm = _make_alarm("09:15", days=["monday"], specific_date=date(2024, 1, 3))

    assert alarm.recurrence is models.RecurrenceClass.DATED
    assert occurrence.next_occurrence(alarm, datetime(2024, 1, 1, 8, 0)) == datetime(
        2024, 1, 3, 9, 15
    )


def test_repeating_same_day_when_time_still_ahead():
    alarm = _make_alarm("08:00", days=["wednesday", "monday"])

    result = occurrence.next_occurrence(alarm, datetime(2024, 1, 1, 7, 0))

    assert result == datetime(2024, 1, 1, 8, 0)


def test_repeating_picks_the_nearest_selected_day():
    alarm = _make_alarm("08:00", days=["friday", "wednesday"])

    result = occurrence.next_occurrence(alarm, datetime(2024, 1, 1, 9, 0))

    assert result == datetime(2024, 1, 3, 8, 0)


def test_repeating_wraps_to_next_week_after_firing():
    alarm = _make_alarm("08:00", days=["monday"])

    assert occurrence.next_occurrence(alarm, datetime(2024, 1, 1, 8, 0)) == datetime(
        2024, 1, 8, 8, 0
    )
    assert occurrence.next_occurrence(alarm, datetime(2024, 1, 1, 8, 1)) == datetime(
        2024, 1, 8, 8, 0
    )


def test_repeating_wraps_across_the_week_boundary():
    alarm = _make_alarm("06:30", days=["tuesday"])

    result = occurrence.next_occurrence(alarm, datetime(2024, 1, 6, 12, 0))  # Saturday

    assert result == datetime(2024, 1, 9, 6, 30)


@pytest.mark.parametrize("size", [1, 2, 3])
def test_repeating_result_is_on_a_selected_day_and_never_repeats(size):
    now = datetime(2024, 1, 1, 12, 0)
    for days in combinations(list(models.WeekDay), size):
        alarm = _make_alarm("12:00", days=list(days))
        result = occurrence.next_occurrence(alarm, now)
        assert result > now
        assert result - now <= timedelta(days=7)
        assert occurrence.weekday_of(result.date()) in alarm.days
        following = occurrence.next_occurrence(alarm, result + timedelta(minutes=1))
        assert following != result
        assert following > result


def test_matches_now_for_the_whole_minute_only():
    alarm = _make_alarm("07:00")

    assert occurrence.matches_now(alarm, datetime(2024, 1, 1, 7, 0, 0))
    assert occurrence.matches_now(alarm, datetime(2024, 1, 1, 7, 0, 59))
    assert not occurrence.matches_now(alarm, datetime(2024, 1, 1, 6, 59, 59))
    assert not occurrence.matches_now(alarm, datetime(2024, 1, 1, 7, 1, 0))


def test_matches_now_respects_recurrence_class():
    one_shot = _make_alarm("07:00")
    weekly = _make_alarm("07:00", days=["tuesday"])
    dated = _make_alarm("07:00", specific_date=date(2024, 1, 2))
    monday = datetime(2024, 1, 1, 7, 0)
    tuesday = datetime(2024, 1, 2, 7, 0)

    assert occurrence.matches_now(one_shot, monday)
    assert occurrence.matches_now(one_shot, tuesday)
    assert not occurrence.matches_now(weekly, monday)
    assert occurrence.matches_now(weekly, tuesday)
    assert not occurrence.matches_now(dated, monday)
    assert occurrence.matches_now(dated, tuesday)
    assert not occurrence.matches_now(dated, datetime(2024, 1, 9, 7, 0))


def test_format_time_uses_twelve_hour_clock():
    assert occurrence.format_time("00:05") == "12:05 AM"
    assert occurrence.format_time("12:00") == "12:00 PM"
    assert occurrence.format_time("13:05") == "1:05 PM"


def test_format_countdown():
    now = datetime(2024, 1, 1, 7, 0)

    assert occurrence.format_countdown(now + timedelta(minutes=42), now) == "42m"
    assert occurrence.format_countdown(now + timedelta(hours=3, minutes=5), now) == "3h 5m"
    assert (
        occurrence.format_countdown(now + timedelta(days=2, hours=1, minutes=30), now)
        == "2d 1h 30m"
    )
    assert occurrence.format_countdown(now, now) == ""
    assert occurrence.format_countdown(None, now) == ""


def test_definition_validation():
    with pytest.raises(ValueError):
        _make_alarm("25:00")
    with pytest.raises(ValueError):
        models.AlarmDefinition(alarm_id="a", time="07:00", snooze_duration=0)
    with pytest.raises(ValueError):
        models.AlarmDefinition(alarm_id="", time="07:00")

    alarm = models.AlarmDefinition(
        alarm_id="a",
        time="7:05",
        label="x" * 40,
        days=["Monday", "funday", "monday", models.WeekDay.FRIDAY],
    )
    assert alarm.time == "07:05"
    assert len(alarm.label) == models.MAX_LABEL_LENGTH
    assert alarm.days == [models.WeekDay.MONDAY, models.WeekDay.FRIDAY]
