from __future__ import annotations

from datetime import date, datetime, time, timedelta
from typing import Optional, Sequence

from alarm_clock.services.alarms import models

ALL_DAYS: Sequence[models.WeekDay] = tuple(models.WeekDay)
WORKDAYS: Sequence[models.WeekDay] = ALL_DAYS[:5]
WEEKEND: Sequence[models.WeekDay] = ALL_DAYS[5:]

_DAY_TO_INDEX = {day: idx for idx, day in enumerate(models.DAY_NAMES)}


def parse_time(value: str) -> time:
    return datetime.strptime(value, "%H:%M").time()


def weekday_of(value: date) -> models.WeekDay:
    return models.DAY_NAMES[value.weekday()]


def next_occurrence(
    alarm: models.AlarmDraft, now: Optional[datetime] = None
) -> Optional[datetime]:
    """Return the next trigger instant strictly after ``now``.

    Dated alarms whose date/time has passed return None. One-shot alarms ring
    today if the time is still ahead, otherwise tomorrow. Repeating alarms
    take the nearest selected weekday, wrapping to next week when the only
    candidate is today and the time has already passed.
    """
    now = now or datetime.now()
    alarm_time = parse_time(alarm.time)

    if alarm.recurrence is models.RecurrenceClass.DATED:
        candidate = datetime.combine(alarm.specific_date, alarm_time)
        return candidate if candidate > now else None

    if alarm.recurrence is models.RecurrenceClass.ONE_SHOT:
        candidate = datetime.combine(now.date(), alarm_time)
        if candidate <= now:
            candidate += timedelta(days=1)
        return candidate

    allowed_days = {_DAY_TO_INDEX[day] for day in alarm.days}
    for delta in range(0, 7):
        candidate_date = now.date() + timedelta(days=delta)
        if candidate_date.weekday() not in allowed_days:
            continue
        candidate = datetime.combine(candidate_date, alarm_time)
        if candidate > now:
            return candidate

    return datetime.combine(now.date() + timedelta(days=7), alarm_time)


def matches_now(alarm: models.AlarmDraft, now: datetime) -> bool:
    if now.hour != alarm.hour or now.minute != alarm.minute:
        return False
    recurrence = alarm.recurrence
    if recurrence is models.RecurrenceClass.DATED:
        return now.date() == alarm.specific_date
    if recurrence is models.RecurrenceClass.ONE_SHOT:
        return True
    return weekday_of(now.date()) in alarm.days


def format_time(value: str) -> str:
    """'13:05' -> '1:05 PM'"""
    parsed = parse_time(value)
    period = "PM" if parsed.hour >= 12 else "AM"
    hour = parsed.hour % 12 or 12
    return f"{hour}:{parsed.minute:02d} {period}"


def format_countdown(target: Optional[datetime], now: datetime) -> str:
    if target is None:
        return ""
    remaining = target - now
    if remaining <= timedelta(0):
        return ""
    total_minutes = int(remaining.total_seconds() // 60)
    days, rest = divmod(total_minutes, 24 * 60)
    hours, minutes = divmod(rest, 60)
    if days > 0:
        return f"{days}d {hours}h {minutes}m"
    if hours > 0:
        return f"{hours}h {minutes}m"
    return f"{minutes}m"
