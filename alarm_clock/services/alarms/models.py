from __future__ import annotations

import copy
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence

from alarm_clock.services.logging import setup_logging

TAG = __name__
logger = setup_logging()

MAX_LABEL_LENGTH = 30


class WeekDay(str, Enum):
    MONDAY = "monday"
    TUESDAY = "tuesday"
    WEDNESDAY = "wednesday"
    THURSDAY = "thursday"
    FRIDAY = "friday"
    SATURDAY = "saturday"
    SUNDAY = "sunday"


# Indexed by date.weekday()
DAY_NAMES: Sequence[WeekDay] = tuple(WeekDay)


class Difficulty(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class RecurrenceClass(str, Enum):
    DATED = "dated"
    REPEATING = "repeating"
    ONE_SHOT = "one_shot"


def validate_time(value: str) -> str:
    try:
        parsed = datetime.strptime(value, "%H:%M")
    except (TypeError, ValueError):
        raise ValueError(f"Alarm time must be HH:MM, got {value!r}")
    return parsed.strftime("%H:%M")


def normalize_days(days) -> List[WeekDay]:
    if days is None:
        return []
    if isinstance(days, (str, bytes)) or not isinstance(days, (list, tuple)):
        raise TypeError(f"Alarm days must be a list of day names, got {days!r}")
    normalized: List[WeekDay] = []
    for day in days:
        try:
            weekday = WeekDay(str(getattr(day, "value", day)).lower())
        except ValueError:
            logger.bind(tag=TAG).warning(f"Invalid alarm day '{day}' encountered; dropping")
            continue
        if weekday not in normalized:
            normalized.append(weekday)
    return normalized


@dataclass
class AlarmDraft:
    """Alarm settings as entered by the user, before an id is assigned."""

    time: str
    enabled: bool = True
    label: str = ""
    days: List[WeekDay] = field(default_factory=list)
    specific_date: Optional[date] = None
    tone: str = "default"
    snooze_enabled: bool = True
    snooze_duration: int = 5
    math_challenge_enabled: bool = False
    math_challenge_difficulty: Difficulty = Difficulty.EASY

    def __post_init__(self):
        self.time = validate_time(self.time)
        self.days = normalize_days(self.days)
        self.label = self.label or ""
        if len(self.label) > MAX_LABEL_LENGTH:
            logger.bind(tag=TAG).warning(
                f"Alarm label longer than {MAX_LABEL_LENGTH} characters; truncating"
            )
            self.label = self.label[:MAX_LABEL_LENGTH]
        if isinstance(self.specific_date, datetime):
            self.specific_date = self.specific_date.date()
        if int(self.snooze_duration) <= 0:
            raise ValueError(
                f"Snooze duration must be a positive number of minutes, got {self.snooze_duration}"
            )
        self.snooze_duration = int(self.snooze_duration)
        self.math_challenge_difficulty = Difficulty(self.math_challenge_difficulty)

    @property
    def recurrence(self) -> RecurrenceClass:
        if self.specific_date is not None:
            return RecurrenceClass.DATED
        if self.days:
            return RecurrenceClass.REPEATING
        return RecurrenceClass.ONE_SHOT

    @property
    def hour(self) -> int:
        return int(self.time[:2])

    @property
    def minute(self) -> int:
        return int(self.time[3:])


@dataclass
class AlarmDefinition(AlarmDraft):
    alarm_id: str = ""

    def __post_init__(self):
        super().__post_init__()
        if not self.alarm_id:
            raise ValueError("AlarmDefinition requires an alarm_id")

    @classmethod
    def from_draft(cls, draft: AlarmDraft, alarm_id: str) -> "AlarmDefinition":
        return cls(
            alarm_id=alarm_id,
            time=draft.time,
            enabled=draft.enabled,
            label=draft.label,
            days=list(draft.days),
            specific_date=draft.specific_date,
            tone=draft.tone,
            snooze_enabled=draft.snooze_enabled,
            snooze_duration=draft.snooze_duration,
            math_challenge_enabled=draft.math_challenge_enabled,
            math_challenge_difficulty=draft.math_challenge_difficulty,
        )

    def to_payload(self) -> Dict[str, Any]:
        return {
            "id": self.alarm_id,
            "time": self.time,
            "enabled": self.enabled,
            "label": self.label,
            "days": [day.value for day in self.days],
            "tone": self.tone,
            "snoozeEnabled": self.snooze_enabled,
            "snoozeDuration": self.snooze_duration,
            "mathChallengeEnabled": self.math_challenge_enabled,
            "mathChallengeDifficulty": self.math_challenge_difficulty.value,
            "specificDate": self.specific_date.isoformat() if self.specific_date else None,
        }

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "AlarmDefinition":
        return cls(
            alarm_id=str(payload["id"]),
            time=payload["time"],
            enabled=_flag(payload, "enabled", True),
            label=payload.get("label") or "",
            days=payload.get("days") or [],
            specific_date=_parse_date(payload.get("specificDate")),
            tone=payload.get("tone") or "default",
            snooze_enabled=_flag(payload, "snoozeEnabled", True),
            snooze_duration=_minutes(payload, "snoozeDuration", 5),
            math_challenge_enabled=_flag(payload, "mathChallengeEnabled", False),
            math_challenge_difficulty=str(
                payload.get("mathChallengeDifficulty") or Difficulty.EASY.value
            ).lower(),
        )


def _flag(payload: Dict[str, Any], key: str, default: bool) -> bool:
    value = payload.get(key)
    if value is None:
        return default
    if not isinstance(value, bool):
        raise TypeError(f"{key} must be true or false, got {value!r}")
    return value


def _minutes(payload: Dict[str, Any], key: str, default: int) -> int:
    value = payload.get(key)
    if value is None:
        return default
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"{key} must be a whole number of minutes, got {value!r}")
    return value


def _parse_date(value) -> Optional[date]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value)
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        raise ValueError(f"Invalid specificDate {value!r}")


@dataclass(frozen=True)
class ActiveAlarmInstance:
    """Snapshot of a definition that is ringing or snoozing."""

    definition: AlarmDefinition
    token: int
    triggered_at: datetime
    snooze_count: int = 0
    is_snoozing: bool = False

    @classmethod
    def from_definition(
        cls, definition: AlarmDefinition, *, token: int, triggered_at: datetime
    ) -> "ActiveAlarmInstance":
        return cls(
            definition=copy.deepcopy(definition),
            token=token,
            triggered_at=triggered_at,
        )

    @property
    def alarm_id(self) -> str:
        return self.definition.alarm_id

    @property
    def recurrence(self) -> RecurrenceClass:
        return self.definition.recurrence
