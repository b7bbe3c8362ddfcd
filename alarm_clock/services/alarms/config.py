from __future__ import annotations

from datetime import timedelta
from typing import Any, Dict

ALARM_TIMING = {
    "tick_interval": timedelta(seconds=1),
}

STORAGE_KEYS = {
    "alarms": "alarm_clock_alarms",
    "custom_tones": "custom_alarm_tones",
}

# Settings a freshly created alarm starts with.
NEW_ALARM_DEFAULTS: Dict[str, Any] = {
    "enabled": True,
    "label": "",
    "days": [],
    "tone": "default",
    "snooze_enabled": True,
    "snooze_duration": 5,
    "math_challenge_enabled": False,
    "math_challenge_difficulty": "easy",
    "specific_date": None,
}

CHALLENGE_CONFIG = {
    "attempt_cycle": 3,
}

NOTIFICATION_CONFIG = {
    "topic": "alarmclock/{device_id}/down",
    "title": "Alarm",
    "publish_timeout": 5.0,
}
