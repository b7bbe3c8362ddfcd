from __future__ import annotations

import uuid
from datetime import datetime
from enum import Enum
from typing import Dict, Iterable, Optional

from alarm_clock.services.alarms import models, occurrence
from alarm_clock.services.alarms.config import NOTIFICATION_CONFIG
from alarm_clock.services.logging import setup_logging
from alarm_clock.services.messaging.mqtt import publish_json

TAG = __name__
logger = setup_logging()


class NotificationError(Exception):
    pass


class SchedulingStrategy(str, Enum):
    # Every schedule cancels all pending notifications first, so only one
    # alarm is covered while the app is not running.
    SINGLE = "single"
    PER_ALARM = "per_alarm"


class NotificationScheduler:
    """Device-side notifier that fires alarms while the engine is not running."""

    def schedule_one(self, alarm: models.AlarmDefinition, fire_at: datetime) -> str:
        raise NotImplementedError

    def cancel(self, handle: str) -> None:
        raise NotImplementedError

    def cancel_all(self) -> None:
        raise NotImplementedError


class MqttNotificationScheduler(NotificationScheduler):
    """Publishes schedule/cancel messages to the device downlink topic."""

    def __init__(self, broker_url: Optional[str], device_id: str):
        self.broker_url = broker_url
        self.device_id = device_id
        self.topic = NOTIFICATION_CONFIG["topic"].format(device_id=device_id)

    def schedule_one(self, alarm: models.AlarmDefinition, fire_at: datetime) -> str:
        handle = uuid.uuid4().hex
        self._publish(
            {
                "type": "schedule_alarm",
                "notificationId": handle,
                "alarmId": alarm.alarm_id,
                "fireAt": fire_at.isoformat(timespec="minutes"),
                "title": NOTIFICATION_CONFIG["title"],
                "body": alarm.label or f"Alarm at {alarm.time}",
                "tone": alarm.tone,
            }
        )
        return handle

    def cancel(self, handle: str) -> None:
        self._publish({"type": "cancel_alarm", "notificationId": handle})

    def cancel_all(self) -> None:
        self._publish({"type": "cancel_all_alarms"})

    def _publish(self, payload: dict) -> None:
        ok = publish_json(
            self.broker_url,
            self.topic,
            payload,
            timeout=NOTIFICATION_CONFIG["publish_timeout"],
        )
        if not ok:
            raise NotificationError(f"Failed to publish {payload['type']} to {self.topic}")


class NotificationBridge:
    """Keeps pending device notifications in line with the alarm definitions.

    Scheduler failures are logged and swallowed; the engine's in-memory state
    stays authoritative.
    """

    def __init__(
        self,
        scheduler: NotificationScheduler,
        strategy: SchedulingStrategy = SchedulingStrategy.SINGLE,
        clock=None,
    ):
        self.scheduler = scheduler
        self.strategy = SchedulingStrategy(strategy)
        self._clock = clock or datetime.now
        self._handles: Dict[str, str] = {}

    @property
    def handles(self) -> Dict[str, str]:
        return dict(self._handles)

    def sync(self, alarm: models.AlarmDefinition, now: Optional[datetime] = None) -> Optional[str]:
        """Schedule the alarm's next occurrence, or cancel it when disabled."""
        now = now or self._clock()
        fire_at = occurrence.next_occurrence(alarm, now) if alarm.enabled else None
        if fire_at is None:
            self.forget(alarm.alarm_id)
            return None

        try:
            if self.strategy is SchedulingStrategy.SINGLE:
                self.scheduler.cancel_all()
                self._handles.clear()
            else:
                self._cancel_handle(alarm.alarm_id)
            handle = self.scheduler.schedule_one(alarm, fire_at)
        except Exception as exc:
            logger.bind(tag=TAG).warning(
                f"Failed to schedule notification for alarm {alarm.alarm_id}: {exc}"
            )
            return None
        self._handles[alarm.alarm_id] = handle
        logger.bind(tag=TAG).info(
            f"Scheduled notification {handle} for alarm {alarm.alarm_id} at {fire_at.isoformat()}"
        )
        return handle

    def forget(self, alarm_id: str) -> None:
        try:
            self._cancel_handle(alarm_id)
        except Exception as exc:
            logger.bind(tag=TAG).warning(
                f"Failed to cancel notification for alarm {alarm_id}: {exc}"
            )

    def resync(
        self, alarms: Iterable[models.AlarmDefinition], now: Optional[datetime] = None
    ) -> None:
        """Drop every pending notification and schedule the enabled alarms again.

        With the single strategy only the soonest enabled alarm is scheduled.
        """
        now = now or self._clock()
        try:
            self.scheduler.cancel_all()
        except Exception as exc:
            logger.bind(tag=TAG).warning(f"Failed to cancel pending notifications: {exc}")
        self._handles.clear()

        upcoming = []
        for alarm in alarms:
            fire_at = occurrence.next_occurrence(alarm, now) if alarm.enabled else None
            if fire_at is not None:
                upcoming.append((fire_at, alarm))
        if not upcoming:
            return
        if self.strategy is SchedulingStrategy.SINGLE:
            upcoming = [min(upcoming, key=lambda item: item[0])]
        for _, alarm in upcoming:
            self.sync(alarm, now=now)

    def _cancel_handle(self, alarm_id: str) -> None:
        handle = self._handles.pop(alarm_id, None)
        if handle:
            self.scheduler.cancel(handle)
