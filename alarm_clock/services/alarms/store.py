from __future__ import annotations

import uuid
from dataclasses import replace
from typing import Iterable, List, Optional

from alarm_clock.services.alarms import models
from alarm_clock.services.alarms.config import NEW_ALARM_DEFAULTS
from alarm_clock.services.alarms.notifications import NotificationBridge
from alarm_clock.services.alarms.repository import AlarmRepository
from alarm_clock.services.logging import setup_logging

TAG = __name__
logger = setup_logging()


def new_draft(time: str, **overrides) -> models.AlarmDraft:
    settings = dict(NEW_ALARM_DEFAULTS)
    settings.update(overrides)
    return models.AlarmDraft(time=time, **settings)


def sorted_alarms(alarms: Iterable[models.AlarmDefinition]) -> List[models.AlarmDefinition]:
    """Enabled alarms first, then by HH:MM (lexicographic == chronological)."""
    return sorted(alarms, key=lambda alarm: (not alarm.enabled, alarm.time))


class AlarmStore:
    """Ordered, persisted collection of alarm definitions.

    Insertion order is preserved; the trigger evaluator scans in this order,
    so the earliest-created alarm wins when several match the same minute.
    Every mutation writes the whole collection back through the repository
    and re-syncs the alarm's pending notification. Write failures are logged
    by the repository and do not roll back the in-memory change.
    """

    def __init__(
        self,
        repository: AlarmRepository,
        notifications: Optional[NotificationBridge] = None,
    ):
        self.repository = repository
        self.notifications = notifications
        self._alarms: List[models.AlarmDefinition] = []

    def load(self) -> List[models.AlarmDefinition]:
        self._alarms = self.repository.load()
        return self.alarms

    @property
    def alarms(self) -> List[models.AlarmDefinition]:
        return list(self._alarms)

    def enabled_alarms(self) -> List[models.AlarmDefinition]:
        return [alarm for alarm in self._alarms if alarm.enabled]

    def get(self, alarm_id: str) -> Optional[models.AlarmDefinition]:
        index = self._index_of(alarm_id)
        return self._alarms[index] if index is not None else None

    def create(self, draft: models.AlarmDraft) -> models.AlarmDefinition:
        alarm = models.AlarmDefinition.from_draft(draft, alarm_id=self._new_id())
        self._alarms.append(alarm)
        logger.bind(tag=TAG).info(f"Created alarm {alarm.alarm_id} at {alarm.time}")
        self._persist()
        self._sync_notification(alarm)
        return alarm

    def update(self, alarm: models.AlarmDefinition) -> Optional[models.AlarmDefinition]:
        """Replace the stored alarm with the same id; raises ValueError on bad fields."""
        index = self._index_of(alarm.alarm_id)
        if index is None:
            logger.bind(tag=TAG).debug(f"Update for unknown alarm {alarm.alarm_id}; ignoring")
            return None
        # Re-run field validation; callers may have mutated a stored definition.
        try:
            alarm = replace(alarm)
        except TypeError as exc:
            raise ValueError(str(exc)) from exc
        self._alarms[index] = alarm
        self._persist()
        self._sync_notification(alarm)
        return alarm

    def delete(self, alarm_id: str) -> bool:
        index = self._index_of(alarm_id)
        if index is None:
            logger.bind(tag=TAG).debug(f"Delete for unknown alarm {alarm_id}; ignoring")
            return False
        del self._alarms[index]
        logger.bind(tag=TAG).info(f"Deleted alarm {alarm_id}")
        self._persist()
        if self.notifications:
            self.notifications.forget(alarm_id)
        return True

    def toggle_enabled(self, alarm_id: str) -> Optional[models.AlarmDefinition]:
        alarm = self.get(alarm_id)
        if alarm is None:
            return None
        return self.set_enabled(alarm_id, not alarm.enabled)

    def set_enabled(self, alarm_id: str, enabled: bool) -> Optional[models.AlarmDefinition]:
        alarm = self.get(alarm_id)
        if alarm is None:
            return None
        alarm.enabled = enabled
        self._persist()
        self._sync_notification(alarm)
        return alarm

    def _index_of(self, alarm_id: str) -> Optional[int]:
        for index, alarm in enumerate(self._alarms):
            if alarm.alarm_id == alarm_id:
                return index
        return None

    def _new_id(self) -> str:
        existing = {alarm.alarm_id for alarm in self._alarms}
        while True:
            alarm_id = uuid.uuid4().hex
            if alarm_id not in existing:
                return alarm_id

    def _persist(self) -> None:
        self.repository.save(self._alarms)

    def _sync_notification(self, alarm: models.AlarmDefinition) -> None:
        if self.notifications:
            self.notifications.sync(alarm)
