from __future__ import annotations

import json
from typing import List, Sequence

from alarm_clock.services.alarms import models
from alarm_clock.services.alarms.config import STORAGE_KEYS
from alarm_clock.services.alarms.storage import BlobBackend
from alarm_clock.services.logging import setup_logging

TAG = __name__
logger = setup_logging()


class AlarmRepository:
    """Reads and writes the alarm list as one JSON blob. Never raises."""

    def __init__(self, backend: BlobBackend, key: str = STORAGE_KEYS["alarms"]):
        self.backend = backend
        self.key = key

    def load(self) -> List[models.AlarmDefinition]:
        try:
            raw = self.backend.read(self.key)
            payload = json.loads(raw) if raw else []
        except Exception as exc:
            logger.bind(tag=TAG).error(f"Failed to load alarms: {exc}")
            return []
        if not isinstance(payload, list):
            logger.bind(tag=TAG).error(
                f"Stored alarms under {self.key} are not a list; ignoring"
            )
            return []

        alarms: List[models.AlarmDefinition] = []
        seen_ids = set()
        for record in payload:
            try:
                alarm = models.AlarmDefinition.from_payload(record)
            except (KeyError, TypeError, ValueError) as exc:
                logger.bind(tag=TAG).warning(
                    f"Skipping malformed alarm record {record!r} ({exc})"
                )
                continue
            if alarm.alarm_id in seen_ids:
                logger.bind(tag=TAG).warning(
                    f"Skipping duplicate alarm id {alarm.alarm_id}"
                )
                continue
            seen_ids.add(alarm.alarm_id)
            alarms.append(alarm)
        logger.bind(tag=TAG).info(f"Loaded {len(alarms)} alarms")
        return alarms

    def save(self, alarms: Sequence[models.AlarmDefinition]) -> bool:
        try:
            blob = json.dumps([alarm.to_payload() for alarm in alarms])
            self.backend.write(self.key, blob)
        except Exception as exc:
            logger.bind(tag=TAG).error(f"Failed to save alarms: {exc}")
            return False
        return True
