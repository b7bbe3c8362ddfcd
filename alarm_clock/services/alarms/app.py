from __future__ import annotations

import asyncio
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Optional

from alarm_clock.config.config_loader import load_config
from alarm_clock.services.alarms.config import ALARM_TIMING
from alarm_clock.services.alarms.engine import AlarmEngine
from alarm_clock.services.alarms.events import AlarmIntent
from alarm_clock.services.alarms.notifications import (
    MqttNotificationScheduler,
    NotificationBridge,
    SchedulingStrategy,
)
from alarm_clock.services.alarms.repository import AlarmRepository
from alarm_clock.services.alarms.runner import AlarmRunner
from alarm_clock.services.alarms.storage import BlobBackend, FileBlobBackend
from alarm_clock.services.alarms.store import AlarmStore
from alarm_clock.services.alarms.tones import ToneResolver
from alarm_clock.services.logging import setup_logging

TAG = __name__
logger = setup_logging()


def build_backend(storage_config: Dict[str, Any]) -> BlobBackend:
    backend = str(storage_config.get("backend") or "file").lower()
    if backend == "firestore":
        from alarm_clock.services.alarms.firestore_client import FirestoreBlobBackend

        return FirestoreBlobBackend(
            collection_name=storage_config.get("collection") or "alarmClock",
            document_id=storage_config.get("document") or "default",
            project_id=storage_config.get("project_id") or None,
        )
    if backend != "file":
        raise ValueError(f"Unknown storage backend '{backend}'")
    return FileBlobBackend(storage_config.get("path") or "data/alarms.json")


def build_notifications(
    notification_config: Dict[str, Any],
    clock: Callable[[], datetime],
) -> Optional[NotificationBridge]:
    device_id = notification_config.get("device_id")
    if not device_id:
        logger.bind(tag=TAG).warning(
            "notifications.device_id not configured; background notifications disabled"
        )
        return None
    scheduler = MqttNotificationScheduler(
        broker_url=notification_config.get("broker_url") or None,
        device_id=device_id,
    )
    strategy = SchedulingStrategy(notification_config.get("strategy") or "single")
    return NotificationBridge(scheduler, strategy=strategy, clock=clock)


def build_engine(
    config: Optional[Dict[str, Any]] = None,
    clock: Optional[Callable[[], datetime]] = None,
) -> AlarmEngine:
    config = config if config is not None else load_config()
    clock = clock or datetime.now
    backend = build_backend(config.get("storage", {}))
    store = AlarmStore(
        AlarmRepository(backend),
        notifications=build_notifications(config.get("notifications", {}), clock),
    )
    return AlarmEngine(store, clock=clock, tones=ToneResolver(backend))


def _log_intent(intent: AlarmIntent) -> None:
    logger.bind(tag=TAG).info(f"Intent: {intent.kind.value} (alarm={intent.alarm_id})")


def main() -> None:
    config = load_config()
    engine = build_engine(config)
    engine.subscribe(_log_intent)
    seconds = config.get("engine", {}).get("tick_interval_seconds")
    interval = timedelta(seconds=seconds) if seconds else ALARM_TIMING["tick_interval"]
    runner = AlarmRunner(engine, interval=interval)
    try:
        asyncio.run(runner.run())
    except KeyboardInterrupt:
        logger.bind(tag=TAG).info("Interrupted; shutting down")


if __name__ == "__main__":
    main()
