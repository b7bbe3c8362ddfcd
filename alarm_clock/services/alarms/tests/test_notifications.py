from __future__ import annotations

from datetime import date, datetime

from alarm_clock.services.alarms import models, notifications
from alarm_clock.services.alarms.notifications import (
    MqttNotificationScheduler,
    NotificationBridge,
    NotificationScheduler,
    SchedulingStrategy,
)

NOW = datetime(2024, 1, 1, 6, 0)  # Monday


class _FakeScheduler(NotificationScheduler):
    def __init__(self, fail: bool = False):
        self.calls = []
        self.pending = {}
        self.fail = fail
        self._counter = 0

    def schedule_one(self, alarm, fire_at):
        if self.fail:
            raise notifications.NotificationError("permission denied")
        self._counter += 1
        handle = f"n{self._counter}"
        self.calls.append(("schedule", alarm.alarm_id, fire_at))
        self.pending[handle] = alarm.alarm_id
        return handle

    def cancel(self, handle):
        self.calls.append(("cancel", handle))
        self.pending.pop(handle, None)

    def cancel_all(self):
        if self.fail:
            raise notifications.NotificationError("permission denied")
        self.calls.append(("cancel_all",))
        self.pending.clear()


def _alarm(alarm_id: str, time_local: str, **kwargs) -> models.AlarmDefinition:
    return models.AlarmDefinition(alarm_id=alarm_id, time=time_local, **kwargs)


def test_single_strategy_keeps_one_pending_notification():
    scheduler = _FakeScheduler()
    bridge = NotificationBridge(scheduler, clock=lambda: NOW)

    bridge.sync(_alarm("a", "07:00"))
    bridge.sync(_alarm("b", "08:00", days=["tuesday"]))

    assert scheduler.calls == [
        ("cancel_all",),
        ("schedule", "a", datetime(2024, 1, 1, 7, 0)),
        ("cancel_all",),
        ("schedule", "b", datetime(2024, 1, 2, 8, 0)),
    ]
    assert list(scheduler.pending.values()) == ["b"]
    assert set(bridge.handles) == {"b"}


def test_per_alarm_strategy_schedules_each_alarm():
    scheduler = _FakeScheduler()
    bridge = NotificationBridge(
        scheduler, strategy=SchedulingStrategy.PER_ALARM, clock=lambda: NOW
    )
    first = _alarm("a", "07:00")

    bridge.sync(first)
    bridge.sync(_alarm("b", "08:00"))
    bridge.sync(_alarm("a", "07:30"))

    assert sorted(scheduler.pending.values()) == ["a", "b"]
    assert ("cancel", "n1") in scheduler.calls

    first.enabled = False
    bridge.sync(first)
    assert list(scheduler.pending.values()) == ["b"]
    assert set(bridge.handles) == {"b"}


def test_alarm_without_future_occurrence_is_not_scheduled():
    scheduler = _FakeScheduler()
    bridge = NotificationBridge(scheduler, clock=lambda: NOW)

    handle = bridge.sync(_alarm("past", "07:00", specific_date=date(2023, 12, 31)))

    assert handle is None
    assert scheduler.calls == []


def test_scheduler_failures_are_swallowed():
    bridge = NotificationBridge(_FakeScheduler(fail=True), clock=lambda: NOW)

    assert bridge.sync(_alarm("a", "07:00")) is None
    bridge.resync([_alarm("a", "07:00")])

    assert bridge.handles == {}


def test_resync_single_strategy_schedules_the_soonest_alarm():
    scheduler = _FakeScheduler()
    bridge = NotificationBridge(scheduler, clock=lambda: NOW)

    bridge.resync(
        [
            _alarm("late", "23:00"),
            _alarm("soon", "06:30"),
            _alarm("off", "06:10", enabled=False),
        ]
    )

    assert list(scheduler.pending.values()) == ["soon"]


def test_resync_per_alarm_schedules_every_enabled_alarm():
    scheduler = _FakeScheduler()
    bridge = NotificationBridge(
        scheduler, strategy=SchedulingStrategy.PER_ALARM, clock=lambda: NOW
    )

    bridge.resync(
        [
            _alarm("late", "23:00"),
            _alarm("soon", "06:30"),
            _alarm("off", "06:10", enabled=False),
        ]
    )

    assert scheduler.calls[0] == ("cancel_all",)
    assert sorted(scheduler.pending.values()) == ["late", "soon"]


def test_mqtt_scheduler_publishes_to_device_topic(monkeypatch):
    published = []

    def fake_publish(broker_url, topic, payload, timeout=5.0):
        published.append((broker_url, topic, payload))
        return True

    monkeypatch.setattr(notifications, "publish_json", fake_publish)
    scheduler = MqttNotificationScheduler("mqtt://broker:1883", "bedside")

    handle = scheduler.schedule_one(
        _alarm("a", "07:00", label="Wake up"), datetime(2024, 1, 1, 7, 0)
    )
    scheduler.cancel(handle)
    scheduler.cancel_all()

    assert [p[1] for p in published] == ["alarmclock/bedside/down"] * 3
    schedule_payload = published[0][2]
    assert schedule_payload["type"] == "schedule_alarm"
    assert schedule_payload["notificationId"] == handle
    assert schedule_payload["alarmId"] == "a"
    assert schedule_payload["fireAt"] == "2024-01-01T07:00"
    assert schedule_payload["body"] == "Wake up"
    assert published[1][2] == {"type": "cancel_alarm", "notificationId": handle}
    assert published[2][2] == {"type": "cancel_all_alarms"}


def test_mqtt_scheduler_raises_when_publish_fails(monkeypatch):
    monkeypatch.setattr(notifications, "publish_json", lambda *args, **kwargs: False)
    bridge = NotificationBridge(
        MqttNotificationScheduler(None, "bedside"), clock=lambda: NOW
    )

    assert bridge.sync(_alarm("a", "07:00")) is None
    assert bridge.handles == {}
