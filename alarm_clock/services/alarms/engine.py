from __future__ import annotations

import itertools
import random
from dataclasses import replace
from datetime import datetime, timedelta
from enum import Enum
from typing import Callable, List, Optional, Tuple

from alarm_clock.services.alarms import models, occurrence
from alarm_clock.services.alarms.challenge import ChallengeSession
from alarm_clock.services.alarms.events import AlarmIntent, IntentKind
from alarm_clock.services.alarms.store import AlarmStore
from alarm_clock.services.alarms.tones import AlarmTone, ToneResolver
from alarm_clock.services.logging import setup_logging

TAG = __name__
logger = setup_logging()

IntentListener = Callable[[AlarmIntent], None]

# Recurrence classes that fire once and are switched off when dismissed.
_SINGLE_FIRE = (models.RecurrenceClass.ONE_SHOT, models.RecurrenceClass.DATED)


class AlarmState(str, Enum):
    NONE = "none"
    RINGING = "ringing"
    SNOOZING = "snoozing"


class AlarmEngine:
    """Decides which alarm rings and drives it through snooze and dismissal.

    The engine exclusively owns the alarm store and the single active-alarm
    slot. It is not thread-safe: ``tick`` and the user operations must be
    called from one thread or event loop, each running to completion.
    Presentation code subscribes to intents instead of being called directly.
    """

    def __init__(
        self,
        store: AlarmStore,
        *,
        clock: Optional[Callable[[], datetime]] = None,
        tones: Optional[ToneResolver] = None,
        rng: Optional[random.Random] = None,
    ):
        self.store = store
        self.tones = tones or ToneResolver()
        self._clock = clock or datetime.now
        self._rng = rng
        self._tokens = itertools.count(1)
        self._listeners: List[IntentListener] = []
        self._active: Optional[models.ActiveAlarmInstance] = None
        self._challenge: Optional[ChallengeSession] = None
        self._snooze_wakeup: Optional[Tuple[datetime, int]] = None
        self._consumed_minute: Optional[datetime] = None

    # ── Read side ────────────────────────────────────────────────────────────

    @property
    def active(self) -> Optional[models.ActiveAlarmInstance]:
        return self._active

    @property
    def challenge(self) -> Optional[ChallengeSession]:
        return self._challenge

    @property
    def state(self) -> AlarmState:
        if self._active is None:
            return AlarmState.NONE
        if self._active.is_snoozing:
            return AlarmState.SNOOZING
        return AlarmState.RINGING

    def ringing_tone(self) -> Optional[AlarmTone]:
        if self._active is None:
            return None
        return self.tones.resolve(self._active.definition.tone)

    def next_occurrence(
        self, alarm_id: str, now: Optional[datetime] = None
    ) -> Optional[datetime]:
        alarm = self.store.get(alarm_id)
        if alarm is None or not alarm.enabled:
            return None
        return occurrence.next_occurrence(alarm, now or self._clock())

    def countdown(self, alarm_id: str, now: Optional[datetime] = None) -> str:
        now = now or self._clock()
        return occurrence.format_countdown(self.next_occurrence(alarm_id, now), now)

    def subscribe(self, listener: IntentListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # ── Lifecycle ────────────────────────────────────────────────────────────

    def start(self, now: Optional[datetime] = None) -> Optional[models.ActiveAlarmInstance]:
        """Load alarms, reschedule notifications and catch a firing due right now."""
        now = now or self._clock()
        alarms = self.store.load()
        if self.store.notifications:
            self.store.notifications.resync(alarms, now=now)
        return self.tick(now)

    def tick(self, now: Optional[datetime] = None) -> Optional[models.ActiveAlarmInstance]:
        """Evaluate the alarms against ``now``; return the instance if one fired."""
        now = now or self._clock()
        self._deliver_snooze_wakeup(now)

        if self._active is not None:
            return None
        minute = now.replace(second=0, microsecond=0)
        if minute == self._consumed_minute:
            return None

        alarm = next(
            (a for a in self.store.enabled_alarms() if self._matches(a, now)),
            None,
        )
        if alarm is None:
            return None

        self._consumed_minute = minute
        instance = models.ActiveAlarmInstance.from_definition(
            alarm, token=next(self._tokens), triggered_at=now
        )
        if alarm.recurrence is models.RecurrenceClass.ONE_SHOT:
            # Switched off before dismissal so it cannot ring again tomorrow.
            self.store.set_enabled(alarm.alarm_id, False)
        self._active = instance
        logger.bind(tag=TAG).info(
            f"Alarm {alarm.alarm_id} ({alarm.label or alarm.time}) is ringing"
        )
        self._emit(IntentKind.SHOW_RINGING, alarm.alarm_id)
        return instance

    def snooze(self, now: Optional[datetime] = None) -> bool:
        active = self._active
        if active is None or active.is_snoozing:
            return False
        if not active.definition.snooze_enabled:
            logger.bind(tag=TAG).debug(f"Snooze disabled for alarm {active.alarm_id}")
            return False

        now = now or self._clock()
        due = now + timedelta(minutes=active.definition.snooze_duration)
        self._active = replace(
            active, snooze_count=active.snooze_count + 1, is_snoozing=True
        )
        self._challenge = None
        self._snooze_wakeup = (due, active.token)
        logger.bind(tag=TAG).info(
            f"Alarm {active.alarm_id} snoozed until {due.isoformat(timespec='minutes')} "
            f"(count={self._active.snooze_count})"
        )
        self._emit(IntentKind.RETURN_TO_LIST, active.alarm_id)
        return True

    def dismiss(self) -> bool:
        """Dismiss the active alarm, or open its math challenge if one is required.

        Returns True only when the alarm was actually dismissed.
        """
        active = self._active
        if active is None:
            return False
        if active.definition.math_challenge_enabled:
            if self._challenge is None:
                self._challenge = ChallengeSession(
                    active.definition.math_challenge_difficulty, rng=self._rng
                )
                logger.bind(tag=TAG).info(
                    f"Alarm {active.alarm_id} requires a math challenge to dismiss"
                )
            return False
        self._finish(active)
        return True

    def submit_challenge_answer(self, raw_answer) -> bool:
        if self._active is None or self._challenge is None:
            return False
        if not self._challenge.submit(raw_answer):
            logger.bind(tag=TAG).debug(
                f"Wrong challenge answer; attempts={self._challenge.attempts}"
            )
            return False
        return self.dismiss_after_challenge()

    def dismiss_after_challenge(self) -> bool:
        active = self._active
        if active is None:
            return False
        self._finish(active)
        return True

    # ── Store operations ─────────────────────────────────────────────────────

    def create_alarm(self, draft: models.AlarmDraft) -> models.AlarmDefinition:
        return self.store.create(draft)

    def update_alarm(
        self, alarm: models.AlarmDefinition
    ) -> Optional[models.AlarmDefinition]:
        return self.store.update(alarm)

    def toggle_alarm(self, alarm_id: str) -> Optional[models.AlarmDefinition]:
        return self.store.toggle_enabled(alarm_id)

    def delete_alarm(self, alarm_id: str) -> bool:
        deleted = self.store.delete(alarm_id)
        if self._active is not None and self._active.alarm_id == alarm_id:
            logger.bind(tag=TAG).info(f"Active alarm {alarm_id} deleted; clearing")
            self._clear()
            self._emit(IntentKind.RETURN_TO_LIST, alarm_id)
        return deleted

    # ── Internal ─────────────────────────────────────────────────────────────

    def _matches(self, alarm: models.AlarmDefinition, now: datetime) -> bool:
        try:
            return occurrence.matches_now(alarm, now)
        except (TypeError, ValueError) as exc:
            logger.bind(tag=TAG).warning(f"Skipping unreadable alarm {alarm.alarm_id}: {exc}")
            return False

    def _deliver_snooze_wakeup(self, now: datetime) -> None:
        if self._snooze_wakeup is None:
            return
        due, token = self._snooze_wakeup
        if now < due:
            return
        self._snooze_wakeup = None
        active = self._active
        if active is None or active.token != token or not active.is_snoozing:
            logger.bind(tag=TAG).debug("Stale snooze wake-up ignored")
            return
        self._active = replace(active, is_snoozing=False)
        logger.bind(tag=TAG).info(f"Snooze over; alarm {active.alarm_id} ringing again")
        self._emit(IntentKind.SHOW_RINGING, active.alarm_id)

    def _finish(self, active: models.ActiveAlarmInstance) -> None:
        if active.recurrence in _SINGLE_FIRE:
            self.store.set_enabled(active.alarm_id, False)
        self._clear()
        logger.bind(tag=TAG).info(f"Alarm {active.alarm_id} dismissed")
        self._emit(IntentKind.RETURN_TO_LIST, active.alarm_id)

    def _clear(self) -> None:
        self._active = None
        self._challenge = None
        self._snooze_wakeup = None

    def _emit(self, kind: IntentKind, alarm_id: Optional[str]) -> None:
        intent = AlarmIntent(kind=kind, alarm_id=alarm_id)
        for listener in list(self._listeners):
            try:
                listener(intent)
            except Exception as exc:
                logger.bind(tag=TAG).warning(
                    f"Intent listener failed for {intent.kind.value}: {exc}"
                )
