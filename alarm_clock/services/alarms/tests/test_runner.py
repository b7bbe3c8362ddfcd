from __future__ import annotations

import asyncio
from datetime import timedelta

from alarm_clock.services.alarms.runner import AlarmRunner


class _FakeEngine:
    def __init__(self, runner_ref: list, stop_after: int):
        self.started = 0
        self.ticks = 0
        self._runner_ref = runner_ref
        self._stop_after = stop_after

    def start(self):
        self.started += 1

    def tick(self):
        self.ticks += 1
        if self.ticks >= self._stop_after:
            self._runner_ref[0].stop()
        if self.ticks == 1:
            raise RuntimeError("storage hiccup")


def test_runner_starts_engine_and_keeps_ticking_after_errors():
    runner_ref = []
    engine = _FakeEngine(runner_ref, stop_after=3)
    runner = AlarmRunner(engine, interval=timedelta(milliseconds=5))
    runner_ref.append(runner)

    asyncio.run(asyncio.wait_for(runner.run(), timeout=5))

    assert engine.started == 1
    assert engine.ticks == 3
