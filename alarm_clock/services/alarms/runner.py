from __future__ import annotations

import asyncio
from datetime import timedelta
from typing import Optional

from alarm_clock.services.alarms.config import ALARM_TIMING
from alarm_clock.services.alarms.engine import AlarmEngine
from alarm_clock.services.logging import setup_logging

TAG = __name__
logger = setup_logging()


class AlarmRunner:
    """Drives ``AlarmEngine.tick`` on the running event loop."""

    def __init__(self, engine: AlarmEngine, interval: Optional[timedelta] = None):
        self.engine = engine
        self.interval = interval or ALARM_TIMING["tick_interval"]
        self._stopped = asyncio.Event()

    async def run(self) -> None:
        self._stopped.clear()
        self._tick_safely(start=True)
        logger.bind(tag=TAG).info(
            f"Alarm runner started (interval={self.interval.total_seconds()}s)"
        )
        while not self._stopped.is_set():
            try:
                await asyncio.wait_for(
                    self._stopped.wait(), timeout=self.interval.total_seconds()
                )
            except asyncio.TimeoutError:
                self._tick_safely()
        logger.bind(tag=TAG).info("Alarm runner stopped")

    def stop(self) -> None:
        self._stopped.set()

    def _tick_safely(self, start: bool = False) -> None:
        try:
            if start:
                self.engine.start()
            else:
                self.engine.tick()
        except Exception as exc:
            logger.bind(tag=TAG).error(f"Alarm tick failed: {type(exc).__name__}: {exc}")
