from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from typing import List, Optional

from alarm_clock.services.alarms.config import STORAGE_KEYS
from alarm_clock.services.alarms.storage import BlobBackend
from alarm_clock.services.logging import setup_logging

TAG = __name__
logger = setup_logging()


@dataclass(frozen=True)
class AlarmTone:
    tone_id: str
    name: str
    url: str
    is_custom: bool = False


BUILTIN_TONES: List[AlarmTone] = [
    AlarmTone("default", "Default", "https://assets.mixkit.co/active_storage/sfx/212/212-preview.mp3"),
    AlarmTone("digital", "Digital", "https://assets.mixkit.co/active_storage/sfx/2003/2003-preview.mp3"),
    AlarmTone("classic", "Classic", "https://assets.mixkit.co/active_storage/sfx/1028/1028-preview.mp3"),
    AlarmTone("gentle", "Gentle", "https://assets.mixkit.co/active_storage/sfx/2474/2474-preview.mp3"),
    AlarmTone("nature", "Nature", "https://assets.mixkit.co/active_storage/sfx/2532/2532-preview.mp3"),
]
DEFAULT_TONE = BUILTIN_TONES[0]


class ToneResolver:
    """Resolves tone ids to built-in or user-added tones."""

    def __init__(
        self,
        backend: Optional[BlobBackend] = None,
        key: str = STORAGE_KEYS["custom_tones"],
    ):
        self.backend = backend
        self.key = key

    def resolve(self, tone_id: str) -> AlarmTone:
        for tone in BUILTIN_TONES:
            if tone.tone_id == tone_id:
                return tone
        for tone in self.custom_tones():
            if tone.tone_id == tone_id:
                return tone
        logger.bind(tag=TAG).warning(f"Unknown tone '{tone_id}'; using default")
        return DEFAULT_TONE

    def all_tones(self) -> List[AlarmTone]:
        return BUILTIN_TONES + self.custom_tones()

    def custom_tones(self) -> List[AlarmTone]:
        if self.backend is None:
            return []
        try:
            raw = self.backend.read(self.key)
            records = json.loads(raw) if raw else []
            return [
                AlarmTone(
                    tone_id=str(record["tone_id"]),
                    name=str(record["name"]),
                    url=str(record["url"]),
                    is_custom=True,
                )
                for record in records
            ]
        except Exception as exc:
            logger.bind(tag=TAG).error(f"Error loading custom tones: {exc}")
            return []

    def add_custom_tone(self, tone_id: str, name: str, url: str) -> Optional[AlarmTone]:
        if self.backend is None:
            logger.bind(tag=TAG).warning("No storage configured for custom tones")
            return None
        tone = AlarmTone(tone_id=tone_id, name=name, url=url, is_custom=True)
        tones = [t for t in self.custom_tones() if t.tone_id != tone_id] + [tone]
        try:
            self.backend.write(self.key, json.dumps([asdict(t) for t in tones]))
        except Exception as exc:
            logger.bind(tag=TAG).error(f"Error saving custom tones: {exc}")
            return None
        return tone
