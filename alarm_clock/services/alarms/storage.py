from __future__ import annotations

import json
import os
import threading
from typing import Any, Dict, Optional

from alarm_clock.services.logging import setup_logging

TAG = __name__
logger = setup_logging()


class BlobBackend:
    """Key-value store of serialized blobs."""

    def read(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def write(self, key: str, value: str) -> None:
        raise NotImplementedError


class FileBlobBackend(BlobBackend):
    """All keys live in one JSON object on disk, replaced atomically on write.

    A file that is not a JSON object reads as empty, so the next write
    replaces it instead of failing forever.
    """

    def __init__(self, path: str):
        self.path = path
        self._lock = threading.Lock()

    def read(self, key: str) -> Optional[str]:
        with self._lock:
            value = self._read_all().get(key)
        return value if isinstance(value, str) else None

    def write(self, key: str, value: str) -> None:
        with self._lock:
            data = self._read_all()
            data[key] = value
            self._write_all(data)

    def _read_all(self) -> Dict[str, Any]:
        if not os.path.exists(self.path):
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as exc:
            logger.bind(tag=TAG).warning(f"{self.path} is not valid JSON ({exc}); treating as empty")
            return {}
        if not isinstance(data, dict):
            logger.bind(tag=TAG).warning(f"{self.path} does not hold a JSON object; treating as empty")
            return {}
        return data

    def _write_all(self, data: Dict[str, Any]) -> None:
        directory = os.path.dirname(os.path.abspath(self.path))
        os.makedirs(directory, exist_ok=True)
        tmp = self.path + ".tmp"
        with open(tmp, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False)
        os.replace(tmp, self.path)
