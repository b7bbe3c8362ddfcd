from __future__ import annotations

import os
from typing import Optional

from google.cloud import firestore

from alarm_clock.config.settings import get_gcp_credentials_path
from alarm_clock.services.alarms.storage import BlobBackend
from alarm_clock.services.logging import setup_logging

TAG = __name__
logger = setup_logging()


def _build_client(project_id: Optional[str] = None) -> firestore.Client:
    creds_path = get_gcp_credentials_path()
    if creds_path:
        os.environ.setdefault("GOOGLE_APPLICATION_CREDENTIALS", creds_path)
    return firestore.Client(project=project_id) if project_id else firestore.Client()


class FirestoreBlobBackend(BlobBackend):
    """Stores every key as a field of a single Firestore document."""

    def __init__(
        self,
        collection_name: str = "alarmClock",
        document_id: str = "default",
        project_id: Optional[str] = None,
        timeout: float = 3.0,
    ):
        self.collection_name = collection_name
        self.document_id = document_id
        self.project_id = project_id
        self.timeout = timeout
        self._firestore_client: Optional[firestore.Client] = None

    def _client(self) -> firestore.Client:
        if self._firestore_client is None:
            self._firestore_client = _build_client(self.project_id)
        return self._firestore_client

    def _document(self):
        return self._client().collection(self.collection_name).document(self.document_id)

    def read(self, key: str) -> Optional[str]:
        doc = self._document().get(timeout=self.timeout)
        if not doc.exists:
            return None
        value = (doc.to_dict() or {}).get(key)
        return value if isinstance(value, str) else None

    def write(self, key: str, value: str) -> None:
        self._document().set({key: value}, merge=True)
        logger.bind(tag=TAG).debug(
            f"Wrote {key} to {self.collection_name}/{self.document_id} ({len(value)} bytes)"
        )
