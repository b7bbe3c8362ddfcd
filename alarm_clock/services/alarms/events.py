from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional


class IntentKind(str, Enum):
    SHOW_RINGING = "show_ringing"
    RETURN_TO_LIST = "return_to_list"


@dataclass(frozen=True)
class AlarmIntent:
    kind: IntentKind
    alarm_id: Optional[str] = None

    def to_payload(self) -> Dict[str, Any]:
        return {"intent": self.kind.value, "alarmId": self.alarm_id}
