# incident_ai/backend/app/ml/feedback.py

from __future__ import annotations

import json
import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Union

from .model import PriorityClass

logger = logging.getLogger(__name__)


def _label(value) -> Optional[str]:
    if value is None:
        return None
    return getattr(value, "value", str(value))


def _coerce_timestamp(value: Union[datetime, str, None]) -> datetime:
    if value is None:
        return datetime.now(timezone.utc)
    if isinstance(value, datetime):
        return value
    raw = str(value).strip()
    # fromisoformat only accepts a trailing "Z" from Python 3.11
    if raw.endswith(("Z", "z")):
        raw = raw[:-1] + "+00:00"
    return datetime.fromisoformat(raw)


@dataclass(frozen=True)
class FeedbackRecord:
    timestamp: datetime
    action: str
    suggested_class: Optional[PriorityClass]
    final_class: Optional[PriorityClass]

    def to_json(self) -> str:
        return json.dumps(
            {
                "ts": self.timestamp.isoformat(),
                "action": self.action,
                "suggested": _label(self.suggested_class),
                "final": _label(self.final_class),
            }
        )


class FeedbackSink:
    """
    Append-only JSON-lines log of accept/override decisions, read later by
    offline retraining. Best effort: a failed write is logged and dropped so
    it never blocks the dispatcher's own action.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self._lock = threading.Lock()

    def record(
        self,
        action: str,
        suggested_class: Optional[PriorityClass],
        final_class: Optional[PriorityClass],
        timestamp: Union[datetime, str, None] = None,
    ) -> bool:
        try:
            record = FeedbackRecord(
                timestamp=_coerce_timestamp(timestamp),
                action=action,
                suggested_class=suggested_class,
                final_class=final_class,
            )
            line = record.to_json() + "\n"
            with self._lock:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                with self.path.open("a", encoding="utf-8") as fh:
                    fh.write(line)
        except Exception as exc:
            logger.warning("[FEEDBACK] could not write to %s: %s", self.path, exc)
            return False
        return True
