from __future__ import annotations

from dataclasses import dataclass, asdict
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
import json


@dataclass
class SessionEvent:
    ts: str
    kind: str
    data: Dict[str, Any]


class SessionLogger:
    """In-memory log of a lab session.

    Records every command with its result, plus device and link changes.
    Oldest events are dropped once `max_events` is reached. Can be exported
    as JSON or replayed as a terminal transcript.
    """

    SCHEMA = "labsim-session-log/v1"

    def __init__(self, max_events: int = 5000):
        self.max_events = max_events
        self.events: List[SessionEvent] = []

    def _now(self) -> str:
        return datetime.now(timezone.utc).isoformat()

    def add(self, kind: str, **data: Any) -> None:
        ev = SessionEvent(ts=self._now(), kind=str(kind), data=dict(data))
        self.events.append(ev)
        if len(self.events) > self.max_events:
            self.events = self.events[-self.max_events :]

    def clear(self) -> None:
        self.events.clear()

    def of_kind(self, kind: str) -> List[SessionEvent]:
        return [e for e in self.events if e.kind == kind]

    def transcript(self, device: Optional[str] = None) -> str:
        """Commands and their output as they would appear on a console."""
        lines: List[str] = []
        for ev in self.of_kind("command"):
            if device is not None and ev.data.get("device") != device:
                continue
            lines.append(f"{ev.data.get('prompt', '')}{ev.data.get('line', '')}")
            if ev.data.get("output"):
                lines.append(ev.data["output"])
        return "\n".join(lines)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "schema": self.SCHEMA,
            "eventCount": len(self.events),
            "events": [asdict(e) for e in self.events],
        }

    def save_json(self, path: str) -> None:
        with open(path, "w", encoding="utf-8") as f:
            json.dump(self.to_dict(), f, indent=2, ensure_ascii=False)
