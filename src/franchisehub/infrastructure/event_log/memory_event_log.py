from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional, Union

from franchisehub.application.collaboration.message_schema import WorkflowEvent
from franchisehub.application.ports.event_log_port import EventLogPort


class InMemoryEventLog(EventLogPort):
    """Simple in-memory event log (useful for tests)."""

    def __init__(self) -> None:
        self.events: List[Dict[str, Any]] = []

    def append(self, event: Union[WorkflowEvent, dict]) -> None:
        if isinstance(event, WorkflowEvent):
            self.events.append(event.to_dict())
        else:
            self.events.append(dict(event))

    def stream(self, run_id: str) -> Iterable[dict]:
        return (e for e in self.events if e.get("run_id") == run_id)

    def for_subject(self, subject_id: str, *, workflow: Optional[str] = None) -> List[dict]:
        return [
            e
            for e in self.events
            if e.get("subject_id") == subject_id and (workflow is None or e.get("workflow") == workflow)
        ]

    def close(self) -> None:
        return None
