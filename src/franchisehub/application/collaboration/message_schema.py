from __future__ import annotations

import json
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_run_id() -> str:
    return uuid.uuid4().hex


@dataclass
class WorkflowEvent:
    """
    Journal entry for a multi-step workflow (one run_id per saga execution).

    Kept storage-agnostic; backends serialize via to_dict()/to_json().
    """

    run_id: str
    workflow: str = ""
    stage: str = ""
    attempt: int = 0

    # Actor
    actor_id: str = ""
    role: str = ""  # applicant/reviewer/system

    # Subject
    type: str = ""  # step_completed/step_failed/reconciled/...
    subject_id: str = ""
    payload: Dict[str, Any] = field(default_factory=dict)

    ts: datetime = field(default_factory=utcnow)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "run_id": self.run_id,
            "workflow": self.workflow,
            "stage": self.stage,
            "attempt": self.attempt,
            "actor_id": self.actor_id,
            "role": self.role,
            "type": self.type,
            "subject_id": self.subject_id,
            "payload": self.payload,
            "ts": self.ts.isoformat(),
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False, separators=(",", ":"))


def make_event(
    *,
    run_id: str,
    workflow: str,
    stage: str,
    type: str,
    subject_id: str = "",
    actor_id: str = "",
    role: str = "",
    attempt: int = 0,
    payload: Optional[Dict[str, Any]] = None,
) -> WorkflowEvent:
    return WorkflowEvent(
        run_id=run_id,
        workflow=workflow,
        stage=stage,
        attempt=attempt,
        actor_id=actor_id,
        role=role,
        type=type,
        subject_id=subject_id,
        payload=payload or {},
    )
