from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional, Union

from sqlalchemy import asc, select

from franchisehub.application.collaboration.message_schema import WorkflowEvent, utcnow
from franchisehub.application.ports.event_log_port import EventLogPort
from franchisehub.domain.timeutil import parse_ts
from franchisehub.infrastructure.stores.models import Base, WorkflowEventModel
from franchisehub.infrastructure.stores.sqlalchemy_db import SessionProvider, get_db_url

logger = logging.getLogger(__name__)


def _row_to_dict(row: WorkflowEventModel) -> Dict[str, Any]:
    return {
        "run_id": row.run_id,
        "workflow": row.workflow,
        "stage": row.stage,
        "attempt": row.attempt,
        "actor_id": row.actor_id,
        "role": row.role,
        "type": row.type,
        "subject_id": row.subject_id,
        "payload": row.get_payload(),
        "ts": parse_ts(row.ts).isoformat(),
    }


class SqlAlchemyEventLog(EventLogPort):
    """
    Persist workflow events via SQLAlchemy.

    - append(): insert one row
    - stream(run_id): events of a run in append order
    - list_events(subject_id=...): journal of one application across runs
    """

    def __init__(self, db_url: Optional[str] = None, *, auto_create_schema: bool = True, echo: bool = False):
        self.db_url = db_url or get_db_url()
        self._provider = SessionProvider(self.db_url, echo=echo)
        if auto_create_schema:
            Base.metadata.create_all(self._provider.engine)

    def append(self, event: Union[WorkflowEvent, dict]) -> None:
        evt = event.to_dict() if isinstance(event, WorkflowEvent) else dict(event)
        run_id = str(evt.get("run_id") or "")
        if not run_id:
            raise ValueError("Event missing run_id")

        row = WorkflowEventModel(
            run_id=run_id,
            workflow=str(evt.get("workflow") or ""),
            stage=str(evt.get("stage") or ""),
            attempt=int(evt.get("attempt") or 0),
            actor_id=str(evt.get("actor_id") or ""),
            role=str(evt.get("role") or ""),
            type=str(evt.get("type") or ""),
            subject_id=str(evt.get("subject_id") or ""),
            ts=parse_ts(evt.get("ts")) or utcnow(),
        )
        row.set_payload(evt.get("payload") or {})
        with self._provider.session() as session:
            session.add(row)
            session.commit()

    def stream(self, run_id: str) -> Iterable[dict]:
        return iter(self.list_events(run_id=run_id))

    def list_events(
        self,
        *,
        run_id: Optional[str] = None,
        subject_id: Optional[str] = None,
        workflow: Optional[str] = None,
        limit: int = 1000,
    ) -> List[dict]:
        stmt = select(WorkflowEventModel)
        if run_id:
            stmt = stmt.where(WorkflowEventModel.run_id == run_id)
        if subject_id:
            stmt = stmt.where(WorkflowEventModel.subject_id == subject_id)
        if workflow:
            stmt = stmt.where(WorkflowEventModel.workflow == workflow)
        stmt = stmt.order_by(asc(WorkflowEventModel.id)).limit(limit)
        with self._provider.session() as session:
            return [_row_to_dict(r) for r in session.execute(stmt).scalars()]

    def close(self) -> None:
        self._provider.dispose()
