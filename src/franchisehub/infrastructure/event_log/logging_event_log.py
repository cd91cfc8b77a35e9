from __future__ import annotations

import json
import logging
from typing import Iterable, Optional, Union

from franchisehub.application.collaboration.message_schema import WorkflowEvent
from franchisehub.application.ports.event_log_port import EventLogPort


class LoggingEventLog(EventLogPort):
    """Emit workflow events as JSON lines to the Python logger."""

    def __init__(self, logger: Optional[logging.Logger] = None, level: int = logging.INFO):
        self._logger = logger or logging.getLogger("franchisehub.eventlog")
        self._level = level

    def append(self, event: Union[WorkflowEvent, dict]) -> None:
        if isinstance(event, WorkflowEvent):
            payload = event.to_json()
        else:
            payload = json.dumps(event, ensure_ascii=False, default=str)
        self._logger.log(self._level, payload)

    def stream(self, run_id: str) -> Iterable[dict]:
        # Logging backend cannot stream retrospectively.
        return iter(())

    def close(self) -> None:
        return None
