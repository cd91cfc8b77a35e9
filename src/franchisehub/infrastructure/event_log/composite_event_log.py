from __future__ import annotations

import logging
from typing import Iterable, List, Union

from franchisehub.application.collaboration.message_schema import WorkflowEvent
from franchisehub.application.ports.event_log_port import EventLogPort

logger = logging.getLogger(__name__)


class CompositeEventLog(EventLogPort):
    """
    Tee events to multiple backends (e.g. log lines + SQLite journal).

    A failing backend does not block the others.
    """

    def __init__(self, backends: List[EventLogPort]):
        self._backends = [b for b in backends if b is not None]

    def append(self, event: Union[WorkflowEvent, dict]) -> None:
        for backend in self._backends:
            try:
                backend.append(event)
            except Exception as e:
                logger.warning(f"event log backend {type(backend).__name__} append failed: {e}")

    def stream(self, run_id: str) -> Iterable[dict]:
        # First backend that returns anything wins.
        for backend in self._backends:
            try:
                events = list(backend.stream(run_id))
            except Exception as e:
                logger.debug(f"event log backend {type(backend).__name__} stream failed: {e}")
                continue
            if events:
                return iter(events)
        return iter(())

    def close(self) -> None:
        for backend in self._backends:
            try:
                backend.close()
            except Exception as e:
                logger.debug(f"event log backend {type(backend).__name__} close failed: {e}")
