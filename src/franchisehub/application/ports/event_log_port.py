from __future__ import annotations

from typing import Protocol, runtime_checkable, Iterable, Union

from franchisehub.application.collaboration.message_schema import WorkflowEvent


@runtime_checkable
class EventLogPort(Protocol):
    """
    Workflow event journal.

    Finalization records each completed step here under a saga run_id so a
    "signed but not contracted" application can be traced and reconciled.
    """

    def append(self, event: Union[WorkflowEvent, dict]) -> None:
        """Append an event."""

    def stream(self, run_id: str) -> Iterable[dict]:
        """Stream events of a run in order (may be empty for write-only backends)."""

    def close(self) -> None:
        """Close underlying resources (optional)."""
