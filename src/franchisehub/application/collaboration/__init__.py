from .message_schema import WorkflowEvent, make_event, new_run_id

__all__ = ["WorkflowEvent", "make_event", "new_run_id"]
