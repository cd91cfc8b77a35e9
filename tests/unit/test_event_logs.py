import logging

from franchisehub.application.collaboration.message_schema import make_event, new_run_id
from franchisehub.infrastructure.event_log.composite_event_log import CompositeEventLog
from franchisehub.infrastructure.event_log.logging_event_log import LoggingEventLog
from franchisehub.infrastructure.event_log.memory_event_log import InMemoryEventLog


class _Broken(InMemoryEventLog):
    def append(self, event):
        raise RuntimeError("disk full")


def _event(run_id, stage):
    return make_event(run_id=run_id, workflow="contract_finalization", stage=stage, type="step_completed", subject_id="app-1")


def test_memory_log_streams_by_run():
    log = InMemoryEventLog()
    r1, r2 = new_run_id(), new_run_id()
    log.append(_event(r1, "started"))
    log.append(_event(r2, "started"))
    log.append(_event(r1, "contract_recorded"))
    assert [e["stage"] for e in log.stream(r1)] == ["started", "contract_recorded"]
    assert len(log.for_subject("app-1")) == 3


def test_logging_log_emits_json(caplog):
    caplog.set_level(logging.INFO, logger="franchisehub.eventlog")
    LoggingEventLog().append(_event("run-1", "started"))
    assert '"stage":"started"' in caplog.text
    assert list(LoggingEventLog().stream("run-1")) == []


def test_composite_tolerates_failing_backend():
    memory = InMemoryEventLog()
    log = CompositeEventLog([_Broken(), LoggingEventLog(), memory])
    log.append(_event("run-1", "started"))
    assert [e["stage"] for e in log.stream("run-1")] == ["started"]
    log.close()
