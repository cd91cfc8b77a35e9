from __future__ import annotations

from franchisehub.application.collaboration.message_schema import make_event, new_run_id
from franchisehub.infrastructure.event_log.sqlalchemy_event_log import SqlAlchemyEventLog


def test_sqlalchemy_event_log_persists_and_replays(tmp_path):
    db_url = f"sqlite:///{tmp_path / 'franchisehub_test.db'}"
    evlog = SqlAlchemyEventLog(db_url=db_url, auto_create_schema=True)

    run_id = new_run_id()
    evlog.append(
        make_event(
            run_id=run_id,
            workflow="contract_finalization",
            stage="started",
            actor_id="user-1",
            role="applicant",
            type="step_completed",
            subject_id="app-1",
            payload={"note": "签约开始"},
        )
    )
    evlog.append(
        make_event(
            run_id=run_id,
            workflow="contract_finalization",
            stage="signature_uploaded",
            attempt=1,
            type="step_completed",
            subject_id="app-1",
            payload={"path": "signatures/x.png"},
        )
    )
    evlog.append(make_event(run_id=new_run_id(), workflow="reconcile", stage="reconciled", type="reconciled", subject_id="app-2"))

    events = evlog.list_events(run_id=run_id, limit=100)
    assert [e["stage"] for e in events] == ["started", "signature_uploaded"]
    assert events[0]["payload"] == {"note": "签约开始"}
    assert events[1]["attempt"] == 1

    streamed = list(evlog.stream(run_id))
    assert streamed[0]["stage"] == "started"
    assert [e["subject_id"] for e in evlog.list_events(workflow="reconcile")] == ["app-2"]
    evlog.close()

    # 新实例读取同一个库，日志仍在
    reopened = SqlAlchemyEventLog(db_url=db_url)
    assert len(reopened.list_events(subject_id="app-1")) == 2
    reopened.close()
