"""
状态机性质测试：随机生成转移序列，非法转移必须被拒绝且记录不变。
"""

import random

import pytest

from franchisehub.application import tables
from franchisehub.core.errors import ConcurrentModificationError, InvalidTransitionError
from franchisehub.domain.application import (
    TERMINAL_STATUSES,
    TRANSITIONS,
    ApplicationStatus,
    TransitionActor,
    allowed_targets,
    can_transition,
    is_terminal,
)

LEGAL_EDGES = {
    (ApplicationStatus.SUBMITTED, ApplicationStatus.UNDER_REVIEW),
    (ApplicationStatus.SUBMITTED, ApplicationStatus.APPROVED),
    (ApplicationStatus.UNDER_REVIEW, ApplicationStatus.APPROVED),
    (ApplicationStatus.ADDITIONAL_INFO_REQUESTED, ApplicationStatus.APPROVED),
    (ApplicationStatus.SUBMITTED, ApplicationStatus.REJECTED),
    (ApplicationStatus.UNDER_REVIEW, ApplicationStatus.REJECTED),
    (ApplicationStatus.ADDITIONAL_INFO_REQUESTED, ApplicationStatus.REJECTED),
    (ApplicationStatus.SUBMITTED, ApplicationStatus.ADDITIONAL_INFO_REQUESTED),
    (ApplicationStatus.UNDER_REVIEW, ApplicationStatus.ADDITIONAL_INFO_REQUESTED),
}


def test_reviewer_edges_match_table():
    for current in ApplicationStatus:
        for target in ApplicationStatus:
            assert can_transition(current, target, TransitionActor.REVIEWER) == ((current, target) in LEGAL_EDGES)


def test_contracted_only_reachable_from_approved_by_system():
    assert can_transition(ApplicationStatus.APPROVED, ApplicationStatus.CONTRACTED, TransitionActor.SYSTEM)
    assert not can_transition(ApplicationStatus.APPROVED, ApplicationStatus.CONTRACTED, TransitionActor.REVIEWER)
    for current in ApplicationStatus:
        if current != ApplicationStatus.APPROVED:
            assert not can_transition(current, ApplicationStatus.CONTRACTED, TransitionActor.SYSTEM)


def test_terminal_states_have_no_exits():
    for status in TERMINAL_STATUSES:
        assert is_terminal(status)
        assert allowed_targets(status, TransitionActor.REVIEWER) == []
        assert allowed_targets(status, TransitionActor.SYSTEM) == []


def test_nothing_transitions_back_to_submitted():
    assert ApplicationStatus.SUBMITTED not in TRANSITIONS


@pytest.mark.parametrize("seed", range(12))
def test_random_transition_walks(seed, services, applicant, reviewer, records, application_form):
    rng = random.Random(seed)
    lifecycle = services.applications
    app = lifecycle.submit_application(applicant, application_form)
    reviewer_targets = [t for t, (_, actor) in TRANSITIONS.items() if actor == TransitionActor.REVIEWER]

    for _ in range(15):
        before = records.get(tables.APPLICATIONS, app.id)
        current = ApplicationStatus(before["status"])
        target = rng.choice(reviewer_targets + [ApplicationStatus.CONTRACTED, ApplicationStatus.SUBMITTED])
        legal = can_transition(current, target, TransitionActor.REVIEWER)
        if legal:
            updated = lifecycle.transition(
                reviewer,
                app.id,
                target,
                comments_for_applicant="请补充营业执照",
                expected_status=current,
            )
            assert updated.status == target
            assert updated.reviewed_by_user_id == reviewer.user_id
            assert updated.reviewed_at is not None
        else:
            with pytest.raises(InvalidTransitionError):
                lifecycle.transition(reviewer, app.id, target, comments_for_applicant="x", expected_status=current)
            assert records.get(tables.APPLICATIONS, app.id) == before
        if is_terminal(records.get(tables.APPLICATIONS, app.id)["status"]):
            break


def test_stale_expected_status_is_concurrent_modification(services, applicant, reviewer, records, application_form):
    app = services.applications.submit_application(applicant, application_form)
    services.applications.start_review(reviewer, app.id)
    before = records.get(tables.APPLICATIONS, app.id)
    with pytest.raises(ConcurrentModificationError):
        services.applications.approve(reviewer, app.id, expected_status=ApplicationStatus.SUBMITTED)
    assert records.get(tables.APPLICATIONS, app.id) == before
