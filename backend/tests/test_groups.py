"""Tests for end-of-activity group interviews."""

import pytest

from interview_queue.core.errors import (
    AlreadyEnded,
    EmptyQueue,
    GroupNotFound,
    InterviewerBusy,
    InvalidState,
    PermissionDenied,
)
from interview_queue.domain.models import EntryStatus, GroupStatus, InvitationStatus
from interview_queue.services import SchedulingService


@pytest.fixture
def crowded(service, clock, make_position):
    position = make_position("Backend", interviewers=("iv1",))
    for n in range(1, 6):
        service.queues.join(position.id, f"c{n}")
    clock.advance(minutes=8 * 60 - 4)
    return position


def _statuses(service, position_id):
    return {e.candidate_id: e.status for e in service.queues.snapshot(position_id)}


def test_trigger_needs_the_final_minutes(service, clock, make_position):
    position = make_position("Backend")
    for n in range(1, 3):
        service.queues.join(position.id, f"c{n}")
    assert not service.groups.should_trigger(position.id)
    with pytest.raises(InvalidState):
        service.groups.initiate(position.id, "iv1")

    clock.advance(minutes=8 * 60 - 4)
    assert service.groups.should_trigger(position.id)


def test_initiate_invites_the_head_of_the_queue(service, crowded):
    group = service.groups.initiate(crowded.id, "iv1")
    assert group.status == GroupStatus.INVITING
    assert list(group.invitations) == ["c1", "c2", "c3", "c4"]
    statuses = _statuses(service, crowded.id)
    assert [statuses[f"c{n}"] for n in range(1, 5)] == [EntryStatus.READY] * 4
    assert statuses["c5"] == EntryStatus.WAITING

    with pytest.raises(InterviewerBusy):
        service.sessions.start_next(crowded.id, "iv1")
    with pytest.raises(InterviewerBusy):
        service.groups.initiate(crowded.id, "iv1")


def test_majority_of_accepts_starts_the_session(service, crowded):
    group = service.groups.initiate(crowded.id, "iv1")
    service.groups.respond(group.id, "c1", True)
    service.groups.respond(group.id, "c2", False)
    assert _statuses(service, crowded.id)["c2"] == EntryStatus.WAITING

    group = service.groups.respond(group.id, "c3", True)
    assert group.status == GroupStatus.INVITING

    group = service.groups.respond(group.id, "c4", True)
    assert group.status == GroupStatus.IN_PROGRESS
    statuses = _statuses(service, crowded.id)
    assert [statuses[c] for c in ("c1", "c3", "c4")] == [EntryStatus.IN_INTERVIEW] * 3

    with pytest.raises(InvalidState):
        service.groups.respond(group.id, "c2", True)

    ended = service.groups.end(group.id)
    assert ended.status == GroupStatus.COMPLETED
    assert [e.candidate_id for e in service.queues.snapshot(crowded.id)] == ["c2", "c5"]
    assert service.sessions.stats("iv1")["total_interviews"] == 3
    assert not service.sessions.is_busy("iv1")

    with pytest.raises(AlreadyEnded):
        service.groups.end(group.id)


def test_undecided_invitations_are_released_on_start(settings, clock):
    settings = settings.model_copy(update={"GROUP_MIN_ACCEPTS": 1})
    service = SchedulingService(settings, clock)
    position = service.positions.create("acme", "Backend")
    for n in range(1, 4):
        service.queues.join(position.id, f"c{n}")
    clock.advance(minutes=8 * 60 - 4)

    group = service.groups.initiate(position.id, "iv1")
    group = service.groups.respond(group.id, "c2", True)
    assert group.status == GroupStatus.IN_PROGRESS
    assert group.invitations == {
        "c1": InvitationStatus.DECLINED,
        "c2": InvitationStatus.ACCEPTED,
        "c3": InvitationStatus.DECLINED,
    }
    statuses = _statuses(service, position.id)
    assert statuses == {
        "c1": EntryStatus.WAITING,
        "c2": EntryStatus.IN_INTERVIEW,
        "c3": EntryStatus.WAITING,
    }


def test_group_is_cancelled_once_enough_accepts_are_out_of_reach(service, crowded):
    group = service.groups.initiate(crowded.id, "iv1", max_participants=2)
    group = service.groups.respond(group.id, "c1", False)
    # two accepts needed, only c2 is left to answer
    assert group.status == GroupStatus.CANCELLED
    assert group.invitations["c2"] == InvitationStatus.PENDING
    assert not service.sessions.is_busy("iv1")
    assert set(_statuses(service, crowded.id).values()) == {EntryStatus.WAITING}

    with pytest.raises(InvalidState):
        service.groups.respond(group.id, "c2", True)


def test_cancel_releases_every_invitee(service, crowded):
    group = service.groups.initiate(crowded.id, "iv1")
    service.groups.respond(group.id, "c1", True)

    cancelled = service.groups.cancel(group.id)
    assert cancelled.status == GroupStatus.CANCELLED
    assert set(_statuses(service, crowded.id).values()) == {EntryStatus.WAITING}
    assert service.sessions.start_next(crowded.id, "iv1").candidate_id == "c1"

    with pytest.raises(InvalidState):
        service.groups.cancel(group.id)


def test_leaving_declines_a_pending_invitation(service, crowded):
    group = service.groups.initiate(crowded.id, "iv1")
    service.queues.leave(crowded.id, "c3")
    assert service.groups.get(group.id).invitations["c3"] == InvitationStatus.DECLINED
    assert service.groups.get(group.id).status == GroupStatus.INVITING


def test_invitee_leaving_cancels_a_group_that_can_no_longer_fill(service, crowded):
    group = service.groups.initiate(crowded.id, "iv1", max_participants=2)
    service.groups.respond(group.id, "c1", True)
    service.queues.leave(crowded.id, "c2")

    group = service.groups.get(group.id)
    assert group.status == GroupStatus.CANCELLED
    assert group.invitations == {"c1": InvitationStatus.ACCEPTED, "c2": InvitationStatus.DECLINED}
    assert not service.sessions.is_busy("iv1")
    assert _statuses(service, crowded.id)["c1"] == EntryStatus.WAITING
    assert service.sessions.start_next(crowded.id, "iv1").candidate_id == "c1"


def test_response_errors(service, crowded):
    group = service.groups.initiate(crowded.id, "iv1")
    with pytest.raises(PermissionDenied):
        service.groups.respond(group.id, "c5", True)
    with pytest.raises(GroupNotFound):
        service.groups.respond("grp_404", "c1", True)


def test_nobody_waiting(service, clock, make_position):
    position = make_position("Backend")
    service.queues.join(position.id, "c1")
    clock.advance(minutes=8 * 60 - 4)
    service.sessions.start_next(position.id, "iv2")
    assert not service.groups.should_trigger(position.id)
    with pytest.raises(InvalidState):
        service.groups.initiate(position.id, "iv1")


def test_candidates_busy_elsewhere_are_not_invited(service, clock, make_position):
    a, b = make_position("Backend"), make_position("Frontend")
    service.queues.join(a.id, "x")
    service.queues.join(b.id, "x")
    clock.advance(minutes=8 * 60 - 4)
    service.sessions.start_next(a.id, "iv2")

    assert service.groups.should_trigger(b.id)
    with pytest.raises(EmptyQueue):
        service.groups.initiate(b.id, "iv1")


def test_group_invitations_show_in_queue_status(service, crowded):
    group = service.groups.initiate(crowded.id, "iv1")
    status = service.queue_status("c2")
    assert [g.id for g in status["group_invitations"]] == [group.id]
    assert service.queue_status("c5")["group_invitations"] == []
