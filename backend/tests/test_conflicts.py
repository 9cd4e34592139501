"""Tests for cross-queue conflict detection and resolution."""

from interview_queue.domain.models import EntryStatus


def _projected(service, candidate_id):
    return {e.position_id: e.projected_wait_minutes for e in service.queues.candidate_entries(candidate_id)}


def test_detect_is_read_only_and_repeatable(service, make_position):
    a, b = make_position("Backend"), make_position("Frontend")
    service.queues.join(a.id, "x")
    service.queues.join(b.id, "x")

    first = service.conflicts.detect("x")
    second = service.conflicts.detect("x")
    assert first.has_conflicts
    assert first.messages == second.messages == [
        "Shifted Frontend by 13 minutes to avoid conflict with Backend"
    ]
    assert _projected(service, "x") == {a.id: 0, b.id: 0}


def test_resolve_staggers_windows_and_is_idempotent(service, make_position):
    a, b = make_position("Backend"), make_position("Frontend")
    service.queues.join(a.id, "x")
    service.queues.join(b.id, "x")

    report = service.conflicts.resolve("x")
    assert report.messages == ["Shifted Frontend by 13 minutes to avoid conflict with Backend"]
    assert _projected(service, "x") == {a.id: 0, b.id: 13}

    assert not service.conflicts.detect("x").has_conflicts
    assert not service.conflicts.resolve("x").has_conflicts
    log = service.conflicts.resolution_log("x")
    assert [message for _, message in log] == report.messages


def test_three_way_conflict_is_resolved_in_one_pass(service, make_position):
    a, b, c = make_position("A"), make_position("B"), make_position("C")
    for position in (a, b, c):
        service.queues.join(position.id, "x")

    report = service.conflicts.resolve("x")
    assert report.messages == [
        "Shifted B by 13 minutes to avoid conflict with A",
        "Shifted C by 26 minutes to avoid conflict with B",
    ]
    assert _projected(service, "x") == {a.id: 0, b.id: 13, c.id: 26}
    assert not service.conflicts.detect("x").has_conflicts


def test_position_duration_sets_the_window_length(service, make_position):
    a = make_position("Panel", interview_duration=20)
    b = make_position("Screen")
    service.queues.join(b.id, "other")
    service.queues.join(a.id, "x")
    service.queues.join(b.id, "x")

    # Panel occupies [0, 20], Screen starts at 13
    report = service.conflicts.resolve("x")
    assert report.messages == ["Shifted Screen by 12 minutes to avoid conflict with Panel"]
    assert _projected(service, "x") == {a.id: 0, b.id: 25}


def test_far_apart_entries_do_not_conflict(service, make_position):
    a, b = make_position("Backend"), make_position("Frontend")
    for n in range(3):
        service.queues.join(a.id, f"other{n}")
    service.queues.join(a.id, "x")
    service.queues.join(b.id, "x")

    # Frontend [0, 8] ends long before Backend starts at 39
    assert not service.conflicts.detect("x").has_conflicts


def test_join_resolves_conflicts_automatically(service, make_position):
    a, b = make_position("Backend"), make_position("Frontend")
    service.join_queue("x", a.id)
    entry = service.join_queue("x", b.id)

    assert entry.projected_wait_minutes == 13
    assert service.conflicts.resolution_log("x")
    assert not service.detect_conflicts("x").has_conflicts


def test_entries_in_interview_are_not_shifted(service, make_position):
    a, b = make_position("Backend"), make_position("Frontend")
    service.queues.join(a.id, "x")
    service.queues.join(b.id, "x")
    service.sessions.start_next(a.id, "iv1")

    assert not service.conflicts.detect("x").has_conflicts
    entries = {e.position_id: e for e in service.queues.candidate_entries("x")}
    assert entries[a.id].status == EntryStatus.IN_INTERVIEW
