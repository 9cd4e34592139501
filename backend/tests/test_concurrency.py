"""Thread-safety tests: many callers hitting the same positions at once."""

from concurrent.futures import ThreadPoolExecutor

from interview_queue.core.errors import ActiveQueueLimitReached, PriorityQuotaExceeded


def test_parallel_joins_and_leaves_keep_ranks_dense(service, make_position):
    a, b = make_position("A"), make_position("B")

    def churn(n: int) -> None:
        candidate = f"c{n}"
        service.join_queue(candidate, a.id)
        service.join_queue(candidate, b.id)
        if n % 3 == 0:
            service.leave_queue(candidate, a.id)

    with ThreadPoolExecutor(max_workers=8) as pool:
        list(pool.map(churn, range(60)))

    for position, expected in ((a, 40), (b, 60)):
        entries = service.queues.snapshot(position.id)
        assert len(entries) == expected
        assert [e.queue_rank for e in entries] == list(range(1, expected + 1))
        assert len({e.candidate_id for e in entries}) == expected


def test_priority_quota_holds_under_contention(service, make_position):
    position = make_position("A")
    for n in range(20):
        service.queues.join(position.id, f"c{n}")

    def boost(n: int) -> bool:
        try:
            service.queues.request_priority(position.id, f"c{n}")
        except PriorityQuotaExceeded:
            return False
        return True

    with ThreadPoolExecutor(max_workers=8) as pool:
        granted = list(pool.map(boost, range(20)))

    assert sum(granted) == 2
    entries = service.queues.snapshot(position.id)
    assert sum(e.is_priority for e in entries) == 2
    assert all(e.is_priority for e in entries[:2])


def test_candidate_limit_holds_under_contention(service, make_position):
    service.update_activity(active_queue_limit=3)
    positions = [make_position(f"P{n}") for n in range(8)]

    def join(position_id: str) -> bool:
        try:
            service.queues.join(position_id, "x")
        except ActiveQueueLimitReached:
            return False
        return True

    with ThreadPoolExecutor(max_workers=8) as pool:
        joined = list(pool.map(join, [p.id for p in positions]))

    assert sum(joined) == 3
    assert len(service.queues.candidate_position_ids("x")) == 3


def test_interviewers_never_share_a_candidate(service, make_position):
    position = make_position("A")
    for n in range(6):
        service.queues.join(position.id, f"c{n}")

    with ThreadPoolExecutor(max_workers=6) as pool:
        interviews = list(pool.map(lambda i: service.sessions.start_next(position.id, f"iv{i}"), range(6)))

    assert sorted(i.candidate_id for i in interviews) == [f"c{n}" for n in range(6)]
