"""End-to-end tests through the HTTP layer."""


def _create_position(client, auth, name="Backend", company_id="acme", **extra):
    response = client.post(
        "/api/company/positions",
        json={"name": name, **extra},
        headers=auth("company_admin", f"admin_{company_id}", company_id=company_id),
    )
    assert response.status_code == 201
    return response.json()


def test_missing_or_bad_token_is_401(client):
    assert client.get("/api/candidate/positions").status_code == 401
    response = client.get("/api/candidate/positions", headers={"Authorization": "Bearer nonsense"})
    assert response.status_code == 401


def test_wrong_role_is_403_with_error_body(client, auth):
    response = client.get("/api/admin/activity", headers=auth("candidate", "c1"))
    assert response.status_code == 403
    assert response.json() == {
        "error": "permission_denied",
        "category": "permission_denied",
        "detail": "Insufficient permissions",
    }


def test_profile_echoes_the_token(client, auth):
    response = client.get("/api/profile", headers=auth("candidate", "c1", email="c1@example.com"))
    assert response.status_code == 200
    assert response.json()["email"] == "c1@example.com"
    assert response.json()["role"] == "candidate"


def test_company_admin_manages_own_positions(client, auth):
    position = _create_position(client, auth, interview_duration=10)
    assert position["company_id"] == "acme"
    assert position["interview_duration"] == 10

    other = auth("company_admin", "admin_globex", company_id="globex")
    response = client.put(f"/api/company/positions/{position['id']}", json={"name": "Hijacked"}, headers=other)
    assert response.status_code == 403
    assert client.get("/api/company/positions", headers=other).json() == []

    own = auth("company_admin", "admin_acme", company_id="acme")
    response = client.post(
        f"/api/company/positions/{position['id']}/assign", json={"interviewer_id": "iv1"}, headers=own
    )
    assert response.json()["interviewer_ids"] == ["iv1"]
    response = client.put(f"/api/company/positions/{position['id']}", json={"is_active": False}, headers=own)
    assert response.json()["is_active"] is False


def test_candidate_queue_lifecycle(client, auth):
    position = _create_position(client, auth)
    candidate = auth("candidate", "c1")

    listed = client.get("/api/candidate/positions", headers=candidate).json()
    assert listed[0]["candidates_in_queue"] == 0
    assert listed[0]["interview_duration"] == 8

    response = client.post("/api/candidate/queue/join", json={"position_id": position["id"]}, headers=candidate)
    assert response.status_code == 201
    entry = response.json()
    assert entry["queue_rank"] == entry["queue_position"] == 1
    assert entry["estimated_wait_time"] == 0
    assert entry["status"] == "waiting"

    response = client.post("/api/candidate/queue/join", json={"position_id": position["id"]}, headers=candidate)
    assert response.status_code == 409
    assert response.json()["error"] == "already_queued"

    status = client.get("/api/candidate/queue/status", headers=candidate).json()
    assert status["entries"][0]["position_name"] == "Backend"
    assert status["entries"][0]["can_set_priority"] is True

    response = client.post("/api/candidate/queue/priority", json={"position_id": position["id"]}, headers=candidate)
    assert response.json()["is_priority"] is True

    response = client.post(
        "/api/candidate/queue/delay", json={"position_id": position["id"], "minutes": 2}, headers=candidate
    )
    assert response.status_code == 422
    assert response.json()["category"] == "validation_error"

    response = client.post("/api/candidate/queue/leave", json={"position_id": position["id"]}, headers=candidate)
    assert response.status_code == 200
    response = client.post("/api/candidate/queue/leave", json={"position_id": position["id"]}, headers=candidate)
    assert response.status_code == 404
    assert response.json()["error"] == "not_queued"


def test_interviewer_flow(client, auth):
    position = _create_position(client, auth)
    admin = auth("company_admin", "admin_acme", company_id="acme")
    client.post(f"/api/company/positions/{position['id']}/assign", json={"interviewer_id": "iv1"}, headers=admin)
    client.post("/api/candidate/queue/join", json={"position_id": position["id"]}, headers=auth("candidate", "c1"))

    iv1 = auth("interviewer", "iv1")
    view = client.get("/api/interviewer/queue", headers=iv1).json()
    assert view["position"]["id"] == position["id"]
    assert [e["candidate_id"] for e in view["entries"]] == ["c1"]
    assert view["group_recommended"] is False

    response = client.post("/api/interviewer/interview/start", json={"position_id": position["id"]}, headers=iv1)
    assert response.status_code == 201
    interview = response.json()
    assert interview["candidate_id"] == "c1"

    response = client.post("/api/interviewer/interview/start", json={"position_id": position["id"]}, headers=iv1)
    assert response.status_code == 409
    assert response.json()["error"] == "interviewer_busy"

    assert client.get("/api/interviewer/interview/current", headers=iv1).json()["id"] == interview["id"]

    response = client.post(
        "/api/interviewer/interview/end", json={"interview_id": interview["id"]}, headers=auth("interviewer", "iv2")
    )
    assert response.status_code == 403

    response = client.post(
        "/api/interviewer/interview/end", json={"interview_id": interview["id"], "notes": "Good"}, headers=iv1
    )
    assert response.json()["status"] == "completed"
    response = client.post("/api/interviewer/interview/end", json={"interview_id": interview["id"]}, headers=iv1)
    assert response.status_code == 409
    assert response.json()["error"] == "already_ended"

    assert client.get("/api/interviewer/interview/current", headers=iv1).json() is None
    assert client.get("/api/interviewer/stats", headers=iv1).json()["total_interviews"] == 1

    response = client.post("/api/interviewer/pause", json={"paused": True}, headers=iv1)
    assert response.json() == {"interviewer_id": "iv1", "paused": True, "busy": False}


def test_control_admin_closes_the_gate(client, auth):
    position = _create_position(client, auth)
    admin = auth("control_admin", "ops")

    response = client.put("/api/admin/activity", json={"start_time": "10:00", "end_time": "09:30"}, headers=admin)
    assert response.status_code == 422

    response = client.put("/api/admin/activity", json={"high_priority_quota": 3}, headers=admin)
    assert response.json()["high_priority_quota"] == 3

    client.post("/api/admin/activity/end", headers=admin)
    assert client.get("/api/activity/status").json()["can_join_queue"] is False

    response = client.post(
        "/api/candidate/queue/join", json={"position_id": position["id"]}, headers=auth("candidate", "c1")
    )
    assert response.status_code == 409
    assert response.json() == {
        "error": "activity_not_open",
        "category": "activity_gate_closed",
        "detail": "The interview activity is not open for joining queues",
    }

    client.post("/api/admin/activity/start", headers=admin)
    assert client.get("/api/activity/status").json()["can_join_queue"] is True


def test_position_with_live_entries_cannot_be_deleted(client, auth):
    position = _create_position(client, auth)
    admin = auth("company_admin", "admin_acme", company_id="acme")
    candidate = auth("candidate", "c1")
    client.post("/api/candidate/queue/join", json={"position_id": position["id"]}, headers=candidate)

    response = client.delete(f"/api/company/positions/{position['id']}", headers=admin)
    assert response.status_code == 409
    assert response.json()["error"] == "position_has_live_entries"

    client.post("/api/candidate/queue/leave", json={"position_id": position["id"]}, headers=candidate)
    assert client.delete(f"/api/company/positions/{position['id']}", headers=admin).status_code == 204
    assert client.get("/api/company/positions", headers=admin).json() == []


def test_conflicts_and_optimization_endpoints(client, auth):
    backend = _create_position(client, auth, "Backend")
    frontend = _create_position(client, auth, "Frontend")
    candidate = auth("candidate", "x")
    client.post("/api/candidate/queue/join", json={"position_id": backend["id"]}, headers=candidate)
    client.post("/api/candidate/queue/join", json={"position_id": frontend["id"]}, headers=candidate)

    conflicts = client.get("/api/candidate/queue/conflicts", headers=candidate).json()
    assert conflicts["has_conflicts"] is False
    assert conflicts["resolved_messages"] == ["Shifted Frontend by 13 minutes to avoid conflict with Backend"]

    assert client.get("/api/candidate/queue/optimization", headers=candidate).json()["can_optimize"] is False

    client.post("/api/candidate/queue/priority", json={"position_id": backend["id"]}, headers=candidate)
    offer = client.get("/api/candidate/queue/optimization", headers=candidate).json()
    assert offer["can_optimize"] is True
    assert offer["regular_position"]["id"] == frontend["id"]
    assert offer["priority_position"]["id"] == backend["id"]

    response = client.post(
        "/api/candidate/queue/optimize",
        json={"regular_position_id": frontend["id"], "priority_position_id": backend["id"], "accept": True},
        headers=candidate,
    )
    assert response.status_code == 200
    assert client.get("/api/candidate/queue/status", headers=candidate).json()["attendance_order"] == [
        frontend["id"],
        backend["id"],
    ]
