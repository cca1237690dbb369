from fastapi.testclient import TestClient

from main import app
from models import CaseAttempt


def test_requires_login(client, make_case):
    case = make_case()

    assert client.post("/case-attempts/ensure", json={"caseId": case.case_id}).status_code == 401
    assert client.get(f"/case-attempts/by-case/{case.case_id}").status_code == 401
    assert client.put("/case-attempts/1/save", json={"section": "exam", "data": {}}).status_code == 401
    assert client.post("/case-attempts/1/complete", json={}).status_code == 401
    response = client.get("/my-progress")
    assert response.status_code == 401
    assert response.json()["error"] == "NOT_AUTHENTICATED"


def test_full_attempt_scenario(student_client, make_case):
    case = make_case()

    response = student_client.post("/case-attempts/ensure", json={"caseId": case.case_id})
    assert response.status_code == 200
    attempt = response.json()["attempt"]
    assert attempt["status"] == "IN_PROGRESS"
    assert attempt["last_page"] == "history"

    response = student_client.put(
        f"/case-attempts/{attempt['attempt_id']}/save",
        json={"section": "history", "data": {"cc": "blurry vision"}},
    )
    assert response.status_code == 200
    assert response.json() == {"ok": True}

    response = student_client.post(f"/case-attempts/{attempt['attempt_id']}/complete", json={})
    assert response.status_code == 200
    assert response.json() == {"ok": True}

    response = student_client.post("/case-attempts/ensure", json={"caseId": case.case_id})
    assert response.status_code == 403
    body = response.json()
    assert body["error"] == "CASE_COMPLETED"
    assert body["message"] == "You already completed this case."
    assert body["attempt"]["attempt_id"] == attempt["attempt_id"]
    assert body["attempt"]["history_json"] == {"cc": "blurry vision"}


def test_ensure_without_case_id(student_client):
    response = student_client.post("/case-attempts/ensure", json={})
    assert response.status_code == 400
    assert response.json()["error"] == "MISSING_CASE_ID"

    response = student_client.post("/case-attempts/ensure")
    assert response.status_code == 400
    assert response.json()["error"] == "MISSING_CASE_ID"


def test_ensure_is_stable_and_updates_last_page(student_client, make_case, db_session):
    case = make_case()

    first = student_client.post("/case-attempts/ensure", json={"caseId": case.case_id}).json()["attempt"]
    second = student_client.post(
        "/case-attempts/ensure", json={"caseId": case.case_id, "lastPage": "assessment"}
    ).json()["attempt"]

    assert first["attempt_id"] == second["attempt_id"]
    assert second["last_page"] == "assessment"
    assert db_session.query(CaseAttempt).count() == 1


def test_by_case_guard(student_client, make_case, db_session):
    case = make_case()

    response = student_client.get(f"/case-attempts/by-case/{case.case_id}")
    assert response.status_code == 200
    assert response.json() == {"attempt": None}
    assert db_session.query(CaseAttempt).count() == 0

    attempt = student_client.post("/case-attempts/ensure", json={"caseId": case.case_id}).json()["attempt"]
    response = student_client.get(f"/case-attempts/by-case/{case.case_id}")
    assert response.json()["attempt"]["attempt_id"] == attempt["attempt_id"]

    student_client.post(f"/case-attempts/{attempt['attempt_id']}/complete", json={"pdfUrl": "/uploads/a.pdf"})
    response = student_client.get(f"/case-attempts/by-case/{case.case_id}")
    assert response.status_code == 403
    assert response.json()["error"] == "CASE_COMPLETED"
    assert response.json()["attempt"]["pdf_url"] == "/uploads/a.pdf"


def test_save_errors(student_client, login, other_student, make_case):
    case = make_case()
    attempt = student_client.post("/case-attempts/ensure", json={"caseId": case.case_id}).json()["attempt"]
    attempt_id = attempt["attempt_id"]

    response = student_client.put(f"/case-attempts/{attempt_id}/save", json={"section": "bogus", "data": {}})
    assert response.status_code == 400
    assert response.json()["error"] == "BAD_SECTION"

    response = student_client.put("/case-attempts/424242/save", json={"section": "exam", "data": {}})
    assert response.status_code == 404
    assert response.json()["error"] == "NOT_FOUND"

    # Another student's attempt looks exactly like a missing one.
    intruder = login(other_student)
    response = intruder.put(f"/case-attempts/{attempt_id}/save", json={"section": "exam", "data": {}})
    assert response.status_code == 404
    assert response.json()["error"] == "NOT_FOUND"

    student_client.post(f"/case-attempts/{attempt_id}/complete", json={})
    response = student_client.put(f"/case-attempts/{attempt_id}/save", json={"section": "exam", "data": {}})
    assert response.status_code == 403
    assert response.json()["error"] == "CASE_COMPLETED"


def test_complete_twice_reports_already_completed(student_client, make_case):
    case = make_case()
    attempt_id = student_client.post("/case-attempts/ensure", json={"caseId": case.case_id}).json()["attempt"]["attempt_id"]

    assert student_client.post(f"/case-attempts/{attempt_id}/complete").json() == {"ok": True}
    assert student_client.post(f"/case-attempts/{attempt_id}/complete").json() == {"ok": True, "alreadyCompleted": True}

    response = student_client.post("/case-attempts/999/complete", json={})
    assert response.status_code == 404
    assert response.json()["error"] == "NOT_FOUND"


def test_my_progress(student_client, make_case):
    first = make_case("Red eye")
    second = make_case("Flashes and floaters")
    first_attempt = student_client.post("/case-attempts/ensure", json={"caseId": first.case_id}).json()["attempt"]
    student_client.post("/case-attempts/ensure", json={"caseId": second.case_id})
    student_client.post(f"/case-attempts/{first_attempt['attempt_id']}/complete", json={})

    response = student_client.get("/my-progress")

    assert response.status_code == 200
    rows = response.json()["attempts"]
    assert [(row["case_name"], row["status"]) for row in rows] == [
        ("Flashes and floaters", "IN_PROGRESS"),
        ("Red eye", "COMPLETED"),
    ]
    assert rows[1]["completed_at"] is not None


def test_storage_failure_is_a_generic_server_error(student_client, make_case, monkeypatch):
    import attempts

    def broken(*args, **kwargs):
        raise RuntimeError("connection reset by peer")

    monkeypatch.setattr(attempts, "get_attempt_by_case_for_user", broken)
    client = TestClient(app, raise_server_exceptions=False, cookies=student_client.cookies)

    response = client.post("/case-attempts/ensure", json={"caseId": make_case().case_id})

    assert response.status_code == 500
    assert response.json() == {"error": "SERVER_ERROR"}


def test_save_rejects_non_string_sections(student_client, make_case):
    case = make_case()
    attempt_id = student_client.post("/case-attempts/ensure", json={"caseId": case.case_id}).json()["attempt"]["attempt_id"]

    for section in (5, ["history"], {"name": "exam"}):
        response = student_client.put(f"/case-attempts/{attempt_id}/save", json={"section": section, "data": {}})
        assert response.status_code == 400
        assert response.json()["error"] == "BAD_SECTION"

        # Ownership is checked before the section.
        response = student_client.put("/case-attempts/999/save", json={"section": section, "data": {}})
        assert response.status_code == 404
        assert response.json()["error"] == "NOT_FOUND"


def test_non_string_last_page_is_ignored(student_client, make_case):
    case = make_case()
    attempt = student_client.post("/case-attempts/ensure", json={"caseId": case.case_id, "lastPage": 3}).json()["attempt"]
    assert attempt["last_page"] == "history"

    response = student_client.put(
        f"/case-attempts/{attempt['attempt_id']}/save",
        json={"section": "exam", "data": {"va": "20/20"}, "lastPage": 3},
    )
    assert response.status_code == 200

    attempt = student_client.get(f"/case-attempts/by-case/{case.case_id}").json()["attempt"]
    assert attempt["last_page"] == "history"
    assert attempt["exam_json"] == {"va": "20/20"}
