"""
Problem authoring and browsing over HTTP
"""
import logging

from conftest import bearer, fail_case

CREATE = "/api/v1/problem/create-problem"


def test_create_problem_validates_every_reference_solution(client, admin_id, judge_client, problem_payload):
    response = client.post(CREATE, json=problem_payload, headers=bearer(admin_id))
    assert response.status_code == 201
    data = response.json()["data"]
    assert data["title"] == "Add Two Numbers"
    assert data["difficulty"] == "EASY"
    assert data["userId"] == admin_id
    assert len(data["testCases"]) == 3
    assert set(data["referenceSolutions"]) == {"PYTHON", "JAVASCRIPT"}

    assert sorted(batch[0].language_id for batch in judge_client.batches) == [63, 71]
    assert all(len(batch) == 3 for batch in judge_client.batches)


def test_create_problem_rejected_when_a_case_fails(client, admin_id, judge_client, problem_payload):
    problem_payload["referenceSolutions"] = {"PYTHON": "print(3)"}
    judge_client.outcome = fail_case(2)

    response = client.post(CREATE, json=problem_payload, headers=bearer(admin_id))
    assert response.status_code == 400
    assert response.json()["message"] == "Testcase 2 failed for language PYTHON"
    assert client.get("/api/v1/problem/get-all-problems").json()["data"] == []


def test_create_problem_unsupported_language(client, admin_id, problem_payload):
    problem_payload["referenceSolutions"] = {"COBOL": "DISPLAY 3."}
    response = client.post(CREATE, json=problem_payload, headers=bearer(admin_id))
    assert response.status_code == 400
    assert response.json()["message"] == "Unsupported language: COBOL"


def test_create_problem_requires_admin(client, user_id, problem_payload):
    response = client.post(CREATE, json=problem_payload, headers=bearer(user_id))
    assert response.status_code == 403
    assert response.json()["message"] == "Access denied - Admins only"

    assert client.post(CREATE, json=problem_payload).status_code == 401


def test_create_problem_duplicate_title(client, admin_id, problem_id, problem_payload):
    response = client.post(CREATE, json=problem_payload, headers=bearer(admin_id))
    assert response.status_code == 409


def test_create_problem_requires_test_cases(client, admin_id, problem_payload):
    problem_payload["testCases"] = []
    response = client.post(CREATE, json=problem_payload, headers=bearer(admin_id))
    assert response.status_code == 400
    assert response.json()["errors"][0]["field"] == "testCases"


def test_create_problem_is_audited(client, admin_id, problem_payload, caplog):
    caplog.set_level(logging.INFO, logger="judge_api.audit")
    client.post(CREATE, json=problem_payload, headers=bearer(admin_id))
    assert any("action=create_problem" in record.getMessage() for record in caplog.records)


def test_hidden_cases_and_solutions_are_not_public(client, admin_id, user_id, problem_id):
    anonymous = client.get(f"/api/v1/problem/get-problem/{problem_id}").json()["data"]
    assert [case["output"] for case in anonymous["testCases"]] == ["3", "12"]
    assert anonymous["referenceSolutions"] is None

    as_user = client.get(f"/api/v1/problem/get-problem/{problem_id}", headers=bearer(user_id)).json()["data"]
    assert len(as_user["testCases"]) == 2

    as_admin = client.get(f"/api/v1/problem/get-problem/{problem_id}", headers=bearer(admin_id)).json()["data"]
    assert len(as_admin["testCases"]) == 3
    assert as_admin["referenceSolutions"]["PYTHON"].startswith("a, b")


def test_get_missing_problem(client):
    response = client.get("/api/v1/problem/get-problem/does-not-exist")
    assert response.status_code == 404
    assert response.json()["message"] == "Problem not found"


def test_list_problems_empty_is_ok(client):
    response = client.get("/api/v1/problem/get-all-problems")
    assert response.status_code == 200
    assert response.json()["data"] == []


def test_filter_by_tag_and_difficulty(client, problem_id):
    assert [p["id"] for p in client.get("/api/v1/problem/tags/math").json()["data"]] == [problem_id]
    assert client.get("/api/v1/problem/tags/graphs").json()["data"] == []
    assert [p["id"] for p in client.get("/api/v1/problem/difficulty/easy").json()["data"]] == [problem_id]
    assert client.get("/api/v1/problem/difficulty/HARD").json()["data"] == []
    assert client.get("/api/v1/problem/difficulty/impossible").json()["data"] == []


def test_update_keeps_omitted_fields(client, admin_id, judge_client, problem_id):
    response = client.put(f"/api/v1/problem/p/{problem_id}", json={"title": "Sum of Two"},
                          headers=bearer(admin_id))
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["title"] == "Sum of Two"
    assert data["description"] == "Read two integers from stdin and print their sum."
    assert data["tags"] == ["math", "basics"]
    assert len(data["testCases"]) == 3
    # stored solutions are re-checked against the stored cases
    assert len(judge_client.batches) == 2


def test_update_rejected_when_new_cases_fail(client, admin_id, judge_client, problem_id):
    judge_client.outcome = fail_case(1)
    response = client.put(f"/api/v1/problem/p/{problem_id}",
                          json={"testCases": [{"input": "2 2", "output": "5"}]},
                          headers=bearer(admin_id))
    assert response.status_code == 400
    assert response.json()["message"].startswith("Testcase 1 failed for language")

    data = client.get(f"/api/v1/problem/get-problem/{problem_id}", headers=bearer(admin_id)).json()["data"]
    assert len(data["testCases"]) == 3


def test_update_and_delete_missing_problem(client, admin_id):
    assert client.put("/api/v1/problem/p/missing", json={"title": "x"}, headers=bearer(admin_id)).status_code == 404
    assert client.delete("/api/v1/problem/p/missing", headers=bearer(admin_id)).status_code == 404


def test_delete_problem(client, admin_id, user_id, problem_id):
    assert client.delete(f"/api/v1/problem/p/{problem_id}", headers=bearer(user_id)).status_code == 403
    assert client.delete(f"/api/v1/problem/p/{problem_id}", headers=bearer(admin_id)).status_code == 200
    assert client.get(f"/api/v1/problem/get-problem/{problem_id}").status_code == 404


def test_update_rejects_null_for_required_fields(client, admin_id, problem_id):
    for field in ("tags", "examples", "constraints", "title", "testCases"):
        response = client.put(f"/api/v1/problem/p/{problem_id}", json={field: None}, headers=bearer(admin_id))
        assert response.status_code == 400, field
        assert response.json()["errors"][0]["field"] == field

    listing = client.get("/api/v1/problem/get-all-problems")
    assert listing.status_code == 200
    assert listing.json()["data"][0]["tags"] == ["math", "basics"]


def test_update_can_clear_optional_text(client, admin_id, problem_id):
    response = client.put(f"/api/v1/problem/p/{problem_id}", json={"hints": None}, headers=bearer(admin_id))
    assert response.status_code == 200
    assert response.json()["data"]["hints"] is None
    assert client.get("/api/v1/problem/get-all-problems").status_code == 200


def test_update_validates_only_the_new_reference_solutions(client, admin_id, judge_client, problem_id):
    response = client.put(f"/api/v1/problem/p/{problem_id}",
                          json={"referenceSolutions": {"JAVA": "class Main {}"}},
                          headers=bearer(admin_id))
    assert response.status_code == 200
    assert [batch[0].language_id for batch in judge_client.batches] == [62]
    assert len(judge_client.batches[0]) == 3


def test_concurrent_duplicate_title_is_a_conflict(client, admin_id, problem_id, problem_payload, monkeypatch):
    # the other request inserted its row after our title check
    monkeypatch.setattr("judge_api.problem_routes._ensure_title_available", lambda *args, **kwargs: None)
    response = client.post(CREATE, json=problem_payload, headers=bearer(admin_id))
    assert response.status_code == 409
    assert response.json()["message"] == "Problem with this title already exists"
    assert len(client.get("/api/v1/problem/get-all-problems").json()["data"]) == 1
