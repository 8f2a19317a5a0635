"""
Execute and submit over HTTP, plus submission history
"""
import json

from judge_api.errors import UpstreamServiceError

from conftest import bearer, fail_case

EXECUTE = "/api/v1/code-evaluation/execute"
SUBMIT = "/api/v1/code-evaluation/submit"
CODE = "a, b = map(int, input().split())\nprint(a + b)\n"


def run_request(problem_id, language_id=71, code=CODE):
    return {"problemId": problem_id, "languageId": language_id, "code": code}


def test_execute_runs_public_cases_only(client, user_id, judge_client, problem_id):
    response = client.post(EXECUTE, json=run_request(problem_id), headers=bearer(user_id))
    assert response.status_code == 200
    data = response.json()["data"]
    assert [case["testCase"] for case in data] == [1, 2]
    assert data[0] == {
        "testCase": 1,
        "input": "1 2",
        "output": "3",
        "expectedOutput": "3",
        "status": "Accepted",
        "time": "0.010",
        "memory": 1024,
    }
    assert len(judge_client.batches) == 1
    assert [item.stdin for item in judge_client.batches[0]] == ["1 2", "5 7"]


def test_execute_requires_login(client, problem_id):
    assert client.post(EXECUTE, json=run_request(problem_id)).status_code == 401


def test_execute_unknown_problem_and_language(client, user_id, problem_id):
    response = client.post(EXECUTE, json=run_request("missing"), headers=bearer(user_id))
    assert response.status_code == 404

    response = client.post(EXECUTE, json=run_request(problem_id, language_id=999), headers=bearer(user_id))
    assert response.status_code == 400


def test_execute_rejects_blank_code(client, user_id, problem_id):
    response = client.post(EXECUTE, json=run_request(problem_id, code="   \n"), headers=bearer(user_id))
    assert response.status_code == 400
    assert response.json()["errors"][0]["field"] == "code"


def test_upstream_failure_maps_to_bad_gateway(client, user_id, judge_client, problem_id):
    def outcome(items):
        raise UpstreamServiceError("Failed to submit code to Judge0")

    judge_client.outcome = outcome
    response = client.post(SUBMIT, json=run_request(problem_id), headers=bearer(user_id))
    assert response.status_code == 502
    assert response.json()["success"] is False

    history = client.get(f"/api/v1/code-evaluation/p/{problem_id}", headers=bearer(user_id)).json()["data"]
    assert history == []


def test_accepted_submit_marks_problem_solved_once(client, user_id, judge_client, problem_id):
    response = client.post(SUBMIT, json=run_request(problem_id), headers=bearer(user_id))
    assert response.status_code == 200
    data = response.json()["data"]

    submission = data["submission"]
    assert submission["status"] == "accepted"
    assert submission["language"] == "Python"
    assert submission["sourceCode"] == {"language": "Python", "code": CODE}
    assert submission["time"] == 30
    assert data["results"] == {"passed": 3, "failed": 0}
    assert [row["type"] for row in data["testCaseResults"]] == ["public", "public"]
    assert all(row["status"] == "accepted" for row in data["testCaseResults"])
    assert len(judge_client.batches[0]) == 3

    client.post(SUBMIT, json=run_request(problem_id), headers=bearer(user_id))
    solved = client.get("/api/v1/problem/submit-all", headers=bearer(user_id)).json()["data"]
    assert len(solved) == 1
    assert solved[0]["problemId"] == problem_id
    assert solved[0]["problem"]["title"] == "Add Two Numbers"


def test_wrong_answer_submit(client, user_id, judge_client, problem_id):
    judge_client.outcome = fail_case(3)
    response = client.post(SUBMIT, json=run_request(problem_id), headers=bearer(user_id))
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["submission"]["status"] == "wrong answer"
    assert data["results"] == {"passed": 2, "failed": 1}
    # the failing case is hidden, so nothing about it comes back
    assert [row["testCaseIndex"] for row in data["testCaseResults"]] == [1, 2]

    assert client.get("/api/v1/problem/submit-all", headers=bearer(user_id)).json()["data"] == []


def test_submission_detail_visibility(client, admin_id, user_id, other_user_id, problem_id):
    submission_id = client.post(SUBMIT, json=run_request(problem_id),
                                headers=bearer(user_id)).json()["data"]["submission"]["id"]
    url = f"/api/v1/code-evaluation/s/{submission_id}"

    own = client.get(url, headers=bearer(user_id)).json()["data"]
    assert [row["testCaseIndex"] for row in own["testCaseResults"]] == [1, 2]

    as_admin = client.get(url, headers=bearer(admin_id)).json()["data"]
    assert [row["testCaseIndex"] for row in as_admin["testCaseResults"]] == [1, 2, 3]

    assert client.get(url, headers=bearer(other_user_id)).status_code == 403
    assert client.get("/api/v1/code-evaluation/s/missing", headers=bearer(user_id)).status_code == 404


def test_submission_history(client, admin_id, user_id, other_user_id, problem_id):
    client.post(SUBMIT, json=run_request(problem_id), headers=bearer(user_id))
    client.post(SUBMIT, json=run_request(problem_id), headers=bearer(user_id))
    client.post(SUBMIT, json=run_request(problem_id), headers=bearer(other_user_id))

    mine = client.get(f"/api/v1/code-evaluation/p/{problem_id}", headers=bearer(user_id)).json()["data"]
    assert len(mine) == 2
    assert all(s["userId"] == user_id for s in mine)

    assert len(client.get(f"/api/v1/code-evaluation/u/{user_id}", headers=bearer(admin_id)).json()["data"]) == 2
    assert client.get(f"/api/v1/code-evaluation/u/{user_id}", headers=bearer(other_user_id)).status_code == 403


def test_health(client):
    assert client.get("/api/health").json()["status"] == "healthy"


def _per_case(submission):
    return {field: json.loads(submission[field]) for field in ("stdin", "stdout", "stderr", "compileOutput")}


def test_hidden_case_data_is_never_returned(client, admin_id, user_id, problem_id):
    response = client.post(SUBMIT, json=run_request(problem_id), headers=bearer(user_id))
    assert "100 -1" not in response.text
    submission = response.json()["data"]["submission"]
    assert _per_case(submission) == {
        "stdin": ["1 2", "5 7"],
        "stdout": ["3", "12"],
        "stderr": [None, None],
        "compileOutput": [None, None],
    }

    detail = client.get(f"/api/v1/code-evaluation/s/{submission['id']}", headers=bearer(user_id))
    assert "100 -1" not in detail.text
    assert _per_case(detail.json()["data"])["stdout"] == ["3", "12"]

    for url in (f"/api/v1/code-evaluation/p/{problem_id}", f"/api/v1/code-evaluation/u/{user_id}"):
        listing = client.get(url, headers=bearer(user_id))
        assert listing.status_code == 200
        assert "100 -1" not in listing.text
        assert _per_case(listing.json()["data"][0])["stdin"] == ["1 2", "5 7"]

    as_admin = client.get(f"/api/v1/code-evaluation/s/{submission['id']}", headers=bearer(admin_id)).json()["data"]
    assert _per_case(as_admin)["stdin"] == ["1 2", "5 7", "100 -1"]
    assert _per_case(as_admin)["stdout"] == ["3", "12", "99"]
