"""
Shared fixtures: an in-memory database, a scripted Judge0 client and an app wired to both
"""
import os

os.environ["ENV"] = "test"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["ACCESS_TOKEN_SECRET"] = "access-secret-for-the-judge-test-suite"
os.environ["REFRESH_TOKEN_SECRET"] = "refresh-secret-for-the-judge-test-suite"
os.environ["RATE_LIMIT_ENABLED"] = "false"

import copy

import pytest
from fastapi.testclient import TestClient

from judge_api.auth import create_access_token, get_password_hash
from judge_api.database import Database
from judge_api.main import create_app
from judge_api.models import User, UserRole

USER_PASSWORD = "Passw0rd!"

PROBLEM_PAYLOAD = {
    "title": "Add Two Numbers",
    "description": "Read two integers from stdin and print their sum.",
    "difficulty": "easy",
    "tags": ["math", "basics"],
    "examples": {"PYTHON": {"input": "1 2", "output": "3", "explanation": "1 + 2 = 3"}},
    "constraints": "-10^9 <= a, b <= 10^9",
    "hints": "Split the line on whitespace.",
    "testCases": [
        {"input": "1 2", "output": "3"},
        {"input": "5 7", "output": "12", "type": "public"},
        {"input": "100 -1", "output": "99", "type": "hidden"},
    ],
    "codeSnippets": {"PYTHON": "def solve():\n    pass\n"},
    "referenceSolutions": {
        "PYTHON": "a, b = map(int, input().split())\nprint(a + b)\n",
        "JAVASCRIPT": "const [a, b] = require('fs').readFileSync(0, 'utf8').trim().split(' ').map(Number);\n"
                      "console.log(a + b);\n",
    },
}


def judge0_result(status_id=3, stdout=None, time="0.010", memory=1024, description=None):
    descriptions = {1: "In Queue", 2: "Processing", 3: "Accepted", 4: "Wrong Answer",
                    5: "Time Limit Exceeded", 6: "Compilation Error"}
    return {
        "stdout": stdout,
        "stderr": None,
        "compile_output": None,
        "status": {"id": status_id, "description": description or descriptions.get(status_id, "Runtime Error")},
        "time": time,
        "memory": memory,
    }


class FakeJudge0Client:
    """Stands in for Judge0Client; answers every batch with scripted results"""

    def __init__(self):
        self.batches = []
        self.outcome = None
        self.closed = False

    async def run_batch(self, items):
        items = list(items)
        self.batches.append(items)
        if self.outcome is not None:
            return self.outcome(items)
        return [judge0_result(stdout=item.expected_output + "\n") for item in items]

    async def aclose(self):
        self.closed = True


def fail_case(index, status_id=4):
    """Outcome that accepts every item except the 1-based `index`"""
    def outcome(items):
        return [
            judge0_result(status_id=status_id, stdout="wrong\n") if position == index
            else judge0_result(stdout=item.expected_output + "\n")
            for position, item in enumerate(items, start=1)
        ]
    return outcome


def make_user(database, email, role=UserRole.USER, name="Test User"):
    db = database.session()
    try:
        user = User(name=name, email=email, password_hash=get_password_hash(USER_PASSWORD), role=role)
        db.add(user)
        db.commit()
        return user.id
    finally:
        db.close()


def bearer(user_id):
    return {"Authorization": f"Bearer {create_access_token(user_id)}"}


@pytest.fixture
def database():
    db = Database("sqlite://")
    db.create_tables()
    yield db
    db.dispose()


@pytest.fixture
def judge_client():
    return FakeJudge0Client()


@pytest.fixture
def client(database, judge_client):
    app = create_app(database=database, judge_client=judge_client)
    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client


@pytest.fixture
def admin_id(database):
    return make_user(database, "admin@example.com", role=UserRole.ADMIN, name="Ada Admin")


@pytest.fixture
def user_id(database):
    return make_user(database, "user@example.com", name="Uma User")


@pytest.fixture
def other_user_id(database):
    return make_user(database, "other@example.com", name="Otto Other")


@pytest.fixture
def problem_payload():
    return copy.deepcopy(PROBLEM_PAYLOAD)


@pytest.fixture
def problem_id(client, admin_id, judge_client, problem_payload):
    response = client.post("/api/v1/problem/create-problem", json=problem_payload, headers=bearer(admin_id))
    assert response.status_code == 201, response.text
    judge_client.batches.clear()
    return response.json()["data"]["id"]
