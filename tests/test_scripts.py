"""
Maintenance scripts against an in-memory database
"""
from judge_api.models import Difficulty, Problem, ProblemSolved, Submission, User, UserRole
from scripts.backfill_problems_solved import backfill_problems_solved
from scripts.make_admin import list_admins, make_user_admin


def test_make_admin(database, user_id):
    assert make_user_admin("user@example.com", database) is True
    assert list_admins(database) == ["user@example.com"]

    db = database.session()
    try:
        assert db.get(User, user_id).role == UserRole.ADMIN
    finally:
        db.close()


def test_make_admin_unknown_email(database):
    assert make_user_admin("ghost@example.com", database) is False
    assert list_admins(database) == []


def test_backfill_problems_solved(database, user_id):
    db = database.session()
    try:
        problem = Problem(title="Echo", description="Print the input", difficulty=Difficulty.EASY,
                          test_cases=[{"input": "x", "output": "x", "type": "public"}])
        db.add(problem)
        db.flush()
        for status in ("accepted", "accepted", "wrong answer"):
            db.add(Submission(user_id=user_id, problem_id=problem.id, language="Python",
                              source_code={"language": "Python", "code": "print(input())"}, status=status))
        db.commit()
    finally:
        db.close()

    assert backfill_problems_solved(database) == 1
    assert backfill_problems_solved(database) == 0

    db = database.session()
    try:
        assert db.query(ProblemSolved).count() == 1
    finally:
        db.close()
