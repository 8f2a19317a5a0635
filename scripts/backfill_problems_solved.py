#!/usr/bin/env python3
"""
Backfill the problems_solved table from accepted submissions

Every (user, problem) pair with at least one accepted submission gets a
ProblemSolved marker. Existing markers are left alone, so the script can be
run any number of times.
"""
import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from judge_api.database import Database, get_database, unit_of_work
from judge_api.models import ProblemSolved, Submission, SubmissionStatus


def backfill_problems_solved(database: Database = None) -> int:
    """
    Create the missing ProblemSolved markers; returns how many were added
    """
    db = (database or get_database()).session()

    try:
        print("🔄 Starting backfill of problems_solved from accepted submissions...")
        print()

        accepted_pairs = db.query(Submission.user_id, Submission.problem_id).filter(
            Submission.status == SubmissionStatus.ACCEPTED.value
        ).distinct().all()
        existing = {tuple(row) for row in db.query(ProblemSolved.user_id, ProblemSolved.problem_id).all()}

        missing = [(user_id, problem_id) for user_id, problem_id in accepted_pairs
                   if (user_id, problem_id) not in existing]

        with unit_of_work(db):
            for idx, (user_id, problem_id) in enumerate(missing, 1):
                db.add(ProblemSolved(user_id=user_id, problem_id=problem_id))
                print(f"✅ [{idx}/{len(missing)}] User {user_id} solved problem {problem_id}")

        print()
        print("=" * 60)
        print("✨ Backfill complete!")
        print(f"   Accepted (user, problem) pairs: {len(accepted_pairs)}")
        print(f"   Markers added: {len(missing)}")
        print(f"   Already present: {len(accepted_pairs) - len(missing)}")
        print("=" * 60)
        return len(missing)

    except Exception as e:
        print(f"❌ Error during backfill: {e}")
        raise
    finally:
        db.close()


if __name__ == "__main__":
    backfill_problems_solved()
