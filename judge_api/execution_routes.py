import json
from typing import Any, Dict

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session, selectinload

from .auth import get_current_user
from .config import Config
from .database import get_db
from .errors import AuthorizationError, NotFoundError, success_body
from .judging import CodeJudge, get_code_judge
from .models import Submission, TestCaseType, User
from .rate_limiter import SUBMISSION_RATE_LIMIT, limiter
from .schemas import (CodeRunRequest, ExecutionCaseResult, PassFailCounts, SubmissionDetailResponse,
                      SubmissionResponse, SubmitResultResponse, TestCaseResultResponse)

execution_router = APIRouter(prefix=f"{Config.API_PREFIX}/code-evaluation", tags=["code-evaluation"])

PER_CASE_FIELDS = ("stdin", "stdout", "stderr", "compileOutput")


def hide_hidden_cases(data: Dict[str, Any], submission: Submission) -> Dict[str, Any]:
    """Reduce the per-case arrays of a serialized submission to its public test cases"""
    public = [row.test_case_index - 1 for row in submission.test_case_results
              if row.type == TestCaseType.PUBLIC.value]
    for field in PER_CASE_FIELDS:
        raw = data.get(field)
        if raw is None:
            continue
        try:
            values = json.loads(raw)
        except ValueError:
            values = None
        if not isinstance(values, list):
            data[field] = None
            continue
        data[field] = json.dumps([values[i] for i in public if 0 <= i < len(values)])

    if "testCaseResults" in data:
        data["testCaseResults"] = [r for r in data["testCaseResults"] if r["type"] == TestCaseType.PUBLIC.value]
    return data


def _submission_view(submission: Submission, viewer: User) -> Dict[str, Any]:
    data = SubmissionResponse.model_validate(submission).model_dump(by_alias=True, mode="json")
    return data if viewer.is_admin else hide_hidden_cases(data, submission)


@execution_router.post("/execute")
async def execute_code(
    run_data: CodeRunRequest,
    current_user: User = Depends(get_current_user),
    judge: CodeJudge = Depends(get_code_judge),
    db: Session = Depends(get_db)
):
    """Run code against the public test cases without grading or saving anything"""
    results = await judge.execute(db, run_data.problem_id, run_data.language_id, run_data.code)
    return success_body(
        200, "Code executed successfully",
        [ExecutionCaseResult.model_validate(r).model_dump(by_alias=True, mode="json") for r in results],
    )


@execution_router.post("/submit")
@limiter.limit(SUBMISSION_RATE_LIMIT)
async def submit_code(
    request: Request,
    run_data: CodeRunRequest,
    current_user: User = Depends(get_current_user),
    judge: CodeJudge = Depends(get_code_judge),
    db: Session = Depends(get_db)
):
    """Grade code against every test case; hidden case details are never returned"""
    outcome = await judge.submit(db, current_user, run_data.problem_id, run_data.language_id, run_data.code)
    submission = outcome["submission"]
    payload = SubmitResultResponse(
        submission=SubmissionResponse.model_validate(submission),
        test_case_results=[TestCaseResultResponse.model_validate(row) for row in outcome["test_case_results"]],
        results=PassFailCounts(**outcome["results"]),
    ).model_dump(by_alias=True, mode="json")
    payload["submission"] = hide_hidden_cases(payload["submission"], submission)
    return success_body(200, "Code submitted successfully", payload)


@execution_router.get("/s/{submission_id}")
def get_submission(
    submission_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    submission = db.query(Submission).options(selectinload(Submission.test_case_results)).filter(
        Submission.id == submission_id
    ).first()
    if not submission:
        raise NotFoundError("Submission not found")
    if submission.user_id != current_user.id and not current_user.is_admin:
        raise AuthorizationError("Access denied")

    detail = SubmissionDetailResponse.model_validate(submission).model_dump(by_alias=True, mode="json")
    if not current_user.is_admin:
        detail = hide_hidden_cases(detail, submission)
    return success_body(200, "Submission fetched successfully", detail)


@execution_router.get("/p/{problem_id}")
def get_submissions_by_problem(
    problem_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """The current user's submissions for one problem, newest first"""
    submissions = db.query(Submission).options(selectinload(Submission.test_case_results)).filter(
        Submission.problem_id == problem_id,
        Submission.user_id == current_user.id
    ).order_by(Submission.created_at.desc()).all()
    return success_body(200, "Submissions fetched successfully",
                        [_submission_view(s, current_user) for s in submissions])


@execution_router.get("/u/{user_id}")
def get_submissions_by_user(
    user_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    if user_id != current_user.id and not current_user.is_admin:
        raise AuthorizationError("Access denied")

    submissions = db.query(Submission).options(selectinload(Submission.test_case_results)).filter(
        Submission.user_id == user_id
    ).order_by(Submission.created_at.desc()).all()
    return success_body(200, "Submissions fetched successfully",
                        [_submission_view(s, current_user) for s in submissions])
