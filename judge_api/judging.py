"""
Code judging on top of the Judge0 batch API

- execute: run code against a problem's public test cases, nothing stored
- submit: run code against every test case, grade it and persist the result
- validate_reference_solutions: gate problem authoring on the admin's own
  solutions passing every declared test case
"""
import json
import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from fastapi import Request
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .database import unit_of_work
from .errors import BadRequestError, InternalServerError, NotFoundError, UpstreamServiceError
from .judge0 import BatchItem, Judge0Client, Language, is_accepted
from .models import (Problem, ProblemSolved, Submission, SubmissionStatus, TestCaseResult,
                     TestCaseType, User)

logger = logging.getLogger(__name__)


def _trimmed(value: Optional[str]) -> Optional[str]:
    return value.strip() if value is not None else None


def parse_time_ms(value: Any) -> int:
    """Judge0 reports time as a string of seconds ("0.012")"""
    try:
        return round(float(value) * 1000)
    except (TypeError, ValueError):
        return 0


def parse_memory(value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


def total_time_ms(results: Iterable[Dict[str, Any]]) -> int:
    seconds = 0.0
    for result in results:
        try:
            seconds += float(result.get("time"))
        except (TypeError, ValueError):
            continue
    return round(seconds * 1000)


def total_memory(results: Iterable[Dict[str, Any]]) -> int:
    return sum(parse_memory(result.get("memory")) for result in results)


def count_verdicts(results: Sequence[Dict[str, Any]]) -> Dict[str, int]:
    passed = sum(1 for result in results if is_accepted(result))
    return {"passed": passed, "failed": len(results) - passed}


def aggregate_status(results: Sequence[Dict[str, Any]]) -> SubmissionStatus:
    if results and all(is_accepted(result) for result in results):
        return SubmissionStatus.ACCEPTED
    return SubmissionStatus.WRONG_ANSWER


def build_batch(language_id: int, source_code: str, test_cases: Sequence[Mapping[str, Any]]) -> List[BatchItem]:
    return [
        BatchItem(
            language_id=language_id,
            source_code=source_code,
            stdin=case["input"],
            expected_output=case["output"],
        )
        for case in test_cases
    ]


def resolve_language(language_id: Any) -> Language:
    language = Language.from_id(language_id)
    if language is None:
        raise BadRequestError(f"Unsupported language id: {language_id}")
    return language


def _find_problem_solved(db: Session, user_id: str, problem_id: str) -> Optional[ProblemSolved]:
    return db.query(ProblemSolved).filter(
        ProblemSolved.user_id == user_id,
        ProblemSolved.problem_id == problem_id
    ).first()


def upsert_problem_solved(db: Session, user_id: str, problem_id: str) -> ProblemSolved:
    """Create the (user, problem) marker unless it already exists"""
    existing = _find_problem_solved(db, user_id, problem_id)
    if existing:
        return existing

    marker = ProblemSolved(user_id=user_id, problem_id=problem_id)
    try:
        # a concurrent submit may insert the same pair first
        with db.begin_nested():
            db.add(marker)
    except IntegrityError:
        logger.info("ProblemSolved for user %s on problem %s was created concurrently", user_id, problem_id)
        return _find_problem_solved(db, user_id, problem_id)
    return marker


class CodeJudge:
    """Drives the Judge0 client for execute, submit and problem validation"""

    def __init__(self, client: Judge0Client):
        self.client = client

    async def _run(self, language_id: int, source_code: str,
                   test_cases: Sequence[Mapping[str, Any]]) -> List[Dict[str, Any]]:
        items = build_batch(language_id, source_code, test_cases)
        return await self.client.run_batch(items)

    @staticmethod
    def _load_problem(db: Session, problem_id: str) -> Problem:
        problem = db.get(Problem, problem_id)
        if not problem:
            raise NotFoundError("Problem not found")
        return problem

    async def execute(self, db: Session, problem_id: str, language_id: int, code: str) -> List[Dict[str, Any]]:
        """Ungraded run against public test cases only"""
        resolve_language(language_id)
        problem = self._load_problem(db, problem_id)

        public_cases = [case for case in problem.test_cases
                        if case.get("type", TestCaseType.PUBLIC.value) == TestCaseType.PUBLIC.value]
        if not public_cases:
            return []

        results = await self._run(language_id, code, public_cases)
        if len(results) != len(public_cases):
            raise UpstreamServiceError("Judge0 returned an incomplete set of results")

        return [
            {
                "testCase": index,
                "input": case["input"],
                "output": _trimmed(result.get("stdout")),
                "expectedOutput": case["output"],
                "status": (result.get("status") or {}).get("description", ""),
                "time": result.get("time"),
                "memory": result.get("memory"),
            }
            for index, (case, result) in enumerate(zip(public_cases, results), start=1)
        ]

    async def submit(self, db: Session, user: User, problem_id: str, language_id: int,
                     code: str) -> Dict[str, Any]:
        """Graded run against every test case; stores the submission and its per-case results"""
        language = resolve_language(language_id)
        problem = self._load_problem(db, problem_id)
        test_cases = list(problem.test_cases or [])

        results = await self._run(language_id, code, test_cases)
        if not results:
            raise UpstreamServiceError("Failed to get submission results from Judge0")
        if len(results) != len(test_cases):
            raise UpstreamServiceError("Judge0 returned an incomplete set of results")

        verdicts = count_verdicts(results)
        status = aggregate_status(results)

        submission = Submission(
            user_id=user.id,
            problem_id=problem.id,
            source_code={"language": language.display_name, "code": code},
            language=language.display_name,
            stdin=json.dumps([case["input"] for case in test_cases]),
            stdout=json.dumps([_trimmed(r.get("stdout")) or None for r in results]),
            stderr=json.dumps([r.get("stderr") for r in results]),
            compile_output=json.dumps([r.get("compile_output") for r in results]),
            status=status.value,
            time=total_time_ms(results),
            memory=total_memory(results),
        )

        try:
            with unit_of_work(db):
                db.add(submission)
                db.flush()

                if status == SubmissionStatus.ACCEPTED:
                    upsert_problem_solved(db, user.id, problem.id)

                case_rows = [
                    TestCaseResult(
                        submission_id=submission.id,
                        test_case_index=index,
                        input=case["input"],
                        expected_output=case["output"],
                        actual_output=_trimmed(result.get("stdout")),
                        status=((result.get("status") or {}).get("description") or "").lower(),
                        time=parse_time_ms(result.get("time")),
                        memory=parse_memory(result.get("memory")),
                        type=case.get("type") or TestCaseType.PUBLIC.value,
                    )
                    for index, (case, result) in enumerate(zip(test_cases, results), start=1)
                ]
                db.add_all(case_rows)
        except Exception as e:
            logger.error("Failed to save submission for user %s on problem %s", user.id, problem.id, exc_info=True)
            raise InternalServerError("Failed to save submission") from e

        db.refresh(submission)
        logger.info("Submission %s by user %s on problem %s: %s (%d passed, %d failed)",
                    submission.id, user.id, problem.id, status.value, verdicts["passed"], verdicts["failed"])

        return {
            "submission": submission,
            "test_case_results": [row for row in case_rows if row.type == TestCaseType.PUBLIC.value],
            "results": verdicts,
        }

    async def validate_reference_solutions(self, test_cases: Sequence[Mapping[str, Any]],
                                           reference_solutions: Mapping[str, str]) -> None:
        """Raise BadRequestError on the first language or test case that does not pass"""
        for language_name, solution in reference_solutions.items():
            language = Language.from_name(language_name)
            if language is None:
                raise BadRequestError(f"Unsupported language: {language_name}")

            logger.info("Validating %s reference solution against %d test case(s)",
                        language_name, len(test_cases))
            results = await self._run(language.judge0_id, solution, test_cases)
            if len(results) != len(test_cases):
                raise UpstreamServiceError("Judge0 returned an incomplete set of results")

            for index, result in enumerate(results, start=1):
                if not is_accepted(result):
                    description = (result.get("status") or {}).get("description", "")
                    logger.info("Reference solution for %s failed test case %d: %s",
                                language_name, index, description)
                    raise BadRequestError(f"Testcase {index} failed for language {language_name}")


def get_code_judge(request: Request) -> CodeJudge:
    return request.app.state.code_judge
