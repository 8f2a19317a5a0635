import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from .audit_logger import log_admin_action
from .auth import get_current_user, get_current_user_optional, require_admin
from .config import Config
from .database import get_db, unit_of_work
from .errors import ConflictError, NotFoundError, success_body
from .judging import CodeJudge, get_code_judge
from .models import Difficulty, Problem, ProblemSolved, TestCaseType, User
from .schemas import ProblemCreate, ProblemResponse, ProblemUpdate, SolvedProblemResponse

logger = logging.getLogger(__name__)

problem_router = APIRouter(prefix=f"{Config.API_PREFIX}/problem", tags=["problems"])


def serialize_problem(problem: Problem, viewer: Optional[User] = None) -> dict:
    """Admins see everything; everyone else gets public test cases and no reference solutions"""
    data = ProblemResponse.model_validate(problem).model_dump(by_alias=True, mode="json")
    if viewer is None or not viewer.is_admin:
        data["testCases"] = [case for case in data["testCases"] if case["type"] == TestCaseType.PUBLIC.value]
        data["referenceSolutions"] = None
    return data


def _with_author(query):
    return query.options(joinedload(Problem.user))


def _ensure_title_available(db: Session, title: str, exclude_id: Optional[str] = None) -> None:
    query = db.query(Problem).filter(Problem.title == title)
    if exclude_id:
        query = query.filter(Problem.id != exclude_id)
    if query.first():
        raise ConflictError("Problem with this title already exists")


# Admin endpoints
@problem_router.post("/create-problem", status_code=status.HTTP_201_CREATED)
async def create_problem(
    problem_data: ProblemCreate,
    request: Request,
    current_user: User = Depends(require_admin),
    judge: CodeJudge = Depends(get_code_judge),
    db: Session = Depends(get_db)
):
    """Create a problem once every reference solution passes every test case"""
    _ensure_title_available(db, problem_data.title)

    test_cases = [case.model_dump(mode="json") for case in problem_data.test_cases]
    await judge.validate_reference_solutions(test_cases, problem_data.reference_solutions)

    problem = Problem(
        title=problem_data.title,
        description=problem_data.description,
        difficulty=problem_data.difficulty,
        tags=problem_data.tags,
        examples=problem_data.examples,
        constraints=problem_data.constraints,
        hints=problem_data.hints,
        editorial=problem_data.editorial,
        test_cases=test_cases,
        code_snippets=problem_data.code_snippets,
        reference_solutions=problem_data.reference_solutions,
        user_id=current_user.id,
    )
    try:
        with unit_of_work(db):
            db.add(problem)
    except IntegrityError:
        raise ConflictError("Problem with this title already exists")
    db.refresh(problem)

    log_admin_action(current_user.id, "create_problem", request, {"problem_id": problem.id, "title": problem.title})
    return JSONResponse(
        status_code=status.HTTP_201_CREATED,
        content=success_body(201, "Problem created successfully", serialize_problem(problem, current_user)),
    )


@problem_router.put("/p/{problem_id}")
async def update_problem(
    problem_id: str,
    problem_data: ProblemUpdate,
    request: Request,
    current_user: User = Depends(require_admin),
    judge: CodeJudge = Depends(get_code_judge),
    db: Session = Depends(get_db)
):
    problem = db.get(Problem, problem_id)
    if not problem:
        raise NotFoundError("Problem not found")

    changes = problem_data.model_dump(exclude_unset=True, mode="json")
    if changes.get("title") and changes["title"] != problem.title:
        _ensure_title_available(db, changes["title"], exclude_id=problem.id)

    # Validate against the test cases and solutions the problem will end up with
    test_cases = changes["test_cases"] if "test_cases" in changes else problem.test_cases
    reference_solutions = (changes["reference_solutions"] if "reference_solutions" in changes
                           else problem.reference_solutions)
    await judge.validate_reference_solutions(test_cases, reference_solutions)

    try:
        with unit_of_work(db):
            for field, value in changes.items():
                setattr(problem, field, value)
    except IntegrityError:
        raise ConflictError("Problem with this title already exists")
    db.refresh(problem)

    log_admin_action(current_user.id, "update_problem", request,
                     {"problem_id": problem.id, "fields": sorted(changes)})
    return success_body(200, "Problem updated successfully", serialize_problem(problem, current_user))


@problem_router.delete("/p/{problem_id}")
def delete_problem(
    problem_id: str,
    request: Request,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    problem = db.get(Problem, problem_id)
    if not problem:
        raise NotFoundError("Problem not found")

    with unit_of_work(db):
        db.delete(problem)

    log_admin_action(current_user.id, "delete_problem", request, {"problem_id": problem_id})
    return success_body(200, "Problem deleted successfully")


# Public endpoints
@problem_router.get("/get-problem/{problem_id}")
def get_problem(
    problem_id: str,
    current_user: Optional[User] = Depends(get_current_user_optional),
    db: Session = Depends(get_db)
):
    problem = _with_author(db.query(Problem)).filter(Problem.id == problem_id).first()
    if not problem:
        raise NotFoundError("Problem not found")
    return success_body(200, "Problem fetched successfully", serialize_problem(problem, current_user))


@problem_router.get("/get-all-problems")
def get_all_problems(
    current_user: Optional[User] = Depends(get_current_user_optional),
    db: Session = Depends(get_db)
):
    problems = _with_author(db.query(Problem)).order_by(Problem.created_at.desc()).all()
    return success_body(200, "All problems fetched successfully",
                        [serialize_problem(p, current_user) for p in problems])


@problem_router.get("/tags/{tag}")
def get_problems_by_tag(
    tag: str,
    current_user: Optional[User] = Depends(get_current_user_optional),
    db: Session = Depends(get_db)
):
    # tags live in a JSON column, so filter in Python to stay portable across backends
    problems = _with_author(db.query(Problem)).order_by(Problem.created_at.desc()).all()
    matching = [p for p in problems if tag in (p.tags or [])]
    return success_body(200, f"Problems with tag {tag} fetched successfully",
                        [serialize_problem(p, current_user) for p in matching])


@problem_router.get("/difficulty/{level}")
def get_problems_by_difficulty(
    level: str,
    current_user: Optional[User] = Depends(get_current_user_optional),
    db: Session = Depends(get_db)
):
    try:
        difficulty = Difficulty(level.strip().upper())
    except ValueError:
        problems: List[Problem] = []
    else:
        problems = _with_author(db.query(Problem)).filter(
            Problem.difficulty == difficulty
        ).order_by(Problem.created_at.desc()).all()
    return success_body(200, f"Problems with difficulty {level} fetched successfully",
                        [serialize_problem(p, current_user) for p in problems])


@problem_router.get("/submit-all")
def get_solved_problems(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Problems the current user has solved at least once"""
    solved = db.query(ProblemSolved).options(joinedload(ProblemSolved.problem)).filter(
        ProblemSolved.user_id == current_user.id
    ).order_by(ProblemSolved.created_at.desc()).all()
    return success_body(
        200, "All solved problems fetched successfully",
        [SolvedProblemResponse.model_validate(row).model_dump(by_alias=True, mode="json") for row in solved],
    )
