"""
Pydantic schemas for request/response validation
"""
import re
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from pydantic.alias_generators import to_camel

from .models import Difficulty, TestCaseType, UserRole


# Base model for camelCase aliasing
class CamelCaseModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True
    )


# User schemas
class RegisterRequest(CamelCaseModel):
    name: Optional[str] = Field(default=None, min_length=3, max_length=50)
    email: EmailStr = Field(..., max_length=100)
    password: str

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, value):
        return value.strip() if isinstance(value, str) else value

    @field_validator("password")
    @classmethod
    def check_password_strength(cls, value: str) -> str:
        value = value.strip()
        if len(value) < 8:
            raise ValueError("Password must be at least 8 characters")
        if len(value) > 25:
            raise ValueError("Password must not be more than 25 characters")
        if not re.search(r"[A-Z]", value):
            raise ValueError("Password must contain at least one uppercase letter")
        if not re.search(r"[0-9]", value):
            raise ValueError("Password must contain at least one number")
        if not re.search(r"[^A-Za-z0-9]", value):
            raise ValueError("Password must contain at least one special character")
        return value


class LoginRequest(CamelCaseModel):
    model_config = ConfigDict(extra="forbid")

    email: EmailStr
    password: str = Field(..., min_length=1)


class UserResponse(CamelCaseModel):
    id: str
    name: Optional[str] = None
    email: str
    role: UserRole
    image: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class UserSummary(CamelCaseModel):
    id: str
    name: Optional[str] = None
    image: Optional[str] = None


# Problem schemas
class ProblemTestCase(CamelCaseModel):
    input: str
    output: str
    type: TestCaseType = TestCaseType.PUBLIC


class ProblemBase(CamelCaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(..., min_length=1)
    difficulty: Difficulty
    tags: List[str] = []
    examples: Any = Field(default_factory=dict)
    constraints: str = ""
    hints: Optional[str] = None
    editorial: Optional[str] = None

    @field_validator("difficulty", mode="before")
    @classmethod
    def normalize_difficulty(cls, value):
        return value.strip().upper() if isinstance(value, str) else value


class ProblemCreate(ProblemBase):
    test_cases: List[ProblemTestCase] = Field(..., min_length=1)
    code_snippets: Dict[str, str] = {}
    reference_solutions: Dict[str, str] = Field(..., min_length=1)


class ProblemUpdate(CamelCaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = None
    difficulty: Optional[Difficulty] = None
    tags: Optional[List[str]] = None
    examples: Optional[Any] = None
    constraints: Optional[str] = None
    hints: Optional[str] = None
    editorial: Optional[str] = None
    test_cases: Optional[List[ProblemTestCase]] = Field(default=None, min_length=1)
    code_snippets: Optional[Dict[str, str]] = None
    reference_solutions: Optional[Dict[str, str]] = Field(default=None, min_length=1)

    @field_validator("difficulty", mode="before")
    @classmethod
    def normalize_difficulty(cls, value):
        return value.strip().upper() if isinstance(value, str) else value

    # hints and editorial may be cleared; every other field is omitted or given a value
    @field_validator("title", "description", "difficulty", "tags", "examples", "constraints",
                     "test_cases", "code_snippets", "reference_solutions")
    @classmethod
    def reject_null(cls, value):
        if value is None:
            raise ValueError("Field cannot be null")
        return value


class ProblemResponse(ProblemBase):
    id: str
    test_cases: List[ProblemTestCase] = []
    code_snippets: Dict[str, str] = {}
    reference_solutions: Optional[Dict[str, str]] = None
    user_id: Optional[str] = None
    user: Optional[UserSummary] = None
    created_at: datetime
    updated_at: datetime


class SolvedProblemResponse(CamelCaseModel):
    id: str
    user_id: str
    problem_id: str
    created_at: datetime
    problem: Optional["ProblemSummary"] = None


class ProblemSummary(CamelCaseModel):
    id: str
    title: str
    difficulty: Difficulty
    tags: List[str] = []


SolvedProblemResponse.model_rebuild()


# Code evaluation schemas
class CodeRunRequest(CamelCaseModel):
    problem_id: str = Field(..., min_length=1)
    language_id: int
    code: str = Field(..., min_length=1)

    @field_validator("code")
    @classmethod
    def reject_blank_code(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Code must not be empty")
        return value


class ExecutionCaseResult(CamelCaseModel):
    test_case: int
    input: str
    output: Optional[str] = None
    expected_output: str
    status: str
    time: Optional[str] = None
    memory: Optional[int] = None


class TestCaseResultResponse(CamelCaseModel):
    submission_id: Optional[str] = None
    test_case_index: int
    input: str
    expected_output: str
    actual_output: Optional[str] = None
    status: str
    time: Optional[int] = None
    memory: Optional[int] = None
    type: TestCaseType


class SubmissionResponse(CamelCaseModel):
    id: str
    user_id: str
    problem_id: str
    source_code: Dict[str, Any]
    language: str
    stdin: Optional[str] = None
    stdout: Optional[str] = None
    stderr: Optional[str] = None
    compile_output: Optional[str] = None
    status: str
    time: Optional[int] = None
    memory: Optional[int] = None
    created_at: datetime


class SubmissionDetailResponse(SubmissionResponse):
    test_case_results: List[TestCaseResultResponse] = []


class PassFailCounts(CamelCaseModel):
    passed: int
    failed: int


class SubmitResultResponse(CamelCaseModel):
    submission: SubmissionResponse
    test_case_results: List[TestCaseResultResponse]
    results: PassFailCounts


# Playlist schemas
class PlaylistCreate(CamelCaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None

    @field_validator("name")
    @classmethod
    def strip_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Playlist name must not be empty")
        return value


class PlaylistUpdate(CamelCaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = None


class PlaylistProblemAdd(CamelCaseModel):
    problem_id: str = Field(..., min_length=1)


class PlaylistResponse(CamelCaseModel):
    id: str
    name: str
    description: Optional[str] = None
    user_id: str
    user: Optional[UserSummary] = None
    problems: List[ProblemSummary] = []
    created_at: datetime
    updated_at: datetime


class PlaylistEntryResponse(CamelCaseModel):
    id: str
    playlist_id: str
    problem_id: str
    created_at: datetime
    problem: Optional[ProblemSummary] = None
