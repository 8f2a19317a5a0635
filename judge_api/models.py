"""
SQLAlchemy models for the judge database schema
"""
import enum
import uuid

from sqlalchemy import (JSON, Column, DateTime, Enum, ForeignKey, Index, Integer, String, Text,
                        UniqueConstraint)
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

Base = declarative_base()


class UserRole(str, enum.Enum):
    USER = "USER"
    ADMIN = "ADMIN"


class Difficulty(str, enum.Enum):
    EASY = "EASY"
    MEDIUM = "MEDIUM"
    HARD = "HARD"


class TestCaseType(str, enum.Enum):
    PUBLIC = "public"
    HIDDEN = "hidden"


class SubmissionStatus(str, enum.Enum):
    # Compile and runtime errors are not distinguished at the aggregate level;
    # per-case rows keep the provider's own description.
    ACCEPTED = "accepted"
    WRONG_ANSWER = "wrong answer"


def _uuid() -> str:
    return str(uuid.uuid4())


class User(Base):
    __tablename__ = "users"

    id = Column(String, primary_key=True, default=_uuid)
    name = Column(String(50), nullable=True)
    email = Column(String(255), unique=True, nullable=False)
    password_hash = Column(Text, nullable=False)
    role = Column(Enum(UserRole, name="user_role"), default=UserRole.USER, nullable=False)
    image = Column(Text, nullable=True)
    created_at = Column(DateTime, default=func.now(), nullable=False)
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now(), nullable=False)

    problems = relationship("Problem", back_populates="user")
    submissions = relationship("Submission", back_populates="user", cascade="all, delete-orphan")
    solved_problems = relationship("ProblemSolved", back_populates="user", cascade="all, delete-orphan")
    playlists = relationship("Playlist", back_populates="user", cascade="all, delete-orphan")

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN


class Problem(Base):
    __tablename__ = "problems"

    id = Column(String, primary_key=True, default=_uuid)
    title = Column(String(200), unique=True, nullable=False)
    description = Column(Text, nullable=False)
    difficulty = Column(Enum(Difficulty, name="difficulty"), nullable=False)
    tags = Column(JSON, default=list, nullable=False)
    examples = Column(JSON, default=dict, nullable=False)
    constraints = Column(Text, nullable=False, default="")
    hints = Column(Text, nullable=True)
    editorial = Column(Text, nullable=True)

    # [{"input": str, "output": str, "type": "public" | "hidden"}], order matters
    test_cases = Column(JSON, default=list, nullable=False)
    code_snippets = Column(JSON, default=dict, nullable=False)
    reference_solutions = Column(JSON, default=dict, nullable=False)

    user_id = Column(String, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, default=func.now(), nullable=False)
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now(), nullable=False)

    user = relationship("User", back_populates="problems")
    submissions = relationship("Submission", back_populates="problem", cascade="all, delete-orphan",
                               passive_deletes=True)
    solved_by = relationship("ProblemSolved", back_populates="problem", cascade="all, delete-orphan",
                             passive_deletes=True)
    playlist_entries = relationship("ProblemInPlaylist", back_populates="problem", cascade="all, delete-orphan",
                                    passive_deletes=True)


class Submission(Base):
    __tablename__ = "submissions"

    id = Column(String, primary_key=True, default=_uuid)
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    problem_id = Column(String, ForeignKey("problems.id", ondelete="CASCADE"), nullable=False)
    source_code = Column(JSON, nullable=False)  # {"language": str, "code": str}
    language = Column(String(30), nullable=False)

    # JSON-serialized arrays, index-aligned with Problem.test_cases
    stdin = Column(Text, nullable=True)
    stdout = Column(Text, nullable=True)
    stderr = Column(Text, nullable=True)
    compile_output = Column(Text, nullable=True)

    status = Column(String(30), nullable=False)
    time = Column(Integer, nullable=True)  # milliseconds, summed over test cases
    memory = Column(Integer, nullable=True)  # summed over test cases
    created_at = Column(DateTime, default=func.now(), nullable=False)
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now(), nullable=False)

    user = relationship("User", back_populates="submissions")
    problem = relationship("Problem", back_populates="submissions")
    test_case_results = relationship("TestCaseResult", back_populates="submission", cascade="all, delete-orphan",
                                     order_by="TestCaseResult.test_case_index", passive_deletes=True)

    __table_args__ = (Index("ix_submissions_user_problem", "user_id", "problem_id"),)


class TestCaseResult(Base):
    __tablename__ = "test_case_results"

    id = Column(String, primary_key=True, default=_uuid)
    submission_id = Column(String, ForeignKey("submissions.id", ondelete="CASCADE"), nullable=False)
    test_case_index = Column(Integer, nullable=False)  # 1-based
    input = Column(Text, nullable=False)
    expected_output = Column(Text, nullable=False)
    actual_output = Column(Text, nullable=True)
    status = Column(String(50), nullable=False)
    time = Column(Integer, nullable=True)
    memory = Column(Integer, nullable=True)
    type = Column(String(10), nullable=False, default=TestCaseType.PUBLIC.value)
    created_at = Column(DateTime, default=func.now(), nullable=False)

    submission = relationship("Submission", back_populates="test_case_results")

    __table_args__ = (Index("ix_test_case_results_submission", "submission_id"),)


class ProblemSolved(Base):
    __tablename__ = "problems_solved"

    id = Column(String, primary_key=True, default=_uuid)
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    problem_id = Column(String, ForeignKey("problems.id", ondelete="CASCADE"), nullable=False)
    created_at = Column(DateTime, default=func.now(), nullable=False)

    user = relationship("User", back_populates="solved_problems")
    problem = relationship("Problem", back_populates="solved_by")

    __table_args__ = (UniqueConstraint("user_id", "problem_id", name="uq_problems_solved_user_problem"),)


class Playlist(Base):
    __tablename__ = "playlists"

    id = Column(String, primary_key=True, default=_uuid)
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    created_at = Column(DateTime, default=func.now(), nullable=False)
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now(), nullable=False)

    user = relationship("User", back_populates="playlists")
    entries = relationship("ProblemInPlaylist", back_populates="playlist", cascade="all, delete-orphan",
                           passive_deletes=True)

    __table_args__ = (
        UniqueConstraint("user_id", "name", name="uq_playlists_user_name"),
        Index("ix_playlists_user", "user_id"),
    )


class ProblemInPlaylist(Base):
    __tablename__ = "problems_in_playlist"

    id = Column(String, primary_key=True, default=_uuid)
    playlist_id = Column(String, ForeignKey("playlists.id", ondelete="CASCADE"), nullable=False)
    problem_id = Column(String, ForeignKey("problems.id", ondelete="CASCADE"), nullable=False)
    created_at = Column(DateTime, default=func.now(), nullable=False)

    playlist = relationship("Playlist", back_populates="entries")
    problem = relationship("Problem", back_populates="playlist_entries")

    __table_args__ = (UniqueConstraint("playlist_id", "problem_id", name="uq_problems_in_playlist"),)
