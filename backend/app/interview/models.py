from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional
import uuid

from core.config import DEFAULT_QUESTION_COUNT


SKIPPED_ANSWER_TEXT = "Question skipped"
SKIPPED_FEEDBACK = "Question was skipped"
SKIPPED_IMPROVEMENT = "Consider attempting all questions"


def new_id() -> str:
    return str(uuid.uuid4())


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _parse_ts(value) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value).replace("Z", "+00:00"))


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


class InterviewType(str, Enum):
    TECHNICAL = "technical"
    HR = "hr"
    GD = "gd"


class ExperienceLevel(str, Enum):
    FRESHER = "fresher"
    JUNIOR = "junior"
    MID = "mid"
    SENIOR = "senior"
    LEAD = "lead"


class Difficulty(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class AnswerMethod(str, Enum):
    TEXT = "text"
    VOICE = "voice"


class SessionStatus(str, Enum):
    CREATED = "created"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    REVIEWED = "reviewed"

    @property
    def rank(self) -> int:
        return _STATUS_ORDER.index(self)

    def can_transition(self, target: "SessionStatus") -> bool:
        """Only the next status in the lifecycle is reachable."""
        return target.rank == self.rank + 1


_STATUS_ORDER = [
    SessionStatus.CREATED,
    SessionStatus.IN_PROGRESS,
    SessionStatus.COMPLETED,
    SessionStatus.REVIEWED,
]


@dataclass(frozen=True)
class InterviewConfig:
    interview_type: InterviewType
    job_description: str
    experience_level: ExperienceLevel
    target_role: str
    question_count: int = DEFAULT_QUESTION_COUNT


@dataclass
class Session:
    user_id: str
    interview_type: InterviewType
    job_description: str
    experience_level: ExperienceLevel
    target_role: str
    id: str = field(default_factory=new_id)
    status: SessionStatus = SessionStatus.CREATED
    score: Optional[int] = None
    duration_seconds: int = 0
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)
    completed_at: Optional[datetime] = None

    @classmethod
    def from_config(cls, user_id: str, config: InterviewConfig) -> "Session":
        return cls(
            user_id=user_id,
            interview_type=config.interview_type,
            job_description=config.job_description,
            experience_level=config.experience_level,
            target_role=config.target_role,
        )

    def to_row(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "interview_type": self.interview_type.value,
            "job_description": self.job_description,
            "experience_level": self.experience_level.value,
            "target_role": self.target_role,
            "status": self.status.value,
            "score": self.score,
            "duration": self.duration_seconds,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
            "completed_at": _iso(self.completed_at),
        }

    @classmethod
    def from_row(cls, row: dict) -> "Session":
        return cls(
            id=str(row["id"]),
            user_id=str(row["user_id"]),
            interview_type=InterviewType(row["interview_type"]),
            job_description=str(row.get("job_description") or ""),
            experience_level=ExperienceLevel(row.get("experience_level") or ExperienceLevel.MID.value),
            target_role=str(row.get("target_role") or ""),
            status=SessionStatus(row.get("status") or SessionStatus.CREATED.value),
            score=None if row.get("score") is None else int(row["score"]),
            duration_seconds=int(row.get("duration") or 0),
            created_at=_parse_ts(row.get("created_at")) or utc_now(),
            updated_at=_parse_ts(row.get("updated_at")) or utc_now(),
            completed_at=_parse_ts(row.get("completed_at")),
        )


@dataclass(frozen=True)
class GeneratedQuestion:
    """A question as returned by the AI gateway, before it is stored."""
    question_text: str
    question_type: str
    difficulty: Difficulty
    expected_answer: str


@dataclass(frozen=True)
class Question:
    session_id: str
    question_text: str
    question_type: str
    difficulty: Difficulty
    expected_answer: str
    order_number: int
    id: str = field(default_factory=new_id)

    def to_row(self) -> dict:
        return {
            "id": self.id,
            "session_id": self.session_id,
            "question_text": self.question_text,
            "question_type": self.question_type,
            "difficulty": self.difficulty.value,
            "expected_answer": self.expected_answer,
            "order_number": self.order_number,
        }

    @classmethod
    def from_row(cls, row: dict) -> "Question":
        return cls(
            id=str(row["id"]),
            session_id=str(row["session_id"]),
            question_text=str(row["question_text"]),
            question_type=str(row.get("question_type") or ""),
            difficulty=Difficulty(row.get("difficulty") or Difficulty.MEDIUM.value),
            expected_answer=str(row.get("expected_answer") or ""),
            order_number=int(row["order_number"]),
        )

    def public_dict(self) -> dict:
        return {
            "id": self.id,
            "question_text": self.question_text,
            "question_type": self.question_type,
            "difficulty": self.difficulty.value,
            "order_number": self.order_number,
        }


@dataclass(frozen=True)
class Evaluation:
    score: int
    feedback: str
    strengths: List[str] = field(default_factory=list)
    improvements: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class Answer:
    question_id: str
    session_id: str
    user_answer: str
    score: int
    feedback: str
    answer_method: AnswerMethod
    time_taken_seconds: int
    strengths: List[str] = field(default_factory=list)
    improvements: List[str] = field(default_factory=list)
    id: str = field(default_factory=new_id)

    @classmethod
    def skipped(cls, question: Question, time_taken_seconds: int) -> "Answer":
        return cls(
            question_id=question.id,
            session_id=question.session_id,
            user_answer=SKIPPED_ANSWER_TEXT,
            score=0,
            feedback=SKIPPED_FEEDBACK,
            answer_method=AnswerMethod.TEXT,
            time_taken_seconds=time_taken_seconds,
            strengths=[],
            improvements=[SKIPPED_IMPROVEMENT],
        )

    def to_row(self) -> dict:
        return {
            "id": self.id,
            "question_id": self.question_id,
            "session_id": self.session_id,
            "user_answer": self.user_answer,
            "score": self.score,
            "feedback": self.feedback,
            "strengths": list(self.strengths),
            "improvements": list(self.improvements),
            "answer_method": self.answer_method.value,
            "time_taken_seconds": self.time_taken_seconds,
        }

    @classmethod
    def from_row(cls, row: dict) -> "Answer":
        return cls(
            id=str(row["id"]),
            question_id=str(row["question_id"]),
            session_id=str(row["session_id"]),
            user_answer=str(row.get("user_answer") or ""),
            score=int(row.get("score") or 0),
            feedback=str(row.get("feedback") or ""),
            strengths=list(row.get("strengths") or []),
            improvements=list(row.get("improvements") or []),
            answer_method=AnswerMethod(row.get("answer_method") or AnswerMethod.TEXT.value),
            time_taken_seconds=int(row.get("time_taken_seconds") or 0),
        )


@dataclass(frozen=True)
class ReviewResult:
    overall_score: int
    strengths: List[str]
    weaknesses: List[str]
    recommendations: List[str]
    ai_analysis: str


@dataclass(frozen=True)
class Review:
    session_id: str
    overall_score: int
    strengths: List[str]
    weaknesses: List[str]
    recommendations: List[str]
    ai_analysis: str
    id: str = field(default_factory=new_id)

    @classmethod
    def from_result(cls, session_id: str, result: ReviewResult) -> "Review":
        return cls(
            session_id=session_id,
            overall_score=result.overall_score,
            strengths=list(result.strengths),
            weaknesses=list(result.weaknesses),
            recommendations=list(result.recommendations),
            ai_analysis=result.ai_analysis,
        )

    def to_row(self) -> dict:
        return asdict(self)

    @classmethod
    def from_row(cls, row: dict) -> "Review":
        return cls(
            id=str(row["id"]),
            session_id=str(row["session_id"]),
            overall_score=int(row.get("overall_score") or 0),
            strengths=list(row.get("strengths") or []),
            weaknesses=list(row.get("weaknesses") or []),
            recommendations=list(row.get("recommendations") or []),
            ai_analysis=str(row.get("ai_analysis") or ""),
        )


@dataclass
class SessionDetails:
    session: Session
    questions: List[Question]
    answers: List[Answer]
    review: Optional[Review] = None

    def to_dict(self) -> dict:
        return {
            "session": self.session.to_row(),
            "questions": [q.to_row() for q in self.questions],
            "answers": [a.to_row() for a in self.answers],
            "review": self.review.to_row() if self.review else None,
        }
