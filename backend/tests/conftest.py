import base64
import json
import sys
from pathlib import Path

import pytest


ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.db.repository import LocalInterviewRepository  # noqa: E402
from app.errors import PersistenceError  # noqa: E402
from app.interview.models import (  # noqa: E402
    Difficulty,
    Evaluation,
    ExperienceLevel,
    GeneratedQuestion,
    InterviewConfig,
    InterviewType,
    ReviewResult,
)


@pytest.fixture(autouse=True)
def _test_env(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("ENV", "development")
    monkeypatch.setenv("ALLOW_UNVERIFIED_JWT_DEV", "true")
    monkeypatch.setenv("OPENAI_API_KEY", "test-key")
    monkeypatch.delenv("SUPABASE_JWT_SECRET", raising=False)
    monkeypatch.delenv("SUPABASE_URL", raising=False)


def _dev_jwt(sub: str) -> str:
    def _enc(obj: dict) -> str:
        raw = json.dumps(obj, separators=(",", ":")).encode("utf-8")
        return base64.urlsafe_b64encode(raw).decode("utf-8").rstrip("=")

    header = _enc({"alg": "none", "typ": "JWT"})
    payload = _enc({"sub": sub, "iat": 0})
    return f"{header}.{payload}."


@pytest.fixture
def dev_jwt_token() -> str:
    return _dev_jwt("pytest-user")


@pytest.fixture
def other_jwt_token() -> str:
    return _dev_jwt("other-user")


def make_generated_question(index: int, difficulty: Difficulty = Difficulty.MEDIUM) -> GeneratedQuestion:
    return GeneratedQuestion(
        question_text=f"Question {index + 1}: how would you design a cache?",
        question_type="technical",
        difficulty=difficulty,
        expected_answer=f"Expected answer {index + 1}",
    )


class FakeAIGateway:
    """Scripted AI gateway. Errors stay armed until the test clears them."""

    def __init__(self, questions=None, scores=None):
        self.questions = questions
        self.scores = list(scores or [])
        self.calls: list[tuple[str, dict]] = []
        self.generate_error = None
        self.evaluate_error = None
        self.review_error = None
        self.transcribe_error = None
        self.transcript = "I would use a hash map"

    def count(self, operation: str) -> int:
        return sum(1 for name, _ in self.calls if name == operation)

    async def generate_questions(self, interview_type, job_description, experience_level, target_role, count):
        self.calls.append(("generate_questions", {"interview_type": interview_type, "count": count}))
        if self.generate_error is not None:
            raise self.generate_error
        if self.questions is not None:
            return list(self.questions)
        return [make_generated_question(i) for i in range(count)]

    async def evaluate_answer(self, question, user_answer, expected_answer, question_type, difficulty):
        self.calls.append(("evaluate_answer", {"question": question, "user_answer": user_answer}))
        if self.evaluate_error is not None:
            raise self.evaluate_error
        score = self.scores.pop(0) if self.scores else 75
        return Evaluation(
            score=score,
            feedback="Clear structure, could go deeper.",
            strengths=["Clear structure"],
            improvements=["Mention trade-offs"],
        )

    async def transcribe_audio(self, audio: bytes, filename: str = "answer.webm") -> str:
        self.calls.append(("transcribe_audio", {"bytes": len(audio), "filename": filename}))
        if self.transcribe_error is not None:
            raise self.transcribe_error
        return self.transcript

    async def generate_review(self, session_summary, answers, overall_score):
        self.calls.append(("generate_review", {
            "session_summary": session_summary,
            "answers": answers,
            "overall_score": overall_score,
        }))
        if self.review_error is not None:
            raise self.review_error
        return ReviewResult(
            overall_score=overall_score,
            strengths=["Communicates clearly"],
            weaknesses=["Shallow on scaling"],
            recommendations=["Practice system design"],
            ai_analysis="Solid fundamentals with room to grow.",
        )


class FlakyRepository(LocalInterviewRepository):
    """Local repository whose named operations raise PersistenceError."""

    def __init__(self):
        super().__init__()
        self.fail_on: set[str] = set()

    def _check(self, operation: str) -> None:
        if operation in self.fail_on:
            raise PersistenceError()

    async def start_session(self, user_id, session_id):
        self._check("start_session")
        return await super().start_session(user_id, session_id)

    async def save_answer(self, user_id, answer):
        self._check("save_answer")
        return await super().save_answer(user_id, answer)

    async def complete_session(self, user_id, session_id, score, duration_seconds):
        self._check("complete_session")
        return await super().complete_session(user_id, session_id, score, duration_seconds)

    async def save_review(self, user_id, review):
        self._check("save_review")
        return await super().save_review(user_id, review)


class StubTimer:
    def __init__(self, elapsed_seconds: int = 0):
        self.elapsed_seconds = elapsed_seconds
        self.started = False

    def start(self) -> None:
        self.started = True

    def stop(self) -> int:
        self.started = False
        return self.elapsed_seconds


@pytest.fixture
def fake_ai() -> FakeAIGateway:
    return FakeAIGateway()


@pytest.fixture
def repository() -> FlakyRepository:
    return FlakyRepository()


@pytest.fixture
def interview_config() -> InterviewConfig:
    return InterviewConfig(
        interview_type=InterviewType.TECHNICAL,
        job_description="Build and operate Python services on Postgres.",
        experience_level=ExperienceLevel.MID,
        target_role="Backend Engineer",
        question_count=3,
    )
