from __future__ import annotations

import asyncio
import logging
from dataclasses import replace
from typing import Protocol

from app.errors import AuthenticationRequired, InvalidTransition, SessionNotFound
from app.interview.models import (
    Answer,
    GeneratedQuestion,
    InterviewConfig,
    Question,
    Review,
    Session,
    SessionDetails,
    SessionStatus,
    utc_now,
)
from core import config

logger = logging.getLogger("app.db.repository")


class InterviewRepository(Protocol):
    """
    Storage contract for sessions and their questions, answers and review.
    Every call takes the acting user id; rows of other users are invisible.
    """

    async def create_session(self, user_id: str, interview_config: InterviewConfig) -> Session:
        ...

    async def save_questions(self, user_id: str, session_id: str, questions: list[GeneratedQuestion]) -> list[Question]:
        ...

    async def start_session(self, user_id: str, session_id: str) -> Session:
        ...

    async def save_answer(self, user_id: str, answer: Answer) -> Answer:
        ...

    async def complete_session(self, user_id: str, session_id: str, score: int, duration_seconds: int) -> Session:
        ...

    async def save_review(self, user_id: str, review: Review) -> Review:
        ...

    async def get_session_details(self, user_id: str, session_id: str) -> SessionDetails:
        ...

    async def list_sessions(self, user_id: str) -> list[Session]:
        ...


def require_user(user_id: str | None) -> str:
    uid = str(user_id or "").strip()
    if not uid:
        raise AuthenticationRequired()
    return uid


def ensure_transition(session: Session, target: SessionStatus) -> None:
    if not session.status.can_transition(target):
        raise InvalidTransition(
            f"Interview session is {session.status.value}; it cannot move to {target.value}."
        )


def number_questions(session_id: str, questions: list[GeneratedQuestion]) -> list[Question]:
    return [
        Question(
            session_id=session_id,
            question_text=item.question_text,
            question_type=item.question_type,
            difficulty=item.difficulty,
            expected_answer=item.expected_answer,
            order_number=index,
        )
        for index, item in enumerate(questions, start=1)
    ]


class LocalInterviewRepository:
    """In-process store used for development and tests."""

    def __init__(self):
        self._lock = asyncio.Lock()
        self._sessions: dict[str, Session] = {}
        self._questions: dict[str, list[Question]] = {}
        self._answers: dict[str, list[Answer]] = {}
        self._reviews: dict[str, Review] = {}

    def _owned_session(self, user_id: str, session_id: str) -> Session:
        session = self._sessions.get(str(session_id or ""))
        if session is None or session.user_id != user_id:
            raise SessionNotFound()
        return session

    def _set_status(self, session: Session, target: SessionStatus, **changes) -> Session:
        ensure_transition(session, target)
        updated = replace(session, status=target, updated_at=utc_now(), **changes)
        self._sessions[session.id] = updated
        return replace(updated)

    async def create_session(self, user_id: str, interview_config: InterviewConfig) -> Session:
        uid = require_user(user_id)
        session = Session.from_config(uid, interview_config)
        async with self._lock:
            self._sessions[session.id] = session
            self._questions[session.id] = []
            self._answers[session.id] = []
        return replace(session)

    async def save_questions(self, user_id: str, session_id: str, questions: list[GeneratedQuestion]) -> list[Question]:
        uid = require_user(user_id)
        async with self._lock:
            session = self._owned_session(uid, session_id)
            if session.status is not SessionStatus.CREATED or self._questions.get(session.id):
                raise InvalidTransition("Questions were already saved for this interview.")
            rows = number_questions(session.id, questions)
            self._questions[session.id] = list(rows)
        return rows

    async def start_session(self, user_id: str, session_id: str) -> Session:
        uid = require_user(user_id)
        async with self._lock:
            session = self._owned_session(uid, session_id)
            return self._set_status(session, SessionStatus.IN_PROGRESS)

    async def save_answer(self, user_id: str, answer: Answer) -> Answer:
        uid = require_user(user_id)
        async with self._lock:
            session = self._owned_session(uid, answer.session_id)
            if session.status is not SessionStatus.IN_PROGRESS:
                raise InvalidTransition(f"Interview session is {session.status.value}; answers are closed.")
            question_ids = {q.id for q in self._questions.get(session.id, [])}
            if answer.question_id not in question_ids:
                raise SessionNotFound("Question not found in this interview session.")
            answers = self._answers.setdefault(session.id, [])
            if any(item.question_id == answer.question_id for item in answers):
                raise InvalidTransition("This question has already been answered.")
            answers.append(answer)
        return answer

    async def complete_session(self, user_id: str, session_id: str, score: int, duration_seconds: int) -> Session:
        uid = require_user(user_id)
        async with self._lock:
            session = self._owned_session(uid, session_id)
            return self._set_status(
                session,
                SessionStatus.COMPLETED,
                score=int(score),
                duration_seconds=max(0, int(duration_seconds)),
                completed_at=utc_now(),
            )

    async def save_review(self, user_id: str, review: Review) -> Review:
        uid = require_user(user_id)
        async with self._lock:
            session = self._owned_session(uid, review.session_id)
            if review.session_id in self._reviews:
                raise InvalidTransition("A review already exists for this interview.")
            self._set_status(session, SessionStatus.REVIEWED)
            self._reviews[review.session_id] = review
        return review

    async def get_session_details(self, user_id: str, session_id: str) -> SessionDetails:
        uid = require_user(user_id)
        async with self._lock:
            session = self._owned_session(uid, session_id)
            return SessionDetails(
                session=replace(session),
                questions=sorted(self._questions.get(session.id, []), key=lambda q: q.order_number),
                answers=list(self._answers.get(session.id, [])),
                review=self._reviews.get(session.id),
            )

    async def list_sessions(self, user_id: str) -> list[Session]:
        uid = require_user(user_id)
        async with self._lock:
            rows = [replace(s) for s in self._sessions.values() if s.user_id == uid]
        rows.sort(key=lambda s: s.created_at, reverse=True)
        return rows


def build_interview_repository() -> InterviewRepository:
    backend = config.PERSISTENCE_BACKEND
    if backend in {"", "local", "memory"}:
        return LocalInterviewRepository()
    if backend == "supabase":
        from app.db.supabase_repository import SupabaseInterviewRepository

        return SupabaseInterviewRepository()
    raise RuntimeError(f"Unknown PERSISTENCE_BACKEND={backend!r}; use 'local' or 'supabase'")
