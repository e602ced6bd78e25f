import asyncio
import logging

from app.db.repository import ensure_transition, number_questions, require_user
from app.db.supabase import get_supabase_client
from app.errors import InterviewError, InvalidTransition, PersistenceError, SessionNotFound
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

logger = logging.getLogger("app.db.supabase_repository")

SESSIONS_TABLE = "interview_sessions"
QUESTIONS_TABLE = "interview_questions"
ANSWERS_TABLE = "interview_answers"
REVIEWS_TABLE = "interview_reviews"


def _rows(res) -> list[dict]:
    rows = getattr(res, "data", None)
    return list(rows or [])


class SupabaseInterviewRepository:
    """
    PostgREST-backed repository. The supabase client is synchronous, so each
    call runs in a worker thread. Writes are single-row or single-batch.
    """

    def __init__(self, client=None):
        self._client = client

    @property
    def client(self):
        if self._client is None:
            self._client = get_supabase_client()
        return self._client

    async def _run(self, op: str, fn, *args):
        try:
            return await asyncio.to_thread(fn, *args)
        except InterviewError:
            raise
        except Exception as exc:
            logger.warning("supabase %s failed | err=%s", op, exc)
            raise PersistenceError() from exc

    # -------------------------
    # SYNC HELPERS
    # -------------------------

    def _fetch_owned_session(self, user_id: str, session_id: str) -> Session:
        res = (
            self.client
            .table(SESSIONS_TABLE)
            .select("*")
            .eq("id", session_id)
            .eq("user_id", user_id)
            .limit(1)
            .execute()
        )
        rows = _rows(res)
        if not rows:
            raise SessionNotFound()
        return Session.from_row(rows[0])

    def _update_status(self, user_id: str, session_id: str, target: SessionStatus, fields: dict) -> Session:
        session = self._fetch_owned_session(user_id, session_id)
        ensure_transition(session, target)
        payload = dict(fields)
        payload["status"] = target.value
        payload["updated_at"] = utc_now().isoformat()
        # Conditional on the current status so concurrent writers cannot skip a step.
        res = (
            self.client
            .table(SESSIONS_TABLE)
            .update(payload)
            .eq("id", session_id)
            .eq("user_id", user_id)
            .eq("status", session.status.value)
            .execute()
        )
        rows = _rows(res)
        if not rows:
            raise InvalidTransition("Interview session changed while saving; reload and try again.")
        return Session.from_row(rows[0])

    def _create_session_sync(self, user_id: str, interview_config: InterviewConfig) -> Session:
        row = Session.from_config(user_id, interview_config).to_row()
        res = self.client.table(SESSIONS_TABLE).insert(row).execute()
        rows = _rows(res)
        return Session.from_row(rows[0] if rows else row)

    def _save_questions_sync(self, user_id: str, session_id: str, questions: list[GeneratedQuestion]) -> list[Question]:
        session = self._fetch_owned_session(user_id, session_id)
        if session.status is not SessionStatus.CREATED:
            raise InvalidTransition("Questions were already saved for this interview.")
        numbered = number_questions(session.id, questions)
        res = self.client.table(QUESTIONS_TABLE).insert([q.to_row() for q in numbered]).execute()
        stored = [Question.from_row(row) for row in _rows(res)] or numbered
        return sorted(stored, key=lambda q: q.order_number)

    def _save_answer_sync(self, user_id: str, answer: Answer) -> Answer:
        session = self._fetch_owned_session(user_id, answer.session_id)
        if session.status is not SessionStatus.IN_PROGRESS:
            raise InvalidTransition(f"Interview session is {session.status.value}; answers are closed.")
        res = self.client.table(ANSWERS_TABLE).insert(answer.to_row()).execute()
        rows = _rows(res)
        return Answer.from_row(rows[0]) if rows else answer

    def _save_review_sync(self, user_id: str, review: Review) -> Review:
        session = self._fetch_owned_session(user_id, review.session_id)
        ensure_transition(session, SessionStatus.REVIEWED)
        # A review row left by an attempt whose status update failed is reused.
        rows = _rows(
            self.client.table(REVIEWS_TABLE).select("*").eq("session_id", session.id).limit(1).execute()
        )
        if not rows:
            rows = _rows(self.client.table(REVIEWS_TABLE).insert(review.to_row()).execute())
        self._update_status(user_id, review.session_id, SessionStatus.REVIEWED, {})
        return Review.from_row(rows[0]) if rows else review

    def _details_sync(self, user_id: str, session_id: str) -> SessionDetails:
        session = self._fetch_owned_session(user_id, session_id)
        questions = _rows(
            self.client.table(QUESTIONS_TABLE).select("*").eq("session_id", session.id).order("order_number").execute()
        )
        answers = _rows(
            self.client.table(ANSWERS_TABLE).select("*").eq("session_id", session.id).execute()
        )
        reviews = _rows(
            self.client.table(REVIEWS_TABLE).select("*").eq("session_id", session.id).limit(1).execute()
        )
        return SessionDetails(
            session=session,
            questions=[Question.from_row(row) for row in questions],
            answers=[Answer.from_row(row) for row in answers],
            review=Review.from_row(reviews[0]) if reviews else None,
        )

    def _list_sync(self, user_id: str) -> list[Session]:
        res = (
            self.client
            .table(SESSIONS_TABLE)
            .select("*")
            .eq("user_id", user_id)
            .order("created_at", desc=True)
            .execute()
        )
        return [Session.from_row(row) for row in _rows(res)]

    # -------------------------
    # REPOSITORY CONTRACT
    # -------------------------

    async def create_session(self, user_id: str, interview_config: InterviewConfig) -> Session:
        uid = require_user(user_id)
        return await self._run("create_session", self._create_session_sync, uid, interview_config)

    async def save_questions(self, user_id: str, session_id: str, questions: list[GeneratedQuestion]) -> list[Question]:
        uid = require_user(user_id)
        return await self._run("save_questions", self._save_questions_sync, uid, session_id, questions)

    async def start_session(self, user_id: str, session_id: str) -> Session:
        uid = require_user(user_id)
        return await self._run("start_session", self._update_status, uid, session_id, SessionStatus.IN_PROGRESS, {})

    async def save_answer(self, user_id: str, answer: Answer) -> Answer:
        uid = require_user(user_id)
        return await self._run("save_answer", self._save_answer_sync, uid, answer)

    async def complete_session(self, user_id: str, session_id: str, score: int, duration_seconds: int) -> Session:
        uid = require_user(user_id)
        fields = {
            "score": int(score),
            "duration": max(0, int(duration_seconds)),
            "completed_at": utc_now().isoformat(),
        }
        return await self._run("complete_session", self._update_status, uid, session_id, SessionStatus.COMPLETED, fields)

    async def save_review(self, user_id: str, review: Review) -> Review:
        uid = require_user(user_id)
        return await self._run("save_review", self._save_review_sync, uid, review)

    async def get_session_details(self, user_id: str, session_id: str) -> SessionDetails:
        uid = require_user(user_id)
        return await self._run("get_session_details", self._details_sync, uid, session_id)

    async def list_sessions(self, user_id: str) -> list[Session]:
        uid = require_user(user_id)
        return await self._run("list_sessions", self._list_sync, uid)
