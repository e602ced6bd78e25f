from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import replace
from typing import List, Optional

from app.db.repository import InterviewRepository, require_user
from app.errors import (
    EvaluationFailed,
    GenerationFailed,
    InterviewError,
    InvalidTransition,
    OperationInProgress,
    PersistenceError,
    ReviewFailed,
    ValidationError,
)
from app.interview.models import (
    Answer,
    AnswerMethod,
    InterviewConfig,
    Question,
    Review,
    Session,
    SessionDetails,
    SessionStatus,
)
from app.interview.scorer import calculate_final_score
from app.interview.states import (
    AwaitingAnswer,
    Completing,
    Done,
    Evaluating,
    Failed,
    Initializing,
    InterviewPhase,
    Reviewing,
)
from app.interview.timer import QuestionClock, SessionTimer
from core import config
from core.logger import log_event

logger = logging.getLogger("app.interview.orchestrator")


class InterviewOrchestrator:
    """
    Drives one interview session:

        Initializing -> AwaitingAnswer(i) -> Evaluating(i) -> ... ->
        Completing -> Reviewing -> Done

    with Failed(step) reachable from every non-terminal state. One action
    runs at a time; an action started while another is in flight is
    rejected with OperationInProgress.
    """

    def __init__(
        self,
        user_id: str,
        repository: InterviewRepository,
        ai_gateway,
        timer: Optional[SessionTimer] = None,
        question_clock: Optional[QuestionClock] = None,
    ):
        self.user_id = user_id
        self.repository = repository
        self.ai = ai_gateway
        self.timer = timer or SessionTimer()
        self.question_clock = question_clock or QuestionClock()

        self.state: InterviewPhase = Initializing()
        self.config: Optional[InterviewConfig] = None
        self.session: Optional[Session] = None
        self.questions: List[Question] = []
        self.answers: List[Answer] = []
        self.review: Optional[Review] = None
        self.last_error: Optional[InterviewError] = None

        self._lock = asyncio.Lock()

    @property
    def session_id(self) -> str:
        return self.session.id if self.session else ""

    # -------------------------
    # PUBLIC ACTIONS
    # -------------------------

    async def initialize(self, interview_config: InterviewConfig) -> List[Question]:
        require_user(self.user_id)
        self._validate_config(interview_config)
        async with self._exclusive():
            ready = isinstance(self.state, Initializing) and self.session is None
            if not ready and not self._failed_at(Initializing.name):
                raise InvalidTransition("This interview has already been initialized.")
            await self._initialize(interview_config)
            return list(self.questions)

    async def submit_answer(self, text: str, method: AnswerMethod = AnswerMethod.TEXT) -> Answer:
        async with self._exclusive():
            index = self._awaiting_index()
            if not str(text or "").strip():
                raise ValidationError()
            try:
                method = AnswerMethod(method)
            except ValueError as exc:
                raise ValidationError("Answer method must be text or voice.") from exc

            question = self.questions[index]
            time_taken = self.question_clock.elapsed_seconds()
            self._set_state(Evaluating(index))
            try:
                evaluation = await self.ai.evaluate_answer(
                    question.question_text,
                    text,
                    question.expected_answer,
                    question.question_type,
                    question.difficulty.value,
                )
                answer = Answer(
                    question_id=question.id,
                    session_id=question.session_id,
                    user_answer=text.strip(),
                    score=evaluation.score,
                    feedback=evaluation.feedback,
                    strengths=list(evaluation.strengths),
                    improvements=list(evaluation.improvements),
                    answer_method=method,
                    time_taken_seconds=time_taken,
                )
                await self.repository.save_answer(self.user_id, answer)
            except Exception as exc:
                error = self._fail(exc, Evaluating.name, question_index=index, fallback=EvaluationFailed)
                if error is exc:
                    raise
                raise error from exc

            await self._advance(index, answer)
            return answer

    async def skip_question(self) -> Answer:
        async with self._exclusive():
            index = self._awaiting_index()
            answer = Answer.skipped(self.questions[index], self.question_clock.elapsed_seconds())
            try:
                await self.repository.save_answer(self.user_id, answer)
            except Exception as exc:
                error = self._fail(exc, AwaitingAnswer.name, question_index=index, fallback=PersistenceError)
                if error is exc:
                    raise
                raise error from exc

            await self._advance(index, answer)
            return answer

    async def retry(self) -> InterviewPhase:
        """
        Re-run the step that failed. Answering failures return to the same
        question; completion and review failures re-run from that step with
        the answers already recorded, so the aggregate score never changes.
        """
        async with self._exclusive():
            state = self.state
            if not isinstance(state, Failed):
                raise InvalidTransition("There is no failed step to retry.")

            self.last_error = None
            if state.step == Initializing.name:
                if self.config is None:
                    raise InvalidTransition("Start a new interview to try again.")
                await self._initialize(self.config)
            elif state.question_index is not None:
                self.timer.start()
                self.question_clock.reset()
                self._set_state(AwaitingAnswer(state.question_index))
            elif state.step == Completing.name:
                self._set_state(Completing())
                await self._complete()
            elif state.step == Reviewing.name:
                self._set_state(Reviewing())
                await self._generate_review()
            else:
                raise InvalidTransition(f"Step {state.step} cannot be retried.")
            return self.state

    def close(self) -> None:
        self.timer.stop()

    # -------------------------
    # STEPS
    # -------------------------

    async def _initialize(self, interview_config: InterviewConfig) -> None:
        # A failed attempt with the same config leaves an unstarted session row to pick up.
        resume = (
            self.session is not None
            and self.session.status is SessionStatus.CREATED
            and self.config == interview_config
        )
        if not resume:
            self.session = None
        self.config = interview_config
        self.questions = []
        self.answers = []
        self.review = None
        self._set_state(Initializing())
        try:
            questions = []
            if resume:
                details = await self.repository.get_session_details(self.user_id, self.session.id)
                questions = details.questions
            else:
                self.session = await self.repository.create_session(self.user_id, interview_config)
            if not questions:
                generated = await self.ai.generate_questions(
                    interview_config.interview_type.value,
                    interview_config.job_description,
                    interview_config.experience_level.value,
                    interview_config.target_role,
                    interview_config.question_count,
                )
                if not generated:
                    raise GenerationFailed()
                questions = await self.repository.save_questions(self.user_id, self.session.id, generated)
            self.session = await self.repository.start_session(self.user_id, self.session.id)
        except Exception as exc:
            error = self._fail(exc, Initializing.name, fallback=GenerationFailed)
            if error is exc:
                raise
            raise error from exc

        self.questions = sorted(questions, key=lambda q: q.order_number)
        self.timer.start()
        self.question_clock.reset()
        self._set_state(AwaitingAnswer(0))

    async def _advance(self, index: int, answer: Answer) -> None:
        self.answers.append(answer)
        next_index = index + 1
        if next_index < len(self.questions):
            self.question_clock.reset()
            self._set_state(AwaitingAnswer(next_index))
            return

        self._set_state(Completing())
        await self._complete()

    async def _complete(self) -> None:
        score = calculate_final_score(self.answers)
        duration = self.timer.stop()
        try:
            self.session = await self.repository.complete_session(self.user_id, self.session_id, score, duration)
        except Exception as exc:
            error = self._fail(exc, Completing.name, fallback=PersistenceError)
            if error is exc:
                raise
            raise error from exc

        self._set_state(Reviewing())
        await self._generate_review()

    async def _generate_review(self) -> None:
        # A failed review leaves the completed, scored session in place.
        overall_score = int(self.session.score or 0)
        try:
            result = await self.ai.generate_review(self._review_summary(), self._answer_records(), overall_score)
            review = await self.repository.save_review(self.user_id, Review.from_result(self.session_id, result))
        except PersistenceError as exc:
            self._fail(exc, Reviewing.name)
            raise
        except Exception as exc:
            self._fail(exc, Reviewing.name, fallback=ReviewFailed)
            return

        self.review = review
        self.session = replace(self.session, status=SessionStatus.REVIEWED)
        self._set_state(Done())

    # -------------------------
    # HELPERS
    # -------------------------

    @asynccontextmanager
    async def _exclusive(self):
        if self._lock.locked():
            raise OperationInProgress()
        async with self._lock:
            yield

    def _validate_config(self, interview_config: InterviewConfig) -> None:
        if not str(interview_config.target_role or "").strip():
            raise ValidationError("Please enter the role you are preparing for.")
        if not str(interview_config.job_description or "").strip():
            raise ValidationError("Please paste the job description.")
        count = int(interview_config.question_count)
        if count < 1 or count > config.MAX_QUESTION_COUNT:
            raise ValidationError(f"Question count must be between 1 and {config.MAX_QUESTION_COUNT}.")

    def _awaiting_index(self) -> int:
        if not isinstance(self.state, AwaitingAnswer):
            raise InvalidTransition(f"Cannot answer while the interview is {self.state.name}.")
        return self.state.index

    def _failed_at(self, step: str) -> bool:
        return isinstance(self.state, Failed) and self.state.step == step

    def _set_state(self, state: InterviewPhase) -> None:
        self.state = state
        log_event(
            "orchestrator",
            "state_changed",
            self.session_id,
            state=state.name,
            question_index=getattr(state, "index", None),
            answered=len(self.answers),
            total_questions=len(self.questions),
        )

    def _fail(
        self,
        exc: Exception,
        step: str,
        question_index: Optional[int] = None,
        fallback: type = InterviewError,
    ) -> InterviewError:
        """
        Moves to Failed(step) and stops the session clock. Errors outside the
        InterviewError tree are reported as `fallback`; the mapped error is
        returned so the caller can raise it.
        """
        if isinstance(exc, InterviewError):
            error = exc
        else:
            logger.exception("unexpected error | session_id=%s step=%s", self.session_id, step)
            error = fallback()
        self.last_error = error
        self.timer.stop()
        logger.warning("interview step failed | session_id=%s step=%s code=%s", self.session_id, step, error.code)
        self._set_state(Failed(reason=error.message, error_code=error.code, step=step, question_index=question_index))
        return error

    def _review_summary(self) -> dict:
        return {
            "interview_type": self.session.interview_type.value,
            "target_role": self.session.target_role,
            "experience_level": self.session.experience_level.value,
            "duration_seconds": self.session.duration_seconds,
        }

    def _answer_records(self) -> list[dict]:
        by_question = {a.question_id: a for a in self.answers}
        records = []
        for question in self.questions:
            answer = by_question.get(question.id)
            if answer is None:
                continue
            records.append({
                "question": question.question_text,
                "user_answer": answer.user_answer,
                "score": answer.score,
                "feedback": answer.feedback,
            })
        return records

    # -------------------------
    # PRESENTATION
    # -------------------------

    def snapshot(self) -> dict:
        state = self.state
        index = getattr(state, "index", None)
        current = self.questions[index].public_dict() if index is not None and index < len(self.questions) else None
        question_text = {q.id: q.question_text for q in self.questions}
        total = len(self.questions)

        payload = {
            "session_id": self.session_id,
            "state": state.name,
            "status": self.session.status.value if self.session else None,
            "question_index": index,
            "total_questions": total,
            "current_question": current,
            "progress": round(len(self.answers) / total, 4) if total else 0.0,
            "answers": [
                {
                    "question_id": a.question_id,
                    "question": question_text.get(a.question_id, ""),
                    "user_answer": a.user_answer,
                    "score": a.score,
                    "feedback": a.feedback,
                    "strengths": list(a.strengths),
                    "improvements": list(a.improvements),
                    "answer_method": a.answer_method.value,
                    "time_taken_seconds": a.time_taken_seconds,
                }
                for a in self.answers
            ],
            "score": self.session.score if self.session else None,
            "elapsed_seconds": self.timer.elapsed_seconds,
            "review": self.review.to_row() if self.review else None,
            "error": None,
        }
        if isinstance(state, Failed):
            payload["error"] = {
                "code": state.error_code,
                "message": state.reason,
                "step": state.step,
                "review_failed": state.review_failed,
                "retryable": True,
            }
        return payload

    @classmethod
    def restore(
        cls,
        user_id: str,
        details: SessionDetails,
        repository: InterviewRepository,
        ai_gateway,
    ) -> "InterviewOrchestrator":
        """Rebuild a live orchestrator from stored records."""
        orchestrator = cls(user_id, repository, ai_gateway)
        session = details.session
        orchestrator.session = session
        orchestrator.config = InterviewConfig(
            interview_type=session.interview_type,
            job_description=session.job_description,
            experience_level=session.experience_level,
            target_role=session.target_role,
            question_count=max(1, len(details.questions)),
        )
        orchestrator.questions = sorted(details.questions, key=lambda q: q.order_number)
        order = {q.id: q.order_number for q in orchestrator.questions}
        orchestrator.answers = sorted(
            [a for a in details.answers if a.question_id in order],
            key=lambda a: order[a.question_id],
        )
        orchestrator.review = details.review
        orchestrator.timer.elapsed_seconds = int(session.duration_seconds or 0)

        status = session.status
        if status is SessionStatus.CREATED or not orchestrator.questions:
            raise InvalidTransition("This interview was never started. Please start a new one.")
        if status is SessionStatus.IN_PROGRESS:
            answered = len(orchestrator.answers)
            if answered < len(orchestrator.questions):
                orchestrator.timer.start()
                orchestrator.state = AwaitingAnswer(answered)
            else:
                orchestrator.state = Failed(
                    reason="The interview was not completed.",
                    error_code=PersistenceError.code,
                    step=Completing.name,
                )
        elif status is SessionStatus.COMPLETED:
            orchestrator.state = Failed(
                reason="The interview review is missing.",
                error_code=ReviewFailed.code,
                step=Reviewing.name,
            )
        else:
            orchestrator.state = Done()
        return orchestrator
