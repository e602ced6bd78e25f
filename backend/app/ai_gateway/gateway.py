import logging

from pydantic import ValidationError as PayloadValidationError

from app.ai_gateway.llm import LLMCallError, call_llm_json, get_client
from app.ai_gateway.prompts import (
    build_evaluation_prompts,
    build_question_prompts,
    build_review_prompts,
)
from app.ai_gateway.schemas import EvaluationPayload, QuestionSetPayload, ReviewPayload
from app.errors import EvaluationFailed, GenerationFailed, ReviewFailed, TranscriptionFailed
from app.interview.models import Evaluation, GeneratedQuestion, ReviewResult
from app.interview.scorer import round_half_up
from core import config

logger = logging.getLogger("app.ai_gateway.gateway")


class AIGateway:
    """
    Four independent request/response operations against the LLM provider.
    Provider output is validated here; anything malformed raises the
    operation's failure instead of reaching the orchestrator.
    """

    def __init__(self, client=None, model: str | None = None, transcription_model: str | None = None):
        self._client = client
        self.model = model or config.MODEL_NAME
        self.transcription_model = transcription_model or config.TRANSCRIPTION_MODEL

    @property
    def client(self):
        if self._client is None:
            self._client = get_client()
        return self._client

    async def generate_questions(
        self,
        interview_type: str,
        job_description: str,
        experience_level: str,
        target_role: str,
        count: int,
    ) -> list[GeneratedQuestion]:
        system_prompt, user_prompt = build_question_prompts(
            interview_type, job_description, experience_level, target_role, count
        )
        try:
            raw = await call_llm_json(self.client, system_prompt, user_prompt, temperature=0.7, model=self.model)
            payload = QuestionSetPayload.model_validate(raw)
        except (LLMCallError, PayloadValidationError) as exc:
            logger.warning("generate_questions failed | type=%s err=%s", interview_type, exc)
            raise GenerationFailed() from exc

        return [
            GeneratedQuestion(
                question_text=item.question_text,
                question_type=item.question_type,
                difficulty=item.difficulty,
                expected_answer=item.expected_answer,
            )
            for item in payload.questions[:max(1, int(count))]
        ]

    async def evaluate_answer(
        self,
        question: str,
        user_answer: str,
        expected_answer: str,
        question_type: str,
        difficulty: str,
    ) -> Evaluation:
        system_prompt, user_prompt = build_evaluation_prompts(
            question, user_answer, expected_answer, question_type, difficulty
        )
        try:
            raw = await call_llm_json(self.client, system_prompt, user_prompt, temperature=0.3, model=self.model)
            payload = EvaluationPayload.model_validate(raw)
        except (LLMCallError, PayloadValidationError) as exc:
            logger.warning("evaluate_answer failed | err=%s", exc)
            raise EvaluationFailed() from exc

        return Evaluation(
            score=round_half_up(payload.score),
            feedback=payload.feedback,
            strengths=list(payload.strengths),
            improvements=list(payload.improvements),
        )

    async def transcribe_audio(self, audio: bytes, filename: str = "answer.webm") -> str:
        if not audio:
            raise TranscriptionFailed("No audio was recorded. Please try again or type your answer.")
        try:
            result = await self.client.audio.transcriptions.create(
                model=self.transcription_model,
                file=(filename, bytes(audio)),
            )
        except Exception as exc:
            logger.warning("transcribe_audio failed | bytes=%s err=%s", len(audio), exc)
            raise TranscriptionFailed() from exc

        text = str(getattr(result, "text", "") or "").strip()
        if not text:
            raise TranscriptionFailed("No speech was detected. Please try again or type your answer.")
        return text

    async def generate_review(self, session_summary: dict, answers: list[dict], overall_score: int) -> ReviewResult:
        system_prompt, user_prompt = build_review_prompts(session_summary, answers, overall_score)
        try:
            raw = await call_llm_json(self.client, system_prompt, user_prompt, temperature=0.4, model=self.model)
            payload = ReviewPayload.model_validate(raw)
        except (LLMCallError, PayloadValidationError) as exc:
            logger.warning("generate_review failed | err=%s", exc)
            raise ReviewFailed() from exc

        reviewed_score = overall_score if payload.overall_score is None else round_half_up(payload.overall_score)
        return ReviewResult(
            overall_score=reviewed_score,
            strengths=list(payload.strengths),
            weaknesses=list(payload.weaknesses),
            recommendations=list(payload.recommendations),
            ai_analysis=payload.ai_analysis,
        )
