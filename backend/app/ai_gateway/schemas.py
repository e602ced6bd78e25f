from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.interview.models import Difficulty


class _ProviderModel(BaseModel):
    # Provider prompts ask for camelCase keys; snake_case is accepted too.
    model_config = ConfigDict(populate_by_name=True, extra="ignore", str_strip_whitespace=True)


def _string_list(value) -> list:
    if value is None:
        return []
    if isinstance(value, str):
        return [value] if value.strip() else []
    if not isinstance(value, (list, tuple)):
        raise ValueError(f"expected a list of strings, got {type(value).__name__}")
    return [str(item).strip() for item in value if str(item or "").strip()]


class GeneratedQuestionPayload(_ProviderModel):
    question_text: str = Field(alias="questionText", min_length=1)
    question_type: str = Field(alias="questionType", min_length=1)
    difficulty: Difficulty
    expected_answer: str = Field(alias="expectedAnswer")

    @field_validator("difficulty", mode="before")
    @classmethod
    def _lower_difficulty(cls, value):
        return value.strip().lower() if isinstance(value, str) else value


class QuestionSetPayload(_ProviderModel):
    questions: List[GeneratedQuestionPayload] = Field(min_length=1)


class EvaluationPayload(_ProviderModel):
    score: float = Field(ge=0, le=100)
    feedback: str = Field(min_length=1)
    strengths: List[str] = Field(default_factory=list)
    improvements: List[str] = Field(default_factory=list)

    @field_validator("strengths", "improvements", mode="before")
    @classmethod
    def _coerce_lists(cls, value):
        return _string_list(value)


class ReviewPayload(_ProviderModel):
    overall_score: Optional[float] = Field(default=None, alias="overallScore", ge=0, le=100)
    strengths: List[str] = Field(default_factory=list)
    weaknesses: List[str] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)
    ai_analysis: str = Field(alias="aiAnalysis", min_length=1)

    @field_validator("strengths", "weaknesses", "recommendations", mode="before")
    @classmethod
    def _coerce_lists(cls, value):
        return _string_list(value)
