from pydantic import BaseModel, Field

from app.interview.models import AnswerMethod, ExperienceLevel, InterviewConfig, InterviewType
from core.config import DEFAULT_QUESTION_COUNT


class StartInterviewRequest(BaseModel):
    interview_type: InterviewType
    job_description: str
    experience_level: ExperienceLevel
    target_role: str
    question_count: int = Field(default=DEFAULT_QUESTION_COUNT, ge=1)

    def to_config(self) -> InterviewConfig:
        return InterviewConfig(
            interview_type=self.interview_type,
            job_description=self.job_description.strip(),
            experience_level=self.experience_level,
            target_role=self.target_role.strip(),
            question_count=self.question_count,
        )


class SubmitAnswerRequest(BaseModel):
    answer: str
    method: AnswerMethod = AnswerMethod.TEXT


class TranscriptionResponse(BaseModel):
    text: str
