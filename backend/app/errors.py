class InterviewError(Exception):
    """Base error. `message` is safe to show to the user."""

    code = "interview_error"
    default_message = "Something went wrong with the interview session."

    def __init__(self, message: str | None = None):
        self.message = str(message or self.default_message)
        super().__init__(self.message)


class ValidationError(InterviewError):
    code = "validation_error"
    default_message = "Please provide an answer before submitting."


class AuthenticationRequired(InterviewError):
    code = "authentication_required"
    default_message = "User not authenticated."


class SessionNotFound(InterviewError):
    code = "session_not_found"
    default_message = "Interview session not found."


class InvalidTransition(InterviewError):
    code = "invalid_transition"
    default_message = "That action is not available in the current interview state."


class OperationInProgress(InvalidTransition):
    code = "operation_in_progress"
    default_message = "Another action is still in progress for this interview."


class PersistenceError(InterviewError):
    code = "persistence_error"
    default_message = "Failed to save interview data. Please try again."


class AIGatewayError(InterviewError):
    code = "ai_gateway_error"
    default_message = "The AI service is unavailable. Please try again."


class GenerationFailed(AIGatewayError):
    code = "generation_failed"
    default_message = "Failed to generate interview questions. Please try again."


class EvaluationFailed(AIGatewayError):
    code = "evaluation_failed"
    default_message = "Failed to evaluate answer. Please try again."


class TranscriptionFailed(AIGatewayError):
    code = "transcription_failed"
    default_message = "Transcription failed. Please try again or type your answer."


class ReviewFailed(AIGatewayError):
    code = "review_failed"
    default_message = "Failed to generate the interview review. Your score has been saved."
