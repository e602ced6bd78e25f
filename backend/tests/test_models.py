from app.interview.models import (
    SKIPPED_ANSWER_TEXT,
    SKIPPED_FEEDBACK,
    SKIPPED_IMPROVEMENT,
    Answer,
    AnswerMethod,
    Difficulty,
    Question,
    Session,
    SessionStatus,
)
from app.interview.states import Failed


def test_session_status_only_moves_forward_one_step():
    assert SessionStatus.CREATED.can_transition(SessionStatus.IN_PROGRESS)
    assert SessionStatus.IN_PROGRESS.can_transition(SessionStatus.COMPLETED)
    assert SessionStatus.COMPLETED.can_transition(SessionStatus.REVIEWED)

    assert not SessionStatus.CREATED.can_transition(SessionStatus.COMPLETED)
    assert not SessionStatus.COMPLETED.can_transition(SessionStatus.IN_PROGRESS)
    assert not SessionStatus.REVIEWED.can_transition(SessionStatus.REVIEWED)


def test_skipped_answer_uses_fixed_feedback():
    question = Question(
        session_id="s1",
        question_text="Tell me about yourself",
        question_type="behavioral",
        difficulty=Difficulty.EASY,
        expected_answer="",
        order_number=1,
    )
    answer = Answer.skipped(question, time_taken_seconds=4)

    assert answer.question_id == question.id
    assert answer.user_answer == SKIPPED_ANSWER_TEXT
    assert answer.score == 0
    assert answer.feedback == SKIPPED_FEEDBACK
    assert answer.strengths == []
    assert answer.improvements == [SKIPPED_IMPROVEMENT]
    assert answer.answer_method is AnswerMethod.TEXT


def test_session_from_database_row():
    session = Session.from_row({
        "id": "abc",
        "user_id": "u1",
        "interview_type": "hr",
        "job_description": "People ops",
        "experience_level": "senior",
        "target_role": "HR Partner",
        "status": "completed",
        "score": 77,
        "duration": 610,
        "created_at": "2024-05-01T10:00:00Z",
        "completed_at": "2024-05-01T10:10:10Z",
    })

    assert session.status is SessionStatus.COMPLETED
    assert session.score == 77
    assert session.duration_seconds == 610
    assert session.created_at.tzinfo is not None
    assert session.to_row()["duration"] == 610


def test_question_public_dict_hides_expected_answer():
    question = Question(
        session_id="s1",
        question_text="What is a mutex?",
        question_type="technical",
        difficulty=Difficulty.MEDIUM,
        expected_answer="A lock",
        order_number=2,
    )
    assert "expected_answer" not in question.public_dict()


def test_failed_review_step_is_flagged():
    assert not Failed(reason="x", error_code="evaluation_failed", step="evaluating", question_index=1).review_failed
    failed = Failed(reason="x", error_code="review_failed", step="reviewing")
    assert failed.review_failed
