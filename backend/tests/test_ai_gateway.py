import json
from types import SimpleNamespace

import pytest

from app.ai_gateway.gateway import AIGateway
from app.ai_gateway.llm import LLMCallError, call_llm_json
from app.errors import EvaluationFailed, GenerationFailed, ReviewFailed, TranscriptionFailed
from app.interview.models import Difficulty


class _FakeCompletions:
    def __init__(self, contents):
        self.contents = list(contents)
        self.calls = []

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        content = self.contents.pop(0)
        if isinstance(content, Exception):
            raise content
        message = SimpleNamespace(content=content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


class _FakeTranscriptions:
    def __init__(self, text="", error=None):
        self.text = text
        self.error = error
        self.calls = []

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        return SimpleNamespace(text=self.text)


def _client(*contents, transcript="", transcribe_error=None):
    completions = _FakeCompletions(contents)
    transcriptions = _FakeTranscriptions(transcript, transcribe_error)
    return SimpleNamespace(
        chat=SimpleNamespace(completions=completions),
        audio=SimpleNamespace(transcriptions=transcriptions),
    )


def _questions_json(n):
    return json.dumps({
        "questions": [
            {
                "questionText": f"Q{i}",
                "questionType": "technical",
                "difficulty": "Hard" if i == 1 else "medium",
                "expectedAnswer": f"A{i}",
            }
            for i in range(1, n + 1)
        ]
    })


@pytest.mark.asyncio
async def test_call_llm_json_requests_json_object():
    client = _client('{"ok": true}')

    result = await call_llm_json(client, "system", "user", temperature=0.2, model="m")

    assert result == {"ok": True}
    call = client.chat.completions.calls[0]
    assert call["response_format"] == {"type": "json_object"}
    assert call["model"] == "m"
    assert call["messages"][0]["role"] == "system"


@pytest.mark.asyncio
async def test_call_llm_json_accepts_fenced_output():
    client = _client('Here you go:\n```json\n{"score": 80}\n```')
    assert await call_llm_json(client, "s", "u") == {"score": 80}


@pytest.mark.asyncio
async def test_call_llm_json_rejects_error_body_and_prose():
    with pytest.raises(LLMCallError):
        await call_llm_json(_client('{"error": "rate limited"}'), "s", "u")
    with pytest.raises(LLMCallError):
        await call_llm_json(_client("I cannot help with that."), "s", "u")


@pytest.mark.asyncio
async def test_generate_questions_parses_camel_case_in_order():
    gateway = AIGateway(client=_client(_questions_json(3)))

    questions = await gateway.generate_questions("technical", "JD", "mid", "Backend Engineer", 3)

    assert [q.question_text for q in questions] == ["Q1", "Q2", "Q3"]
    assert questions[0].difficulty is Difficulty.HARD
    assert questions[2].expected_answer == "A3"


@pytest.mark.asyncio
async def test_generate_questions_truncates_to_requested_count():
    gateway = AIGateway(client=_client(_questions_json(7)))
    questions = await gateway.generate_questions("hr", "JD", "junior", "Recruiter", 5)
    assert len(questions) == 5


@pytest.mark.asyncio
async def test_generate_questions_failures():
    empty = AIGateway(client=_client('{"questions": []}'))
    with pytest.raises(GenerationFailed):
        await empty.generate_questions("technical", "JD", "mid", "Dev", 3)

    broken = AIGateway(client=_client(RuntimeError("connection reset")))
    with pytest.raises(GenerationFailed):
        await broken.generate_questions("technical", "JD", "mid", "Dev", 3)

    bad_difficulty = json.dumps({
        "questions": [{"questionText": "Q", "questionType": "t", "difficulty": "extreme", "expectedAnswer": ""}]
    })
    with pytest.raises(GenerationFailed):
        await AIGateway(client=_client(bad_difficulty)).generate_questions("gd", "JD", "lead", "Lead", 1)


@pytest.mark.asyncio
async def test_evaluate_answer_valid_payload():
    payload = json.dumps({
        "score": 84.5,
        "feedback": "Good coverage of trade-offs.",
        "strengths": ["Structured"],
        "improvements": "Give an example",
    })
    gateway = AIGateway(client=_client(payload))

    evaluation = await gateway.evaluate_answer("Q", "my answer", "A", "technical", "medium")

    assert evaluation.score == 85
    assert evaluation.strengths == ["Structured"]
    assert evaluation.improvements == ["Give an example"]


@pytest.mark.parametrize(
    "content",
    [
        '{"feedback": "no score"}',
        '{"score": 150, "feedback": "too high"}',
        '{"score": "great", "feedback": "not numeric"}',
        '{"score": 70}',
        "not json at all",
    ],
)
@pytest.mark.asyncio
async def test_evaluate_answer_malformed_output_fails(content):
    gateway = AIGateway(client=_client(content))
    with pytest.raises(EvaluationFailed):
        await gateway.evaluate_answer("Q", "my answer", "A", "technical", "medium")


@pytest.mark.asyncio
async def test_non_list_provider_lists_are_typed_failures():
    evaluation = json.dumps({"score": 80, "feedback": "ok", "strengths": 5})
    with pytest.raises(EvaluationFailed):
        await AIGateway(client=_client(evaluation)).evaluate_answer("Q", "a", "A", "technical", "easy")

    flagged = json.dumps({"score": 80, "feedback": "ok", "improvements": True})
    with pytest.raises(EvaluationFailed):
        await AIGateway(client=_client(flagged)).evaluate_answer("Q", "a", "A", "technical", "easy")

    review = json.dumps({"overallScore": 70, "aiAnalysis": "Fine.", "recommendations": True})
    with pytest.raises(ReviewFailed):
        await AIGateway(client=_client(review)).generate_review({}, [], overall_score=70)


@pytest.mark.asyncio
async def test_generate_review_falls_back_to_aggregate_score():
    payload = json.dumps({
        "strengths": ["Clear"],
        "weaknesses": ["Depth"],
        "recommendations": ["Practice"],
        "aiAnalysis": "Good session.",
    })
    gateway = AIGateway(client=_client(payload))

    review = await gateway.generate_review({"target_role": "Dev"}, [], overall_score=82)

    assert review.overall_score == 82
    assert review.ai_analysis == "Good session."


@pytest.mark.asyncio
async def test_generate_review_uses_provider_score_and_rejects_missing_analysis():
    payload = json.dumps({"overallScore": 78, "aiAnalysis": "Fine."})
    review = await AIGateway(client=_client(payload)).generate_review({}, [], overall_score=82)
    assert review.overall_score == 78

    with pytest.raises(ReviewFailed):
        await AIGateway(client=_client('{"overallScore": 78}')).generate_review({}, [], overall_score=82)


@pytest.mark.asyncio
async def test_transcribe_audio():
    client = _client(transcript="  I would shard by user id  ")
    gateway = AIGateway(client=client, transcription_model="whisper-1")

    text = await gateway.transcribe_audio(b"\x00\x01", filename="a.webm")

    assert text == "I would shard by user id"
    call = client.audio.transcriptions.calls[0]
    assert call["model"] == "whisper-1"
    assert call["file"] == ("a.webm", b"\x00\x01")


@pytest.mark.asyncio
async def test_transcribe_audio_failures():
    client = _client(transcript="")
    gateway = AIGateway(client=client)

    with pytest.raises(TranscriptionFailed):
        await gateway.transcribe_audio(b"")
    assert client.audio.transcriptions.calls == []

    with pytest.raises(TranscriptionFailed):
        await gateway.transcribe_audio(b"\x00")

    failing = AIGateway(client=_client(transcribe_error=RuntimeError("503")))
    with pytest.raises(TranscriptionFailed):
        await failing.transcribe_audio(b"\x00")
