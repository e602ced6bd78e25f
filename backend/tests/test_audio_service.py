import pytest

from app.errors import TranscriptionFailed
from app.services import audio_service
from app.services.audio_service import AudioCapture, RecordingTooLarge, transcribe_recording
from core.state import RecordingState

from conftest import FakeAIGateway


async def _chunks(*items):
    for item in items:
        yield item


@pytest.mark.asyncio
async def test_transcribe_recording_joins_chunks():
    ai = FakeAIGateway()

    text = await transcribe_recording(_chunks(b"ab", b"", b"cd"), ai, filename="take1.webm")

    assert text == ai.transcript
    assert ai.calls[-1] == ("transcribe_audio", {"bytes": 4, "filename": "take1.webm"})


@pytest.mark.asyncio
async def test_capture_is_released_after_failed_transcription(monkeypatch: pytest.MonkeyPatch):
    captures = []
    original = audio_service.AudioCapture

    class _TrackedCapture(original):
        def __init__(self, *args, **kwargs):
            super().__init__(*args, **kwargs)
            captures.append(self)

    monkeypatch.setattr(audio_service, "AudioCapture", _TrackedCapture)
    ai = FakeAIGateway()
    ai.transcribe_error = TranscriptionFailed()

    with pytest.raises(TranscriptionFailed):
        await transcribe_recording(_chunks(b"audio"), ai)

    assert captures[0].state is RecordingState.CLOSED
    assert captures[0].size == 0


@pytest.mark.asyncio
async def test_capture_rejects_oversized_recordings():
    async with AudioCapture(max_bytes=4) as capture:
        capture.feed(b"abc")
        with pytest.raises(RecordingTooLarge):
            capture.feed(b"de")
        assert capture.size == 3
    assert capture.state is RecordingState.CLOSED


@pytest.mark.asyncio
async def test_capture_refuses_audio_after_stop():
    async with AudioCapture() as capture:
        capture.feed(b"abc")
        assert capture.stop() == b"abc"
        assert capture.state is RecordingState.TRANSCRIBING
        with pytest.raises(RuntimeError):
            capture.feed(b"more")
