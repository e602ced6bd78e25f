import logging
from typing import AsyncIterator

from core.state import RecordingState

logger = logging.getLogger("app.services.audio_service")

MAX_RECORDING_BYTES = 25 * 1024 * 1024


class RecordingTooLarge(Exception):
    pass


class AudioCapture:
    """
    Buffers the audio of one recording action. The buffer is released when
    the context exits, whatever happened inside it.
    """

    def __init__(self, max_bytes: int = MAX_RECORDING_BYTES):
        self.max_bytes = max_bytes
        self.state = RecordingState.IDLE
        self._chunks: list[bytes] = []
        self._size = 0

    async def __aenter__(self) -> "AudioCapture":
        self.state = RecordingState.RECORDING
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.release()

    @property
    def size(self) -> int:
        return self._size

    def feed(self, chunk: bytes) -> None:
        if self.state is not RecordingState.RECORDING:
            raise RuntimeError(f"cannot record audio while {self.state.value}")
        if not chunk:
            return
        if self._size + len(chunk) > self.max_bytes:
            raise RecordingTooLarge(f"recording exceeds {self.max_bytes} bytes")
        self._chunks.append(bytes(chunk))
        self._size += len(chunk)

    def stop(self) -> bytes:
        self.state = RecordingState.TRANSCRIBING
        return b"".join(self._chunks)

    def release(self) -> None:
        self._chunks = []
        self._size = 0
        self.state = RecordingState.CLOSED


async def transcribe_recording(chunks: AsyncIterator[bytes], ai_gateway, filename: str = "answer.webm") -> str:
    """
    Records every chunk from `chunks`, then transcribes the whole payload.
    """
    async with AudioCapture() as capture:
        async for chunk in chunks:
            capture.feed(chunk)
        payload = capture.stop()
        logger.info("transcribing recording | bytes=%s", len(payload))
        return await ai_gateway.transcribe_audio(payload, filename=filename)
