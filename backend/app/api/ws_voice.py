import json
import logging

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect
from starlette.websockets import WebSocketState

from app.ai_gateway.gateway import AIGateway
from app.api.deps import get_ai_gateway
from app.auth import resolve_user_id_from_token_async
from app.errors import AuthenticationRequired, TranscriptionFailed
from app.services.audio_service import RecordingTooLarge, transcribe_recording

router = APIRouter()
logger = logging.getLogger("app.api.ws_voice")


async def _receive_chunks(ws: WebSocket):
    """Yields binary frames until the client sends {"type": "stop"}."""
    while True:
        message = await ws.receive()
        if message.get("type") == "websocket.disconnect":
            raise WebSocketDisconnect(code=int(message.get("code") or 1000))

        data = message.get("bytes")
        if data:
            yield data
            continue

        text = message.get("text")
        if not text:
            continue
        try:
            control = json.loads(text)
        except ValueError:
            continue
        if isinstance(control, dict) and control.get("type") == "stop":
            return


async def _send_error(ws: WebSocket, code: str, detail: str) -> None:
    await ws.send_json({"type": "error", "error": code, "detail": detail})


@router.websocket("/ws/interview/voice")
async def voice_answer(ws: WebSocket, token: str = "", ai: AIGateway = Depends(get_ai_gateway)):
    """
    One recording per round: binary audio frames, then {"type": "stop"}.
    The reply is {"type": "transcript", "text": ...} or an error frame;
    the socket stays open for the next recording.
    """
    await ws.accept()
    try:
        user_id = await resolve_user_id_from_token_async(token)
    except AuthenticationRequired as exc:
        await _send_error(ws, exc.code, exc.message)
        await ws.close(code=4401)
        return

    logger.info("voice capture connected | user_id=%s", user_id)
    try:
        while True:
            try:
                text = await transcribe_recording(_receive_chunks(ws), ai)
            except TranscriptionFailed as exc:
                await _send_error(ws, exc.code, exc.message)
                continue
            except RecordingTooLarge:
                # drop the rest of this recording
                async for _ in _receive_chunks(ws):
                    pass
                await _send_error(ws, "validation_error", "Recording is too large. Please record a shorter answer.")
                continue
            await ws.send_json({"type": "transcript", "text": text})
    except WebSocketDisconnect:
        logger.info("voice capture disconnected | user_id=%s", user_id)
    finally:
        if ws.client_state == WebSocketState.CONNECTED:
            await ws.close()
