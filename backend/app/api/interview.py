import logging

from fastapi import APIRouter, Depends, File, Request, UploadFile

from app.ai_gateway.gateway import AIGateway
from app.analytics.dashboard import build_dashboard_stats
from app.api.deps import get_ai_gateway, get_registry, get_repository
from app.auth import get_user_id_async
from app.db.repository import InterviewRepository
from app.errors import ValidationError
from app.interview.orchestrator import InterviewOrchestrator
from app.interview.states import Done
from app.schemas import StartInterviewRequest, SubmitAnswerRequest, TranscriptionResponse
from app.services.audio_service import MAX_RECORDING_BYTES
from app.session.registry import SessionRegistry

router = APIRouter(prefix="/api/interview")
logger = logging.getLogger("app.api.interview")


async def _live_orchestrator(
    session_id: str,
    user_id: str,
    repository: InterviewRepository,
    ai: AIGateway,
    registry: SessionRegistry,
) -> InterviewOrchestrator:
    orchestrator = registry.get_orchestrator(session_id, user_id)
    if orchestrator is not None:
        return orchestrator

    details = await repository.get_session_details(user_id, session_id)
    restored = InterviewOrchestrator.restore(user_id, details, repository, ai)
    orchestrator = registry.register_if_absent(session_id, user_id, restored)
    if orchestrator is not restored:
        # another request restored this session while details were loading
        restored.close()
        return orchestrator
    logger.info("restored interview session | session_id=%s state=%s", session_id, orchestrator.state.name)
    return orchestrator


def _settle(registry: SessionRegistry, orchestrator: InterviewOrchestrator) -> dict:
    if isinstance(orchestrator.state, Done):
        orchestrator.close()
        registry.mark_inactive(orchestrator.session_id)
    else:
        registry.touch(orchestrator.session_id)
    return orchestrator.snapshot()


@router.post("/start")
async def start_interview(
    payload: StartInterviewRequest,
    request: Request,
    repository: InterviewRepository = Depends(get_repository),
    ai: AIGateway = Depends(get_ai_gateway),
    registry: SessionRegistry = Depends(get_registry),
):
    user_id = await get_user_id_async(request)
    orchestrator = InterviewOrchestrator(user_id, repository, ai)
    await orchestrator.initialize(payload.to_config())
    registry.register(orchestrator.session_id, user_id, orchestrator)
    return orchestrator.snapshot()


@router.get("/sessions")
async def list_sessions(request: Request, repository: InterviewRepository = Depends(get_repository)):
    user_id = await get_user_id_async(request)
    sessions = await repository.list_sessions(user_id)
    return {"items": [s.to_row() for s in sessions]}


@router.get("/sessions/{session_id}")
async def get_session(session_id: str, request: Request, repository: InterviewRepository = Depends(get_repository)):
    user_id = await get_user_id_async(request)
    details = await repository.get_session_details(user_id, session_id)
    return details.to_dict()


@router.get("/dashboard")
async def get_dashboard(request: Request, repository: InterviewRepository = Depends(get_repository)):
    user_id = await get_user_id_async(request)
    sessions = await repository.list_sessions(user_id)
    return build_dashboard_stats(sessions)


@router.post("/transcribe", response_model=TranscriptionResponse)
async def transcribe_answer(
    request: Request,
    file: UploadFile = File(...),
    ai: AIGateway = Depends(get_ai_gateway),
):
    await get_user_id_async(request)
    try:
        content = await file.read()
    finally:
        await file.close()
    if len(content) > MAX_RECORDING_BYTES:
        raise ValidationError("Recording is too large. Please record a shorter answer.")
    text = await ai.transcribe_audio(content, filename=file.filename or "answer.webm")
    return {"text": text}


@router.get("/{session_id}/state")
async def get_interview_state(
    session_id: str,
    request: Request,
    repository: InterviewRepository = Depends(get_repository),
    ai: AIGateway = Depends(get_ai_gateway),
    registry: SessionRegistry = Depends(get_registry),
):
    user_id = await get_user_id_async(request)
    orchestrator = await _live_orchestrator(session_id, user_id, repository, ai, registry)
    return orchestrator.snapshot()


@router.post("/{session_id}/answer")
async def submit_answer(
    session_id: str,
    payload: SubmitAnswerRequest,
    request: Request,
    repository: InterviewRepository = Depends(get_repository),
    ai: AIGateway = Depends(get_ai_gateway),
    registry: SessionRegistry = Depends(get_registry),
):
    user_id = await get_user_id_async(request)
    orchestrator = await _live_orchestrator(session_id, user_id, repository, ai, registry)
    await orchestrator.submit_answer(payload.answer, payload.method)
    return _settle(registry, orchestrator)


@router.post("/{session_id}/skip")
async def skip_question(
    session_id: str,
    request: Request,
    repository: InterviewRepository = Depends(get_repository),
    ai: AIGateway = Depends(get_ai_gateway),
    registry: SessionRegistry = Depends(get_registry),
):
    user_id = await get_user_id_async(request)
    orchestrator = await _live_orchestrator(session_id, user_id, repository, ai, registry)
    await orchestrator.skip_question()
    return _settle(registry, orchestrator)


@router.post("/{session_id}/retry")
async def retry_step(
    session_id: str,
    request: Request,
    repository: InterviewRepository = Depends(get_repository),
    ai: AIGateway = Depends(get_ai_gateway),
    registry: SessionRegistry = Depends(get_registry),
):
    user_id = await get_user_id_async(request)
    orchestrator = await _live_orchestrator(session_id, user_id, repository, ai, registry)
    await orchestrator.retry()
    return _settle(registry, orchestrator)
