from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import asyncio
import logging
import os

from app.api.interview import router as interview_router
from app.api.ws_voice import router as voice_ws_router
from app.errors import (
    AIGatewayError,
    AuthenticationRequired,
    InterviewError,
    InvalidTransition,
    PersistenceError,
    SessionNotFound,
    ValidationError,
)
from app.session.registry import session_registry
from core.config import SESSION_CLEANUP_INTERVAL_SEC, SESSION_CLEANUP_TTL_SEC

logging.basicConfig(
    format="%(asctime)s | %(name)s | %(levelname)s | %(message)s",
    level=logging.INFO,
)

app = FastAPI(title="Mock Interview API")
logger = logging.getLogger("app.main")

_ERROR_STATUS = [
    (ValidationError, 422),
    (AuthenticationRequired, 401),
    (SessionNotFound, 404),
    (InvalidTransition, 409),
    (AIGatewayError, 502),
    (PersistenceError, 503),
]


def _get_allowed_origins() -> list[str]:
    raw = os.getenv("CORS_ALLOW_ORIGINS", "").strip()
    if not raw:
        return [
            "http://localhost:3000",
            "http://127.0.0.1:3000",
            "http://localhost:5173",
            "http://127.0.0.1:5173",
        ]
    return [item.strip() for item in raw.split(",") if item.strip()]


_allowed_origins = _get_allowed_origins()

app.add_middleware(
    CORSMiddleware,
    allow_origins=_allowed_origins,
    allow_methods=["*"],
    allow_headers=["*"],
    allow_credentials=False,
)

_session_cleanup_task: asyncio.Task | None = None


def status_for_error(exc: InterviewError) -> int:
    for error_type, status_code in _ERROR_STATUS:
        if isinstance(exc, error_type):
            return status_code
    return 500


@app.exception_handler(InterviewError)
async def interview_error_handler(request: Request, exc: InterviewError):
    status_code = status_for_error(exc)
    if status_code >= 500:
        logger.warning("request failed | path=%s code=%s", request.url.path, exc.code)
    return JSONResponse(
        status_code=status_code,
        content={"detail": exc.message, "error": exc.code},
    )


@app.exception_handler(HTTPException)
async def http_error_handler(request: Request, exc: HTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": str(exc.detail), "error": "http_error"},
        headers=getattr(exc, "headers", None),
    )


@app.on_event("startup")
async def startup_banner():
    global _session_cleanup_task
    logger.info("[SYSTEM] CORS allow_origins=%s", _allowed_origins)

    async def _session_cleanup_loop():
        while True:
            await asyncio.sleep(SESSION_CLEANUP_INTERVAL_SEC)
            session_registry.cleanup_idle(SESSION_CLEANUP_TTL_SEC)
            removed = session_registry.cleanup_inactive(SESSION_CLEANUP_TTL_SEC)
            if removed > 0:
                logger.info("[SYSTEM] cleaned inactive sessions=%s", removed)

    _session_cleanup_task = asyncio.create_task(_session_cleanup_loop())


@app.on_event("shutdown")
async def shutdown_handler():
    global _session_cleanup_task
    if _session_cleanup_task is not None:
        _session_cleanup_task.cancel()
        try:
            await _session_cleanup_task
        except asyncio.CancelledError:
            pass
        finally:
            _session_cleanup_task = None
    logger.info("[SYSTEM] shutdown complete")


@app.get("/healthz")
async def healthz():
    return {"status": "ok", "service": "backend"}


app.include_router(interview_router)
app.include_router(voice_ws_router)
