from app.ai_gateway.gateway import AIGateway
from app.db.repository import InterviewRepository, build_interview_repository
from app.session.registry import SessionRegistry, session_registry

_repository: InterviewRepository | None = None
_ai_gateway: AIGateway | None = None


def get_repository() -> InterviewRepository:
    global _repository
    if _repository is None:
        _repository = build_interview_repository()
    return _repository


def get_ai_gateway() -> AIGateway:
    global _ai_gateway
    if _ai_gateway is None:
        _ai_gateway = AIGateway()
    return _ai_gateway


def get_registry() -> SessionRegistry:
    return session_registry
