from app.interview.models import Session, SessionStatus
from app.interview.scorer import round_half_up

_FINISHED = {SessionStatus.COMPLETED, SessionStatus.REVIEWED}


def _trend_direction(values: list[float]) -> str:
    if len(values) < 2:
        return "stable"
    delta = values[-1] - values[0]
    if delta >= 3:
        return "up"
    if delta <= -3:
        return "down"
    return "stable"


def build_dashboard_stats(sessions: list[Session]) -> dict:
    """
    History summary for one user. Only completed or reviewed sessions count
    towards score and practice time.
    """
    finished = [s for s in sessions if s.status in _FINISHED and s.score is not None]
    finished.sort(key=lambda s: s.created_at)
    scores = [int(s.score) for s in finished]

    by_type: dict[str, int] = {}
    for session in sessions:
        key = session.interview_type.value
        by_type[key] = by_type.get(key, 0) + 1

    return {
        "total_sessions": len(sessions),
        "completed_sessions": len(finished),
        "average_score": round_half_up(sum(scores) / len(scores)) if scores else 0,
        "best_score": max(scores) if scores else 0,
        "total_minutes": sum(int(s.duration_seconds or 0) // 60 for s in finished),
        "sessions_by_type": by_type,
        "score_trend": _trend_direction([float(v) for v in scores[-5:]]),
    }
