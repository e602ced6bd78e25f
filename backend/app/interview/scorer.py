import math


def _safe_float(value, default: float = 0.0) -> float:
    try:
        return float(value)
    except Exception:
        return default


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _item_score(item) -> float:
    raw = getattr(item, "score", None)
    if raw is None and isinstance(item, dict):
        raw = item.get("score")
    return max(0.0, min(100.0, _safe_float(raw, 0.0)))


def calculate_final_score(answers) -> int:
    """
    Session aggregate: mean of answer scores on the 0-100 scale, rounded
    half up. No answers scores 0.
    """
    scores = [_item_score(item) for item in list(answers or [])]
    if not scores:
        return 0
    return round_half_up(sum(scores) / len(scores))
