import json
import logging
import re
from functools import lru_cache

from openai import AsyncOpenAI

from core import config

logger = logging.getLogger("app.ai_gateway.llm")


class LLMCallError(Exception):
    """Transport failure, provider error body or unparseable provider output."""


@lru_cache(maxsize=1)
def get_client() -> AsyncOpenAI:
    return AsyncOpenAI(api_key=config.OPENAI_API_KEY, timeout=config.AI_TIMEOUT_SEC)


def extract_json_dict(text: str) -> dict | None:
    text = (text or "").strip()
    if not text:
        return None

    try:
        parsed = json.loads(text)
        return parsed if isinstance(parsed, dict) else None
    except Exception:
        pass

    fenced = re.search(r"```(?:json)?\s*(\{[\s\S]*?\})\s*```", text, re.IGNORECASE)
    if fenced:
        try:
            parsed = json.loads(fenced.group(1))
            return parsed if isinstance(parsed, dict) else None
        except Exception:
            pass

    start = text.find("{")
    end = text.rfind("}")
    if start != -1 and end != -1 and end > start:
        try:
            parsed = json.loads(text[start:end + 1])
            return parsed if isinstance(parsed, dict) else None
        except Exception:
            return None

    return None


async def call_llm_json(
    client,
    system_prompt: str,
    user_prompt: str,
    temperature: float = 0.4,
    model: str | None = None,
) -> dict:
    """
    One chat completion that must come back as a JSON object.
    No retries here; the caller decides whether to try again.
    """
    try:
        response = await client.chat.completions.create(
            model=model or config.MODEL_NAME,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            temperature=temperature,
            response_format={"type": "json_object"},
        )
    except Exception as exc:
        logger.warning("call_llm_json transport failure | err=%s", exc)
        raise LLMCallError(str(exc)) from exc

    try:
        content = response.choices[0].message.content
    except (AttributeError, IndexError, TypeError) as exc:
        raise LLMCallError("provider response has no message content") from exc

    parsed = extract_json_dict(str(content or ""))
    if parsed is None:
        raise LLMCallError("provider response is not a JSON object")

    if "error" in parsed and len(parsed) == 1:
        raise LLMCallError(f"provider error: {parsed.get('error')}")

    return parsed
