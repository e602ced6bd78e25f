import os
from pathlib import Path
from dotenv import load_dotenv

_BACKEND_ROOT = Path(__file__).resolve().parents[1]
_BACKEND_ENV_PATH = _BACKEND_ROOT / ".env"
load_dotenv(dotenv_path=_BACKEND_ENV_PATH, override=False)


OPENAI_API_KEY = str(os.getenv("OPENAI_API_KEY") or "").strip()
MODEL_NAME = str(os.getenv("MODEL_NAME") or "gpt-4.1-mini").strip()
TRANSCRIPTION_MODEL = str(os.getenv("TRANSCRIPTION_MODEL") or "whisper-1").strip()
AI_TIMEOUT_SEC = max(5.0, float(os.getenv("AI_TIMEOUT_SEC", "60")))

DEFAULT_QUESTION_COUNT = max(1, int(os.getenv("DEFAULT_QUESTION_COUNT", "5")))
MAX_QUESTION_COUNT = max(DEFAULT_QUESTION_COUNT, int(os.getenv("MAX_QUESTION_COUNT", "15")))

PERSISTENCE_BACKEND = str(os.getenv("PERSISTENCE_BACKEND") or "local").strip().lower()
SUPABASE_URL = str(os.getenv("SUPABASE_URL") or "").strip()
SUPABASE_SERVICE_KEY = str(
    os.getenv("SUPABASE_SERVICE_KEY") or os.getenv("SUPABASE_KEY") or ""
).strip()

SESSION_CLEANUP_TTL_SEC = max(60, int(os.getenv("SESSION_CLEANUP_TTL_SEC", "1800")))
SESSION_CLEANUP_INTERVAL_SEC = max(30, int(os.getenv("SESSION_CLEANUP_INTERVAL_SEC", "120")))
