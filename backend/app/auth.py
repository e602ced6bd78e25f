from fastapi import HTTPException, Request
from jose import JWTError, jwt
import os
import logging
import httpx

from app.errors import AuthenticationRequired

logger = logging.getLogger("app.auth")


def _env_flag(name: str) -> bool:
    return str(os.getenv(name, "false")).strip().lower() in {"1", "true", "yes", "on"}


def _supabase_api_key() -> str | None:
    return os.getenv("SUPABASE_SERVICE_KEY") or os.getenv("SUPABASE_ANON_KEY") or os.getenv("SUPABASE_KEY")


async def _verify_with_supabase_async(token: str) -> str | None:
    supabase_url = os.getenv("SUPABASE_URL")
    api_key = _supabase_api_key()
    if not supabase_url or not api_key:
        return None

    url = f"{supabase_url.rstrip('/')}/auth/v1/user"
    try:
        async with httpx.AsyncClient(timeout=6.0) as client:
            response = await client.get(
                url,
                headers={
                    "Authorization": f"Bearer {token}",
                    "apikey": api_key,
                },
            )
    except httpx.HTTPError as exc:
        logger.warning("supabase token check failed | err=%s", exc)
        return None

    if response.status_code != 200:
        return None

    try:
        data = response.json()
    except ValueError:
        return None

    user_id = data.get("id")
    return str(user_id) if user_id else None


async def resolve_user_id_from_token_async(token: str) -> str:
    if not str(token or "").strip():
        raise AuthenticationRequired()

    jwt_secret = os.getenv("SUPABASE_JWT_SECRET")
    payload = None
    if jwt_secret:
        try:
            payload = jwt.decode(token, jwt_secret, algorithms=["HS256"], options={"verify_aud": False})
        except JWTError:
            raise AuthenticationRequired("Invalid token")
    else:
        user_id = await _verify_with_supabase_async(token)
        if user_id:
            payload = {"sub": user_id}
        else:
            if os.getenv("ENV", "development").lower() == "production":
                raise HTTPException(500, "SUPABASE_JWT_SECRET is not configured")
            if not _env_flag("ALLOW_UNVERIFIED_JWT_DEV"):
                raise AuthenticationRequired(
                    "Token verification unavailable in development; configure SUPABASE_JWT_SECRET or set ALLOW_UNVERIFIED_JWT_DEV=true"
                )
            try:
                payload = jwt.get_unverified_claims(token)
                logger.warning("ALLOW_UNVERIFIED_JWT_DEV enabled; using unverified token claims in non-production mode")
            except JWTError:
                raise AuthenticationRequired("Invalid token")

    user_id = (payload or {}).get("sub")
    if not user_id:
        raise AuthenticationRequired("Invalid token")
    return str(user_id)


async def get_user_id_async(request: Request) -> str:
    auth = request.headers.get("Authorization")
    if not auth or not auth.startswith("Bearer "):
        raise AuthenticationRequired()

    token = auth.replace("Bearer ", "", 1)
    return await resolve_user_id_from_token_async(token)
