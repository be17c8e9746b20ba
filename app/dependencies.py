import logging
from functools import lru_cache

import jwt
from fastapi import Depends, HTTPException, Request
from supabase import create_client, Client

from app.config import Settings
from app.errors import MissingIdentity, ServerMisconfigured
from app.services.chat import ChatGateway
from app.services.sensay import SensayClient
from app.services.task_store import TaskStore

logger = logging.getLogger(__name__)

_supabase_client: Client | None = None


@lru_cache
def get_settings() -> Settings:
    return Settings()


def get_supabase(settings: Settings = Depends(get_settings)) -> Client:
    global _supabase_client
    if _supabase_client is None:
        if not settings.supabase_url or not settings.supabase_service_key:
            logger.error("Supabase URL or service key not configured")
            raise ServerMisconfigured("Server configuration error: Missing datastore settings.")
        _supabase_client = create_client(
            settings.supabase_url,
            settings.supabase_service_key,
        )
    return _supabase_client


async def get_current_user(
    request: Request,
    settings: Settings = Depends(get_settings),
) -> str:
    """FastAPI dependency: resolve the caller's user_id.

    A Bearer token is validated as a Supabase JWT and its ``sub`` claim is
    returned. Without one, the ``X-USER-ID`` header set by the trusted
    frontend is used.

    Raises:
        HTTPException 401 for malformed, invalid, or expired tokens.
        MissingIdentity if neither a token nor X-USER-ID is present.
    """
    auth_header = request.headers.get("Authorization")

    if not auth_header:
        user_id = (request.headers.get("X-USER-ID") or "").strip()
        if not user_id:
            raise MissingIdentity("Missing user identity (X-USER-ID)")
        return user_id

    if not auth_header.startswith("Bearer "):
        raise HTTPException(status_code=401, detail="Invalid authorization header format")

    token = auth_header.removeprefix("Bearer ").strip()

    try:
        payload = jwt.decode(
            token,
            settings.supabase_jwt_secret,
            algorithms=["HS256"],
            audience="authenticated",
        )
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Authentication token has expired")
    except jwt.InvalidTokenError:
        raise HTTPException(status_code=401, detail="Invalid authentication token")

    user_id = payload.get("sub")
    if not user_id:
        raise HTTPException(status_code=401, detail="Invalid authentication token")

    return user_id


def get_task_store(
    settings: Settings = Depends(get_settings),
    supabase: Client = Depends(get_supabase),
) -> TaskStore:
    return TaskStore(supabase, table=settings.tasks_table)


def get_sensay_client(settings: Settings = Depends(get_settings)) -> SensayClient:
    missing = settings.missing_sensay_config()
    if missing:
        logger.error("Sensay settings not configured: %s", ", ".join(missing))
        raise ServerMisconfigured("Server configuration error: Missing API Key.")
    return SensayClient(settings)


def get_chat_gateway(
    task_store: TaskStore = Depends(get_task_store),
    sensay: SensayClient = Depends(get_sensay_client),
) -> ChatGateway:
    return ChatGateway(task_store, sensay)
