import logging
from typing import Optional

from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from app.services.db.repositories import RepositoryService
from app.services.sync.orchestrator import SyncOrchestrator
from app.supabase_client import get_supabase_client

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)

# Cookie names (must match the frontend auth flow)
COOKIE_NAME_ACCESS = "sb_access_token"
COOKIE_NAME_REFRESH = "sb_refresh_token"


def get_access_token(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> str:
    """
    Extract the Supabase JWT from the HttpOnly cookie or the Authorization header.
    Prioritizes cookie-based auth, falls back to header-based auth.
    """
    access_token = request.cookies.get(COOKIE_NAME_ACCESS)
    if access_token:
        return access_token
    if credentials:
        return credentials.credentials
    raise HTTPException(status_code=401, detail="Not authenticated")


def verify_auth(access_token: str = Depends(get_access_token)):
    """
    Verify the JWT with Supabase Auth.

    Returns the Supabase user response (`.user.id` is the caller's user id).
    """
    try:
        user_response = get_supabase_client().auth.get_user(access_token)
    except Exception as e:
        logger.debug(f"Token verification failed: {e}")
        raise HTTPException(status_code=401, detail="Invalid token")

    if not user_response or not user_response.user:
        raise HTTPException(status_code=401, detail="Invalid token")
    return user_response


def get_current_user_id(user=Depends(verify_auth)) -> str:
    return str(user.user.id)


def get_sync_orchestrator(request: Request) -> SyncOrchestrator:
    """The orchestrator created during application startup."""
    orchestrator = getattr(request.app.state, "sync_orchestrator", None)
    if orchestrator is None:
        raise HTTPException(status_code=503, detail="Sync service not initialized")
    return orchestrator


def get_repository_service(
    access_token: str = Depends(get_access_token),
    user_id: str = Depends(get_current_user_id),
) -> RepositoryService:
    """User-scoped repository service (RLS applies)."""
    return RepositoryService(get_supabase_client(access_token), user_id)
