"""FastAPI dependencies: authentication, admin gate, LLM client and channel hub.

All of these can be replaced in tests through ``app.dependency_overrides``.
"""

from __future__ import annotations

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from telxtab.core import auth
from telxtab.db.profiles_repository import ProfileRecord
from telxtab.llm.client import LLMClient
from telxtab.realtime.hub import ChannelHub, get_hub

bearer_scheme = HTTPBearer(auto_error=False)

SUSPENDED_DETAIL = "Your account has been suspended"


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_optional_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> ProfileRecord | None:
    """Profile of the caller, or None for anonymous requests.

    Raises:
        HTTPException 401: A token was sent but is invalid or expired
    """
    if credentials is None:
        return None
    profile = auth.resolve_session(credentials.credentials)
    if profile is None:
        raise _unauthorized("Invalid or expired token.")
    return profile


def get_current_user(
    request: Request,
    profile: ProfileRecord | None = Depends(get_optional_user),
) -> ProfileRecord:
    """Authenticated, non-banned caller.

    Raises:
        HTTPException 401: Missing or invalid token
        HTTPException 403: Account suspended
    """
    if profile is None:
        raise _unauthorized("Missing token. Provide 'Authorization: Bearer <token>' header.")
    if profile.is_banned:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=SUSPENDED_DETAIL)
    request.state.user_id = profile.id
    return profile


def require_admin(profile: ProfileRecord = Depends(get_current_user)) -> ProfileRecord:
    """Authenticated admin.

    Raises:
        HTTPException 403: Caller is not an admin
    """
    if not profile.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )
    return profile


_llm_client: LLMClient | None = None


def get_llm_client() -> LLMClient:
    """Shared LLM client, created on first use."""
    global _llm_client
    if _llm_client is None:
        _llm_client = LLMClient()
    return _llm_client


def get_channel_hub() -> ChannelHub:
    return get_hub()
