"""Account endpoints: signup, login, logout and password reset."""

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials

from telxtab.core import auth
from telxtab.db.profiles_repository import DuplicateProfileError, ProfileRecord
from telxtab.web.deps import SUSPENDED_DETAIL, bearer_scheme, get_current_user
from telxtab.web.routes.profiles import profile_response
from telxtab.web.schemas import (
    ForgotPasswordRequest,
    LoginRequest,
    ProfileResponse,
    ResetPasswordRequest,
    SignupRequest,
    TokenResponse,
)

router = APIRouter(prefix="/api/auth", tags=["auth"])


def _token_response(profile: ProfileRecord, issued: auth.IssuedToken) -> TokenResponse:
    return TokenResponse(
        access_token=issued.token,
        expires_at=issued.expires_at,
        profile=profile_response(profile),
    )


@router.post("/signup", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
async def signup(request: SignupRequest) -> TokenResponse:
    """Create an account and open a session."""
    try:
        profile = auth.signup(
            email=request.email,
            password=request.password,
            username=request.username,
            full_name=request.full_name,
        )
    except DuplicateProfileError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e)) from e
    except auth.AuthError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e

    return _token_response(profile, auth.create_session(profile.id))


@router.post("/login", response_model=TokenResponse)
async def login(request: LoginRequest) -> TokenResponse:
    try:
        profile, issued = auth.login(request.email, request.password)
    except auth.InvalidCredentialsError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(e),
            headers={"WWW-Authenticate": "Bearer"},
        ) from e

    if profile.is_banned:
        auth.revoke_session(issued.token)
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=SUSPENDED_DETAIL)

    return _token_response(profile, issued)


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    user: ProfileRecord = Depends(get_current_user),
) -> None:
    """Revoke the token used for this request."""
    if credentials is not None:
        auth.revoke_session(credentials.credentials)


@router.get("/me", response_model=ProfileResponse)
async def whoami(user: ProfileRecord = Depends(get_current_user)) -> ProfileResponse:
    return profile_response(user)


@router.post("/forgot-password", status_code=status.HTTP_202_ACCEPTED)
async def forgot_password(request: ForgotPasswordRequest) -> dict[str, str]:
    """Start a password reset. Always accepted, so accounts can't be enumerated."""
    auth.request_password_reset(request.email)
    return {"detail": "If the email exists, a reset link has been sent"}


@router.post("/reset-password", response_model=ProfileResponse)
async def reset_password(request: ResetPasswordRequest) -> ProfileResponse:
    try:
        profile = auth.reset_password(request.token, request.new_password)
    except auth.AuthError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e
    return profile_response(profile)
