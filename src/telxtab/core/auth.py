"""Accounts, passwords and tokens.

Passwords are hashed with salted scrypt. Session and reset tokens are
random 256-bit values; only their SHA-256 digest is stored, so a token
can be looked up but not recovered from the database.
"""

from __future__ import annotations

import hashlib
import hmac
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import structlog

from telxtab.config.app_config import load_app_config
from telxtab.db import profiles_repository
from telxtab.db.profiles_repository import ProfileRecord

logger = structlog.get_logger(__name__)

TOKEN_PREFIX = "tx-"

# scrypt cost parameters
_SCRYPT_N = 2**14
_SCRYPT_R = 8
_SCRYPT_P = 1


class AuthError(Exception):
    """Authentication failed or request invalid."""

    pass


class InvalidCredentialsError(AuthError):
    pass


class InvalidTokenError(AuthError):
    pass


@dataclass
class IssuedToken:
    """A freshly generated token. ``token`` is shown to the user only once."""

    token: str
    user_id: str
    expires_at: str


# =============================================================================
# PASSWORDS
# =============================================================================


def hash_password(password: str) -> str:
    """Hash a password as ``scrypt$<salt hex>$<digest hex>``."""
    salt = secrets.token_bytes(16)
    digest = hashlib.scrypt(
        password.encode("utf-8"), salt=salt, n=_SCRYPT_N, r=_SCRYPT_R, p=_SCRYPT_P
    )
    return f"scrypt${salt.hex()}${digest.hex()}"


def verify_password(password: str, stored: str) -> bool:
    try:
        scheme, salt_hex, digest_hex = stored.split("$")
    except ValueError:
        return False
    if scheme != "scrypt":
        return False
    digest = hashlib.scrypt(
        password.encode("utf-8"),
        salt=bytes.fromhex(salt_hex),
        n=_SCRYPT_N,
        r=_SCRYPT_R,
        p=_SCRYPT_P,
    )
    return hmac.compare_digest(digest.hex(), digest_hex)


def _check_password_policy(password: str) -> None:
    min_length = load_app_config().auth.min_password_length
    if len(password) < min_length:
        raise AuthError(f"Password must be at least {min_length} characters")


# =============================================================================
# TOKENS
# =============================================================================


def hash_token(raw_token: str) -> str:
    """SHA-256 hex digest of a token."""
    return hashlib.sha256(raw_token.encode()).hexdigest()


def _issue(user_id: str, kind: str, ttl: timedelta) -> IssuedToken:
    raw_token = f"{TOKEN_PREFIX}{secrets.token_hex(32)}"
    expires_at = (datetime.now(timezone.utc) + ttl).isoformat()
    profiles_repository.store_token(hash_token(raw_token), user_id, kind, expires_at)
    return IssuedToken(token=raw_token, user_id=user_id, expires_at=expires_at)


def _is_expired(expires_at: str) -> bool:
    return datetime.fromisoformat(expires_at) <= datetime.now(timezone.utc)


def create_session(user_id: str) -> IssuedToken:
    ttl = timedelta(hours=load_app_config().auth.token_ttl_hours)
    issued = _issue(user_id, "session", ttl)
    logger.info("auth.session_created", user_id=user_id)
    return issued


def resolve_session(raw_token: str) -> ProfileRecord | None:
    """Profile for a session token, or None if unknown or expired."""
    token_hash = hash_token(raw_token)
    token = profiles_repository.get_token(token_hash, "session")
    if token is None:
        return None
    if _is_expired(token["expires_at"]):
        profiles_repository.delete_token(token_hash)
        return None
    return profiles_repository.get_profile(token["user_id"])


def revoke_session(raw_token: str) -> bool:
    return profiles_repository.delete_token(hash_token(raw_token))


# =============================================================================
# ACCOUNT FLOWS
# =============================================================================


def signup(email: str, password: str, username: str, full_name: str = "") -> ProfileRecord:
    """Create an account.

    Raises:
        AuthError: If the email, username or password is invalid
        DuplicateProfileError: If email or username is taken
    """
    email = email.strip().lower()
    username = username.strip()
    if "@" not in email:
        raise AuthError("Invalid email address")
    if not username:
        raise AuthError("Username is required")
    _check_password_policy(password)

    return profiles_repository.create_profile(
        email=email,
        username=username,
        password_hash=hash_password(password),
        full_name=full_name.strip(),
    )


def login(email: str, password: str) -> tuple[ProfileRecord, IssuedToken]:
    """Check credentials and open a session.

    Raises:
        InvalidCredentialsError: On unknown email or wrong password
    """
    profile = profiles_repository.get_profile_by_email(email)
    if profile is None or not verify_password(password, profile.password_hash):
        logger.warning("auth.login_failed", email=email.strip().lower())
        raise InvalidCredentialsError("Invalid email or password")
    return profile, create_session(profile.id)


def request_password_reset(email: str) -> IssuedToken | None:
    """Create a reset token if the email belongs to an account.

    There is no mail transport; the token is logged for the operator.
    """
    profile = profiles_repository.get_profile_by_email(email)
    if profile is None:
        logger.info("auth.reset_requested_unknown_email")
        return None

    ttl = timedelta(minutes=load_app_config().auth.reset_token_ttl_minutes)
    issued = _issue(profile.id, "reset", ttl)
    logger.info("auth.reset_token_created", user_id=profile.id, token=issued.token)
    return issued


def reset_password(raw_token: str, new_password: str) -> ProfileRecord:
    """Consume a reset token, set the new password and revoke all sessions.

    Raises:
        InvalidTokenError: If the token is unknown or expired
        AuthError: If the new password is too short
    """
    _check_password_policy(new_password)

    token_hash = hash_token(raw_token)
    token = profiles_repository.get_token(token_hash, "reset")
    if token is None or _is_expired(token["expires_at"]):
        raise InvalidTokenError("Reset link is invalid or has expired")

    user_id = token["user_id"]
    profiles_repository.set_password_hash(user_id, hash_password(new_password))
    profiles_repository.delete_user_tokens(user_id)

    logger.info("auth.password_reset", user_id=user_id)
    return profiles_repository.get_profile(user_id)  # type: ignore[return-value]
