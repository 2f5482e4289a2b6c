"""Repository functions for profiles and auth_tokens tables.

Provides CRUD operations for user profiles, XP and study time counters,
and the hashed session/reset tokens that belong to them.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

import structlog

from telxtab.db.database import get_db, new_id, utc_now

logger = structlog.get_logger(__name__)

# Columns a user may change on their own profile
EDITABLE_FIELDS = (
    "full_name",
    "username",
    "bio",
    "learning_languages",
    "preferred_language",
    "avatar_url",
)


@dataclass
class ProfileRecord:
    """Profile record from database."""

    id: str
    email: str
    username: str
    full_name: str
    bio: str
    avatar_url: str | None
    password_hash: str
    is_admin: bool
    is_banned: bool
    xp: int
    study_seconds: int
    learning_languages: list[str] = field(default_factory=list)
    preferred_language: str = ""
    created_at: str = ""
    updated_at: str = ""

    def public_dict(self) -> dict[str, Any]:
        """Profile fields safe to show to other users."""
        return {
            "id": self.id,
            "username": self.username,
            "full_name": self.full_name,
            "bio": self.bio,
            "avatar_url": self.avatar_url,
            "xp": self.xp,
            "is_admin": self.is_admin,
            "learning_languages": self.learning_languages,
            "preferred_language": self.preferred_language,
            "created_at": self.created_at,
        }


class DuplicateProfileError(Exception):
    """Email or username already taken."""

    def __init__(self, field_name: str, value: str):
        self.field_name = field_name
        self.value = value
        super().__init__(f"A user with {field_name} '{value}' already exists")


def create_profile(
    email: str,
    username: str,
    password_hash: str,
    full_name: str = "",
    is_admin: bool = False,
) -> ProfileRecord:
    """Insert a new profile.

    Raises:
        DuplicateProfileError: If email or username is taken
    """
    email = email.strip().lower()
    if get_profile_by_email(email) is not None:
        raise DuplicateProfileError("email", email)
    if get_profile_by_username(username) is not None:
        raise DuplicateProfileError("username", username)

    profile_id = new_id()
    now = utc_now()
    with get_db() as conn:
        conn.execute(
            """
            INSERT INTO profiles (
                id, email, username, full_name, password_hash,
                is_admin, created_at, updated_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (profile_id, email, username, full_name, password_hash, int(is_admin), now, now),
        )

    logger.info("profiles.created", user_id=profile_id, username=username)
    return get_profile(profile_id)  # type: ignore[return-value]


def get_profile(profile_id: str) -> ProfileRecord | None:
    """Get profile by ID."""
    with get_db() as conn:
        row = conn.execute("SELECT * FROM profiles WHERE id = ?", (profile_id,)).fetchone()
    return _row_to_record(row) if row else None


def get_profile_by_email(email: str) -> ProfileRecord | None:
    """Get profile by email (case-insensitive)."""
    with get_db() as conn:
        row = conn.execute(
            "SELECT * FROM profiles WHERE email = ?", (email.strip().lower(),)
        ).fetchone()
    return _row_to_record(row) if row else None


def get_profile_by_username(username: str) -> ProfileRecord | None:
    """Get profile by username (case-insensitive)."""
    with get_db() as conn:
        row = conn.execute(
            "SELECT * FROM profiles WHERE lower(username) = lower(?)", (username,)
        ).fetchone()
    return _row_to_record(row) if row else None


def list_profiles(
    role: str | None = None,
    search: str | None = None,
    exclude_ids: list[str] | None = None,
    limit: int | None = None,
    order_by: str = "created_at DESC",
) -> list[ProfileRecord]:
    """List profiles with optional admin filters.

    Args:
        role: "admin", "user" or "banned"
        search: Substring matched against full name, username and email
        exclude_ids: Profile IDs to leave out
        limit: Maximum rows
        order_by: One of the whitelisted orderings
    """
    if order_by not in ("created_at DESC", "username ASC", "xp DESC"):
        raise ValueError(f"Unsupported ordering: {order_by}")

    clauses: list[str] = []
    params: list[Any] = []

    if role == "admin":
        clauses.append("is_admin = 1")
    elif role == "user":
        clauses.append("is_admin = 0")
    elif role == "banned":
        clauses.append("is_banned = 1")

    if search:
        clauses.append("(full_name LIKE ? OR username LIKE ? OR email LIKE ?)")
        pattern = f"%{search}%"
        params.extend([pattern, pattern, pattern])

    if exclude_ids:
        placeholders = ",".join("?" for _ in exclude_ids)
        clauses.append(f"id NOT IN ({placeholders})")
        params.extend(exclude_ids)

    sql = "SELECT * FROM profiles"
    if clauses:
        sql += " WHERE " + " AND ".join(clauses)
    sql += f" ORDER BY {order_by}"
    if limit is not None:
        sql += " LIMIT ?"
        params.append(limit)

    with get_db() as conn:
        rows = conn.execute(sql, params).fetchall()
    return [_row_to_record(row) for row in rows]


def update_profile(profile_id: str, **fields: Any) -> ProfileRecord | None:
    """Update editable profile fields.

    Raises:
        ValueError: If a non-editable field is passed
        DuplicateProfileError: If the new username is taken
    """
    unknown = set(fields) - set(EDITABLE_FIELDS)
    if unknown:
        raise ValueError(f"Fields not editable: {sorted(unknown)}")

    if "username" in fields:
        existing = get_profile_by_username(fields["username"])
        if existing is not None and existing.id != profile_id:
            raise DuplicateProfileError("username", fields["username"])

    if "learning_languages" in fields:
        fields["learning_languages"] = json.dumps(fields["learning_languages"] or [])

    if fields:
        assignments = ", ".join(f"{name} = ?" for name in fields)
        with get_db() as conn:
            conn.execute(
                f"UPDATE profiles SET {assignments}, updated_at = ? WHERE id = ?",
                (*fields.values(), utc_now(), profile_id),
            )
        logger.debug("profiles.updated", user_id=profile_id, fields=sorted(fields))

    return get_profile(profile_id)


def set_flag(profile_id: str, flag: str, value: bool) -> bool:
    """Set is_admin or is_banned. Returns False if the profile doesn't exist."""
    if flag not in ("is_admin", "is_banned"):
        raise ValueError(f"Unknown flag: {flag}")

    with get_db() as conn:
        cursor = conn.execute(
            f"UPDATE profiles SET {flag} = ?, updated_at = ? WHERE id = ?",
            (int(value), utc_now(), profile_id),
        )
    updated = cursor.rowcount > 0
    if updated:
        logger.info("profiles.flag_set", user_id=profile_id, flag=flag, value=value)
    return updated


def set_password_hash(profile_id: str, password_hash: str) -> None:
    """Replace a user's password hash."""
    with get_db() as conn:
        conn.execute(
            "UPDATE profiles SET password_hash = ?, updated_at = ? WHERE id = ?",
            (password_hash, utc_now(), profile_id),
        )


def increment_xp(profile_id: str, amount: int, conn=None) -> int:
    """Atomically add XP and return the new total.

    Pass ``conn`` to join an outer transaction.
    """
    if conn is None:
        with get_db() as own_conn:
            return increment_xp(profile_id, amount, conn=own_conn)

    conn.execute("UPDATE profiles SET xp = xp + ? WHERE id = ?", (amount, profile_id))
    row = conn.execute("SELECT xp FROM profiles WHERE id = ?", (profile_id,)).fetchone()
    return int(row["xp"]) if row else 0


def add_study_seconds(profile_id: str, seconds: int) -> int:
    """Atomically add study time and return the new total in seconds."""
    with get_db() as conn:
        conn.execute(
            "UPDATE profiles SET study_seconds = study_seconds + ? WHERE id = ?",
            (seconds, profile_id),
        )
        row = conn.execute(
            "SELECT study_seconds FROM profiles WHERE id = ?", (profile_id,)
        ).fetchone()
    return int(row["study_seconds"]) if row else 0


def count_profiles() -> dict[str, int]:
    """Counts for the admin dashboard."""
    with get_db() as conn:
        row = conn.execute(
            """
            SELECT COUNT(*) AS total,
                   COALESCE(SUM(is_admin), 0) AS admins,
                   COALESCE(SUM(is_banned), 0) AS banned
            FROM profiles
            """
        ).fetchone()
    return {
        "total_users": int(row["total"]),
        "admin_users": int(row["admins"]),
        "banned_users": int(row["banned"]),
    }


# =============================================================================
# AUTH TOKENS
# =============================================================================


def store_token(token_hash: str, user_id: str, kind: str, expires_at: str) -> None:
    """Persist a hashed session or reset token."""
    with get_db() as conn:
        conn.execute(
            """
            INSERT INTO auth_tokens (token_hash, user_id, kind, created_at, expires_at)
            VALUES (?, ?, ?, ?, ?)
            """,
            (token_hash, user_id, kind, utc_now(), expires_at),
        )


def get_token(token_hash: str, kind: str) -> dict[str, Any] | None:
    """Look up a token by its hash."""
    with get_db() as conn:
        row = conn.execute(
            "SELECT * FROM auth_tokens WHERE token_hash = ? AND kind = ?",
            (token_hash, kind),
        ).fetchone()
    return dict(row) if row else None


def delete_token(token_hash: str) -> bool:
    """Delete a single token."""
    with get_db() as conn:
        cursor = conn.execute("DELETE FROM auth_tokens WHERE token_hash = ?", (token_hash,))
    return cursor.rowcount > 0


def delete_user_tokens(user_id: str, kind: str | None = None) -> int:
    """Delete all tokens of a user, optionally only one kind."""
    with get_db() as conn:
        if kind is None:
            cursor = conn.execute("DELETE FROM auth_tokens WHERE user_id = ?", (user_id,))
        else:
            cursor = conn.execute(
                "DELETE FROM auth_tokens WHERE user_id = ? AND kind = ?", (user_id, kind)
            )
    return cursor.rowcount


def _row_to_record(row) -> ProfileRecord:
    """Convert database row to ProfileRecord."""
    return ProfileRecord(
        id=row["id"],
        email=row["email"],
        username=row["username"],
        full_name=row["full_name"],
        bio=row["bio"],
        avatar_url=row["avatar_url"],
        password_hash=row["password_hash"],
        is_admin=bool(row["is_admin"]),
        is_banned=bool(row["is_banned"]),
        xp=int(row["xp"]),
        study_seconds=int(row["study_seconds"]),
        learning_languages=json.loads(row["learning_languages"]) if row["learning_languages"] else [],
        preferred_language=row["preferred_language"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )
