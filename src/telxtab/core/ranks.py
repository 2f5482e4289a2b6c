"""XP rank ladder.

Users climb six ranks as they earn XP. Ranks are ordered by min_xp.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any


@dataclass(frozen=True)
class Rank:
    """A rank on the XP ladder."""

    name: str
    min_xp: int
    color: str
    icon: str

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


RANKS: tuple[Rank, ...] = (
    Rank(name="Starter", min_xp=0, color="#00F5FF", icon="🌱"),
    Rank(name="Rare", min_xp=100, color="#4F46E5", icon="🎓"),
    Rank(name="Super Rare", min_xp=500, color="#8B5CF6", icon="⚡"),
    Rank(name="Epic", min_xp=1000, color="#EC4899", icon="🔥"),
    Rank(name="Mythic", min_xp=2500, color="#F59E0B", icon="👑"),
    Rank(name="Legendary", min_xp=5000, color="#10B981", icon="🌟"),
)


def get_rank_by_xp(xp: int) -> Rank:
    """Highest rank whose threshold is <= xp. Negative XP maps to Starter."""
    current = RANKS[0]
    for rank in RANKS:
        if xp >= rank.min_xp:
            current = rank
        else:
            break
    return current


def get_next_rank(xp: int) -> Rank | None:
    """Rank after the current one, or None at the top."""
    index = RANKS.index(get_rank_by_xp(xp))
    if index + 1 < len(RANKS):
        return RANKS[index + 1]
    return None


def get_xp_progress(xp: int) -> dict[str, int]:
    """Progress within the current rank.

    Returns:
        Dict with ``current`` (XP earned inside the rank), ``next``
        (XP span of the rank) and ``percentage`` (0-100). At the top
        rank this is ``{xp, xp, 100}``.
    """
    current_rank = get_rank_by_xp(xp)
    next_rank = get_next_rank(xp)

    if next_rank is None:
        return {"current": xp, "next": xp, "percentage": 100}

    earned = max(0, xp - current_rank.min_xp)
    span = next_rank.min_xp - current_rank.min_xp
    percentage = min(100, round(earned / span * 100))
    return {"current": earned, "next": span, "percentage": percentage}


def describe_rank(xp: int) -> dict[str, Any]:
    """Rank, next rank and progress in one payload."""
    next_rank = get_next_rank(xp)
    return {
        "xp": xp,
        "rank": get_rank_by_xp(xp).to_dict(),
        "next_rank": next_rank.to_dict() if next_rank else None,
        "progress": get_xp_progress(xp),
    }
