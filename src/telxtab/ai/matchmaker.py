"""AI-suggested language partners.

The model scores candidate profiles against the user's languages and
bio. Only ids that were actually offered as candidates are kept, so the
model cannot inject arbitrary users into the suggestions.
"""

from __future__ import annotations

from typing import Any

import structlog

from telxtab.db.profiles_repository import ProfileRecord
from telxtab.llm.client import LLMClient, LLMResponseError, unwrap_json_array

logger = structlog.get_logger(__name__)

MAX_CANDIDATES = 20

SYSTEM_PROMPT_MATCHMAKER = """You are a language learning matchmaker.
Return ONLY a JSON array, no other text."""

MATCH_PROMPT = """Analyze these potential language learning connections and suggest the best matches.
User Profile:
- Learning Languages: {learning}
- Preferred Language: {preferred}
- Bio: {bio}

Potential Matches:
{matches}

For each potential match, provide:
1. A match score (0-100)
2. A brief explanation of why they would be a good connection
3. Select the top {top_n} matches

Return ONLY a JSON array with the following structure, no other text:
[
  {{
    "id": "user_id",
    "match_score": number,
    "match_reason": "explanation"
  }}
]"""


class MatchmakingError(Exception):
    """The model reply could not be turned into suggestions."""

    pass


def _describe(candidate: ProfileRecord) -> str:
    return (
        f"- ID: {candidate.id}\n"
        f"  Name: {candidate.full_name or candidate.username}\n"
        f"  Learning: {', '.join(candidate.learning_languages)}\n"
        f"  Preferred: {candidate.preferred_language}\n"
        f"  Bio: {candidate.bio}"
    )


def build_prompt(profile: ProfileRecord, candidates: list[ProfileRecord], top_n: int = 5) -> str:
    return MATCH_PROMPT.format(
        learning=", ".join(profile.learning_languages),
        preferred=profile.preferred_language,
        bio=profile.bio,
        matches="\n".join(_describe(c) for c in candidates),
        top_n=top_n,
    )


def _score(value: Any) -> float:
    try:
        return max(0.0, min(100.0, float(value)))
    except (TypeError, ValueError):
        return 0.0


def suggest_connections(
    client: LLMClient,
    profile: ProfileRecord,
    candidates: list[ProfileRecord],
    top_n: int = 5,
) -> list[dict[str, Any]]:
    """Rank candidate partners for ``profile``.

    Args:
        client: LLM client
        profile: The user asking for suggestions
        candidates: Pre-filtered candidates (not self, not followed, not banned)
        top_n: Number of suggestions to return

    Returns:
        Public candidate profiles with ``match_score`` and ``match_reason``,
        best first.

    Raises:
        MatchmakingError: If the model reply has no usable JSON array
        LLMError: If the model call fails
    """
    candidates = candidates[:MAX_CANDIDATES]
    if not candidates:
        return []

    prompt = build_prompt(profile, candidates, top_n)
    try:
        raw = client.simple_json(SYSTEM_PROMPT_MATCHMAKER, prompt, json_mode=False)
    except LLMResponseError as e:
        raise MatchmakingError(f"Could not parse match suggestions: {e}") from e

    raw = unwrap_json_array(raw, "matches")
    if raw is None:
        raise MatchmakingError("Match suggestions were not a JSON array")

    by_id = {c.id: c for c in candidates}
    suggestions: dict[str, dict[str, Any]] = {}
    for item in raw:
        if not isinstance(item, dict):
            continue
        candidate = by_id.get(str(item.get("id")))
        if candidate is None or candidate.id in suggestions:
            continue
        entry = candidate.public_dict()
        entry["match_score"] = _score(item.get("match_score"))
        entry["match_reason"] = str(item.get("match_reason", ""))
        suggestions[candidate.id] = entry

    ranked = sorted(suggestions.values(), key=lambda e: e["match_score"], reverse=True)
    logger.info(
        "matchmaker.suggested",
        user_id=profile.id,
        candidates=len(candidates),
        suggestions=len(ranked[:top_n]),
    )
    return ranked[:top_n]
