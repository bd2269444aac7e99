# portaria/services/query_classifier.py
"""
Decides whether a free-text query is a visitor's name.

A coarse heuristic: anything mentioning a resident/address keyword is about
the destination, and a name needs at least two meaningful words. Misses are
tolerated; a positive only adds a filtered attempt before the plain search.
"""

from typing import Iterable, Optional

from portaria.config import settings
from portaria.services.text_normalizer import strip_accents


def looks_like_person_name(
    raw: str,
    resident_keywords: Optional[Iterable[str]] = None,
    particles: Optional[Iterable[str]] = None,
    min_tokens: Optional[int] = None,
) -> bool:
    resident_keywords = settings.RESIDENT_KEYWORDS if resident_keywords is None else resident_keywords
    particles = set(settings.NAME_PARTICLES if particles is None else particles)
    min_tokens = settings.MIN_NAME_TOKENS if min_tokens is None else min_tokens

    text = strip_accents(raw)
    if any(keyword in text for keyword in resident_keywords):
        return False

    words = text.split()
    if len(words) < 2:
        return False

    meaningful = [w for w in words if w not in particles and len(w) > 1]
    return len(meaningful) >= min_tokens
