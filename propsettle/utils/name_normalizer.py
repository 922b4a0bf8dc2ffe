"""Player name normalization and matching for box-score lookups.

Handles common variations across stat providers and prop feeds:
- Suffixes: "Jr.", "Sr.", "III", "IV", "II"
- Punctuation: "T.J. Oshie" → "tj oshie"
- Accents: "Luka Dončić" → "luka doncic"
- Case and extra spaces: "LEBRON  JAMES" → "lebron james"
"""
import re
import unicodedata
from typing import Callable, Iterable, Optional, Tuple, TypeVar

from rapidfuzz import fuzz, process

T = TypeVar("T")

SUFFIXES = {'jr', 'sr', 'ii', 'iii', 'iv', 'v'}

# Last names this short are too common to match on alone
MIN_LAST_NAME_LENGTH = 4


def normalize(name: str) -> str:
    """
    Normalize a name for comparison.

    Examples:
        >>> normalize("P.J. Tucker")
        'pj tucker'
        >>> normalize("Tim Hardaway Jr.")
        'tim hardaway'
        >>> normalize("Luka Dončić")
        'luka doncic'
    """
    if not name:
        return ""

    name = _remove_suffixes(name.strip())
    name = _normalize_unicode(name)
    name = name.lower()
    name = re.sub(r'[^\w\s]', '', name)
    return ' '.join(name.split())


def _remove_suffixes(name: str) -> str:
    parts = name.split()
    if len(parts) > 1 and parts[-1].lower().replace('.', '') in SUFFIXES:
        return ' '.join(parts[:-1])
    return name


def _normalize_unicode(name: str) -> str:
    """Remove accents and diacritics ('č' → 'c')."""
    normalized = unicodedata.normalize('NFD', name)
    return ''.join(c for c in normalized if unicodedata.category(c) != 'Mn')


def last_name(name: str) -> str:
    """Normalized last token of a name ("Kelly Oubre Jr." → "oubre")."""
    parts = normalize(name).split()
    return parts[-1] if parts else ""


def match_player(
    name: str,
    candidates: Iterable[T],
    key: Callable[[T], str] = lambda c: c,
) -> Optional[T]:
    """
    Find the candidate that refers to the same player as ``name``.

    Match policy, first hit wins:
    1. exact normalized match
    2. one normalized name contains the other
    3. same last name, when the last name is longer than three characters

    Args:
        name: Name as written on the prediction
        candidates: Provider-side player entries
        key: Extracts the display name from a candidate

    Returns:
        The matching candidate, or None
    """
    target = normalize(name)
    if not target:
        return None

    pool = [(normalize(key(c) or ""), c) for c in candidates]
    pool = [(n, c) for n, c in pool if n]

    for candidate_name, candidate in pool:
        if candidate_name == target:
            return candidate

    for candidate_name, candidate in pool:
        if target in candidate_name or candidate_name in target:
            return candidate

    target_last = target.split()[-1]
    if len(target_last) >= MIN_LAST_NAME_LENGTH:
        for candidate_name, candidate in pool:
            if candidate_name.split()[-1] == target_last:
                return candidate

    return None


def closest_name(name: str, candidates: Iterable[str]) -> Optional[Tuple[str, float]]:
    """
    Closest candidate name by fuzzy score, for diagnostics only.

    Settlement never accepts a fuzzy match; this feeds the log line written
    when a name lookup fails so reviewers can spot spelling drift.
    """
    choices = [c for c in candidates if c]
    if not name or not choices:
        return None
    best = process.extractOne(name, choices, scorer=fuzz.WRatio, processor=normalize)
    if best is None:
        return None
    return best[0], best[1]
