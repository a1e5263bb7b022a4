"""Similarity scoring between two machines' identity signals.

Shared hardware identifiers settle a match outright. Otherwise the score
blends host-name similarity with IP overlap; a side with no evidence for a
signal neither helps nor hurts, but a name match is discounted when it cannot
be corroborated by addresses.
"""

from __future__ import annotations

from difflib import SequenceMatcher
from typing import TYPE_CHECKING, Final

if TYPE_CHECKING:
    from .normalize import IdentitySignals

HARDWARE_MATCH_SCORE: Final[float] = 1.0
NAME_WEIGHT: Final[float] = 0.6
IP_WEIGHT: Final[float] = 0.4
NAME_ONLY_FACTOR: Final[float] = 0.85
IP_ONLY_FACTOR: Final[float] = 0.7
FUZZY_NAME_FLOOR: Final[float] = 0.9
FUZZY_NAME_FACTOR: Final[float] = 0.5
SCORE_PRECISION: Final[int] = 4


def similarity(left: IdentitySignals, right: IdentitySignals) -> float:
    """Return a deterministic similarity score in ``[0, 1]``."""

    if left.hardware_ids & right.hardware_ids:
        return HARDWARE_MATCH_SCORE

    name = name_similarity(left.names, right.names)
    ip = ip_overlap(left.ip_addresses, right.ip_addresses)

    if name is not None and ip is not None:
        score = NAME_WEIGHT * name + IP_WEIGHT * ip
    elif name is not None:
        score = NAME_ONLY_FACTOR * name
    elif ip is not None:
        score = IP_ONLY_FACTOR * ip
    else:
        score = 0.0
    return round(min(max(score, 0.0), 1.0), SCORE_PRECISION)


def name_similarity(left: frozenset[str], right: frozenset[str]) -> float | None:
    """Best pairwise name score, or ``None`` when either side has no names."""

    if not left or not right:
        return None
    if left & right:
        return 1.0
    best = 0.0
    for a in sorted(left):
        for b in sorted(right):
            ratio = SequenceMatcher(None, a, b).ratio()
            best = max(best, ratio)
    # near-identical names (web01 vs web-01) count for little; web01 vs web02 counts for nothing
    if best < FUZZY_NAME_FLOOR:
        return 0.0
    return best * FUZZY_NAME_FACTOR


def ip_overlap(left: frozenset[str], right: frozenset[str]) -> float | None:
    """Jaccard overlap of two address sets, or ``None`` when either side has none."""

    if not left or not right:
        return None
    return len(left & right) / len(left | right)
