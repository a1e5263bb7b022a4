"""Matching azure records to legacy records."""

from __future__ import annotations

from .contracts import MatchDecision, ReconciliationResult, ScoredPair
from .engine import Reconciler, plan_matches
from .normalize import IdentitySignals, identity_signals
from .scoring import similarity

__all__ = [
    "IdentitySignals",
    "MatchDecision",
    "ReconciliationResult",
    "Reconciler",
    "ScoredPair",
    "identity_signals",
    "plan_matches",
    "similarity",
]
