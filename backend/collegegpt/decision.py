# decision.py
from enum import Enum
from typing import List, Optional, Sequence, Tuple

from pydantic import BaseModel, Field

from .intents import is_role_designation
from .records import Record
from .scoring import DEFAULT_WEIGHTS, ScoredCandidate, Weights, score_all

SAFETY_RATIO = 1.15
ROLE_THRESHOLD = 2
MAX_SUGGESTIONS = 4


class Outcome(str, Enum):
    CONFIDENT = "confident"
    SUGGESTIONS = "suggestions"
    FALLBACK = "fallback"


class Suggestion(BaseModel):
    name: str
    score: int


class Decision(BaseModel):
    outcome: Outcome
    reason: str
    best: Optional[ScoredCandidate] = None
    second_score: int = 0
    suggestions: List[Suggestion] = Field(default_factory=list)
    role_match: bool = False


def gate(
    ranked: Sequence[ScoredCandidate],
    threshold: int,
    ratio: float = SAFETY_RATIO,
) -> Decision:
    """
    Decide on an already-ranked candidate list.

    Confident needs best >= threshold AND (second == 0 OR best >= second * ratio).
    Any positive candidate otherwise yields suggestions; none yields fallback.
    """
    positive = [c for c in ranked if c.score > 0]
    if not positive:
        return Decision(outcome=Outcome.FALLBACK, reason="no_positive_candidates")

    best = positive[0]
    second = positive[1].score if len(positive) > 1 else 0
    if best.score >= threshold and (second == 0 or best.score >= second * ratio):
        return Decision(outcome=Outcome.CONFIDENT, reason="confident", best=best, second_score=second)

    reason = "below_threshold" if best.score < threshold else "ambiguous"
    suggestions = [
        Suggestion(name=c.record.name or "(unnamed)", score=c.score)
        for c in positive[:MAX_SUGGESTIONS]
    ]
    return Decision(
        outcome=Outcome.SUGGESTIONS,
        reason=reason,
        best=best,
        second_score=second,
        suggestions=suggestions,
    )


def score_candidates(
    records: Sequence[Record],
    tokens: Sequence[str],
    *,
    role_query: bool = False,
    department_hint: Optional[str] = None,
    weights: Weights = DEFAULT_WEIGHTS,
) -> Tuple[Optional[List[ScoredCandidate]], List[ScoredCandidate]]:
    """
    Rank every record, plus (for role-seeking questions) the subset whose
    designation is a role: HOD, principal or dean. The subset is None when
    the question is not role-seeking or no record carries a role designation.
    """
    role_ranked = None
    if role_query:
        role_records = [r for r in records if is_role_designation(r.designation)]
        if role_records:
            role_ranked = score_all(
                role_records, tokens, role_query=True, department_hint=department_hint, weights=weights
            )
    ranked = score_all(
        records, tokens, role_query=role_query, department_hint=department_hint, weights=weights
    )
    return role_ranked, ranked


def decide_ranked(
    ranked: Sequence[ScoredCandidate],
    threshold: int,
    role_ranked: Optional[Sequence[ScoredCandidate]] = None,
) -> Decision:
    """The role subset is tried first with the lower role threshold."""
    if role_ranked:
        role_decision = gate(role_ranked, ROLE_THRESHOLD)
        if role_decision.outcome is Outcome.CONFIDENT:
            role_decision.role_match = True
            return role_decision
    if not ranked:
        return Decision(outcome=Outcome.FALLBACK, reason="no_records")
    return gate(ranked, threshold)


def decide(
    records: Sequence[Record],
    tokens: Sequence[str],
    *,
    threshold: int,
    role_query: bool = False,
    department_hint: Optional[str] = None,
    weights: Weights = DEFAULT_WEIGHTS,
) -> Decision:
    role_ranked, ranked = score_candidates(
        records, tokens, role_query=role_query, department_hint=department_hint, weights=weights
    )
    return decide_ranked(ranked, threshold, role_ranked)
