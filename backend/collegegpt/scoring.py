# scoring.py
"""
Fuzzy relevance scoring of one record against query tokens.

score_record is a pure function of (record, tokens, weights, hints): every
token is checked against each field independently and earns that field's
weight; records that match a large share of distinct tokens earn a
coverage bonus, and a matching department hint adds a flat nudge.
"""
from typing import List, Optional, Sequence

from pydantic import BaseModel, ConfigDict
from rapidfuzz.distance import DamerauLevenshtein

from .records import Record
from .text import dedupe, normalize_text

HONORIFICS = frozenset({"prof", "dr", "mr", "mrs", "ms", "miss", "sri", "smt", "shri"})


class Weights(BaseModel):
    model_config = ConfigDict(frozen=True)

    name_exact: int = 7
    name_substring: int = 4
    name_fuzzy: int = 4
    department: int = 3
    specialization: int = 3
    items: int = 5
    designation_role: int = 8
    designation: int = 3
    notes: int = 1
    email: int = 2
    phone: int = 2
    coverage_high: float = 0.6
    coverage_high_bonus: int = 2
    coverage_low: float = 0.35
    coverage_low_bonus: int = 1
    department_boost: int = 8


DEFAULT_WEIGHTS = Weights()


class ScoredCandidate(BaseModel):
    model_config = ConfigDict(frozen=True)

    record: Record
    score: int
    coverage: float
    matched: List[str] = []


def max_edit_distance(token: str) -> int:
    return 1 if len(token) <= 3 else 2


def fuzzy_name_hit(token: str, parts: Sequence[str]) -> bool:
    """Small Damerau-Levenshtein distance to any name component; tokens < 3 chars never qualify."""
    if len(token) < 3:
        return False
    limit = max_edit_distance(token)
    for part in parts:
        if len(part) < 3 or abs(len(part) - len(token)) > limit:
            continue
        if DamerauLevenshtein.distance(token, part, score_cutoff=limit) <= limit:
            return True
    return False


def _text_hit(token: str, text: str, words: frozenset) -> bool:
    # Short tokens must match a whole word; longer ones may match inside a word.
    if not text:
        return False
    if token in words:
        return True
    return len(token) >= 3 and token in text


class _Field:
    __slots__ = ("text", "words")

    def __init__(self, value: str):
        self.text = normalize_text(value)
        self.words = frozenset(self.text.split())

    def hit(self, token: str) -> bool:
        return _text_hit(token, self.text, self.words)


def score_record(
    record: Record,
    tokens: Sequence[str],
    *,
    role_query: bool = False,
    department_hint: Optional[str] = None,
    weights: Weights = DEFAULT_WEIGHTS,
) -> ScoredCandidate:
    tokens = dedupe(t for t in tokens if t)
    name = normalize_text(record.name)
    name_parts = [p for p in name.split() if p not in HONORIFICS and len(p) >= 2]
    name_core = " ".join(name_parts)
    department = _Field(record.department)
    specialization = _Field(record.specialization)
    designation = _Field(record.designation)
    notes = _Field(record.notes)
    email = _Field(record.email)
    phone = _Field(record.phone)
    items = [_Field(item) for item in record.items]

    score = 0
    matched: List[str] = []
    for token in tokens:
        hit = False

        if token in name_parts:
            score += weights.name_exact
            hit = True
        elif len(token) >= 3 and token in name_core:
            score += weights.name_substring
            hit = True
        elif fuzzy_name_hit(token, name_parts):
            score += weights.name_fuzzy
            hit = True

        if department.hit(token):
            score += weights.department
            hit = True
        if specialization.hit(token):
            score += weights.specialization
            hit = True
        if any(item.hit(token) for item in items):
            score += weights.items
            hit = True
        if designation.hit(token):
            score += weights.designation_role if role_query else weights.designation
            hit = True
        if notes.hit(token):
            score += weights.notes
            hit = True
        if email.hit(token):
            score += weights.email
            hit = True
        if phone.hit(token):
            score += weights.phone
            hit = True

        if hit:
            matched.append(token)

    coverage = len(matched) / len(tokens) if tokens else 0.0
    if coverage >= weights.coverage_high:
        score += weights.coverage_high_bonus
    elif coverage >= weights.coverage_low:
        score += weights.coverage_low_bonus

    hint = normalize_text(department_hint)
    if hint and hint in department.text:
        score += weights.department_boost

    return ScoredCandidate(record=record, score=score, coverage=round(coverage, 4), matched=matched)


def rank(candidates: Sequence[ScoredCandidate]) -> List[ScoredCandidate]:
    """Descending by (score, coverage). Stable, so fetch order breaks full ties."""
    return sorted(candidates, key=lambda c: (c.score, c.coverage), reverse=True)


def score_all(
    records: Sequence[Record],
    tokens: Sequence[str],
    *,
    role_query: bool = False,
    department_hint: Optional[str] = None,
    weights: Weights = DEFAULT_WEIGHTS,
) -> List[ScoredCandidate]:
    return rank(
        [
            score_record(
                r, tokens, role_query=role_query, department_hint=department_hint, weights=weights
            )
            for r in records
        ]
    )
