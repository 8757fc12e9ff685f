# query.py
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .aliases import DEFAULT_ALIAS_TABLE, AliasTable
from .intents import Intent, classify_intent, detect_department, is_role_query
from .text import content_tokens, normalize_text, tokenize

GREETINGS = frozenset({
    "hi", "hii", "hey", "hello", "helo", "yo", "ok", "okay", "k", "hm", "hmm",
    "thanks", "thank you", "thx", "bye", "good morning", "good evening", "sup",
})
GREETING_ANSWER = (
    "Hi! How can I help you? Ask about faculty, placements, courses, or upload an image."
)


def is_trivial(normalized: str) -> bool:
    """Two characters or fewer, or exactly a greeting."""
    return len(normalized) <= 2 or normalized in GREETINGS


class ParsedQuery(BaseModel):
    model_config = ConfigDict(frozen=True)

    raw: str
    normalized: str
    expanded: str
    matched_alias: Optional[str] = None
    tokens: List[str] = Field(default_factory=list)
    intent: Intent = "people"
    department_code: Optional[str] = None
    department: Optional[str] = None
    role_query: bool = False
    debug: Dict[str, Any] = Field(default_factory=dict)


def _add_signal(debug: Dict[str, Any], name: str, payload: Any = None) -> None:
    signals: List[str] = debug.setdefault("signals", [])
    signals.append(name)
    if payload is not None:
        debug.setdefault("details", {})[name] = payload


def parse_question(raw: str, aliases: AliasTable = DEFAULT_ALIAS_TABLE) -> ParsedQuery:
    """
    Turn a raw question into a ParsedQuery.

    Intent is classified on the question as typed (before alias expansion),
    so canonical phrases like "hirasugar institute ..." do not drag a faculty
    question over to college facts. Scoring tokens come from the expanded text.
    """
    raw = str(raw or "").strip()
    normalized = normalize_text(raw)
    debug: Dict[str, Any] = {}

    expansion = aliases.expand(raw)
    if expansion.fired:
        _add_signal(debug, "alias", {"fired": list(expansion.fired), "appended": list(expansion.appended)})

    intent, keyword = classify_intent(tokenize(normalized))
    _add_signal(debug, "intent", {"intent": intent, "keyword": keyword})

    department_code = department = None
    if intent == "people":
        found = detect_department(raw)
        if found:
            department_code, department = found
            _add_signal(debug, "department", {"code": department_code, "phrase": department})

    expanded_tokens = tokenize(expansion.expanded)
    role_query = is_role_query(expanded_tokens)
    if role_query:
        _add_signal(debug, "role_query")

    return ParsedQuery(
        raw=raw,
        normalized=normalized,
        expanded=expansion.expanded,
        matched_alias=expansion.matched_alias,
        tokens=content_tokens(expansion.expanded),
        intent=intent,
        department_code=department_code,
        department=department,
        role_query=role_query,
        debug=debug,
    )
