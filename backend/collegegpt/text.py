# text.py
import re
from typing import Any, Iterable, List

from spacy.lang.en.stop_words import STOP_WORDS

NON_WORD_RE = re.compile(r"[^\w\s]")
WHITESPACE_RE = re.compile(r"\s+")

# Role words are kept even if a stop-word list ever grows to include them.
KEEP_TOKENS = frozenset({"hod", "head", "principal", "dean"})


def normalize_text(value: Any) -> str:
    """Lowercase, replace non-word characters with spaces, collapse whitespace."""
    if value is None:
        return ""
    norm = str(value).lower()
    norm = NON_WORD_RE.sub(" ", norm)
    norm = WHITESPACE_RE.sub(" ", norm).strip()
    return norm


def tokenize(value: Any) -> List[str]:
    return [t for t in normalize_text(value).split(" ") if t]


def dedupe(seq: Iterable[str]) -> List[str]:
    seen = set()
    out: List[str] = []
    for item in seq:
        if item not in seen:
            seen.add(item)
            out.append(item)
    return out


def content_tokens(value: Any) -> List[str]:
    """Tokens worth scoring: deduplicated, stop words and single characters dropped."""
    tokens = []
    for tok in tokenize(value):
        if tok in KEEP_TOKENS:
            tokens.append(tok)
            continue
        if len(tok) < 2 or tok in STOP_WORDS:
            continue
        tokens.append(tok)
    return dedupe(tokens)
