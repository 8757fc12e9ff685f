# aliases.py
"""
Alias expansion for raw questions.

The alias table maps surface forms (abbreviations, misspellings, short
names, course codes) to canonical phrases. A surface form fires only on a
whole-word / whole-phrase match; when it fires, its canonical phrase is
appended to the question unless the phrase is already present. The
question text itself is never rewritten.

Tables are built once at import (or once from ALIAS_FILE at start-up) and
are read-only afterwards.
"""
import json
import logging
import re
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from pydantic import BaseModel, ConfigDict

from .text import normalize_text

log = logging.getLogger(__name__)

# Course codes are consulted before aliases.
COURSE_CODES: Mapping[str, str] = MappingProxyType({
    "22BMATS101": "mathematics for cse stream-i",
    "22ESC145": "introduction to c programming",
    "22ESC245": "introduction to data structures",
    "BCS303": "operating systems",
    "BCS403": "database management systems",
})

ALIASES: Mapping[str, str] = MappingProxyType({
    # branches & short codes
    "cse": "computer science and engineering",
    "computer science": "computer science and engineering",
    "ece": "electronics and communication engineering",
    "ME": "mechanical engineering",
    "CE": "civil engineering",
    "eee": "electrical and electronics engineering",
    "ise": "information science and engineering",
    "IT": "information technology",
    "aiml": "artificial intelligence and machine learning",
    "mech": "mechanical engineering",
    "civil": "civil engineering",

    # college name and variants
    "hsit": "hirasugar institute of technology",
    "hsit nidasoshi": "hirasugar institute of technology nidasoshi",
    "hirasugar": "hirasugar institute of technology",
    "hirasugar hit": "hirasugar institute of technology",
    "hit nidasoshi": "hirasugar institute of technology nidasoshi",
    "hit nidaoshi": "hirasugar institute of technology nidasoshi",
    "hit nidaoshi college": "hirasugar institute of technology nidasoshi",
    "hit nidasoshi engineering": "hirasugar institute of technology nidasoshi",
    "nidasoshi": "hirasugar institute of technology nidasoshi",
    "nidasoshi engineering college": "hirasugar institute of technology nidasoshi",
    "nidasoshi engineering collage": "hirasugar institute of technology nidasoshi",
    "nidasshi": "hirasugar institute of technology nidasoshi",
    "nidasshi hit": "hirasugar institute of technology nidasoshi",
    "nidasshi hsit": "hirasugar institute of technology nidasoshi",
    "nidasoshi hit collage": "hirasugar institute of technology nidasoshi",
    "hsit faculty list": "hirasugar institute of technology faculty list",
    "hit faculty list": "hirasugar institute of technology faculty list",
    "hit facukty list": "hirasugar institute of technology faculty list",
    "hsit facylty list": "hirasugar institute of technology faculty list",
    "hsit faculty": "hirasugar institute of technology faculty list",
    "hit faculty": "hirasugar institute of technology faculty list",

    # roles
    "hod": "head of department",
    "head": "head of department",
    "cse hod": "head of department computer science and engineering",
    "principal": "principal",
    "dean": "dean",

    # faculty name variants
    "mallikarjun": "prof mallikarjun g ganachari",
    "mallikarjun ganachari": "prof mallikarjun g ganachari",
    "mgganachari": "prof mallikarjun g ganachari",
    "sapna": "prof sapna b patil",
    "sapna patil": "prof sapna b patil",
    "kb manwade": "dr k b manwade",
    "manwade": "dr k b manwade",
    "manjaragi": "dr s v manjaragi",
    "s v manjaragi": "dr s v manjaragi",
    "aruna daptardar": "mrs aruna anil daptardar",
    "aruna": "mrs aruna anil daptardar",
    "manoj chitale": "manojkumar a chitale",
    "shruti kumbar": "prof shruti kumbar",
    "sujata mane": "ms sujata ishwar mane",

    # course shortcuts
    "os": "operating systems",
    "operating system": "operating systems",
    "data structures": "data structures and applications",
    "ds": "data structures and applications",
    "dbms": "database management systems",
    "ml": "machine learning",
    "cloud": "cloud computing",
    "vlsi": "vlsi design",
    "embedded": "embedded systems",
    "dsa": "data structures and algorithms",
    "cn": "computer networks",
    "daa": "design and analysis of algorithms",
})

# Branch codes used as department hints: code -> phrase found in department fields.
DEPARTMENT_CODES: Mapping[str, str] = MappingProxyType({
    "cse": "computer science",
    "ece": "electronics and communication",
    "eee": "electrical and electronics",
    "ise": "information science",
    "aiml": "artificial intelligence",
    "mech": "mechanical",
    "civil": "civil",
    "ME": "mechanical",
    "CE": "civil",
    "IT": "information technology",
})


class AliasEntry(BaseModel):
    """One surface form. Upper-case surfaces are ordinary English words in
    lower case ("me", "it"), so they only fire when typed in upper case."""

    model_config = ConfigDict(frozen=True)

    surface: str
    canonical: str

    @property
    def case_sensitive(self) -> bool:
        return self.surface.isupper() and self.surface.isalpha()

    @property
    def key(self) -> str:
        return normalize_text(self.surface)

    @property
    def canonical_norm(self) -> str:
        return normalize_text(self.canonical)

    def pattern(self) -> "re.Pattern[str]":
        return _phrase_pattern(self.surface if self.case_sensitive else self.key, self.case_sensitive)

    def matches(self, raw: str, normalized: str) -> bool:
        if self.case_sensitive:
            return bool(self.pattern().search(raw))
        return bool(self.pattern().search(normalized))


def _phrase_pattern(phrase: str, case_sensitive: bool = False) -> "re.Pattern[str]":
    words = [re.escape(w) for w in phrase.split()]
    flags = 0 if case_sensitive else re.IGNORECASE
    return re.compile(r"(?<!\w)" + r"\s+".join(words) + r"(?!\w)", flags)


def phrase_present(phrase: str, normalized_text: str) -> bool:
    """Whole-phrase presence check on already-normalized text."""
    phrase = normalize_text(phrase)
    if not phrase:
        return True
    return bool(_phrase_pattern(phrase).search(normalized_text))


class Expansion(BaseModel):
    model_config = ConfigDict(frozen=True)

    expanded: str
    matched_alias: Optional[str] = None
    fired: Tuple[str, ...] = ()
    appended: Tuple[str, ...] = ()


class AliasTable:
    """Read-only ordered collection of alias entries."""

    def __init__(self, entries: Iterable[AliasEntry]):
        self._entries: Tuple[AliasEntry, ...] = tuple(entries)
        self._patterns = tuple((e, e.pattern()) for e in self._entries)

    @classmethod
    def from_mappings(cls, *mappings: Mapping[str, str]) -> "AliasTable":
        merged: Dict[str, str] = {}
        for mapping in mappings:
            for surface, canonical in mapping.items():
                merged[surface] = canonical
        return cls(AliasEntry(surface=s, canonical=c) for s, c in merged.items())

    @property
    def entries(self) -> Tuple[AliasEntry, ...]:
        return self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def expand(self, raw: str) -> Expansion:
        """
        Append canonical phrases for every alias found in `raw`.

        Runs to a fixed point: a canonical phrase may itself contain another
        surface form, so passes repeat until nothing new is appended. Each
        canonical phrase is appended at most once, which bounds the loop.
        """
        text = str(raw or "").strip()
        normalized = normalize_text(text)
        matched_alias: Optional[str] = None
        fired: List[str] = []
        appended: List[str] = []

        changed = True
        while changed:
            changed = False
            for entry, pattern in self._patterns:
                haystack = text if entry.case_sensitive else normalized
                if not pattern.search(haystack):
                    continue
                if entry.key not in fired:
                    fired.append(entry.key)
                if matched_alias is None:
                    matched_alias = entry.key
                canonical = entry.canonical_norm
                if canonical and not phrase_present(canonical, normalized):
                    text = f"{text} {canonical}"
                    normalized = normalize_text(text)
                    appended.append(canonical)
                    changed = True

        return Expansion(
            expanded=text,
            matched_alias=matched_alias,
            fired=tuple(fired),
            appended=tuple(appended),
        )


def load_alias_table(path: Optional[str] = None) -> AliasTable:
    """Built-in tables, optionally overlaid with a JSON object of extra aliases."""
    extra: Dict[str, str] = {}
    if path:
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as exc:
            log.warning("Could not load alias file %s: %s", path, exc)
            data = {}
        if isinstance(data, dict):
            extra = {str(k): str(v) for k, v in data.items() if k and v}
        else:
            log.warning("Alias file %s must hold a JSON object, ignoring", path)
    return AliasTable.from_mappings(COURSE_CODES, ALIASES, extra)


DEFAULT_ALIAS_TABLE = load_alias_table()
