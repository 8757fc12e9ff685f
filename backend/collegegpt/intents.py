# intents.py
import re
from typing import Iterable, Literal, Optional, Tuple

from .aliases import DEPARTMENT_CODES
from .text import normalize_text

Intent = Literal["college", "placements", "subjects", "students", "people", "branches"]

COLLEGE_KEYWORDS = frozenset({
    "college", "institute", "institution", "campus", "established", "founded",
    "founder", "address", "located", "location", "affiliated", "affiliation",
    "accreditation", "accredited", "naac", "nba", "aicte", "hostel", "library",
    "facilities", "facility", "fees", "fee", "admission", "admissions", "history",
})
PLACEMENT_KEYWORDS = frozenset({
    "placement", "placements", "placed", "recruiter", "recruiters", "recruitment",
    "recruited", "company", "companies", "package", "packages", "ctc", "salary",
    "lpa", "drive", "drives", "internship", "internships", "hiring", "offer", "offers",
})
SUBJECT_KEYWORDS = frozenset({
    "subject", "subjects", "syllabus", "curriculum", "semester", "sem", "credits",
    "credit", "scheme", "elective", "electives", "code",
})
STUDENT_KEYWORDS = frozenset({
    "student", "students", "usn", "roll", "topper", "toppers", "alumni",
    "alumnus", "batch", "classmate",
})
PEOPLE_KEYWORDS = frozenset({
    "faculty", "faculties", "teacher", "teachers", "teach", "teaches", "teaching",
    "taught", "professor", "prof", "lecturer", "staff", "hod", "head", "principal",
    "dean", "who", "mentor", "contact", "email", "phone", "mobile", "director",
    "librarian", "dr",
})
BRANCH_KEYWORDS = frozenset({
    "branch", "branches", "department", "departments", "dept", "stream", "streams",
    "intake", "seats", "programme", "programmes", "program", "programs",
})

# Fixed priority: first set with any hit wins.
INTENT_KEYWORDS: Tuple[Tuple[Intent, frozenset], ...] = (
    ("college", COLLEGE_KEYWORDS),
    ("placements", PLACEMENT_KEYWORDS),
    ("subjects", SUBJECT_KEYWORDS),
    ("students", STUDENT_KEYWORDS),
    ("people", PEOPLE_KEYWORDS),
    ("branches", BRANCH_KEYWORDS),
)
DEFAULT_INTENT: Intent = "people"

ROLE_TOKENS = frozenset({
    "hod", "hods", "head", "headofdepartment", "principal", "principals", "dean", "deans",
})
ROLE_DESIGNATION_RE = re.compile(r"\b(hod|head of (the )?department|head|principal|dean)\b")


def classify_intent(tokens: Iterable[str]) -> Tuple[Intent, Optional[str]]:
    """Return (intent, keyword that decided it). Keyword is None for the default."""
    token_set = set(tokens)
    for intent, keywords in INTENT_KEYWORDS:
        hits = sorted(token_set & keywords)
        if hits:
            return intent, hits[0]
    return DEFAULT_INTENT, None


def detect_department(raw: str) -> Optional[Tuple[str, str]]:
    """
    Find a branch code in the raw question. Returns (code, department phrase).

    Upper-case codes ("ME", "IT") are matched case-sensitively against the raw
    text; the rest are matched on normalized tokens.
    """
    raw = str(raw or "")
    tokens = set(normalize_text(raw).split())
    for code, phrase in DEPARTMENT_CODES.items():
        if code.isupper():
            if re.search(rf"(?<!\w){code}(?!\w)", raw):
                return code.lower(), phrase
        elif code in tokens:
            return code, phrase
    return None


def is_role_query(tokens: Iterable[str]) -> bool:
    return any(t in ROLE_TOKENS for t in tokens)


def is_role_designation(designation: str) -> bool:
    return bool(ROLE_DESIGNATION_RE.search(normalize_text(designation)))
