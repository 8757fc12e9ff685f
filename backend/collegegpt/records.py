# records.py
"""
Record normalization.

Rows arrive from the store with collection-specific column names and with
list-like columns in whatever shape was stored (native array, JSON-encoded
list, delimited string, or nothing). `to_record` maps a row onto the common
Record fields right after fetch so scoring and formatting never see raw rows.
"""
import json
import re
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from pydantic import BaseModel, ConfigDict, Field

LIST_SPLIT_RE = re.compile(r"[,;|]")


class ListShape(str, Enum):
    ABSENT = "absent"
    SINGLE = "single"
    LIST = "list"


class CollectionSpec(BaseModel):
    """How one table's columns map onto Record fields. First non-empty column wins."""

    model_config = ConfigDict(frozen=True)

    table: str
    label: str
    name: Tuple[str, ...] = ("name",)
    designation: Tuple[str, ...] = ()
    department: Tuple[str, ...] = ()
    specialization: Tuple[str, ...] = ()
    items: Tuple[str, ...] = ()
    email: Tuple[str, ...] = ()
    phone: Tuple[str, ...] = ()
    notes: Tuple[str, ...] = ()
    threshold: int = 3
    labels: Mapping[str, str] = Field(default_factory=dict)

    def label_for(self, field: str) -> str:
        return self.labels.get(field) or DEFAULT_LABELS[field]


DEFAULT_LABELS = {
    "department": "Department",
    "specialization": "Specialization",
    "items": "Courses",
    "email": "Email",
    "phone": "Phone",
    "notes": "Notes",
}

PEOPLE_COLUMNS = dict(
    name=("name",),
    designation=("designation",),
    department=("department",),
    specialization=("specialization",),
    items=("courses_taught", "courses", "subjects"),
    email=("email_official", "email"),
    phone=("mobile", "phone"),
    notes=("notes",),
    threshold=3,
)

COLLECTIONS: Dict[str, CollectionSpec] = {
    spec.table: spec
    for spec in (
        CollectionSpec(table="faculty_list", label="faculty", **PEOPLE_COLUMNS),
        CollectionSpec(table="staff_list", label="staff", **PEOPLE_COLUMNS),
        CollectionSpec(
            table="college_info",
            label="college_info",
            name=("title", "topic", "key"),
            department=("category",),
            items=("keywords", "tags"),
            email=("email",),
            phone=("phone",),
            notes=("value", "content", "description", "details"),
            threshold=4,
            labels={"department": "Category", "items": "Keywords", "notes": "Details"},
        ),
        CollectionSpec(
            table="placements",
            label="placements",
            name=("company", "company_name"),
            designation=("role", "job_role", "position"),
            department=("branch", "department"),
            specialization=("package", "ctc"),
            items=("eligible_branches", "skills"),
            email=("contact_email", "email"),
            phone=("contact_phone", "phone"),
            notes=("notes", "description", "year"),
            threshold=4,
            labels={"department": "Branch", "specialization": "Package", "items": "Eligible"},
        ),
        CollectionSpec(
            table="subjects",
            label="subjects",
            name=("subject_name", "name", "title"),
            designation=("subject_code", "code"),
            department=("department", "branch"),
            specialization=("semester", "sem"),
            items=("faculty", "handled_by", "topics"),
            notes=("notes", "description", "credits"),
            threshold=4,
            labels={"specialization": "Semester", "items": "Handled by"},
        ),
        CollectionSpec(
            table="students",
            label="students",
            name=("name", "student_name"),
            designation=("usn", "roll_no"),
            department=("branch", "department"),
            specialization=("semester", "year"),
            items=("skills", "achievements"),
            email=("email",),
            phone=("phone", "mobile"),
            notes=("notes",),
            threshold=5,
            labels={"department": "Branch", "specialization": "Semester", "items": "Skills"},
        ),
        CollectionSpec(
            table="branches",
            label="branches",
            name=("branch_name", "name"),
            designation=("code", "short_name"),
            department=("department", "branch_name"),
            specialization=("intake", "hod"),
            items=("programs", "labs"),
            email=("email",),
            phone=("phone",),
            notes=("notes", "description"),
            threshold=3,
            labels={"specialization": "Intake", "items": "Programs"},
        ),
    )
}

INTENT_TABLES: Dict[str, Tuple[str, ...]] = {
    "people": ("faculty_list", "staff_list"),
    "college": ("college_info",),
    "placements": ("placements",),
    "subjects": ("subjects",),
    "students": ("students",),
    "branches": ("branches",),
}


class Record(BaseModel):
    model_config = ConfigDict(frozen=True)

    collection: str
    label: str
    name: str = ""
    designation: str = ""
    department: str = ""
    specialization: str = ""
    items: List[str] = Field(default_factory=list)
    items_shape: ListShape = ListShape.ABSENT
    email: str = ""
    phone: str = ""
    notes: str = ""


def _clean(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (list, tuple)):
        return ", ".join(str(v).strip() for v in value if v is not None and str(v).strip())
    return str(value).strip()


def classify_list(value: Any) -> Tuple[ListShape, List[str]]:
    """Resolve a list-like column into (shape, list of non-empty strings)."""
    if value is None:
        return ListShape.ABSENT, []
    if isinstance(value, (list, tuple, set)):
        items = [str(v).strip() for v in value if v is not None and str(v).strip()]
        return (ListShape.LIST if items else ListShape.ABSENT), items

    text = str(value).strip()
    if not text:
        return ListShape.ABSENT, []
    if text.startswith("["):
        try:
            parsed = json.loads(text)
        except ValueError:
            parsed = None
        if isinstance(parsed, list):
            return classify_list(parsed)
    # Postgres array literal that reached us as text
    if text.startswith("{") and text.endswith("}"):
        text = text[1:-1].replace('"', "")
    parts = [p.strip() for p in LIST_SPLIT_RE.split(text) if p.strip()]
    if len(parts) > 1:
        return ListShape.LIST, parts
    return ListShape.SINGLE, parts


def _first(row: Mapping[str, Any], columns: Sequence[str]) -> Any:
    for col in columns:
        value = row.get(col)
        if value is None:
            continue
        if isinstance(value, str) and not value.strip():
            continue
        return value
    return None


def to_record(row: Mapping[str, Any], spec: CollectionSpec) -> Record:
    """Map a raw row onto Record. Missing or odd-typed columns become empty fields."""
    row = row or {}
    shape, items = classify_list(_first(row, spec.items))
    return Record(
        collection=spec.table,
        label=spec.label,
        name=_clean(_first(row, spec.name)),
        designation=_clean(_first(row, spec.designation)),
        department=_clean(_first(row, spec.department)),
        specialization=_clean(_first(row, spec.specialization)),
        items=items,
        items_shape=shape,
        email=_clean(_first(row, spec.email)),
        phone=_clean(_first(row, spec.phone)),
        notes=_clean(_first(row, spec.notes)),
    )


def get_collection(table: str) -> Optional[CollectionSpec]:
    return COLLECTIONS.get(table)
