# formatter.py
from typing import List, Sequence

from .decision import Suggestion
from .records import COLLECTIONS, CollectionSpec, Record

MAX_ITEMS = 8


def _spec_for(record: Record) -> CollectionSpec:
    return COLLECTIONS.get(record.collection) or COLLECTIONS["faculty_list"]


def format_items(items: Sequence[str], limit: int = MAX_ITEMS) -> str:
    shown = [str(i).strip() for i in items if str(i).strip()]
    extra = len(shown) - limit
    text = ", ".join(shown[:limit])
    if extra > 0:
        text += f" (+{extra} more)"
    return text


def format_record(record: Record) -> str:
    """Render present fields, one per line. Empty fields are skipped."""
    spec = _spec_for(record)
    lines: List[str] = []

    header = record.name or ""
    if record.designation:
        header = f"{header} - {record.designation}" if header else record.designation
    if header:
        lines.append(header)

    for field in ("department", "specialization"):
        value = getattr(record, field, "")
        if value:
            lines.append(f"{spec.label_for(field)}: {value}")
    if record.items:
        items = format_items(record.items)
        if items:
            lines.append(f"{spec.label_for('items')}: {items}")
    for field in ("email", "phone", "notes"):
        value = getattr(record, field, "")
        if value:
            lines.append(f"{spec.label_for(field)}: {value}")
    return "\n".join(lines)


def format_suggestions(suggestions: Sequence[Suggestion]) -> str:
    names = ", ".join(s.name for s in suggestions)
    return f"I couldn't find an exact match. Closest records: {names}."
