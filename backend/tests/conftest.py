import json
from typing import Any, Callable, Dict, Iterable, List, Optional

import httpx
import pytest
from fastapi.testclient import TestClient

from collegegpt.config import Settings, get_settings
from collegegpt.llm import LLMClient
from collegegpt.main import app, get_llm, get_store


class InMemoryStore:
    """Record store double: ILIKE-style OR predicates over dict rows."""

    def __init__(self, tables: Optional[Dict[str, List[Dict[str, Any]]]] = None, broken: Iterable[str] = ()):
        self.tables = tables or {}
        self.broken = set(broken)
        self.calls: List[tuple] = []

    def fetch(self, table, limit, any_of=()):
        self.calls.append((table, tuple(any_of)))
        if table in self.broken:
            raise RuntimeError(f"relation {table} is unavailable")
        rows = self.tables.get(table, [])
        if any_of:
            rows = [
                row for row in rows
                if any(needle.lower() in str(row.get(col) or "").lower() for col, needle in any_of)
            ]
        return [dict(r) for r in rows[:limit]]

    def ping(self) -> bool:
        return True


def gemini_text(text: str) -> Dict[str, Any]:
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


def mock_transport(handler: Callable[[httpx.Request], httpx.Response], seen: Optional[list] = None):
    def wrapped(request: httpx.Request) -> httpx.Response:
        if seen is not None:
            seen.append(request)
        return handler(request)
    return httpx.MockTransport(wrapped)


def request_json(request: httpx.Request) -> Dict[str, Any]:
    return json.loads(request.content.decode("utf-8"))


FACULTY_ROWS = [
    {
        "name": "A. Rao",
        "designation": "Assistant Professor",
        "department": "Computer Science and Engineering",
        "courses_taught": '["Operating Systems", "System Software"]',
        "email_official": "arao@hsit.ac.in",
    },
    {
        "name": "B. Patil",
        "designation": "Associate Professor",
        "department": "Electronics and Communication Engineering",
        "courses_taught": "Data Structures; Computer Networks",
    },
    {
        "name": "Dr K B Manwade",
        "designation": "Professor and Head of Department",
        "department": "Computer Science and Engineering",
        "specialization": "Image Processing",
        "courses_taught": ["Machine Learning"],
    },
]

STAFF_ROWS = [
    {"name": "C. Mane", "designation": "Lab Assistant", "department": "Mechanical Engineering"},
]


@pytest.fixture
def settings():
    return Settings()


@pytest.fixture
def gemini_settings():
    return Settings(gemini_api_key="test-key", gemini_api_url="https://llm.test/generate")


@pytest.fixture
def store():
    return InMemoryStore({"faculty_list": FACULTY_ROWS, "staff_list": STAFF_ROWS})


@pytest.fixture
def make_client():
    """Build a TestClient with the store, LLM and settings swapped out."""

    def build(settings: Settings, store=None, llm: Optional[LLMClient] = None) -> TestClient:
        llm = llm or LLMClient(settings)
        app.dependency_overrides[get_settings] = lambda: settings
        app.dependency_overrides[get_store] = lambda: store
        app.dependency_overrides[get_llm] = lambda: llm
        return TestClient(app)

    yield build
    app.dependency_overrides.clear()
