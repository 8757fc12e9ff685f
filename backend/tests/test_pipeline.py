import httpx

from collegegpt.config import Settings
from collegegpt.llm import NOT_CONFIGURED, LLMClient
from collegegpt.pipeline import AskPipeline, Stage
from collegegpt.query import GREETING_ANSWER

from conftest import InMemoryStore, gemini_text, mock_transport


def pipeline(store, settings=None, llm=None):
    settings = settings or Settings()
    return AskPipeline(store, llm or LLMClient(settings), settings)


def gemini_llm(settings, text="From the LLM.", seen=None):
    return LLMClient(settings, transport=mock_transport(lambda r: httpx.Response(200, json=gemini_text(text)), seen))


class ExplodingStore(InMemoryStore):
    def fetch(self, table, limit, any_of=()):
        raise AssertionError("store must not be called")


def test_greetings_short_circuit():
    p = pipeline(ExplodingStore())
    for q in ("hi", "OK", "os", "  Hello!  ", "x"):
        result = p.run(q)
        assert result.answer == GREETING_ANSWER
        assert result.source == "generic"


def test_who_teaches_os(store):
    result = pipeline(store).run("who teaches OS")
    assert result.source == "faculty"
    assert result.answer.startswith("A. Rao - Assistant Professor")
    assert "Courses: Operating Systems" in result.answer
    assert result.matched_alias == "os"
    assert result.debug["decision"] == "confident"
    assert result.debug["stages"] == [
        Stage.CLASSIFY_INTENT.value,
        Stage.FETCH_RECORDS.value,
        Stage.SCORE.value,
        Stage.DECIDE.value,
        Stage.FORMAT.value,
    ]


def test_cse_hod_uses_role_pass(store):
    result = pipeline(store).run("cse hod")
    assert result.source == "faculty"
    assert result.answer.startswith("Dr K B Manwade - Professor and Head of Department")
    assert result.debug["role_match"] is True
    assert result.debug["department"] == "computer science"


def test_staff_records_are_labelled(store):
    result = pipeline(store).run("who is C. Mane")
    assert result.source == "staff"
    assert result.answer.startswith("C. Mane - Lab Assistant")


def test_placements_intent():
    store = InMemoryStore({
        "placements": [
            {"company": "Infosys", "role": "Systems Engineer", "branch": "CSE", "package": "3.6 LPA"},
            {"company": "Wipro", "role": "Project Engineer", "branch": "ECE"},
        ]
    })
    result = pipeline(store).run("infosys placement package")
    assert result.source == "placements"
    assert result.answer == "Infosys - Systems Engineer\nBranch: CSE\nPackage: 3.6 LPA"
    assert [c[0] for c in store.calls] == ["placements"]


def test_unreachable_store_goes_to_llm():
    settings = Settings(gemini_api_key="k", gemini_api_url="https://llm.test/generate")
    for store in (None, InMemoryStore(broken={"faculty_list", "staff_list"})):
        result = pipeline(store, settings, gemini_llm(settings)).run("who teaches OS")
        assert result.source == "llm"
        assert result.answer == "From the LLM."
        assert any("data store unavailable" in n for n in result.debug["notes"])


def test_llm_question_is_alias_expanded():
    settings = Settings(gemini_api_key="k", gemini_api_url="https://llm.test/generate")
    seen = []
    pipeline(None, settings, gemini_llm(settings, seen=seen)).run("what is dbms")
    assert "database management systems" in seen[0].content.decode("utf-8")


def test_empty_store_without_llm_reports_not_configured():
    result = pipeline(InMemoryStore()).run("who teaches OS")
    assert result.source == "llm"
    assert result.answer == NOT_CONFIGURED
    assert "no records in collection" in result.debug["notes"]


NEAR_TIE = InMemoryStore({"faculty_list": [{"name": "Ravi Kumar"}, {"name": "Ravi Patil"}]})


def test_ambiguous_match_returns_suggestions_when_llm_has_nothing():
    result = pipeline(NEAR_TIE).run("ravi")
    assert result.source == "faculty"
    assert result.answer == "I couldn't find an exact match. Closest records: Ravi Kumar, Ravi Patil."
    assert [s.name for s in result.suggestions] == ["Ravi Kumar", "Ravi Patil"]
    assert result.debug["decision"] == "ambiguous"


def test_ambiguous_match_prefers_meaningful_llm_answer():
    settings = Settings(gemini_api_key="k", gemini_api_url="https://llm.test/generate")
    result = pipeline(NEAR_TIE, settings, gemini_llm(settings, "Ravi Kumar teaches maths.")).run("ravi")
    assert result.source == "llm"
    assert result.answer == "Ravi Kumar teaches maths."
    assert len(result.suggestions) == 2


class BrokenLLM:
    def ask(self, question):
        raise RuntimeError("provider exploded")


def test_failure_inside_fallback_yields_error_answer():
    result = AskPipeline(None, BrokenLLM(), Settings()).run("who teaches OS")
    assert result.source == "error"
    assert result.answer
    assert result.debug["error"] == "provider exploded"


def test_unexpected_stage_error_falls_back(store, monkeypatch):
    def boom(*args, **kwargs):
        raise RuntimeError("scorer bug")

    monkeypatch.setattr("collegegpt.pipeline.score_candidates", boom)
    result = pipeline(store).run("who teaches OS")
    assert result.source == "llm"
    assert result.answer == NOT_CONFIGURED
    assert "score failed: scorer bug" in result.debug["notes"]
