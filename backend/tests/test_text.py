import pytest

from collegegpt.text import content_tokens, dedupe, normalize_text, tokenize


@pytest.mark.parametrize(
    "value",
    [None, "", 42, 3.5, "Hello,  WORLD!!", "  Who teaches O.S.?  ", "CSE/ECE - HoD", "naïve café", "a\tb\nc"],
)
def test_normalize_is_idempotent(value):
    once = normalize_text(value)
    assert normalize_text(once) == once


def test_normalize_basics():
    assert normalize_text(None) == ""
    assert normalize_text(42) == "42"
    assert normalize_text("  Who's the HOD of C.S.E.?? ") == "who s the hod of c s e"


def test_tokenize_drops_empty_tokens():
    assert tokenize("  a,,b   c ") == ["a", "b", "c"]


def test_dedupe_keeps_first_occurrence_order():
    assert dedupe(["os", "cse", "os", "hod"]) == ["os", "cse", "hod"]


def test_content_tokens_drop_stop_words_and_keep_roles():
    assert content_tokens("Who is the HOD of CSE?") == ["hod", "cse"]
    assert "head" in content_tokens("who is the head")
    assert content_tokens("a b c") == []
