import json

from collegegpt.aliases import (
    DEFAULT_ALIAS_TABLE,
    AliasTable,
    load_alias_table,
    phrase_present,
)


def test_alias_appends_canonical_phrase():
    exp = DEFAULT_ALIAS_TABLE.expand("cse faculty")
    assert exp.expanded == "cse faculty computer science and engineering"
    assert exp.matched_alias == "cse"
    assert "computer science and engineering" in exp.appended


def test_expansion_is_idempotent():
    first = DEFAULT_ALIAS_TABLE.expand("cse")
    second = DEFAULT_ALIAS_TABLE.expand(first.expanded)
    assert second.expanded == first.expanded
    assert second.appended == ()
    assert first.expanded.count("computer science and engineering") == 1


def test_whole_word_only():
    exp = DEFAULT_ALIAS_TABLE.expand("cseX courses")
    assert "cse" not in exp.fired
    assert exp.expanded == "cseX courses"
    assert exp.matched_alias is None


def test_phrase_alias_allows_extra_whitespace():
    exp = DEFAULT_ALIAS_TABLE.expand("who is sapna    patil")
    assert "sapna patil" in exp.fired
    assert exp.expanded.endswith("prof sapna b patil")


def test_upper_case_codes_are_case_sensitive():
    assert "mechanical engineering" in DEFAULT_ALIAS_TABLE.expand("who is HOD of ME").expanded
    plain = DEFAULT_ALIAS_TABLE.expand("tell me about it")
    assert plain.expanded == "tell me about it"
    assert plain.fired == ()


def test_course_codes_expand():
    exp = DEFAULT_ALIAS_TABLE.expand("who handles BCS303")
    assert exp.matched_alias == "bcs303"
    assert "operating systems" in exp.appended


def test_multiple_aliases_all_appended_first_reported():
    exp = DEFAULT_ALIAS_TABLE.expand("os faculty in ece")
    assert exp.matched_alias == "ece"
    assert "operating systems" in exp.appended
    assert "electronics and communication engineering" in exp.appended


def test_fixed_point_when_canonical_contains_other_alias():
    table = AliasTable.from_mappings({"x1": "alpha beta", "beta": "beta gamma"})
    exp = table.expand("x1")
    assert exp.expanded == "x1 alpha beta beta gamma"
    assert table.expand(exp.expanded).expanded == exp.expanded


def test_phrase_present():
    assert phrase_present("operating systems", "who teaches operating   systems")
    assert not phrase_present("operating systems", "who teaches operatingsystems")
    assert phrase_present("", "anything")


def test_load_alias_table_merges_file(tmp_path):
    path = tmp_path / "aliases.json"
    path.write_text(json.dumps({"pcb": "printed circuit board"}), encoding="utf-8")
    table = load_alias_table(str(path))
    assert len(table) == len(DEFAULT_ALIAS_TABLE) + 1
    assert table.expand("pcb lab").expanded == "pcb lab printed circuit board"


def test_load_alias_table_ignores_bad_file(tmp_path):
    path = tmp_path / "aliases.json"
    path.write_text("[1, 2, 3]", encoding="utf-8")
    assert len(load_alias_table(str(path))) == len(DEFAULT_ALIAS_TABLE)
    assert len(load_alias_table(str(tmp_path / "missing.json"))) == len(DEFAULT_ALIAS_TABLE)
