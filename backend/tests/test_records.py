from collegegpt.formatter import format_items, format_record, format_suggestions
from collegegpt.decision import Suggestion
from collegegpt.records import COLLECTIONS, ListShape, classify_list, to_record


def test_classify_list_shapes():
    assert classify_list(None) == (ListShape.ABSENT, [])
    assert classify_list("   ") == (ListShape.ABSENT, [])
    assert classify_list([]) == (ListShape.ABSENT, [])
    assert classify_list(["OS", " ", None, "DBMS"]) == (ListShape.LIST, ["OS", "DBMS"])
    assert classify_list('["Operating Systems", "DBMS"]') == (ListShape.LIST, ["Operating Systems", "DBMS"])
    assert classify_list("OS; DBMS | CN, ML") == (ListShape.LIST, ["OS", "DBMS", "CN", "ML"])
    assert classify_list("{OS,\"Computer Networks\"}") == (ListShape.LIST, ["OS", "Computer Networks"])
    assert classify_list("Operating Systems") == (ListShape.SINGLE, ["Operating Systems"])
    # broken JSON falls back to delimiter splitting
    assert classify_list('["OS", "DBMS"') == (ListShape.LIST, ['["OS"', '"DBMS"'])


def test_to_record_maps_columns():
    row = {
        "name": " A. Rao ",
        "designation": "Assistant Professor",
        "department": "CSE",
        "courses_taught": "",
        "courses": "OS, DBMS",
        "email_official": None,
        "email": "arao@hsit.ac.in",
        "mobile": 9876543210,
    }
    rec = to_record(row, COLLECTIONS["faculty_list"])
    assert rec.collection == "faculty_list"
    assert rec.label == "faculty"
    assert rec.name == "A. Rao"
    assert rec.items == ["OS", "DBMS"]
    assert rec.items_shape is ListShape.LIST
    assert rec.email == "arao@hsit.ac.in"
    assert rec.phone == "9876543210"
    assert rec.notes == ""


def test_to_record_tolerates_empty_row():
    rec = to_record({}, COLLECTIONS["placements"])
    assert rec.name == "" and rec.items == [] and rec.items_shape is ListShape.ABSENT


def test_format_record_skips_absent_fields():
    rec = to_record(
        {"name": "A. Rao", "designation": "Assistant Professor", "courses_taught": ["Operating Systems"]},
        COLLECTIONS["faculty_list"],
    )
    assert format_record(rec) == "A. Rao - Assistant Professor\nCourses: Operating Systems"


def test_format_record_uses_collection_labels():
    rec = to_record(
        {"company": "Infosys", "role": "Systems Engineer", "branch": "CSE", "package": "3.6 LPA"},
        COLLECTIONS["placements"],
    )
    assert format_record(rec) == "Infosys - Systems Engineer\nBranch: CSE\nPackage: 3.6 LPA"


def test_format_record_header_without_name():
    rec = to_record({"designation": "Principal", "email": "p@hsit.ac.in"}, COLLECTIONS["staff_list"])
    assert format_record(rec) == "Principal\nEmail: p@hsit.ac.in"


def test_format_items_truncates():
    items = [f"Course {i}" for i in range(10)]
    text = format_items(items)
    assert text.startswith("Course 0, Course 1")
    assert "Course 8" not in text
    assert text.endswith("(+2 more)")


def test_format_suggestions():
    text = format_suggestions([Suggestion(name="Ravi Kumar", score=9), Suggestion(name="Ravi Patil", score=9)])
    assert text == "I couldn't find an exact match. Closest records: Ravi Kumar, Ravi Patil."
