import argparse
import csv
import json
from typing import Dict, List, Sequence, Tuple

from .records import classify_list

# Columns per table, in insert order, as defined in db/schema.sql.
TABLE_COLUMNS: Dict[str, List[str]] = {
    "faculty_list": [
        "name", "designation", "department", "specialization",
        "courses_taught", "email_official", "mobile", "notes",
    ],
    "staff_list": [
        "name", "designation", "department", "specialization",
        "courses", "email", "phone", "notes",
    ],
    "college_info": ["title", "category", "keywords", "value", "email", "phone"],
    "placements": [
        "company", "role", "branch", "package", "eligible_branches",
        "contact_email", "contact_phone", "year", "notes",
    ],
    "subjects": [
        "subject_code", "subject_name", "department", "semester",
        "faculty", "credits", "notes",
    ],
    "students": ["usn", "name", "branch", "semester", "skills", "email", "phone", "notes"],
    "branches": [
        "branch_name", "code", "department", "intake", "programs", "email", "phone", "notes",
    ],
}

# Columns stored as JSON-encoded arrays.
LIST_COLUMNS = frozenset({
    "courses_taught", "courses", "keywords", "eligible_branches",
    "faculty", "skills", "programs",
})


def load_rows_from_csv(file_path: str) -> Tuple[List[str], List[Dict[str, str]]]:
    """
    Loads rows from a CSV file with a header row.
    :return: (header, list of rows keyed by lowercased header)
    """
    rows = []
    with open(file_path, "r", encoding="utf-8", newline="") as csvfile:
        reader = csv.reader(csvfile)
        header = [h.strip().lower() for h in next(reader, [])]
        for raw in reader:
            raw = [col.strip() for col in raw]
            # Skip empty rows
            if not any(raw):
                continue
            rows.append(dict(zip(header, raw)))
    return header, rows


def sql_escape(value: str) -> str:
    if value is None:
        return ""
    return value.replace("'", "''")


def sql_literal(column: str, value: str) -> str:
    if value is None or value == "":
        return "NULL"
    if column in LIST_COLUMNS:
        _, items = classify_list(value)
        value = json.dumps(items, ensure_ascii=False)
    return f"'{sql_escape(value)}'"


def convert_to_sql(table: str, header: Sequence[str], rows: List[Dict[str, str]]) -> Tuple[List[str], List[str]]:
    """
    Converts CSV rows into VALUES tuples for one table.

    Only columns the table defines and the CSV provides are kept.
    Rows without the table's first (identifying) column are skipped.
    """
    if table not in TABLE_COLUMNS:
        raise ValueError(f"Unknown table: {table}")
    columns = [c for c in TABLE_COLUMNS[table] if c in header]
    key = TABLE_COLUMNS[table][0]
    if key not in columns:
        raise ValueError(f"CSV for {table} must have a '{key}' column")

    values = []
    for row in rows:
        if not row.get(key):
            continue
        values.append("(" + ", ".join(sql_literal(c, row.get(c)) for c in columns) + ")")
    return columns, values


def write_sql_to_file(output_file: str, table: str, columns: Sequence[str], values: Sequence[str]) -> None:
    with open(output_file, "w", encoding="utf-8") as f:
        f.write("-- Auto-generated SQL insert statements\n\n")
        if not values:
            return
        f.write(f"INSERT INTO {table} ({', '.join(columns)})\nVALUES\n")
        for i, val in enumerate(values):
            comma = "," if i < len(values) - 1 else ""
            f.write(f"  {val}{comma}\n")
        f.write("ON CONFLICT DO NOTHING;\n")


def main(argv=None) -> None:
    parser = argparse.ArgumentParser(
        description="Convert a CollegeGPT CSV export into SQL seed inserts."
    )
    parser.add_argument(
        "-i", "--in", "--input", dest="input_file", required=True,
        help="Path to the CSV file to process"
    )
    parser.add_argument(
        "-t", "--table", dest="table", required=True, choices=sorted(TABLE_COLUMNS),
        help="Target table"
    )
    parser.add_argument(
        "-o", "--out", "--output", dest="output_file", required=False,
        help="Path to write the generated SQL file (default: input_name.sql)"
    )
    args = parser.parse_args(argv)

    input_path = args.input_file
    if args.output_file:
        output_path = args.output_file
    elif input_path.lower().endswith(".csv"):
        output_path = input_path[:-4] + ".sql"
    else:
        output_path = input_path + ".sql"

    print(f"[+] Loading CSV: {input_path}")
    header, rows = load_rows_from_csv(input_path)

    print(f"[+] Converting {len(rows)} rows for {args.table}…")
    columns, values = convert_to_sql(args.table, header, rows)

    print(f"[+] Writing SQL to: {output_path}")
    write_sql_to_file(output_path, args.table, columns, values)

    print(f"[:)] Completed successfully ({len(values)} rows).")


if __name__ == "__main__":
    main()
