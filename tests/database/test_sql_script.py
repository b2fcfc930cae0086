from __future__ import annotations

from pathlib import Path

from src.beacon_attendance.beacon_attendance.database.bootstrap import _strip_create_db_and_use, iter_sql_statements

REPO_ROOT = Path(__file__).resolve().parents[2]


def test_semicolons_inside_literals_do_not_split():
    sql = "INSERT INTO courses VALUES ('1', 'a;b');\nINSERT INTO courses VALUES (\"2\", 'it''s; fine');"
    assert list(iter_sql_statements(sql)) == [
        "INSERT INTO courses VALUES ('1', 'a;b')",
        "INSERT INTO courses VALUES (\"2\", 'it''s; fine')",
    ]


def test_comment_lines_and_blank_statements_are_dropped():
    sql = "-- header; with a semicolon\nSELECT 1;;\n  -- trailing\nSELECT 2"
    assert list(iter_sql_statements(sql)) == ["SELECT 1", "SELECT 2"]


def test_schema_file_has_both_tables_without_database_switch():
    sql = _strip_create_db_and_use((REPO_ROOT / "database" / "schema.sql").read_text(encoding="utf-8"))
    statements = list(iter_sql_statements(sql))

    assert len(statements) == 2
    assert "courses" in statements[0]
    assert "attendance_records" in statements[1]


def test_seed_file_is_one_upsert():
    statements = list(iter_sql_statements((REPO_ROOT / "database" / "seed.sql").read_text(encoding="utf-8")))

    assert len(statements) == 1
    assert statements[0].startswith("INSERT INTO courses")
