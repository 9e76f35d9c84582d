from datetime import date, datetime

from sheetsync.core.config import InferenceMode
from sheetsync.services.datasync.base import ColumnType
from sheetsync.services.datasync.schema import (
    dedupe_column_names,
    infer_column_type,
    infer_schema,
    sanitize_column_name,
    sanitize_table_name,
)


def test_sanitize_table_name() -> None:
    assert sanitize_table_name("Sales 2024!") == "Sales_2024_"
    assert sanitize_table_name("  Q1   report ") == "Q1_report"
    assert sanitize_table_name("") == "sheet"


def test_sanitize_column_name_empty_label_uses_position() -> None:
    assert sanitize_column_name("", 2) == "col_3"
    assert sanitize_column_name(None, 0) == "col_1"
    assert sanitize_column_name("%%%", 4) == "col_5"


def test_sanitize_column_name_cleans_label() -> None:
    assert sanitize_column_name("  First   Name ", 0) == "First_Name"
    assert sanitize_column_name("Price ($)", 0) == "Price_"
    assert sanitize_column_name("2024 total", 0) == "_2024_total"
    assert sanitize_column_name("_hidden", 0) == "_hidden"


def test_sanitize_column_name_truncates() -> None:
    assert len(sanitize_column_name("a" * 400, 0)) == 300


def test_dedupe_column_names_is_case_insensitive() -> None:
    assert dedupe_column_names(["name", "Name", "name", "other"]) == [
        "name",
        "Name_2",
        "name_3",
        "other",
    ]


def test_integer_column() -> None:
    assert infer_column_type([1, 2, None, "", 3.0]) == ColumnType.INTEGER


def test_one_fraction_flips_to_float() -> None:
    assert infer_column_type([1, 2, 2.5]) == ColumnType.FLOAT


def test_one_string_flips_to_string() -> None:
    assert infer_column_type([1, 2, "n/a"]) == ColumnType.STRING
    assert infer_column_type([1.5, "n/a"]) == ColumnType.STRING


def test_boolean_and_datetime_columns() -> None:
    assert infer_column_type([True, False, None]) == ColumnType.BOOLEAN
    assert infer_column_type([datetime(2024, 1, 1, 9, 30), date(2024, 2, 1)]) == (
        ColumnType.DATETIME
    )


def test_mixed_kinds_default_to_string() -> None:
    assert infer_column_type([True, 1]) == ColumnType.STRING
    assert infer_column_type([datetime(2024, 1, 1), 5]) == ColumnType.STRING
    assert infer_column_type([True, datetime(2024, 1, 1)]) == ColumnType.STRING


def test_no_evidence_is_string() -> None:
    assert infer_column_type([]) == ColumnType.STRING
    assert infer_column_type([None, ""]) == ColumnType.STRING


def test_whitespace_text_counts_as_string() -> None:
    assert infer_column_type([1, " "]) == ColumnType.STRING


def test_infer_schema() -> None:
    header = ["ID", "Amount", "Paid", "Due", "Notes", ""]
    rows = [
        [1, 10.5, True, datetime(2024, 1, 1), "first", "x"],
        [2, 3, False, datetime(2024, 1, 2), "", None],
    ]

    schema = infer_schema(header, rows)

    assert schema.names == ["ID", "Amount", "Paid", "Due", "Notes", "col_6"]
    assert [column.type for column in schema.columns] == [
        ColumnType.INTEGER,
        ColumnType.FLOAT,
        ColumnType.BOOLEAN,
        ColumnType.DATETIME,
        ColumnType.STRING,
        ColumnType.STRING,
    ]
    assert all(column.mode == "NULLABLE" for column in schema.columns)


def test_infer_schema_header_only_is_all_string() -> None:
    schema = infer_schema(["a", "b"], [])
    assert [column.type for column in schema.columns] == [
        ColumnType.STRING,
        ColumnType.STRING,
    ]


def test_infer_schema_all_string_mode_skips_scan() -> None:
    schema = infer_schema(["n", "flag"], [[1, True]], InferenceMode.ALL_STRING)
    assert [column.type for column in schema.columns] == [
        ColumnType.STRING,
        ColumnType.STRING,
    ]


def test_infer_schema_short_rows() -> None:
    schema = infer_schema(["a", "b"], [[1], [2]])
    assert schema.type_at(0) == ColumnType.INTEGER
    assert schema.type_at(1) == ColumnType.STRING
    assert schema.type_at(7) == ColumnType.STRING
