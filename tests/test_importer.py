# =============================================================================
# tests/test_importer.py - Spreadsheet Import Tests
# =============================================================================
# Covers header mapping, date/number parsing and row validation for pile
# uploads, plus the column suggestion used by lookup/production uploads.
# =============================================================================

import io

import pandas as pd
import pytest

from app.modules.piles.importer import (
    SpreadsheetError,
    build_pile_rows,
    map_columns,
    parse_import_date,
    parse_number,
    read_table,
    suggest_column,
    summarize_errors,
)


def _frame(rows, columns):
    return pd.DataFrame(rows, columns=columns).astype(str)


class TestMapColumns:
    def test_exact_matches(self):
        mapping = map_columns(["Pile ID", "Block", "Embedment", "Design Embedment"])
        assert mapping["pile_id"] == "Pile ID"
        assert mapping["block"] == "Block"
        assert mapping["embedment"] == "Embedment"
        assert mapping["design_embedment"] == "Design Embedment"

    def test_substring_prefers_longest_pattern(self):
        mapping = map_columns(["Pile Tag ID", "Start Time (local)", "Design Embedment (ft)"])
        assert mapping["start_time"] == "Start Time (local)"
        assert mapping["design_embedment"] == "Design Embedment (ft)"

    def test_skips_empty_and_unnamed_headers(self):
        mapping = map_columns(["", "Unnamed: 3", "Zone"])
        assert mapping == {"zone": "Zone"}


class TestParseImportDate:
    def test_iso_kept(self):
        assert parse_import_date("2026-03-02") == ("2026-03-02", None)

    def test_us_format_converted(self):
        assert parse_import_date("3/2/2026") == ("2026-03-02", None)

    @pytest.mark.parametrize("value,message", [
        ("13/02/2026", "Invalid month"),
        ("02/32/2026", "Invalid day"),
        ("02/02/1800", "Invalid year"),
        ("not a date", "Invalid date format"),
    ])
    def test_invalid(self, value, message):
        parsed, error = parse_import_date(value)
        assert parsed is None
        assert message in error

    def test_blank(self):
        assert parse_import_date("") == (None, None)


class TestParseNumber:
    def test_leading_number_is_used(self):
        errors = []
        assert parse_number("12.5 ft", "embedment", errors) == 12.5
        assert errors == []

    def test_invalid_records_error(self):
        errors = []
        assert parse_number("abc", "embedment", errors) is None
        assert errors == ["Invalid numeric value in embedment: 'abc'"]


class TestBuildPileRows:
    COLUMNS = ["Pile ID", "Block", "Embedment", "Design Embedment", "Machine", "Start Date"]

    def test_valid_rows(self):
        df = _frame([["A1-1", "A1", "10", "10", "3", "3/2/2026"]], self.COLUMNS)
        valid, invalid, duplicates = build_pile_rows(df, map_columns(df.columns), "p1", set())
        assert invalid == []
        assert duplicates == 0
        row = valid[0]
        assert row["pile_number"] == "A1-1"
        assert row["embedment"] == 10.0
        assert row["machine"] == 3
        assert row["start_date"] == "2026-03-02"
        assert row["pile_status"] == "pending"
        assert row["project_id"] == "p1"

    def test_block_fallback_for_pile_number(self):
        df = _frame([["", "B2", "", "", "", ""]], self.COLUMNS)
        valid, _, _ = build_pile_rows(df, map_columns(df.columns), "p1", set())
        assert valid[0]["pile_number"] == "B2-1"
        assert valid[0]["pile_id"] is None

    def test_duplicates_rejected(self):
        df = _frame([
            ["A1-1", "A1", "", "", "", ""],
            ["A1-2", "A1", "", "", "", ""],
            ["A1-2", "A1", "", "", "", ""],
        ], self.COLUMNS)
        valid, invalid, duplicates = build_pile_rows(df, map_columns(df.columns), "p1", {"A1-1"})
        assert [r["pile_number"] for r in valid] == ["A1-2"]
        assert duplicates == 2
        assert invalid[0] == {"row": 2, "errors": ["Pile number 'A1-1' already exists in database"]}
        assert invalid[1]["errors"] == ["Duplicate pile number 'A1-2' in this import"]

    def test_row_errors_collected(self):
        df = _frame([["", "", "x", "", "", "99/99/2026"]], self.COLUMNS)
        valid, invalid, _ = build_pile_rows(df, map_columns(df.columns), "p1", set())
        assert valid == []
        assert len(invalid[0]["errors"]) == 3
        summary = summarize_errors(invalid)
        assert summary["Missing required pile identifier (Pile ID or Block)"] == 1


class TestReadTable:
    def test_csv_cells_are_strings(self):
        df = read_table(b"Pile ID,Embedment\nA1,10\nA2,\n", "piles.csv")
        assert list(df.columns) == ["Pile ID", "Embedment"]
        assert df.iloc[1]["Embedment"] == ""

    def test_excel_prefers_hinted_sheet(self):
        buffer = io.BytesIO()
        with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
            pd.DataFrame({"Other": ["x"]}).to_excel(writer, index=False, sheet_name="Summary")
            pd.DataFrame({"Tag": ["A1"]}).to_excel(writer, index=False, sheet_name="Pile Plot")
        df = read_table(buffer.getvalue(), "plot.xlsx", ("pile plot",))
        assert list(df.columns) == ["Tag"]

    def test_unreadable_file(self):
        with pytest.raises(SpreadsheetError):
            read_table(b"\x00\x01not excel", "broken.xlsx")


class TestSuggestColumn:
    def test_pattern_priority(self):
        headers = ["Start Time", "Stop Time", "Duration"]
        assert suggest_column(headers, ["duration", "drive time", "time"]) == "Duration"

    def test_no_match(self):
        assert suggest_column(["A", "B"], ["machine"]) is None
