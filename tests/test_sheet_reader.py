"""
Unit tests for the sheet reader backings and loaders.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from trial_balance.sheet_reader import (
    EMPTY_CELL,
    CellData,
    GridSheetReader,
    LoadedWorkbook,
    SheetNotFoundError,
    WorkbookLoadError,
    load_csv,
    load_workbook,
)

from conftest import build_workbook, set_indent, workbook_bytes


class TestGridSheetReader:
    def test_extent_and_cells(self) -> None:
        reader = GridSheetReader([["a", 1], ["b"]], name="TB")
        assert (reader.max_row, reader.max_column) == (2, 2)
        assert reader.cell(1, 2) == CellData(value=1)
        assert reader.cell(2, 2) is EMPTY_CELL
        assert reader.cell(9, 1) is EMPTY_CELL
        assert reader.cell(0, 1) is EMPTY_CELL


class TestLoadedWorkbook:
    def test_unknown_sheet(self) -> None:
        wb = LoadedWorkbook([GridSheetReader([], name="TB")])
        assert "TB" in wb and len(wb) == 1
        with pytest.raises(SheetNotFoundError, match="Missing"):
            wb.sheet("Missing")


class TestLoadCsv:
    def test_text(self) -> None:
        wb = load_csv(text="Particulars,Debit\n  Cash,10\n", sheet_name="March")
        reader = wb.sheet("March")
        assert reader.cell(2, 1).value == "  Cash"
        assert reader.cell(1, 3) is EMPTY_CELL

    def test_long_single_line_text(self) -> None:
        line = ",".join(f"Column {i}" for i in range(100))
        wb = load_csv(text=line)
        assert wb.sheet_names == ["Sheet1"]
        assert wb.sheet("Sheet1").max_column == 100

    def test_empty_fields_become_none(self) -> None:
        reader = load_csv(text="Cash,,5\n").sheet("Sheet1")
        assert reader.cell(1, 2).value is None

    def test_path(self, tmp_path: Path) -> None:
        path = tmp_path / "tb.csv"
        path.write_text("Particulars,Debit\nCash,10\n", encoding="utf-8")
        wb = load_csv(path)
        assert wb.sheet_names == ["tb"]
        assert wb.sheet("tb").cell(2, 2).value == "10"

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(WorkbookLoadError):
            load_csv(tmp_path / "absent.csv")

    def test_nothing_to_read(self) -> None:
        with pytest.raises(WorkbookLoadError):
            load_csv()


class TestLoadWorkbook:
    def test_indent_and_merged_cells(self) -> None:
        wb = build_workbook([["Title"], ["Particulars"], ["Cash"]])
        set_indent(wb, "A3", 2)
        reader = load_workbook(workbook_bytes(wb)).sheet("Trial Balance")

        assert reader.cell(1, 1).value == "Title"
        assert reader.cell(1, 2).value is None
        assert reader.cell(3, 1).indent == 2.0
        assert reader.cell(2, 1).indent is None

    def test_bad_bytes(self) -> None:
        with pytest.raises(WorkbookLoadError):
            load_workbook(b"\x00\x01", source_name="broken.xlsx")
