"""
Sheet reader capability.

The layout heuristics never touch a spreadsheet library directly; they
read cells through the small ``SheetReader`` surface defined here:

* ``max_row`` / ``max_column``: the used extent of the sheet
* ``cell(row, column)``: a ``CellData`` snapshot (1-based coordinates)

Two backings are provided: ``OpenpyxlSheetReader`` for ``.xlsx``
workbooks and ``GridSheetReader`` for in-memory rows (CSV files, tests).

A loaded source is wrapped in a ``LoadedWorkbook``: a caller-owned,
read-only value that is handed to every extraction call instead of being
kept as shared state inside the engine.
"""

from __future__ import annotations

import csv
import io
import zipfile
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Any, BinaryIO, Dict, List, Optional, Sequence, Union

import openpyxl
from openpyxl.utils.exceptions import InvalidFileException
from openpyxl.worksheet.worksheet import Worksheet

from trial_balance.logging_setup import get_logger

logger = get_logger("sheet_reader")

Source = Union[str, Path, bytes, BinaryIO]


class WorkbookLoadError(ValueError):
    """The source bytes could not be loaded as a spreadsheet."""


class SheetNotFoundError(KeyError):
    """The requested sheet does not exist in the loaded workbook."""

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else "Sheet not found"


@dataclass(frozen=True)
class CellData:
    """Snapshot of a single cell as seen by the heuristics.

    ``text`` is a pre-rendered display string when the backing format has
    one; ``value`` is the raw stored value; ``indent`` is the explicit
    alignment indent, or ``None`` when the cell sets none.
    """

    value: Any = None
    text: Optional[str] = None
    indent: Optional[float] = None


EMPTY_CELL = CellData()


class SheetReader(ABC):
    """Read-only access to one worksheet."""

    name: str

    @property
    @abstractmethod
    def max_row(self) -> int:
        ...

    @property
    @abstractmethod
    def max_column(self) -> int:
        ...

    @abstractmethod
    def cell(self, row: int, column: int) -> CellData:
        """Return the cell at 1-based ``(row, column)``; ``EMPTY_CELL`` if unused."""


class GridSheetReader(SheetReader):
    """Sheet backed by a list of rows.

    Entries may be raw values or ``CellData`` instances.
    """

    def __init__(self, rows: Sequence[Sequence[Any]], name: str = "Sheet1") -> None:
        self.name = name
        self._rows: List[List[CellData]] = [
            [c if isinstance(c, CellData) else CellData(value=c) for c in row]
            for row in rows
        ]

    @property
    def max_row(self) -> int:
        return len(self._rows)

    @property
    def max_column(self) -> int:
        return max((len(r) for r in self._rows), default=0)

    def cell(self, row: int, column: int) -> CellData:
        if row < 1 or column < 1 or row > len(self._rows):
            return EMPTY_CELL
        cells = self._rows[row - 1]
        if column > len(cells):
            return EMPTY_CELL
        return cells[column - 1]


class OpenpyxlSheetReader(SheetReader):
    """Sheet backed by an openpyxl ``Worksheet``.

    Cells are snapshotted on first access so that probing outside the used
    range never grows the underlying worksheet.
    """

    def __init__(self, ws: Worksheet) -> None:
        self.name = ws.title
        self._ws = ws
        self._grid: Optional[GridSheetReader] = None

    def _snapshot(self) -> GridSheetReader:
        if self._grid is None:
            ws = self._ws
            rows: List[List[CellData]] = []
            for row in ws.iter_rows(min_row=1, max_row=ws.max_row,
                                    max_col=ws.max_column):
                rows.append([_cell_data(c) for c in row])
            logger.debug("Snapshot of sheet %r: %d rows × %d cols",
                         self.name, ws.max_row, ws.max_column)
            self._grid = GridSheetReader(rows, name=self.name)
        return self._grid

    @property
    def max_row(self) -> int:
        return self._snapshot().max_row

    @property
    def max_column(self) -> int:
        return self._snapshot().max_column

    def cell(self, row: int, column: int) -> CellData:
        return self._snapshot().cell(row, column)


def _cell_data(cell: Any) -> CellData:
    """Convert an openpyxl cell (possibly a ``MergedCell``) to ``CellData``."""
    indent: Optional[float] = None
    try:
        alignment = cell.alignment
        # openpyxl reports 0.0 for cells that never set an indent
        if alignment is not None and alignment.indent:
            indent = float(alignment.indent)
    except (AttributeError, TypeError, ValueError):
        indent = None
    return CellData(value=getattr(cell, "value", None), indent=indent)


class LoadedWorkbook:
    """A loaded spreadsheet source, owned by the caller.

    Sheets are exposed read-only by name, in workbook order.
    """

    def __init__(self, sheets: Sequence[SheetReader], source_name: str = "") -> None:
        self.source_name = source_name
        self._sheets: Dict[str, SheetReader] = {s.name: s for s in sheets}

    @property
    def sheet_names(self) -> List[str]:
        return list(self._sheets)

    def sheet(self, name: str) -> SheetReader:
        try:
            return self._sheets[name]
        except KeyError:
            raise SheetNotFoundError(
                f"Sheet {name!r} not found; available: {', '.join(self._sheets)}"
            ) from None

    def __contains__(self, name: object) -> bool:
        return name in self._sheets

    def __len__(self) -> int:
        return len(self._sheets)


# ---------------------------------------------------------------------------
# Loaders
# ---------------------------------------------------------------------------

def load_workbook(source: Source, source_name: Optional[str] = None) -> LoadedWorkbook:
    """Load an ``.xlsx`` workbook from a path, raw bytes or a binary stream.

    Raises
    ------
    WorkbookLoadError
        If the source cannot be read as a spreadsheet.  No partial
        workbook is returned.
    """
    name = source_name or _source_name(source)
    handle = io.BytesIO(source) if isinstance(source, (bytes, bytearray)) else source
    try:
        wb = openpyxl.load_workbook(handle, data_only=True, rich_text=True)
    except (InvalidFileException, zipfile.BadZipFile, KeyError, OSError,
            ValueError, TypeError) as exc:
        logger.error("Unable to load workbook %r: %s", name, exc)
        raise WorkbookLoadError(f"Unable to read workbook {name!r}: {exc}") from exc

    sheets = [OpenpyxlSheetReader(wb[sheet_name]) for sheet_name in wb.sheetnames]
    logger.info("Loaded workbook %r with %d sheet(s): %s",
                name, len(sheets), ", ".join(wb.sheetnames))
    return LoadedWorkbook(sheets, source_name=name)


def load_csv(
    source: Union[str, Path, None] = None,
    sheet_name: Optional[str] = None,
    *,
    text: Optional[str] = None,
) -> LoadedWorkbook:
    """Load a CSV file as a single-sheet workbook.

    Pass the file path as ``source``, or already-decoded CSV content as
    ``text``.  Cell text is kept as typed, including leading indentation.
    """
    if text is None:
        if source is None:
            raise WorkbookLoadError("load_csv needs a path or text")
        path = Path(source)
        try:
            with open(path, encoding="utf-8-sig", newline="") as fh:
                rows = list(csv.reader(fh))
        except (OSError, UnicodeDecodeError, csv.Error) as exc:
            raise WorkbookLoadError(f"Unable to read CSV {path.name!r}: {exc}") from exc
        name = sheet_name or path.stem
    else:
        try:
            rows = list(csv.reader(io.StringIO(text)))
        except csv.Error as exc:
            raise WorkbookLoadError(f"Unable to read CSV text: {exc}") from exc
        name = sheet_name or "Sheet1"

    values = [[c if c != "" else None for c in row] for row in rows]
    logger.info("Loaded CSV sheet %r (%d rows)", name, len(values))
    return LoadedWorkbook([GridSheetReader(values, name=name)], source_name=name)


def _source_name(source: Source) -> str:
    if isinstance(source, (str, Path)):
        return Path(source).name
    return getattr(source, "name", "") or "<upload>"

