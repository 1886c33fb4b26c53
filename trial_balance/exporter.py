"""
Excel exporter.

Writes a ``TrialBalanceDocument`` back out as a formatted workbook that
the parser can read again:

    header lines (merged, bold)
    <blank>
    Particulars | Opening Balance |      Transactions      | Closing Balance
                |                 |   Debit    |  Credit   |
    ledger rows, Particulars indented by level ...
"""

from __future__ import annotations

import io
from decimal import Decimal
from pathlib import Path
from typing import Any, Optional, Union

from openpyxl import Workbook
from openpyxl.cell.cell import ILLEGAL_CHARACTERS_RE, Cell
from openpyxl.styles import Alignment, Border, Font, Side
from openpyxl.utils import get_column_letter
from openpyxl.workbook.child import INVALID_TITLE_REGEX
from openpyxl.worksheet.worksheet import Worksheet

from trial_balance.config import ExportConfig
from trial_balance.hierarchy import flatten_tree
from trial_balance.logging_setup import get_logger
from trial_balance.schema import AmountSide, LedgerRow, TrialBalanceDocument

logger = get_logger("exporter")

_NUM_COLS = 5

# Largest indent an xlsx alignment can carry
MAX_INDENT = 255


def format_amount(value: float) -> str:
    """Render ``2000.0`` as ``"2000"`` and ``1234.5`` as ``"1234.5"``."""
    value = float(value)
    if value.is_integer():
        return str(int(value))
    return format(Decimal(repr(value)), "f")


def format_amount_side(balance: AmountSide) -> Union[str, float, None]:
    """Opening / closing cell content: ``"<amount> <side>"``, the bare amount, or blank."""
    if balance.amount is None:
        return None
    if balance.side:
        return f"{format_amount(balance.amount)} {balance.side}"
    return balance.amount


def _write_value(ws: Worksheet, row: int, col: int, value: Any) -> Cell:
    """Write ``value``; strings are stored as literal text, never as formulas."""
    if not isinstance(value, str):
        return ws.cell(row=row, column=col, value=value)
    cell = ws.cell(row=row, column=col, value=ILLEGAL_CHARACTERS_RE.sub("", value))
    cell.data_type = "s"
    return cell


class ExcelExporter:
    """Serialise trial balance documents to ``.xlsx``.

    Parameters
    ----------
    config:
        Sheet title, column widths and fonts.
    """

    def __init__(self, config: Optional[ExportConfig] = None) -> None:
        self._config = config or ExportConfig()
        side = Side(style=self._config.border_style)
        self._border = Border(left=side, right=side, top=side, bottom=side)

    def export(
        self,
        document: Optional[TrialBalanceDocument],
        sheet_title: Optional[str] = None,
    ) -> Optional[Workbook]:
        """Build a workbook for ``document``; ``None`` when there is no document."""
        if document is None:
            logger.info("Export requested without a document; nothing to do")
            return None

        wb = Workbook()
        ws = wb.active
        title = INVALID_TITLE_REGEX.sub("", sheet_title or "").strip()
        ws.title = title[:31] or self._config.sheet_title

        row = self._write_header_lines(ws, document.meta.header_lines)
        row += 1  # blank separator
        row = self._write_column_header(ws, row)
        rows = flatten_tree(document.rows)
        for ledger in rows:
            self._write_ledger_row(ws, row, ledger)
            row += 1

        for idx, width in enumerate(self._config.column_widths[:_NUM_COLS], 1):
            ws.column_dimensions[get_column_letter(idx)].width = width

        logger.info("Exported sheet '%s' from '%s': %d header line(s), %d ledger row(s)",
                    ws.title, document.sheet_name, len(document.meta.header_lines),
                    len(rows))
        return wb

    def to_bytes(self, document: Optional[TrialBalanceDocument],
                 sheet_title: Optional[str] = None) -> Optional[bytes]:
        wb = self.export(document, sheet_title)
        if wb is None:
            return None
        buf = io.BytesIO()
        wb.save(buf)
        return buf.getvalue()

    def save(self, document: Optional[TrialBalanceDocument],
             path: Union[str, Path], sheet_title: Optional[str] = None) -> Optional[Path]:
        wb = self.export(document, sheet_title)
        if wb is None:
            return None
        path = Path(path)
        wb.save(path)
        return path

    # ------------------------------------------------------------------ #
    # Layout
    # ------------------------------------------------------------------ #

    def _write_header_lines(self, ws: Worksheet, lines: list[str]) -> int:
        """Write each header line as a merged full-width row; return the next free row."""
        last_col = get_column_letter(_NUM_COLS)
        row = 1
        for i, line in enumerate(lines):
            ws.merge_cells(f"A{row}:{last_col}{row}")
            cell = _write_value(ws, row, 1, line)
            if i == 0:
                cell.font = Font(bold=True, size=self._config.title_font_size)
            else:
                cell.font = Font(bold=True, size=self._config.body_font_size)
            cell.alignment = Alignment(horizontal="center", vertical="center")
            row += 1
        return row

    def _write_column_header(self, ws: Worksheet, row: int) -> int:
        """Two-row header; return the first data row."""
        sub = row + 1
        bold = Font(bold=True, size=self._config.body_font_size)
        center = Alignment(horizontal="center", vertical="center", wrap_text=True)

        ws.cell(row=row, column=1, value="Particulars")
        ws.cell(row=row, column=2, value="Opening Balance")
        ws.cell(row=row, column=3, value="Transactions")
        ws.cell(row=sub, column=3, value="Debit")
        ws.cell(row=sub, column=4, value="Credit")
        ws.cell(row=row, column=5, value="Closing Balance")

        ws.merge_cells(start_row=row, start_column=1, end_row=sub, end_column=1)
        ws.merge_cells(start_row=row, start_column=2, end_row=sub, end_column=2)
        ws.merge_cells(start_row=row, start_column=3, end_row=row, end_column=4)
        ws.merge_cells(start_row=row, start_column=5, end_row=sub, end_column=5)

        for r in (row, sub):
            for c in range(1, _NUM_COLS + 1):
                cell = ws.cell(row=r, column=c)
                cell.font = bold
                cell.alignment = center
                cell.border = self._border
        return sub + 1

    def _write_ledger_row(self, ws: Worksheet, row: int, ledger: LedgerRow) -> None:
        values = (
            ledger.ledger_name,
            format_amount_side(ledger.opening),
            ledger.debit,
            ledger.credit,
            format_amount_side(ledger.closing),
        )
        for col, value in enumerate(values, 1):
            cell = _write_value(ws, row, col, value)
            cell.border = self._border
            if col == 1:
                cell.alignment = Alignment(
                    horizontal="left", vertical="center",
                    indent=min(ledger.level, MAX_INDENT),
                )
            else:
                cell.alignment = Alignment(horizontal="right", vertical="center")
                if isinstance(value, float):
                    cell.number_format = self._config.amount_number_format
