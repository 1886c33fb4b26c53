"""
Trial Balance Sheet Parser.

Handles trial balance exports whose layout is not known in advance:
- Title / company / period lines of any height above the table
- Header row at any position, columns in any order, blank spacer columns
- Single-row or two-row ("Transactions" over "Debit | Credit") headers
- Account hierarchy expressed by cell indent or leading spaces
- Balances written as ``"1,234.50 Dr"``, plain numbers or negatives

The parser locates the header row and the five semantic columns by
keyword, finds where the ledger data actually starts, and turns every
data row into a ``LedgerRow``.  Structural ambiguity never raises: each
step falls back to a default and logs what it did.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from trial_balance.config import ScanConfig
from trial_balance.logging_setup import get_logger
from trial_balance.normalizer import (
    cell_text,
    collapse_whitespace,
    keyword_text,
    parse_amount_side,
    parse_number,
)
from trial_balance.schema import ColumnLayout, LedgerRow
from trial_balance.sheet_reader import CellData, SheetReader

logger = get_logger("excel_parser")


@dataclass
class SheetExtraction:
    """Everything the parser recovered from one sheet, before tree building."""

    layout: ColumnLayout
    header_lines: List[str]
    data_start: int
    rows: List[LedgerRow]


class TrialBalanceParser:
    """Extract ledger rows from a single trial balance sheet.

    Parameters
    ----------
    config:
        Scan windows and keyword lists.  Defaults suit Tally-style exports.
    """

    def __init__(self, config: Optional[ScanConfig] = None) -> None:
        self._config = config or ScanConfig()

    def parse_sheet(self, reader: SheetReader) -> SheetExtraction:
        """Run header detection, boundary detection and row extraction."""
        logger.info("Parsing sheet: %s (%d rows × %d cols)",
                    reader.name, reader.max_row, reader.max_column)

        layout = self.locate_columns(reader)
        header_lines = self.capture_header_lines(reader, layout.header_row)
        data_start = self.find_data_start(
            reader, layout.header_row, layout.particulars_col
        )
        rows = self.extract_rows(reader, layout, data_start)

        logger.info("Sheet '%s': header_row=%d, data_start=%d, %d header line(s), "
                    "%d ledger row(s)", reader.name, layout.header_row,
                    data_start, len(header_lines), len(rows))
        return SheetExtraction(layout, header_lines, data_start, rows)

    # ------------------------------------------------------------------ #
    # Header line capture
    # ------------------------------------------------------------------ #

    def capture_header_lines(self, reader: SheetReader, header_row: int) -> List[str]:
        """Collect the free-text lines (title, period) above the header row."""
        width = self._config.header_scan_cols
        lines: List[str] = []
        seen_lines: set[str] = set()

        for r in range(1, header_row):
            parts: List[str] = []
            for c in range(1, width + 1):
                text = collapse_whitespace(cell_text(reader.cell(r, c)))
                # Merged ranges may repeat the same text across cells
                if text and text not in parts:
                    parts.append(text)
            line = collapse_whitespace(" ".join(parts))
            if line and line not in seen_lines:
                seen_lines.add(line)
                lines.append(line)

        logger.debug("Header lines above row %d: %r", header_row, lines)
        return lines

    # ------------------------------------------------------------------ #
    # Column locator
    # ------------------------------------------------------------------ #

    def locate_columns(self, reader: SheetReader) -> ColumnLayout:
        """Find the header row and the Particulars/Opening/Debit/Credit/Closing columns."""
        cfg = self._config
        header_row = self._find_header_row(reader)
        if header_row is None:
            layout = ColumnLayout.fallback()
            logger.warning("Sheet '%s': no header row within %d×%d window; "
                           "using fallback columns %s", reader.name,
                           cfg.max_scan_rows, cfg.max_scan_cols,
                           layout.columns_dict())
            return layout

        def first(pred: Callable[[str], bool]) -> Optional[int]:
            return self._first_column(reader, header_row, pred)

        found: Dict[str, Optional[int]] = {
            "particulars": first(lambda t: cfg.particulars_keyword in t),
            "opening": first(lambda t: "opening" in t),
            "debit": first(lambda t: t == "debit"),
            "credit": first(lambda t: t == "credit"),
            "closing": first(lambda t: "closing" in t),
        }
        # Compound labels such as "Transactions Debit"
        if found["debit"] is None:
            found["debit"] = first(lambda t: "debit" in t)
        if found["credit"] is None:
            found["credit"] = first(lambda t: "credit" in t)

        resolved: Dict[str, int] = {}
        previous = 0
        for key in ("particulars", "opening", "debit", "credit", "closing"):
            col = found[key]
            if col is None:
                col = previous + 1
                logger.warning("Sheet '%s': %s column not labelled; assuming column %d",
                               reader.name, key, col)
            resolved[key] = col
            previous = col

        layout = ColumnLayout(
            header_row=header_row,
            particulars_col=resolved["particulars"],
            opening_col=resolved["opening"],
            debit_col=resolved["debit"],
            credit_col=resolved["credit"],
            closing_col=resolved["closing"],
        )
        logger.info("Sheet '%s': header row %d, columns %s",
                    reader.name, header_row, layout.columns_dict())
        return layout

    def _find_header_row(self, reader: SheetReader) -> Optional[int]:
        cfg = self._config
        last_row = min(cfg.max_scan_rows, reader.max_row)

        for r in range(1, last_row + 1):
            if not self._row_has(reader, r, lambda t: cfg.particulars_keyword in t):
                continue
            span_end = min(r + cfg.header_row_span - 1, reader.max_row)
            for rr in range(r, span_end + 1):
                if self._row_has(
                    reader, rr, lambda t: any(k in t for k in cfg.header_keywords)
                ):
                    return r
        return None

    def _row_has(self, reader: SheetReader, row: int,
                 pred: Callable[[str], bool]) -> bool:
        last_col = min(self._config.max_scan_cols, reader.max_column)
        for c in range(1, last_col + 1):
            text = keyword_text(reader.cell(row, c))
            if text and pred(text):
                return True
        return False

    def _first_column(self, reader: SheetReader, header_row: int,
                      pred: Callable[[str], bool]) -> Optional[int]:
        """First column matching ``pred`` in the header row or the rows below it."""
        span_end = min(header_row + self._config.header_row_span - 1, reader.max_row)
        last_col = min(self._config.max_scan_cols, reader.max_column)
        for r in range(header_row, span_end + 1):
            for c in range(1, last_col + 1):
                text = keyword_text(reader.cell(r, c))
                if text and pred(text):
                    return c
        return None

    # ------------------------------------------------------------------ #
    # Data boundary
    # ------------------------------------------------------------------ #

    def find_data_start(self, reader: SheetReader, header_row: int,
                        particulars_col: int) -> int:
        """Return the first row below the header that holds a real ledger line."""
        last_row = min(header_row + self._config.data_start_lookahead, reader.max_row)
        for r in range(header_row, last_row + 1):
            text = keyword_text(reader.cell(r, particulars_col))
            if not text or self._is_residual_header(text):
                continue
            return r

        logger.warning("Sheet '%s': no ledger data within %d rows of header row %d; "
                       "assuming row %d", reader.name,
                       self._config.data_start_lookahead, header_row, header_row + 1)
        return header_row + 1

    def _is_residual_header(self, text: str) -> bool:
        cfg = self._config
        if text in cfg.residual_exact:
            return True
        return any(k in text for k in cfg.residual_keywords)

    # ------------------------------------------------------------------ #
    # Row extraction
    # ------------------------------------------------------------------ #

    def extract_rows(self, reader: SheetReader, layout: ColumnLayout,
                     data_start: int) -> List[LedgerRow]:
        """Turn every non-empty row from ``data_start`` onward into a ``LedgerRow``."""
        rows: List[LedgerRow] = []

        for r in range(data_start, reader.max_row + 1):
            name_cell = reader.cell(r, layout.particulars_col)
            raw_name = cell_text(name_cell)
            opening = cell_text(reader.cell(r, layout.opening_col))
            debit = cell_text(reader.cell(r, layout.debit_col))
            credit = cell_text(reader.cell(r, layout.credit_col))
            closing = cell_text(reader.cell(r, layout.closing_col))

            ledger_name = raw_name.lstrip()
            has_amounts = any(v.strip() for v in (opening, debit, credit, closing))
            if not ledger_name and not has_amounts:
                continue
            if not ledger_name:
                logger.debug("Row %d has amounts but no ledger name; kept", r)

            rows.append(LedgerRow(
                ledger_name=ledger_name,
                level=self._indent_level(name_cell, raw_name, ledger_name),
                opening=parse_amount_side(opening),
                debit=parse_number(debit),
                credit=parse_number(credit),
                closing=parse_amount_side(closing),
                row_no=r,
            ))

        return rows

    def _indent_level(self, cell: CellData, raw_name: str, ledger_name: str) -> int:
        """Explicit cell indent wins; otherwise leading whitespace / indent width."""
        if cell.indent is not None:
            try:
                return max(int(cell.indent), 0)
            except (TypeError, ValueError, OverflowError):
                pass
        leading = len(raw_name) - len(ledger_name)
        return leading // max(self._config.indent_width, 1)
