"""
Shared fixtures: small trial balance sheets in the shapes seen in practice.
"""

from __future__ import annotations

import io
import logging
from typing import Any, List, Optional

import pytest
from openpyxl import Workbook
from openpyxl.styles import Alignment

from trial_balance.config import ExtractorConfig
from trial_balance.pipeline import TrialBalanceExtractor
from trial_balance.schema import AmountSide, LedgerRow


# A Tally-style export: title block, two-row header, indented ledgers,
# a blank spacer row and an unlabelled amount row.
TALLY_ROWS: List[List[Any]] = [
    ["ABC Traders Pvt Ltd"],
    ["Trial Balance"],
    ["1-Apr-2024 to 31-Mar-2025"],
    [],
    ["Particulars", "Opening Balance", "Transactions", None, "Closing Balance"],
    [None, None, "Debit", "Credit", None],
    ["Capital Account", "50,000.00 Cr", None, None, "50,000.00 Cr"],
    ["  Owner's Capital", "50,000.00 Cr", None, None, "50,000.00 Cr"],
    ["Current Assets", "12,500.00 Dr", 30000, 20000, "22,500.00 Dr"],
    ["  Cash-in-Hand", "2,500.00 Dr", 10000, 5000, "7,500.00 Dr"],
    ["  Bank Accounts", "10,000.00 Dr", 20000, 15000, "15,000.00 Dr"],
    ["    HDFC Bank", "10,000.00 Dr", 20000, 15000, "15,000.00 Dr"],
    [],
    [None, None, 100, None, None],
    ["Grand Total", "37,500.00 Cr", 30100, 20000, "27,500.00 Cr"],
]


def build_workbook(rows: List[List[Any]], title: str = "Trial Balance",
                   merge_title: bool = True) -> Workbook:
    wb = Workbook()
    ws = wb.active
    ws.title = title
    for r, row in enumerate(rows, 1):
        for c, value in enumerate(row, 1):
            if value is not None:
                ws.cell(row=r, column=c, value=value)
    if merge_title and rows and rows[0]:
        ws.merge_cells("A1:E1")
    return wb


def workbook_bytes(wb: Workbook) -> bytes:
    buf = io.BytesIO()
    wb.save(buf)
    return buf.getvalue()


def set_indent(wb: Workbook, cell_ref: str, indent: int,
               sheet: Optional[str] = None) -> None:
    ws = wb[sheet] if sheet else wb.active
    ws[cell_ref].alignment = Alignment(indent=indent)


def ledger(name: str, level: int, row_no: int, **kwargs: Any) -> LedgerRow:
    return LedgerRow(
        ledger_name=name,
        level=level,
        opening=kwargs.pop("opening", AmountSide()),
        closing=kwargs.pop("closing", AmountSide()),
        row_no=row_no,
        **kwargs,
    )


@pytest.fixture
def tally_rows() -> List[List[Any]]:
    return [list(r) for r in TALLY_ROWS]


@pytest.fixture
def tally_xlsx() -> bytes:
    return workbook_bytes(build_workbook(TALLY_ROWS))


@pytest.fixture
def extractor() -> TrialBalanceExtractor:
    return TrialBalanceExtractor(ExtractorConfig(log_level=logging.WARNING))
