"""
Cell and amount normalization.

Transforms raw spreadsheet cells into flat strings and balance text into
``AmountSide`` values.  Every function here is total: malformed input
degrades to ``""`` or ``None`` instead of raising.

Amount parsing (in order):
1. Strip leading / trailing whitespace; empty → no amount
2. Remove thousands separators
3. Match ``<number> [Dr|Cr]`` (marker optional, case-insensitive)
4. Otherwise fall back to a plain numeric parse
"""

from __future__ import annotations

import math
import re
from typing import Any, Optional

from trial_balance.logging_setup import get_logger
from trial_balance.schema import AmountSide, Side
from trial_balance.sheet_reader import CellData

logger = get_logger("normalizer")

_AMOUNT_SIDE_RE = re.compile(r"^(-?\d+(?:\.\d+)?)\s*(dr|cr)?$", re.IGNORECASE)

_MULTI_SPACE_RE = re.compile(r"\s+")


# ---------------------------------------------------------------------------
# Cell text
# ---------------------------------------------------------------------------

def cell_text(cell: Optional[CellData]) -> str:
    """Return the flat text of a cell; never ``None``.

    Resolution order: display text (if non-blank), then composite raw
    values (rich-text runs, cached formula result, formula source), then
    the raw value stringified.
    """
    if cell is None:
        return ""
    try:
        if cell.text is not None and str(cell.text).strip():
            return str(cell.text)
        return _value_text(cell.value)
    except Exception as exc:  # noqa: BLE001 - malformed cells read as blank
        logger.debug("Unreadable cell %r: %s", cell, exc)
        return ""


def _value_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value

    # openpyxl CellRichText and plain run lists: str runs or TextBlocks
    if isinstance(value, (list, tuple)):
        return "".join(_run_text(run) for run in value)

    if isinstance(value, dict):
        if value.get("richText") is not None:
            return "".join(_run_text(run) for run in value["richText"])
        if value.get("result") is not None:
            return _value_text(value["result"])
        if value.get("formula") is not None:
            return str(value["formula"])
        return ""

    # openpyxl ArrayFormula / DataTableFormula expose the source as ``text``
    text = getattr(value, "text", None)
    if isinstance(text, str):
        return text

    return str(value)


def _run_text(run: Any) -> str:
    if isinstance(run, str):
        return run
    if isinstance(run, dict):
        return str(run.get("text") or "")
    return str(getattr(run, "text", "") or "")


def collapse_whitespace(text: str) -> str:
    """Trim and collapse internal whitespace runs to single spaces."""
    return _MULTI_SPACE_RE.sub(" ", text).strip()


def keyword_text(cell: Optional[CellData]) -> str:
    """Lower-cased, whitespace-collapsed cell text used for keyword tests."""
    return collapse_whitespace(cell_text(cell)).lower()


# ---------------------------------------------------------------------------
# Amounts
# ---------------------------------------------------------------------------

def parse_amount_side(text: Any) -> AmountSide:
    """Parse a balance cell such as ``"1,234.50 Dr"``.

    The side is only ever taken from an explicit trailing marker, never
    inferred from the sign of the amount.
    """
    cleaned = _clean_amount(text)
    if not cleaned:
        return AmountSide()

    m = _AMOUNT_SIDE_RE.match(cleaned)
    if m:
        side = None
        if m.group(2):
            side = Side.DEBIT.value if m.group(2).lower() == "dr" else Side.CREDIT.value
        return AmountSide(amount=float(m.group(1)), side=side)

    amount = _to_float(cleaned)
    if amount is None:
        logger.debug("parse_amount_side: no amount in %r", text)
    return AmountSide(amount=amount, side=None)


def parse_number(text: Any) -> Optional[float]:
    """Parse a plain numeric cell (debit / credit movements)."""
    cleaned = _clean_amount(text)
    if not cleaned:
        return None
    return _to_float(cleaned)


def _clean_amount(text: Any) -> str:
    if text is None:
        return ""
    return str(text).strip().replace(",", "")


def _to_float(text: str) -> Optional[float]:
    try:
        value = float(text)
    except (ValueError, TypeError, OverflowError):
        return None
    if math.isnan(value) or math.isinf(value):
        return None
    return value
