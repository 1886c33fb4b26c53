"""
Trial balance data models.

Defines the normalized document produced by extraction (the unit of
exchange with callers) and the typed records carried through the parser,
the hierarchy builder and the exporter.

All row and column indices are 1-based sheet coordinates.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


DOCUMENT_TYPE = "TRIAL_BALANCE"


class Role(str, Enum):
    """Role tokens issued by the surrounding application.

    The engine treats the role as opaque; these are the values the
    default ``AccessConfig`` knows about.
    """

    DOC_SPECIALIST = "DOC_SPECIALIST"
    TEAM_LEAD = "TEAM_LEAD"
    MANAGER = "MANAGER"
    CA = "CA"


class Side(str, Enum):
    DEBIT = "Dr"
    CREDIT = "Cr"


# ---------------------------------------------------------------------------
# Ledger records
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class AmountSide:
    """A balance cell's parsed value and optional explicit Dr/Cr marker."""

    amount: Optional[float] = None
    side: Optional[str] = None  # "Dr" | "Cr" | None

    @property
    def is_empty(self) -> bool:
        return self.amount is None and self.side is None

    def to_dict(self) -> Dict[str, Any]:
        return {"amount": self.amount, "side": self.side}

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "AmountSide":
        if not data:
            return cls()
        amount = data.get("amount")
        return cls(
            amount=float(amount) if amount is not None else None,
            side=data.get("side"),
        )


@dataclass
class LedgerRow:
    """One account line of the trial balance."""

    ledger_name: str
    level: int
    opening: AmountSide = field(default_factory=AmountSide)
    debit: Optional[float] = None
    credit: Optional[float] = None
    closing: AmountSide = field(default_factory=AmountSide)
    row_no: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ledgerName": self.ledger_name,
            "level": self.level,
            "opening": self.opening.to_dict(),
            "transactions": {"debit": self.debit, "credit": self.credit},
            "closing": self.closing.to_dict(),
            "rowNo": self.row_no,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LedgerRow":
        transactions = data.get("transactions") or {}
        debit = transactions.get("debit")
        credit = transactions.get("credit")
        return cls(
            ledger_name=data.get("ledgerName", ""),
            level=max(int(data.get("level", 0)), 0),
            opening=AmountSide.from_dict(data.get("opening")),
            debit=float(debit) if debit is not None else None,
            credit=float(credit) if credit is not None else None,
            closing=AmountSide.from_dict(data.get("closing")),
            row_no=int(data.get("rowNo", 0)),
        )


@dataclass
class LedgerNode:
    """Tree form of a ledger row.

    ``row`` is the same ``LedgerRow`` object that appears in the flat
    sequence; the tree only adds parent/child structure.
    """

    row: LedgerRow
    children: List["LedgerNode"] = field(default_factory=list)

    @property
    def is_leaf(self) -> bool:
        return not self.children

    def to_dict(self) -> Dict[str, Any]:
        data = self.row.to_dict()
        # Leaves carry no "children" key at all
        if self.children:
            data["children"] = [child.to_dict() for child in self.children]
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LedgerNode":
        return cls(
            row=LedgerRow.from_dict(data),
            children=[cls.from_dict(c) for c in data.get("children") or []],
        )


# ---------------------------------------------------------------------------
# Layout & document
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ColumnLayout:
    """Where the header sits and which columns hold the five fields."""

    header_row: int
    particulars_col: int
    opening_col: int
    debit_col: int
    credit_col: int
    closing_col: int
    detected: bool = True  # False when the hard-coded fallback was used

    @classmethod
    def fallback(cls) -> "ColumnLayout":
        return cls(
            header_row=1,
            particulars_col=1,
            opening_col=2,
            debit_col=3,
            credit_col=4,
            closing_col=5,
            detected=False,
        )

    def columns_dict(self) -> Dict[str, int]:
        return {
            "particularsCol": self.particulars_col,
            "openingCol": self.opening_col,
            "debitCol": self.debit_col,
            "creditCol": self.credit_col,
            "closingCol": self.closing_col,
        }


@dataclass
class DocumentMeta:
    header_lines: List[str]
    header_row: int
    data_start_idx: int
    columns: Dict[str, int]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "headerLines": list(self.header_lines),
            "headerRow": self.header_row,
            "dataStartIdx": self.data_start_idx,
            "columns": dict(self.columns),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DocumentMeta":
        return cls(
            header_lines=[str(line) for line in data.get("headerLines") or []],
            header_row=int(data.get("headerRow", 1)),
            data_start_idx=int(data.get("dataStartIdx", 2)),
            columns={k: int(v) for k, v in (data.get("columns") or {}).items()},
        )


@dataclass
class TrialBalanceDocument:
    """Normalized result of one (workbook, sheet) extraction."""

    sheet_name: str
    extracted_at: str  # ISO-8601
    meta: DocumentMeta
    rows: List[LedgerNode] = field(default_factory=list)
    rows_flat: List[LedgerRow] = field(default_factory=list)
    type: str = DOCUMENT_TYPE

    @property
    def row_count(self) -> int:
        return len(self.rows_flat)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "sheetName": self.sheet_name,
            "extractedAt": self.extracted_at,
            "meta": self.meta.to_dict(),
            "rows": [node.to_dict() for node in self.rows],
            "rowsFlat": [row.to_dict() for row in self.rows_flat],
        }
