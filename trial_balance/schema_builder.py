"""
Schema Builder.

Responsible for assembling the final ``TrialBalanceDocument`` from what
the parser recovered, and for moving documents in and out of their JSON
interchange form.  Persisting documents is the caller's job; this module
only (de)serialises them.
"""

from __future__ import annotations

import csv
import json
from datetime import datetime, timezone
from io import StringIO
from pathlib import Path
from typing import Any, Dict, Optional, Union

from trial_balance.excel_parser import SheetExtraction
from trial_balance.hierarchy import build_tree, flatten_tree
from trial_balance.logging_setup import get_logger
from trial_balance.schema import (
    DOCUMENT_TYPE,
    DocumentMeta,
    LedgerNode,
    LedgerRow,
    TrialBalanceDocument,
)

logger = get_logger("schema_builder")


class SchemaBuilder:
    """Builds and serialises trial balance documents."""

    # ------------------------------------------------------------------ #
    # Assembly
    # ------------------------------------------------------------------ #

    @staticmethod
    def build_document(
        sheet_name: str,
        extraction: SheetExtraction,
        extracted_at: Optional[datetime] = None,
    ) -> TrialBalanceDocument:
        """Assemble a document; the tree wraps the same row objects as ``rows_flat``."""
        stamp = extracted_at or datetime.now(timezone.utc)
        meta = DocumentMeta(
            header_lines=list(extraction.header_lines),
            header_row=extraction.layout.header_row,
            data_start_idx=extraction.data_start,
            columns=extraction.layout.columns_dict(),
        )
        rows_flat = list(extraction.rows)
        return TrialBalanceDocument(
            sheet_name=sheet_name,
            extracted_at=stamp.isoformat(),
            meta=meta,
            rows=build_tree(rows_flat),
            rows_flat=rows_flat,
        )

    # ------------------------------------------------------------------ #
    # JSON interchange
    # ------------------------------------------------------------------ #

    @staticmethod
    def to_json(document: TrialBalanceDocument, indent: int = 2) -> str:
        """Serialise a document to a JSON string."""
        return json.dumps(document.to_dict(), indent=indent, ensure_ascii=False)

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> TrialBalanceDocument:
        """Rebuild a document from its interchange dict.

        A document that only carries ``rowsFlat`` gets its tree rebuilt; one
        that only carries ``rows`` gets its flat list from the tree.
        """
        if not isinstance(data, dict):
            raise ValueError(
                f"Document must be a JSON object, not {type(data).__name__}"
            )
        doc_type = data.get("type", DOCUMENT_TYPE)
        if doc_type != DOCUMENT_TYPE:
            raise ValueError(f"Unsupported document type: {doc_type!r}")

        tree_data = data.get("rows")
        flat_data = data.get("rowsFlat")
        if tree_data is None and flat_data is None:
            raise ValueError("Document carries neither 'rows' nor 'rowsFlat'")

        if tree_data is not None:
            rows = [LedgerNode.from_dict(node) for node in tree_data]
            if flat_data is None:
                rows_flat = flatten_tree(rows)
            else:
                rows_flat = [LedgerRow.from_dict(r) for r in flat_data]
                _share_rows(rows, rows_flat)
        else:
            rows_flat = [LedgerRow.from_dict(r) for r in flat_data]
            rows = build_tree(rows_flat)

        return TrialBalanceDocument(
            sheet_name=str(data.get("sheetName", "")),
            extracted_at=str(data.get("extractedAt", "")),
            meta=DocumentMeta.from_dict(data.get("meta") or {}),
            rows=rows,
            rows_flat=rows_flat,
            type=doc_type,
        )

    @staticmethod
    def from_json(source: Union[str, Path]) -> TrialBalanceDocument:
        """Read a document from a JSON file or JSON string."""
        if isinstance(source, Path) or (
            isinstance(source, str) and not source.lstrip().startswith(("{", "["))
        ):
            with open(Path(source), encoding="utf-8") as fh:
                data = json.load(fh)
        else:
            data = json.loads(source)

        if not isinstance(data, dict):
            raise ValueError(f"Unsupported JSON root type: {type(data).__name__}")
        document = SchemaBuilder.from_dict(data)
        logger.debug("Loaded document for sheet %r (%d rows)",
                     document.sheet_name, document.row_count)
        return document

    @staticmethod
    def to_csv_string(document: TrialBalanceDocument) -> str:
        """Serialise the flat rows to CSV text (header lines / meta excluded)."""
        buf = StringIO()
        writer = csv.writer(buf)
        writer.writerow([
            "row_no", "level", "ledger_name",
            "opening_amount", "opening_side",
            "debit", "credit",
            "closing_amount", "closing_side",
        ])
        for r in document.rows_flat:
            writer.writerow([
                r.row_no,
                r.level,
                r.ledger_name,
                "" if r.opening.amount is None else r.opening.amount,
                r.opening.side or "",
                "" if r.debit is None else r.debit,
                "" if r.credit is None else r.credit,
                "" if r.closing.amount is None else r.closing.amount,
                r.closing.side or "",
            ])
        return buf.getvalue()


def _share_rows(nodes: list[LedgerNode], rows_flat: list[LedgerRow]) -> None:
    """Point tree nodes at the flat row objects with the same ``row_no``."""
    by_row_no = {r.row_no: r for r in rows_flat}
    stack = list(nodes)
    while stack:
        node = stack.pop()
        shared = by_row_no.get(node.row.row_no)
        if shared is not None and shared == node.row:
            node.row = shared
        stack.extend(node.children)
