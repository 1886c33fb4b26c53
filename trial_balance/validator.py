"""
Extraction Quality Layer.

Extraction never fails once a workbook is loaded; it always produces a
document, possibly of low quality.  This layer inspects a finished
``TrialBalanceDocument`` so callers can judge how much to trust it.
It does **not** check accounting correctness (debits vs credits).

Checks performed
----------------
1. **Fallback layout**: no header row was found and the default
   columns 1..5 were assumed.
2. **Column collisions**: two semantic fields resolved to one column.
3. **Empty extraction**: no ledger rows at all.
4. **Blank ledger names**: rows kept because they carry amounts but have
   no label (often unlabelled subtotals).
5. **Skipped depth**: rows indented more than one level below the
   previous group; they were attached as roots, which can also make the
   tree's preorder differ from source row order.
"""

from __future__ import annotations

from typing import Optional

from trial_balance.config import ValidationConfig
from trial_balance.hierarchy import flatten_tree, orphan_rows
from trial_balance.logging_setup import get_logger
from trial_balance.schema import ColumnLayout, TrialBalanceDocument

logger = get_logger("validator")


class ValidationReport:
    """Accumulates errors and warnings during a quality pass."""

    def __init__(self) -> None:
        self.errors: list[str] = []
        self.warnings: list[str] = []

    @property
    def is_valid(self) -> bool:
        return len(self.errors) == 0

    def add_error(self, msg: str) -> None:
        self.errors.append(msg)
        logger.error("Quality ERROR: %s", msg)

    def add_warning(self, msg: str) -> None:
        self.warnings.append(msg)
        logger.warning("Quality WARNING: %s", msg)

    def to_dict(self) -> dict[str, object]:
        return {
            "valid": self.is_valid,
            "errors": list(self.errors),
            "warnings": list(self.warnings),
        }


class Validator:
    """Builds a ``ValidationReport`` for an extracted document.

    Parameters
    ----------
    config:
        Which checks to run and how severe they are.
    """

    def __init__(self, config: Optional[ValidationConfig] = None) -> None:
        self._config = config or ValidationConfig()

    def validate(
        self,
        document: TrialBalanceDocument,
        layout: Optional[ColumnLayout] = None,
    ) -> ValidationReport:
        """Run all checks and return a ``ValidationReport``.

        ``layout`` is the parser's column layout for the same sheet; without
        it the fallback check is skipped, since a stored document does not
        record how its columns were found.
        """
        report = ValidationReport()
        self._check_layout(document, layout, report)
        self._check_rows(document, report)
        if self._config.flag_blank_names:
            self._check_blank_names(document, report)
        if self._config.flag_skipped_depth:
            self._check_depth(document, report)
        return report

    # ------------------------------------------------------------------ #
    # Individual checks
    # ------------------------------------------------------------------ #

    def _check_layout(
        self,
        document: TrialBalanceDocument,
        layout: Optional[ColumnLayout],
        report: ValidationReport,
    ) -> None:
        meta = document.meta
        if layout is not None and not layout.detected:
            report.add_warning(
                f"Sheet '{document.sheet_name}': no header row detected; "
                f"default columns 1-5 assumed"
            )

        seen: dict[int, str] = {}
        for key, col in meta.columns.items():
            if col in seen:
                report.add_warning(
                    f"Columns '{seen[col]}' and '{key}' both resolved to column {col}"
                )
            else:
                seen[col] = key

    def _check_rows(
        self, document: TrialBalanceDocument, report: ValidationReport
    ) -> None:
        if document.rows_flat:
            return
        msg = f"Sheet '{document.sheet_name}': no ledger rows extracted"
        if self._config.error_on_empty:
            report.add_error(msg)
        else:
            report.add_warning(msg)

    def _check_blank_names(
        self, document: TrialBalanceDocument, report: ValidationReport
    ) -> None:
        for row in document.rows_flat:
            if not row.ledger_name:
                report.add_warning(
                    f"Row {row.row_no} has amounts but no ledger name"
                )

    def _check_depth(
        self, document: TrialBalanceDocument, report: ValidationReport
    ) -> None:
        for row in orphan_rows(document.rows_flat):
            report.add_warning(
                f"Row {row.row_no} ({row.ledger_name!r}) at level {row.level} "
                f"has no parent at level {row.level - 1}; placed at top level"
            )

        tree_order = [row.row_no for row in flatten_tree(document.rows)]
        if tree_order != [row.row_no for row in document.rows_flat]:
            report.add_warning(
                f"Sheet '{document.sheet_name}': tree order differs from source "
                f"row order"
            )
