"""
Configuration module for the Trial Balance engine.

All tuneable parameters (scan windows, keyword lists, export styling and
role permissions) live here.  Nothing is hard-coded in business logic
modules.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import FrozenSet, Tuple


@dataclass(frozen=True)
class ScanConfig:
    """Controls the header / column / data-boundary heuristics."""

    # Scan window for the column locator.  Not a sheet size limit.
    max_scan_rows: int = 40
    max_scan_cols: int = 40

    # How many rows below the header row may still be title / label residue.
    data_start_lookahead: int = 25

    # Column width scanned when collecting the free-text lines above the table
    header_scan_cols: int = 40

    # Leading whitespace characters per indentation level
    indent_width: int = 2

    # A row is the header row if it (or the next ``header_row_span - 1``
    # rows) carries one of these alongside "particular".
    particulars_keyword: str = "particular"
    header_keywords: Tuple[str, ...] = (
        "opening", "closing", "debit", "credit", "transaction",
    )
    header_row_span: int = 3

    # Particulars-column text that marks a residual title / header row
    residual_keywords: Tuple[str, ...] = (
        "trial balance", "particular", "opening", "closing", "transaction",
    )
    residual_exact: Tuple[str, ...] = ("debit", "credit")


@dataclass(frozen=True)
class ExportConfig:
    """Controls the layout of exported workbooks."""

    sheet_title: str = "Trial Balance"

    # Particulars | Opening | Debit | Credit | Closing
    column_widths: Tuple[float, ...] = (48.0, 20.0, 16.0, 16.0, 20.0)

    title_font_size: int = 14
    body_font_size: int = 11
    border_style: str = "thin"
    amount_number_format: str = "#,##0.00"


@dataclass(frozen=True)
class MatchingConfig:
    """Controls fuzzy sheet-name suggestion."""

    # Target the sheet names are compared against
    target_name: str = "Trial Balance"

    # Minimum similarity score (0–100) to accept a sheet as the suggestion
    fuzzy_threshold: float = 70.0

    # If two sheets score within this delta of each other, the suggestion is
    # flagged as ambiguous.
    fuzzy_ambiguity_delta: float = 5.0


@dataclass(frozen=True)
class AccessConfig:
    """Which opaque role tokens may run each operation."""

    extract_roles: FrozenSet[str] = frozenset({"DOC_SPECIALIST"})
    export_roles: FrozenSet[str] = frozenset(
        {"DOC_SPECIALIST", "TEAM_LEAD", "MANAGER", "CA"}
    )


@dataclass(frozen=True)
class ValidationConfig:
    """Controls the extraction quality report."""

    # Report rows with an empty ledger name that still carry amounts
    flag_blank_names: bool = True

    # Report rows whose level skips a depth and were attached as roots
    flag_skipped_depth: bool = True

    # When True, an extraction that yields no ledger rows is an error rather
    # than a warning.
    error_on_empty: bool = False


@dataclass(frozen=True)
class ExtractorConfig:
    """Top-level configuration aggregating all sub-configs."""

    scan: ScanConfig = field(default_factory=ScanConfig)
    export: ExportConfig = field(default_factory=ExportConfig)
    matching: MatchingConfig = field(default_factory=MatchingConfig)
    access: AccessConfig = field(default_factory=AccessConfig)
    validation: ValidationConfig = field(default_factory=ValidationConfig)

    # Logging level for the extraction audit trail
    log_level: int = logging.INFO

    # When True, ``extract`` raises if the quality report carries errors
    # instead of returning the low-quality document.
    strict_mode: bool = False
