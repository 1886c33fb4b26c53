"""
Extraction Orchestrator.

The central entry point that wires together every layer:

    Source  →  LoadedWorkbook  →  Column Locator / Header Lines
            →  Data Boundary  →  Row Extractor  →  Hierarchy Builder
            →  TrialBalanceDocument  (→  Quality Report)

    TrialBalanceDocument  →  Tree Flattener  →  Excel Exporter  →  .xlsx

The extractor keeps no workbook state: the caller owns the
``LoadedWorkbook`` returned by ``load`` and passes it to each
``extract`` / ``reparse`` call.  Every call yields a fresh document.

Usage
-----
>>> from trial_balance.pipeline import TrialBalanceExtractor
>>> extractor = TrialBalanceExtractor()
>>> wb = extractor.load("tb.xlsx")
>>> doc = extractor.extract(wb, role="DOC_SPECIALIST")
>>> extractor.export(doc, role="CA").save("tb-normalized.xlsx")
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Collection, Dict, Optional, Union

from openpyxl import Workbook

from trial_balance.config import ExtractorConfig
from trial_balance.excel_parser import TrialBalanceParser
from trial_balance.exporter import ExcelExporter
from trial_balance.fuzzy_matcher import SheetMatcher
from trial_balance.logging_setup import configure_logging, get_logger
from trial_balance.schema import ColumnLayout, Role, TrialBalanceDocument
from trial_balance.schema_builder import SchemaBuilder
from trial_balance.sheet_reader import (
    LoadedWorkbook,
    Source,
    WorkbookLoadError,
    load_csv,
    load_workbook,
)
from trial_balance.validator import ValidationReport, Validator

logger = get_logger("pipeline")

RoleToken = Union[str, Role, None]


class AccessDenied(PermissionError):
    """The caller's role may not run the requested operation."""


@dataclass
class ExtractionResult:
    """A document together with its quality report."""

    document: TrialBalanceDocument
    report: ValidationReport
    layout: ColumnLayout

    def to_dict(self) -> Dict[str, Any]:
        return {
            "document": self.document.to_dict(),
            "report": self.report.to_dict(),
        }


class TrialBalanceExtractor:
    """Orchestrates extraction and export.

    Parameters
    ----------
    config:
        All tuneable knobs.  Defaults suit typical accounting-package exports.
    """

    def __init__(self, config: Optional[ExtractorConfig] = None) -> None:
        self._config = config or ExtractorConfig()

        # Bootstrap logging before anything else
        configure_logging(level=self._config.log_level)

        self._parser = TrialBalanceParser(self._config.scan)
        self._exporter = ExcelExporter(self._config.export)
        self._matcher = SheetMatcher(self._config.matching)
        self._validator = Validator(self._config.validation)

        logger.info(
            "Extractor initialised: scan=%d×%d, lookahead=%d, strict=%s",
            self._config.scan.max_scan_rows,
            self._config.scan.max_scan_cols,
            self._config.scan.data_start_lookahead,
            self._config.strict_mode,
        )

    # ------------------------------------------------------------------ #
    # Loading
    # ------------------------------------------------------------------ #

    def load(self, source: Source, filename: Optional[str] = None) -> LoadedWorkbook:
        """Load a workbook from a path, raw bytes or a binary stream.

        ``filename`` selects the format when ``source`` is not a path.

        Raises
        ------
        WorkbookLoadError
            Unreadable or unsupported source.
        """
        name = filename or (Path(source).name if isinstance(source, (str, Path)) else "")
        suffix = Path(name).suffix.lower() if name else ".xlsx"

        if suffix == ".csv":
            if isinstance(source, (str, Path)):
                return load_csv(Path(source))
            raw = source if isinstance(source, (bytes, bytearray)) else source.read()
            try:
                text = bytes(raw).decode("utf-8-sig")
            except UnicodeDecodeError as exc:
                raise WorkbookLoadError(f"Unable to read CSV {name!r}: {exc}") from exc
            return load_csv(text=text, sheet_name=Path(name).stem)

        if suffix not in (".xlsx", ".xlsm"):
            raise WorkbookLoadError(f"Unsupported file type: {suffix or name!r}")
        return load_workbook(source, source_name=name or None)

    def suggest_sheet(self, workbook: LoadedWorkbook) -> Optional[str]:
        """Name of the sheet most likely to hold the trial balance."""
        names = workbook.sheet_names
        if not names:
            return None
        candidate = self._matcher.suggest(names)
        if candidate is None:
            logger.info("No sheet resembles %r; defaulting to %r",
                        self._config.matching.target_name, names[0])
            return names[0]
        return candidate.sheet_name

    # ------------------------------------------------------------------ #
    # Extraction
    # ------------------------------------------------------------------ #

    def extract(
        self,
        workbook: LoadedWorkbook,
        sheet_name: Optional[str] = None,
        *,
        role: RoleToken,
    ) -> TrialBalanceDocument:
        """Extract one sheet into a new ``TrialBalanceDocument``.

        Raises
        ------
        AccessDenied
            ``role`` may not run extraction.
        SheetNotFoundError
            ``sheet_name`` is not in the workbook.
        RuntimeError
            Strict mode and the quality report carries errors.
        """
        return self.extract_with_report(workbook, sheet_name, role=role).document

    def reparse(
        self,
        workbook: LoadedWorkbook,
        sheet_name: str,
        *,
        role: RoleToken,
    ) -> TrialBalanceDocument:
        """Re-run extraction, e.g. after the user picks another sheet.

        Nothing is carried over from any earlier document.
        """
        logger.info("Re-parsing sheet %r", sheet_name)
        return self.extract(workbook, sheet_name, role=role)

    def extract_with_report(
        self,
        workbook: LoadedWorkbook,
        sheet_name: Optional[str] = None,
        *,
        role: RoleToken,
    ) -> ExtractionResult:
        """Like ``extract`` but also returns the quality report."""
        self._check_role(role, self._config.access.extract_roles, "extract")

        name = sheet_name or self.suggest_sheet(workbook)
        if name is None:
            raise WorkbookLoadError("Workbook contains no sheets")
        reader = workbook.sheet(name)

        extraction = self._parser.parse_sheet(reader)
        document = SchemaBuilder.build_document(name, extraction)
        report = self._validator.validate(document, extraction.layout)

        logger.info(
            "Extraction complete: sheet=%r, rows=%d, roots=%d, warnings=%d, errors=%d",
            name,
            document.row_count,
            len(document.rows),
            len(report.warnings),
            len(report.errors),
        )

        if self._config.strict_mode and not report.is_valid:
            raise RuntimeError(
                f"Strict mode: extraction produced {len(report.errors)} "
                f"quality error(s):\n" + "\n".join(report.errors)
            )

        return ExtractionResult(document=document, report=report,
                                layout=extraction.layout)

    def inspect(self, document: TrialBalanceDocument) -> ValidationReport:
        """Quality report for a document the caller kept from earlier."""
        return self._validator.validate(document)

    # ------------------------------------------------------------------ #
    # Export
    # ------------------------------------------------------------------ #

    def export(
        self,
        document: Optional[TrialBalanceDocument],
        *,
        role: RoleToken,
        sheet_title: Optional[str] = None,
    ) -> Optional[Workbook]:
        """Write ``document`` to a new workbook; ``None`` when there is no document."""
        self._check_role(role, self._config.access.export_roles, "export")
        return self._exporter.export(document, sheet_title)

    def export_bytes(
        self,
        document: Optional[TrialBalanceDocument],
        *,
        role: RoleToken,
        sheet_title: Optional[str] = None,
    ) -> Optional[bytes]:
        """``export`` rendered to ``.xlsx`` bytes."""
        self._check_role(role, self._config.access.export_roles, "export")
        return self._exporter.to_bytes(document, sheet_title)

    # ------------------------------------------------------------------ #
    # Utility
    # ------------------------------------------------------------------ #

    def can_extract(self, role: RoleToken) -> bool:
        return _role_value(role) in self._config.access.extract_roles

    def can_export(self, role: RoleToken) -> bool:
        return _role_value(role) in self._config.access.export_roles

    @staticmethod
    def _check_role(role: RoleToken, permitted: Collection[str], operation: str) -> None:
        value = _role_value(role)
        if value not in permitted:
            logger.warning("Role %r refused for %s", value, operation)
            raise AccessDenied(f"Role {value!r} is not permitted to {operation}")


def _role_value(role: RoleToken) -> Optional[str]:
    if role is None:
        return None
    if isinstance(role, Role):
        return role.value
    return str(role)
