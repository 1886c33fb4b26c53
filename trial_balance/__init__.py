"""
Trial Balance: spreadsheet extraction and round-trip engine.

Reads loosely structured trial balance sheets (unknown header position,
column order and indentation conventions) into a normalized, hierarchical
document of ledger accounts, and writes such documents back out as
formatted workbooks.

Structural ambiguity never fails an extraction: every heuristic has a
fallback, and the quality report says which ones were used.
"""

__version__ = "1.0.0"
__author__ = "Trial Balance Team"

from trial_balance.pipeline import TrialBalanceExtractor  # noqa: F401
