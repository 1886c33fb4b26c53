"""
Sheet Suggestion Layer.

Workbooks exported from accounting packages often carry several sheets
("Cover", "TB 2024-25", "Notes").  When the caller does not name a sheet,
this layer uses ``rapidfuzz`` to pick the one most likely to hold the
trial balance.  Results are confidence-gated:

* Scores **below** ``fuzzy_threshold`` are rejected; the caller falls back
  to the first sheet.
* If two sheets are within ``fuzzy_ambiguity_delta`` of each other the
  suggestion is flagged as ambiguous and logged.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import List, Optional, Sequence

from rapidfuzz import fuzz, process

from trial_balance.config import MatchingConfig
from trial_balance.logging_setup import get_logger

logger = get_logger("fuzzy_matcher")

# Common short forms used as sheet names
_ABBREVIATIONS = {
    "tb": "trial balance",
    "t b": "trial balance",
    "trial bal": "trial balance",
}

_NON_WORD_RE = re.compile(r"[^a-z0-9]+")


@dataclass
class SheetCandidate:
    """A sheet suggested by the matcher."""

    sheet_name: str
    score: float  # 0–100
    is_ambiguous: bool = False


class SheetMatcher:
    """Fuzzy-match sheet names against the trial balance target name.

    Parameters
    ----------
    config:
        Target name, threshold and ambiguity delta.
    """

    def __init__(self, config: Optional[MatchingConfig] = None) -> None:
        self._config = config or MatchingConfig()
        self._target = self.normalize_name(self._config.target_name)

    @staticmethod
    def normalize_name(name: str) -> str:
        """Lower-case, strip punctuation and expand common abbreviations."""
        text = _NON_WORD_RE.sub(" ", name.lower()).strip()
        words = text.split(" ")
        for short, full in _ABBREVIATIONS.items():
            n = len(short.split(" "))
            for i in range(len(words) - n + 1):
                if " ".join(words[i:i + n]) == short:
                    words[i:i + n] = full.split(" ")
                    break
        return " ".join(w for w in words if w)

    def suggest(self, sheet_names: Sequence[str]) -> Optional[SheetCandidate]:
        """Return the best-matching sheet above threshold, or ``None``."""
        if not sheet_names:
            return None

        choices: List[str] = [self.normalize_name(n) for n in sheet_names]
        results = process.extract(
            self._target,
            choices,
            scorer=fuzz.token_set_ratio,
            limit=2,
        )
        if not results:
            return None

        _, best_score, best_idx = results[0]
        best_name = sheet_names[best_idx]

        if best_score < self._config.fuzzy_threshold:
            logger.info(
                "Best sheet for %r is %r (%.1f), below threshold %.1f; rejected",
                self._config.target_name,
                best_name,
                best_score,
                self._config.fuzzy_threshold,
            )
            return None

        is_ambiguous = False
        if len(results) > 1:
            _, second_score, second_idx = results[1]
            if best_score - second_score <= self._config.fuzzy_ambiguity_delta:
                is_ambiguous = True
                logger.warning(
                    "Ambiguous sheet suggestion: best=%r (%.1f), runner-up=%r (%.1f)",
                    best_name,
                    best_score,
                    sheet_names[second_idx],
                    second_score,
                )

        logger.info("Suggested sheet %r (score=%.1f, ambiguous=%s)",
                    best_name, best_score, is_ambiguous)
        return SheetCandidate(
            sheet_name=best_name, score=best_score, is_ambiguous=is_ambiguous
        )
