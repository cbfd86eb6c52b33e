"""Induces reusable extraction regexes from human corrections."""

from __future__ import annotations

import logging
import re
from datetime import datetime
from typing import Any, Dict, List, Optional

from ..models.correction import Correction
from ..models.memory import ExtractionPattern

logger = logging.getLogger(__name__)

_ISO_DATE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")
_DOTTED_DATE = re.compile(r"\d{2}\.\d{2}\.\d{4}")
_SLASHED_DATE = re.compile(r"\d{2}/\d{2}/\d{4}")
# Trailing label: letters only (umlauts included), optional colon, then whitespace to the end
_TRAILING_LABEL = re.compile(r"([^\W\d_]+):?\s*$")

DOTTED_DATE_SHAPE = r"(\d{2}\.\d{2}\.\d{4})"
SLASHED_DATE_SHAPE = r"(\d{2}/\d{2}/\d{4})"


def search_representations(value: str) -> List[str]:
    """Textual forms a value may take in the document.

    ISO dates (YYYY-MM-DD) also yield DD.MM.YYYY and DD/MM/YYYY.
    """
    representations = [value]
    match = _ISO_DATE.match(value)
    if match:
        year, month, day = match.groups()
        representations.append(f"{day}.{month}.{year}")
        representations.append(f"{day}/{month}/{year}")
    return representations


def value_shape(value: str) -> str:
    """Capturing regex for values shaped like value.

    Dates get a fixed shape; anything else is escaped with every digit
    generalized to \\d.
    """
    if _DOTTED_DATE.search(value):
        return DOTTED_DATE_SHAPE
    if _SLASHED_DATE.search(value):
        return SLASHED_DATE_SHAPE
    generic = re.sub(r"\d", r"\\d", re.escape(value))
    return f"({generic})"


def find_label(raw_text: str, index: int, window: int) -> Optional[str]:
    """Label token directly preceding position index in raw_text."""
    context = raw_text[max(0, index - window):index]
    clean_context = context.replace("\n", " ").strip()
    match = _TRAILING_LABEL.search(clean_context)
    return match.group(1) if match else None


def flexible_pattern(value: str, min_tokens: int) -> Optional[str]:
    """word1.*word2.*word3 pattern over the distinctive words of value."""
    words = [w for w in value.split() if len(w) > 1]
    if len(words) < min_tokens:
        return None
    return ".*".join(re.escape(w) for w in words)


class PatternLearner:
    """Builds ExtractionPatterns from a correction and the original raw text.

    Labeled case: the corrected value (or a date variant of it) is found
    verbatim and preceded by a label, giving "<label>:?\\s*(<shape>)".
    Flexible case: the value is not found verbatim but its words occur in
    order, giving "w1.*w2.*w3" with lower confidence.
    """

    def __init__(self, settings: Optional[Dict[str, Any]] = None):
        """Initialize pattern learner.

        Args:
            settings: The profile's learning section
        """
        from ..config.profile_loader import DEFAULT_LEARNING

        self.settings = dict(DEFAULT_LEARNING)
        self.settings.update(settings or {})

    def min_length(self, field: str) -> int:
        if field == "currency":
            return int(self.settings["min_value_length_currency"])
        return int(self.settings["min_value_length"])

    def induce(self, correction: Correction, raw_text: str) -> Optional[ExtractionPattern]:
        """Induce a pattern for one correction.

        Returns:
            ExtractionPattern, or None when the value is too short, not a
            string, or cannot be located in the document
        """
        value = correction.after
        if not isinstance(value, str) or len(value) < self.min_length(correction.field):
            return None

        raw_text = raw_text or ""
        for representation in search_representations(value):
            index = raw_text.find(representation)
            if index == -1:
                continue

            # Only the first representation found is considered
            label = find_label(raw_text, index, int(self.settings["context_window"]))
            if not label:
                logger.debug(f"No label before {representation!r} for {correction.field}")
                return None

            regex = f"{re.escape(label)}:?\\s*{value_shape(representation)}"
            logger.debug(f"Induced labeled pattern {regex!r} for {correction.field}")
            return ExtractionPattern(
                field=correction.field,
                regex_pattern=regex,
                confidence=float(self.settings["labeled_pattern_confidence"]),
                usage_count=1,
                last_used=datetime.now().isoformat(),
            )

        if not re.search(r"\s", value):
            return None

        pattern = flexible_pattern(value, int(self.settings["min_flexible_tokens"]))
        if pattern is None or not re.search(pattern, raw_text, re.IGNORECASE):
            return None

        logger.debug(f"Induced flexible pattern {pattern!r} for {correction.field}")
        return ExtractionPattern(
            field=correction.field,
            regex_pattern=pattern,
            confidence=float(self.settings["flexible_pattern_confidence"]),
            usage_count=1,
            last_used=datetime.now().isoformat(),
        )
