"""Confidence scoring and the review decision."""

import logging
from typing import Any, Dict, List, Optional, Sequence

from ..models.correction import is_empty
from ..models.field_path import FieldPath, get_field
from ..models.invoice import InvoiceFields
from .model import Decision

logger = logging.getLogger(__name__)


def find_missing_fields(fields: InvoiceFields, critical_fields: Sequence[str]) -> List[str]:
    """Return the critical fields that are still None or empty.

    Args:
        fields: Normalized fields after memory and heuristics
        critical_fields: Top-level field names (camelCase or snake_case)

    Raises:
        ValueError: If a critical field name is unknown
    """
    missing = []
    for name in critical_fields:
        path = FieldPath.parse(name)
        if is_empty(get_field(fields, path)):
            missing.append(str(path))
    return missing


def score_invoice(
    fields: InvoiceFields,
    base_confidence: float,
    corrections_proposed: bool,
    settings: Optional[Dict[str, Any]] = None,
) -> Decision:
    """Compute the final score and decide whether review is required.

    The extraction confidence is boosted when any correction was proposed,
    capped, then compared against the review threshold. Missing critical
    fields force review regardless of the score.

    Args:
        fields: Normalized fields
        base_confidence: Upstream extraction confidence
        corrections_proposed: True if memory or heuristics proposed corrections
        settings: Scoring settings (profile "scoring" section)

    Returns:
        Decision
    """
    from ..config.profile_loader import DEFAULT_SCORING

    config = dict(DEFAULT_SCORING)
    config.update(settings or {})

    reasons = []
    score = base_confidence
    if corrections_proposed:
        score += float(config["correction_boost"])
        reasons.append("Applied corrections based on memory/heuristics. ")

    # 0.70 + 0.10 must compare as 0.80
    score = round(min(float(config["score_cap"]), score), 4)

    requires_review = False
    missing = find_missing_fields(fields, config["critical_fields"])
    if missing:
        requires_review = True
        reasons.append("Critical fields missing. ")
        logger.debug(f"Missing critical fields: {', '.join(missing)}")

    if score < float(config["review_threshold"]):
        requires_review = True

    return Decision(
        score=score,
        requires_review=requires_review,
        reasons=reasons,
        missing_fields=missing,
    )
