"""Tax and totals reconciliation for normalized invoice fields."""

import logging
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import List, Sequence

from ..models.correction import Correction
from ..models.invoice import InvoiceFields

logger = logging.getLogger(__name__)

DEFAULT_INCLUSIVE_VAT_MARKERS = ("incl. vat", "mwst. inkl")


def round_currency(amount: float) -> float:
    """Round a monetary amount half-up to 2 decimals (2.345 -> 2.35)."""
    return float(Decimal(str(amount)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


@dataclass
class TaxCheckResult:
    """Outcome of reconciling one invoice's totals.

    Attributes:
        corrections: Net/tax corrections proposed by the inclusive-VAT repair
        requires_review: True when a check failed and could not be repaired
        reasons: Reasoning fragments, in check order
    """

    corrections: List[Correction] = field(default_factory=list)
    requires_review: bool = False
    reasons: List[str] = field(default_factory=list)


def has_inclusive_vat_marker(raw_text: str, markers: Sequence[str] = DEFAULT_INCLUSIVE_VAT_MARKERS) -> bool:
    """Check (case-insensitive) whether the document states prices include VAT."""
    text = (raw_text or "").lower()
    return any(marker.lower() in text for marker in markers)


def reconcile_tax(
    fields: InvoiceFields,
    raw_text: str,
    tolerance: float = 1.0,
    markers: Sequence[str] = DEFAULT_INCLUSIVE_VAT_MARKERS,
) -> TaxCheckResult:
    """Run the sum check and the VAT calculation check on fields.

    The checks are independent and both may fire. When the calculation check
    fails on a document marked as VAT-inclusive, gross is taken as correct
    and net/tax are recalculated in place on fields.

    Args:
        fields: Normalized fields (modified in place by the repair)
        raw_text: Document text, searched for inclusive-VAT markers
        tolerance: Maximum absolute difference accepted by both checks
        markers: Inclusive-VAT markers

    Returns:
        TaxCheckResult
    """
    result = TaxCheckResult()

    sum_diff = abs(fields.net_total + fields.tax_total - fields.gross_total)
    calc_diff = abs(fields.net_total * (1 + fields.tax_rate) - fields.gross_total)

    if sum_diff > tolerance:
        logger.debug(f"Sum check failed: |net + tax - gross| = {sum_diff:.2f}")
        result.requires_review = True
        result.reasons.append("Totals do not sum up (Net + Tax != Gross). ")

    if calc_diff > tolerance:
        if has_inclusive_vat_marker(raw_text, markers):
            new_net = round_currency(fields.gross_total / (1 + fields.tax_rate))
            new_tax = round_currency(fields.gross_total - new_net)
            logger.debug(f"Inclusive VAT: net {fields.net_total} -> {new_net}, tax {fields.tax_total} -> {new_tax}")

            result.corrections.append(Correction(
                field="netTotal",
                before=fields.net_total,
                after=new_net,
                reason="Detected 'incl. VAT' context, recalculated Net from Gross",
            ))
            result.corrections.append(Correction(
                field="taxTotal",
                before=fields.tax_total,
                after=new_tax,
                reason="Recalculated Tax from Gross",
            ))
            fields.net_total = new_net
            fields.tax_total = new_tax
        else:
            logger.debug(f"Tax check failed: |net * (1 + rate) - gross| = {calc_diff:.2f}")
            result.requires_review = True
            result.reasons.append("Tax calculation invalid (Net * Rate != Gross). ")

    return result
