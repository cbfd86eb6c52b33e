"""Duplicate submission detection within a processing run."""

import logging
from typing import Iterable, Optional

from ..models.correction import Correction, is_empty
from ..models.invoice import Invoice

logger = logging.getLogger(__name__)

DUPLICATE_FLAG = "DUPLICATE-FLAG"


def find_duplicate(invoice: Invoice, processed: Iterable[Invoice]) -> Optional[Invoice]:
    """Find an already processed invoice with the same vendor and invoice number.

    The invoice itself (same invoice_id) is never its own duplicate, and an
    invoice without an invoice number cannot be matched.

    Args:
        invoice: Invoice being processed
        processed: Invoices processed earlier in the same run

    Returns:
        First matching earlier invoice, or None
    """
    number = invoice.fields.invoice_number
    if is_empty(number):
        return None

    for past in processed:
        if (
            past.vendor == invoice.vendor
            and past.fields.invoice_number == number
            and past.invoice_id != invoice.invoice_id
        ):
            logger.debug(
                f"Invoice {invoice.invoice_id} duplicates {past.invoice_id} "
                f"({invoice.vendor}, {number})"
            )
            return past
    return None


def duplicate_correction(invoice: Invoice) -> Correction:
    """Correction flagging the invoice number of a duplicate."""
    return Correction(
        field="invoiceNumber",
        before=invoice.fields.invoice_number,
        after=DUPLICATE_FLAG,
        reason="Duplicate submission detected",
    )
