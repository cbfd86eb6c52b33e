"""Heuristic purchase-order matching for invoices without a PO number."""

import logging
from typing import Optional, Sequence

from ..models.invoice import InvoiceFields, LineItem
from ..models.reference import PurchaseOrder, ReferenceData
from .date_normalizer import parse_document_date

logger = logging.getLogger(__name__)


def has_sku_match(invoice_items: Sequence[LineItem], po_items: Sequence[LineItem]) -> bool:
    """True if any PO line shares an exact (non-empty) SKU with the invoice."""
    invoice_skus = {item.sku for item in invoice_items if item.sku}
    return any(po_item.sku in invoice_skus for po_item in po_items if po_item.sku)


def has_fuzzy_match(
    invoice_items: Sequence[LineItem],
    po_items: Sequence[LineItem],
    price_tolerance: float = 0.01,
) -> bool:
    """True if any PO line has the same quantity and a unit price within tolerance."""
    return any(
        inv_item.quantity == po_item.quantity
        and abs(inv_item.unit_price - po_item.unit_price) < price_tolerance
        for po_item in po_items
        for inv_item in invoice_items
    )


def find_matching_po(
    fields: InvoiceFields,
    vendor: str,
    reference_data: ReferenceData,
    window_days: int = 60,
    price_tolerance: float = 0.01,
) -> Optional[PurchaseOrder]:
    """Find the first purchase order consistent with the invoice.

    A candidate must belong to the vendor, be dated on or before the invoice
    and less than window_days before it, and share evidence with the invoice:
    an exact SKU, else a line with equal quantity and unit price.

    Args:
        fields: Normalized invoice fields
        vendor: Invoice vendor
        reference_data: Known purchase orders (searched in order)
        window_days: Exclusive upper bound on the PO-to-invoice gap in days
        price_tolerance: Unit price tolerance for the fuzzy match

    Returns:
        Matching PurchaseOrder or None (also None when dates cannot be parsed)
    """
    invoice_date = parse_document_date(fields.invoice_date)
    if invoice_date is None:
        logger.debug(f"Cannot match PO: unparseable invoice date {fields.invoice_date!r}")
        return None

    for po in reference_data.purchase_orders_for(vendor):
        po_date = parse_document_date(po.date)
        if po_date is None:
            logger.debug(f"Skipping PO {po.po_number}: unparseable date {po.date!r}")
            continue

        gap_days = (invoice_date - po_date).days
        if gap_days < 0 or gap_days >= window_days:
            continue

        if has_sku_match(fields.line_items, po.line_items):
            logger.debug(f"PO {po.po_number} matched by SKU ({gap_days} days before invoice)")
            return po

        if has_fuzzy_match(fields.line_items, po.line_items, price_tolerance):
            logger.debug(f"PO {po.po_number} matched by quantity/unit price")
            return po

    return None
