"""Invoice data model as received from the upstream extraction step."""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import List, Optional


@dataclass
class LineItem:
    """A single product/service row on an invoice.

    Attributes:
        sku: Article number or None when extraction could not find one
        description: Free-text description of the row
        quantity: Quantity (qty)
        unit_price: Price per unit
        quantity_delivered: Delivered quantity (delivery note / PO context only)
    """

    sku: Optional[str] = None
    description: Optional[str] = None
    quantity: float = 0.0
    unit_price: float = 0.0
    quantity_delivered: Optional[float] = None


@dataclass
class InvoiceFields:
    """Structured fields extracted from an invoice.

    Dates are kept as the strings found on the document (``DD.MM.YYYY`` or ISO);
    ``pipeline.date_normalizer`` parses them where a comparison is needed.

    Invariant (checked by the tax reconciler, not here):
    gross_total ≈ net_total + tax_total ≈ net_total * (1 + tax_rate), ±1.0.
    """

    invoice_number: Optional[str] = None
    invoice_date: Optional[str] = None
    service_date: Optional[str] = None
    currency: Optional[str] = None
    po_number: Optional[str] = None
    net_total: float = 0.0
    tax_rate: float = 0.0
    tax_total: float = 0.0
    gross_total: float = 0.0
    line_items: List[LineItem] = field(default_factory=list)
    discount_terms: Optional[str] = None

    def copy(self) -> InvoiceFields:
        """Return an owned deep copy (the engine's working copy)."""
        return copy.deepcopy(self)


@dataclass(frozen=True)
class Invoice:
    """An invoice handed to the engine.

    Frozen: the engine only reads it. ``process`` normalizes a copy of
    ``fields`` and ``learn`` reads the original values.

    Attributes:
        invoice_id: Identity of the document within the system
        vendor: Vendor name (memory is scoped by this exact string)
        fields: Extracted fields
        confidence: Upstream extraction confidence (0.0-1.0)
        raw_text: Full document text, used for pattern matching
    """

    invoice_id: str
    vendor: str
    fields: InvoiceFields
    confidence: float = 0.0
    raw_text: str = ""

    def __post_init__(self):
        """Validate Invoice fields."""
        if not self.invoice_id:
            raise ValueError("invoice_id must not be empty")

        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(
                f"confidence must be between 0.0 and 1.0, got {self.confidence}"
            )
