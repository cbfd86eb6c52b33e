"""Reference data (purchase orders, delivery notes) supplied alongside invoices."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Tuple

from .invoice import LineItem


@dataclass(frozen=True)
class PurchaseOrder:
    """Vendor-scoped purchase order. Read only for the engine."""

    po_number: str
    vendor: str
    date: str
    line_items: Tuple[LineItem, ...] = ()


@dataclass(frozen=True)
class DeliveryNote:
    """Vendor-scoped delivery note referencing a purchase order."""

    dn_number: str
    vendor: str
    po_number: str
    date: str
    line_items: Tuple[LineItem, ...] = ()


@dataclass(frozen=True)
class ReferenceData:
    """All known purchase orders and delivery notes for a run."""

    purchase_orders: Tuple[PurchaseOrder, ...] = field(default_factory=tuple)
    delivery_notes: Tuple[DeliveryNote, ...] = field(default_factory=tuple)

    def purchase_orders_for(self, vendor: str) -> Tuple[PurchaseOrder, ...]:
        """Purchase orders of one vendor, in reference-data order."""
        return tuple(po for po in self.purchase_orders if po.vendor == vendor)
