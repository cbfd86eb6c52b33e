"""Typed field paths and the accessor that reads/writes them on InvoiceFields.

Paths come from correction logs in their wire form: a top-level field
("invoiceNumber"), a line-item field at an index ("lineItems[2].sku") or a
line-item field for every item ("lineItems.sku" / "lineItems[].sku").
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional

from .correction import FieldValue
from .invoice import InvoiceFields, LineItem

# wire name -> attribute name
TOP_LEVEL_FIELDS = {
    "invoiceNumber": "invoice_number",
    "invoiceDate": "invoice_date",
    "serviceDate": "service_date",
    "currency": "currency",
    "poNumber": "po_number",
    "netTotal": "net_total",
    "taxRate": "tax_rate",
    "taxTotal": "tax_total",
    "grossTotal": "gross_total",
    "discountTerms": "discount_terms",
}

LINE_ITEM_FIELDS = {
    "sku": "sku",
    "description": "description",
    "qty": "quantity",
    "unitPrice": "unit_price",
    "qtyDelivered": "quantity_delivered",
}

LINE_ITEMS = "lineItems"

_LINE_ITEM_PATH = re.compile(r"^(?:lineItems|line_items)(?:\[(\d*)\])?\.(\w+)$")


def _resolve(name: str, table: dict) -> Optional[str]:
    """Map a wire or attribute name to the wire name, None if unknown."""
    if name in table:
        return name
    for wire, attribute in table.items():
        if attribute == name:
            return wire
    return None


@dataclass(frozen=True)
class FieldPath:
    """Parsed field path.

    Attributes:
        name: Wire name of the top-level field, or of the line-item sub-field
        line_item: True if the path addresses a line-item sub-field
        index: Line-item index, None for "every line item"
    """

    name: str
    line_item: bool = False
    index: Optional[int] = None

    @classmethod
    def parse(cls, text: str) -> FieldPath:
        """Parse a path string.

        Raises:
            ValueError: If the path or field name is unknown
        """
        text = (text or "").strip()
        match = _LINE_ITEM_PATH.match(text)
        if match:
            sub_field = _resolve(match.group(2), LINE_ITEM_FIELDS)
            if sub_field is None:
                raise ValueError(f"Unknown line item field in path: {text!r}")
            index = int(match.group(1)) if match.group(1) else None
            return cls(name=sub_field, line_item=True, index=index)

        name = _resolve(text, TOP_LEVEL_FIELDS)
        if name is None:
            raise ValueError(f"Unknown field path: {text!r}")
        return cls(name=name)

    @property
    def attribute(self) -> str:
        table = LINE_ITEM_FIELDS if self.line_item else TOP_LEVEL_FIELDS
        return table[self.name]

    @property
    def is_line_item_sku(self) -> bool:
        return self.line_item and self.name == "sku"

    @property
    def is_generic(self) -> bool:
        """True for line-item paths without an index."""
        return self.line_item and self.index is None

    def at(self, index: int) -> FieldPath:
        """The same line-item sub-field at a concrete index."""
        if not self.line_item:
            raise ValueError(f"{self} is not a line item path")
        return FieldPath(name=self.name, line_item=True, index=index)

    def __str__(self) -> str:
        if not self.line_item:
            return self.name
        if self.index is None:
            return f"{LINE_ITEMS}.{self.name}"
        return f"{LINE_ITEMS}[{self.index}].{self.name}"


def _line_item(fields: InvoiceFields, path: FieldPath) -> Optional[LineItem]:
    if path.index is None:
        raise ValueError(f"Generic path {path} does not address a single value")
    if 0 <= path.index < len(fields.line_items):
        return fields.line_items[path.index]
    return None


def get_field(fields: InvoiceFields, path: FieldPath) -> FieldValue:
    """Current value at path; None when the line item does not exist."""
    if not path.line_item:
        return getattr(fields, path.attribute)
    item = _line_item(fields, path)
    if item is None:
        return None
    return getattr(item, path.attribute)


def set_field(fields: InvoiceFields, path: FieldPath, value: FieldValue) -> None:
    """Write value at path.

    Raises:
        IndexError: If the addressed line item does not exist
        ValueError: If path is a generic line-item path
    """
    if not path.line_item:
        setattr(fields, path.attribute, value)
        return
    item = _line_item(fields, path)
    if item is None:
        raise IndexError(f"No line item at index {path.index} for {path}")
    setattr(item, path.attribute, value)
