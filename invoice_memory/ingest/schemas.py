"""Input document schemas (camelCase JSON) and their conversion to domain models."""

from typing import Any, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..models.correction import Correction, HumanCorrectionLog, value_kind
from ..models.invoice import Invoice, InvoiceFields, LineItem
from ..models.reference import DeliveryNote, PurchaseOrder, ReferenceData


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class LineItemSchema(_CamelModel):
    """A line item on an invoice, purchase order or delivery note."""

    sku: Optional[str] = None
    description: Optional[str] = None
    quantity: float = Field(0.0, alias="qty")
    unit_price: float = Field(0.0, alias="unitPrice")
    quantity_delivered: Optional[float] = Field(None, alias="qtyDelivered")

    def to_domain(self) -> LineItem:
        return LineItem(
            sku=self.sku,
            description=self.description,
            quantity=self.quantity,
            unit_price=self.unit_price,
            quantity_delivered=self.quantity_delivered,
        )


class InvoiceFieldsSchema(_CamelModel):
    """Extracted invoice fields."""

    invoice_number: Optional[str] = Field(None, alias="invoiceNumber")
    invoice_date: Optional[str] = Field(None, alias="invoiceDate")
    service_date: Optional[str] = Field(None, alias="serviceDate")
    currency: Optional[str] = None
    po_number: Optional[str] = Field(None, alias="poNumber")
    net_total: float = Field(0.0, alias="netTotal")
    tax_rate: float = Field(0.0, alias="taxRate")
    tax_total: float = Field(0.0, alias="taxTotal")
    gross_total: float = Field(0.0, alias="grossTotal")
    line_items: List[LineItemSchema] = Field(default_factory=list, alias="lineItems")
    discount_terms: Optional[str] = Field(None, alias="discountTerms")

    def to_domain(self) -> InvoiceFields:
        return InvoiceFields(
            invoice_number=self.invoice_number,
            invoice_date=self.invoice_date,
            service_date=self.service_date,
            currency=self.currency,
            po_number=self.po_number,
            net_total=self.net_total,
            tax_rate=self.tax_rate,
            tax_total=self.tax_total,
            gross_total=self.gross_total,
            line_items=[item.to_domain() for item in self.line_items],
            discount_terms=self.discount_terms,
        )


class InvoiceSchema(_CamelModel):
    """Invoice document as produced by the extraction step."""

    invoice_id: str = Field(..., alias="invoiceId", min_length=1)
    vendor: str = Field(..., min_length=1)
    invoice_fields: InvoiceFieldsSchema = Field(..., alias="fields")
    confidence: float = Field(0.0, ge=0.0, le=1.0, description="Extraction confidence")
    raw_text: str = Field("", alias="rawText")

    def to_domain(self) -> Invoice:
        return Invoice(
            invoice_id=self.invoice_id,
            vendor=self.vendor,
            fields=self.invoice_fields.to_domain(),
            confidence=self.confidence,
            raw_text=self.raw_text,
        )


class PurchaseOrderSchema(_CamelModel):
    po_number: str = Field(..., alias="poNumber")
    vendor: str
    date: str
    line_items: List[LineItemSchema] = Field(default_factory=list, alias="lineItems")

    def to_domain(self) -> PurchaseOrder:
        return PurchaseOrder(
            po_number=self.po_number,
            vendor=self.vendor,
            date=self.date,
            line_items=tuple(item.to_domain() for item in self.line_items),
        )


class DeliveryNoteSchema(_CamelModel):
    dn_number: str = Field(..., alias="dnNumber")
    vendor: str
    po_number: str = Field(..., alias="poNumber")
    date: str
    line_items: List[LineItemSchema] = Field(default_factory=list, alias="lineItems")

    def to_domain(self) -> DeliveryNote:
        return DeliveryNote(
            dn_number=self.dn_number,
            vendor=self.vendor,
            po_number=self.po_number,
            date=self.date,
            line_items=tuple(item.to_domain() for item in self.line_items),
        )


class ReferenceDataSchema(_CamelModel):
    """Bundle of purchase orders and delivery notes."""

    purchase_orders: List[PurchaseOrderSchema] = Field(default_factory=list, alias="purchaseOrders")
    delivery_notes: List[DeliveryNoteSchema] = Field(default_factory=list, alias="deliveryNotes")

    def to_domain(self) -> ReferenceData:
        return ReferenceData(
            purchase_orders=tuple(po.to_domain() for po in self.purchase_orders),
            delivery_notes=tuple(dn.to_domain() for dn in self.delivery_notes),
        )


class CorrectionSchema(_CamelModel):
    """A single human correction: {field, from, to, reason}."""

    field: str = Field(..., min_length=1)
    before: Any = Field(None, alias="from")
    after: Any = Field(None, alias="to")
    reason: str = ""

    @field_validator("before", "after")
    @classmethod
    def check_value_kind(cls, value: Any) -> Any:
        """Only strings, numbers and null are valid field values."""
        try:
            value_kind(value)
        except TypeError as e:
            raise ValueError(str(e)) from e
        return value

    def to_domain(self) -> Correction:
        return Correction(field=self.field, before=self.before, after=self.after, reason=self.reason)


class CorrectionLogSchema(_CamelModel):
    """Human correction log for one invoice."""

    invoice_id: str = Field(..., alias="invoiceId", min_length=1)
    vendor: str
    corrections: List[CorrectionSchema] = Field(default_factory=list)
    final_decision: Literal["approved", "rejected"] = Field("approved", alias="finalDecision")

    def to_domain(self) -> HumanCorrectionLog:
        return HumanCorrectionLog(
            invoice_id=self.invoice_id,
            vendor=self.vendor,
            corrections=[c.to_domain() for c in self.corrections],
            final_decision=self.final_decision,
        )
