"""Data model for the vendor memory engine."""

from .correction import Correction, FieldValue, HumanCorrectionLog
from .field_path import FieldPath, get_field, set_field
from .invoice import Invoice, InvoiceFields, LineItem
from .memory import ExtractionPattern, ValueCorrection, VendorMemory
from .process_result import AuditEntry, AuditTrail, ProcessResult
from .reference import DeliveryNote, PurchaseOrder, ReferenceData

__all__ = [
    'AuditEntry',
    'AuditTrail',
    'Correction',
    'DeliveryNote',
    'ExtractionPattern',
    'FieldPath',
    'FieldValue',
    'HumanCorrectionLog',
    'Invoice',
    'InvoiceFields',
    'LineItem',
    'ProcessResult',
    'PurchaseOrder',
    'ReferenceData',
    'ValueCorrection',
    'VendorMemory',
    'get_field',
    'set_field',
]
