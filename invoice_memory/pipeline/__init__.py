"""Deterministic invoice heuristics (duplicates, PO matching, tax checks)."""

from .date_normalizer import parse_document_date
from .duplicate_detection import DUPLICATE_FLAG, duplicate_correction, find_duplicate
from .po_matching import find_matching_po
from .tax_reconciliation import TaxCheckResult, reconcile_tax, round_currency

__all__ = [
    'DUPLICATE_FLAG',
    'TaxCheckResult',
    'duplicate_correction',
    'find_duplicate',
    'find_matching_po',
    'parse_document_date',
    'reconcile_tax',
    'round_currency',
]
