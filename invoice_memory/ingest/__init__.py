"""Input documents: schemas and JSON loaders."""

from .loader import load_correction_logs, load_invoices, load_reference_data

__all__ = ['load_correction_logs', 'load_invoices', 'load_reference_data']
