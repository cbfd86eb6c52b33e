"""Batch processing."""

from .runner import BatchResult, InvoiceOutcome, apply_human_corrections, run_batch

__all__ = ['BatchResult', 'InvoiceOutcome', 'apply_human_corrections', 'run_batch']
