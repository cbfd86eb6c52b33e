"""Vendor memory engine for invoice normalization."""

from .engine import LearnResult, MemoryEngine
from .learning.store import MemoryStoreError, create_memory_store

__all__ = ['LearnResult', 'MemoryEngine', 'MemoryStoreError', 'create_memory_store']
