"""Vendor memory: stores, memory application and rule induction."""

from .correction_learner import CorrectionLearner
from .memory_applier import MemoryApplier, extract_with_regex
from .pattern_learner import PatternLearner
from .store import (
    InMemoryVendorMemoryStore,
    MemoryStoreError,
    VendorMemoryStore,
    create_memory_store,
)

__all__ = [
    'CorrectionLearner',
    'InMemoryVendorMemoryStore',
    'MemoryApplier',
    'MemoryStoreError',
    'PatternLearner',
    'VendorMemoryStore',
    'create_memory_store',
    'extract_with_regex',
]
