"""Vendor memory store contract and the in-memory implementation."""

from __future__ import annotations

import copy
import logging
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from ..models.memory import ExtractionPattern, ValueCorrection, VendorMemory

logger = logging.getLogger(__name__)


class MemoryStoreError(Exception):
    """Raised when the memory backend fails to read or write.

    Attributes:
        vendor: Vendor the operation was for (None for store-wide operations)
        operation: Store operation that failed
    """

    def __init__(self, message: str, vendor: Optional[str] = None, operation: str = ""):
        super().__init__(message)
        self.vendor = vendor
        self.operation = operation


class VendorMemoryStore(ABC):
    """Keyed store of vendor memory records.

    Upsert identity: (vendor, field, regex_pattern) for patterns and
    (vendor, field, trigger_value, corrected_value) for static corrections.
    A repeated upsert increments usage_count and reinforces confidence by
    +0.05, capped at 1.0.
    """

    @abstractmethod
    def get_vendor_memory(self, vendor: str) -> VendorMemory:
        """Snapshot of a vendor's memory; empty when nothing was learned yet."""

    @abstractmethod
    def apply_updates(
        self,
        vendor: str,
        patterns: Sequence[ExtractionPattern] = (),
        corrections: Sequence[ValueCorrection] = (),
    ) -> None:
        """Upsert patterns, then corrections, in order, as one atomic write."""

    @abstractmethod
    def reset(self) -> None:
        """Clear all vendor records."""

    @abstractmethod
    def list_vendors(self) -> List[str]:
        """Names of vendors with stored memory."""

    def add_pattern(self, vendor: str, pattern: ExtractionPattern) -> None:
        self.apply_updates(vendor, patterns=[pattern])

    def add_static_correction(self, vendor: str, correction: ValueCorrection) -> None:
        self.apply_updates(vendor, corrections=[correction])


class InMemoryVendorMemoryStore(VendorMemoryStore):
    """Process-lifetime store; vendor records are created lazily."""

    def __init__(self):
        self._vendors: Dict[str, VendorMemory] = {}
        self._lock = threading.RLock()

    def get_vendor_memory(self, vendor: str) -> VendorMemory:
        with self._lock:
            memory = self._vendors.get(vendor)
            if memory is None:
                return VendorMemory(vendor_name=vendor)
            return copy.deepcopy(memory)

    def apply_updates(
        self,
        vendor: str,
        patterns: Sequence[ExtractionPattern] = (),
        corrections: Sequence[ValueCorrection] = (),
    ) -> None:
        with self._lock:
            # Work on copies so a failed commit leaves the store untouched
            vendors = copy.deepcopy(self._vendors)
            memory = vendors.setdefault(vendor, VendorMemory(vendor_name=vendor))
            for pattern in patterns:
                memory.upsert_pattern(copy.deepcopy(pattern))
            for correction in corrections:
                memory.upsert_static_correction(copy.deepcopy(correction))
            self._commit(vendors, vendor=vendor, operation="apply_updates")
            self._vendors = vendors
        logger.debug(
            f"Stored {len(patterns)} patterns and {len(corrections)} static corrections for {vendor}"
        )

    def reset(self) -> None:
        with self._lock:
            self._commit({}, vendor=None, operation="reset")
            self._vendors = {}
        logger.info("Cleared all vendor memory")

    def list_vendors(self) -> List[str]:
        with self._lock:
            return sorted(self._vendors)

    def _commit(self, vendors: Dict[str, VendorMemory], vendor: Optional[str], operation: str) -> None:
        """Persist the new state before it becomes visible. No-op in memory."""


def create_memory_store(backend: Optional[str] = None, path: Optional[Path] = None) -> VendorMemoryStore:
    """Build the configured store.

    Args:
        backend: "json", "sqlite" or "memory" (default from MEMORY_BACKEND)
        path: Storage file (default from MEMORY_JSON_PATH / MEMORY_DB_PATH)

    Raises:
        ValueError: If backend is unknown
    """
    from ..config.settings import MEMORY_BACKENDS, get_memory_backend, get_memory_path

    backend = backend or get_memory_backend()
    if backend not in MEMORY_BACKENDS:
        raise ValueError(f"Unknown memory backend: {backend} (must be one of {MEMORY_BACKENDS})")

    if backend == "memory":
        return InMemoryVendorMemoryStore()

    path = Path(path) if path is not None else get_memory_path(backend)
    if backend == "sqlite":
        from .database import SqliteVendorMemoryStore
        return SqliteVendorMemoryStore(path)

    from .json_store import JsonVendorMemoryStore
    return JsonVendorMemoryStore(path)
