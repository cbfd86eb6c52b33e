"""File-backed vendor memory store (single JSON document)."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Dict, Optional

from ..models.memory import VendorMemory
from .store import InMemoryVendorMemoryStore, MemoryStoreError

logger = logging.getLogger(__name__)


class JsonVendorMemoryStore(InMemoryVendorMemoryStore):
    """Keeps vendor memory in a JSON file: {"vendors": {name: memory}}.

    The whole document is rewritten on every update (temp file + os.replace),
    so a reader never sees a truncated file.
    """

    def __init__(self, storage_path: Path):
        """Initialize store and load existing memory.

        Args:
            storage_path: Path to memory JSON file

        Raises:
            MemoryStoreError: If the file exists but cannot be read or parsed
        """
        super().__init__()
        self.storage_path = Path(storage_path)
        self._vendors = self._load()

    def _load(self) -> Dict[str, VendorMemory]:
        if not self.storage_path.exists():
            return {}

        try:
            with open(self.storage_path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Failed to load vendor memory from {self.storage_path}: {e}")
            raise MemoryStoreError(
                f"Failed to load vendor memory from {self.storage_path}: {e}",
                operation="load",
            ) from e

        if not isinstance(data, dict) or not isinstance(data.get("vendors", {}), dict):
            raise MemoryStoreError(
                f"Memory file is not a {{'vendors': {{...}}}} mapping: {self.storage_path}",
                operation="load",
            )

        try:
            vendors = {
                name: VendorMemory.from_dict(record)
                for name, record in data.get("vendors", {}).items()
            }
        except (KeyError, TypeError, ValueError) as e:
            raise MemoryStoreError(
                f"Invalid vendor record in {self.storage_path}: {e}",
                operation="load",
            ) from e

        logger.debug(f"Loaded memory for {len(vendors)} vendors from {self.storage_path}")
        return vendors

    def _commit(self, vendors: Dict[str, VendorMemory], vendor: Optional[str], operation: str) -> None:
        data = {"vendors": {name: memory.to_dict() for name, memory in vendors.items()}}
        tmp = self.storage_path.with_suffix(self.storage_path.suffix + ".tmp")
        try:
            self.storage_path.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp, 'w', encoding='utf-8') as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
            os.replace(tmp, self.storage_path)
        except OSError as e:
            logger.error(f"Failed to save vendor memory ({operation}, vendor={vendor}): {e}")
            raise MemoryStoreError(
                f"Failed to save vendor memory to {self.storage_path}: {e}",
                vendor=vendor,
                operation=operation,
            ) from e
