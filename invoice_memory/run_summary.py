"""Run summary model and serialization."""

import json
import os
import uuid
from dataclasses import asdict, dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional


@dataclass
class RunSummary:
    """Summary of a processing run."""
    run_id: str
    input_path: str
    started_at: str
    finished_at: Optional[str] = None
    status: str = "RUNNING"  # RUNNING, COMPLETED, FAILED

    # Statistics
    total_invoices: int = 0
    processed_count: int = 0
    auto_approved_count: int = 0
    review_count: int = 0
    duplicate_count: int = 0
    learned_count: int = 0
    rules_learned: int = 0
    failed_count: int = 0

    # Paths
    output_path: Optional[str] = None
    excel_path: Optional[str] = None

    # Details
    errors: List[Dict[str, Any]] = field(default_factory=list)
    profile_name: Optional[str] = None
    memory_backend: Optional[str] = None

    @classmethod
    def create(
        cls,
        input_path: str,
        profile_name: Optional[str] = None,
        memory_backend: Optional[str] = None,
    ) -> 'RunSummary':
        """Create a new run summary."""
        return cls(
            run_id=str(uuid.uuid4()),
            input_path=str(input_path),
            started_at=datetime.now().isoformat(),
            profile_name=profile_name,
            memory_backend=memory_backend,
        )

    def add_error(self, invoice_id: Optional[str], error: Exception) -> None:
        """Record a per-invoice (or run-level) error."""
        self.errors.append({
            "invoice_id": invoice_id,
            "type": type(error).__name__,
            "message": str(error),
        })

    def complete(self, status: str = "COMPLETED"):
        """Mark run as completed."""
        self.status = status
        self.finished_at = datetime.now().isoformat()

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def save(self, path: Path):
        """Save summary to JSON file (atomic write to avoid truncated file on interrupt)."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp = path.with_suffix(path.suffix + ".tmp")
        with open(tmp, "w", encoding="utf-8") as f:
            json.dump(self.to_dict(), f, indent=2, ensure_ascii=False)
        os.replace(tmp, path)
