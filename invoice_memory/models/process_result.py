"""ProcessResult data model returned by MemoryEngine.process."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Dict, List

from .correction import Correction
from .invoice import InvoiceFields

AUDIT_STEPS = ("recall", "apply", "decide")


@dataclass
class AuditEntry:
    """One step of the audit trail."""

    step: str
    timestamp: str
    details: str

    def __post_init__(self):
        """Validate step name."""
        if self.step not in AUDIT_STEPS:
            raise ValueError(f"step must be one of {AUDIT_STEPS}, got '{self.step}'")


class AuditTrail:
    """Ordered, timestamped log of processing phases."""

    def __init__(self):
        self.entries: List[AuditEntry] = []

    def record(self, step: str, details: str) -> AuditEntry:
        entry = AuditEntry(step=step, timestamp=datetime.now().isoformat(), details=details)
        self.entries.append(entry)
        return entry

    def __iter__(self):
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)


def fields_to_dict(fields: InvoiceFields) -> Dict[str, Any]:
    """Serialize InvoiceFields to the camelCase wire shape."""
    data = asdict(fields)
    return {
        "invoiceNumber": data["invoice_number"],
        "invoiceDate": data["invoice_date"],
        "serviceDate": data["service_date"],
        "currency": data["currency"],
        "poNumber": data["po_number"],
        "netTotal": data["net_total"],
        "taxRate": data["tax_rate"],
        "taxTotal": data["tax_total"],
        "grossTotal": data["gross_total"],
        "lineItems": [
            {
                "sku": item["sku"],
                "description": item["description"],
                "qty": item["quantity"],
                "unitPrice": item["unit_price"],
            }
            for item in data["line_items"]
        ],
        "discountTerms": data["discount_terms"],
    }


@dataclass
class ProcessResult:
    """Outcome of processing one invoice.

    Attributes:
        normalized_fields: The working copy after memory and heuristics
        proposed_corrections: Every change made to the working copy, in order
        requires_human_review: Review decision
        reasoning: Accumulated free-text reasons
        confidence_score: Final score (0.0-1.0)
        memory_updates: Descriptions of the memory entries used
        audit_trail: Ordered recall/apply/decide entries
    """

    normalized_fields: InvoiceFields
    proposed_corrections: List[Correction] = field(default_factory=list)
    requires_human_review: bool = False
    reasoning: str = ""
    confidence_score: float = 0.0
    memory_updates: List[str] = field(default_factory=list)
    audit_trail: List[AuditEntry] = field(default_factory=list)

    def __post_init__(self):
        """Validate score range."""
        if not 0.0 <= self.confidence_score <= 1.0:
            raise ValueError(
                f"confidence_score must be between 0.0 and 1.0, got {self.confidence_score}"
            )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "normalizedInvoice": fields_to_dict(self.normalized_fields),
            "proposedCorrections": [c.to_dict() for c in self.proposed_corrections],
            "requiresHumanReview": self.requires_human_review,
            "reasoning": self.reasoning,
            "confidenceScore": round(self.confidence_score, 4),
            "memoryUpdates": list(self.memory_updates),
            "auditTrail": [asdict(entry) for entry in self.audit_trail],
        }
