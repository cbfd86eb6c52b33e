"""Decision model."""

from dataclasses import dataclass, field
from typing import Any, Dict, List


@dataclass
class Decision:
    """Final confidence and review decision for an invoice.

    Attributes:
        score: Confidence after boost and cap (0.0-1.0, rounded to 4 decimals)
        requires_review: Whether a human must review the invoice
        reasons: Reasoning fragments added by the scorer
        missing_fields: Critical fields still empty
    """

    score: float
    requires_review: bool
    reasons: List[str] = field(default_factory=list)
    missing_fields: List[str] = field(default_factory=list)

    def __post_init__(self):
        """Validate score range."""
        if not 0.0 <= self.score <= 1.0:
            raise ValueError(f"score must be between 0.0 and 1.0, got {self.score}")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "score": self.score,
            "requires_review": self.requires_review,
            "reasons": list(self.reasons),
            "missing_fields": list(self.missing_fields),
        }
