"""Vendor memory: learned extraction patterns and static value corrections."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from .correction import FieldValue, normalize_value, value_kind

MAX_CONFIDENCE = 1.0
REINFORCEMENT_STEP = 0.05

CONDITIONS = (None, "if_missing", "always")


def reinforce(confidence: float, step: float = REINFORCEMENT_STEP) -> float:
    """Reinforced confidence: min(1.0, confidence + step). Never decreases."""
    return max(confidence, min(MAX_CONFIDENCE, round(confidence + step, 6)))


@dataclass
class ExtractionPattern:
    """A regex that recovers a missing field from raw document text.

    Attributes:
        field: Field path the pattern fills
        regex_pattern: Regex; the first capture group (or the whole match) is the value
        confidence: Trust in the pattern (0.0-1.0), reinforced on re-induction
        usage_count: How often the pattern was induced
        last_used: ISO timestamp of the last induction
    """

    field: str
    regex_pattern: str
    confidence: float = 0.6
    usage_count: int = 1
    last_used: str = ""

    def __post_init__(self):
        """Validate ExtractionPattern fields."""
        if not 0.0 <= self.confidence <= MAX_CONFIDENCE:
            raise ValueError(
                f"confidence must be between 0.0 and 1.0, got {self.confidence}"
            )
        if not self.last_used:
            self.last_used = datetime.now().isoformat()

    @property
    def key(self) -> Tuple[str, str]:
        return (self.field, self.regex_pattern)

    def reinforce(self) -> None:
        """Record a repeated induction of the same pattern."""
        self.usage_count += 1
        self.last_used = datetime.now().isoformat()
        self.confidence = reinforce(self.confidence)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "field": self.field,
            "regexPattern": self.regex_pattern,
            "confidence": self.confidence,
            "usageCount": self.usage_count,
            "lastUsed": self.last_used,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> ExtractionPattern:
        return cls(
            field=data["field"],
            regex_pattern=data["regexPattern"],
            confidence=float(data.get("confidence", 0.6)),
            usage_count=int(data.get("usageCount", 1)),
            last_used=data.get("lastUsed", ""),
        )


@dataclass
class ValueCorrection:
    """A deterministic value-mapping rule, optionally conditioned on a trigger.

    trigger_value None means the rule is unconditional on document content;
    for line-item rules the trigger is matched against the item description.
    """

    field: str
    corrected_value: FieldValue
    trigger_value: Optional[str] = None
    condition: Optional[str] = None
    confidence: float = 0.8
    usage_count: int = 1

    def __post_init__(self):
        """Validate ValueCorrection fields."""
        value_kind(self.corrected_value)
        if self.condition not in CONDITIONS:
            raise ValueError(
                f"condition must be one of {CONDITIONS}, got '{self.condition}'"
            )
        if not 0.0 <= self.confidence <= MAX_CONFIDENCE:
            raise ValueError(
                f"confidence must be between 0.0 and 1.0, got {self.confidence}"
            )

    @property
    def key(self) -> Tuple[str, Optional[str], FieldValue]:
        return (self.field, self.trigger_value, normalize_value(self.corrected_value))

    def reinforce(self) -> None:
        self.usage_count += 1
        self.confidence = reinforce(self.confidence)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "field": self.field,
            "triggerValue": self.trigger_value,
            "correctedValue": self.corrected_value,
            "condition": self.condition,
            "confidence": self.confidence,
            "usageCount": self.usage_count,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> ValueCorrection:
        return cls(
            field=data["field"],
            corrected_value=data.get("correctedValue"),
            trigger_value=data.get("triggerValue"),
            condition=data.get("condition"),
            confidence=float(data.get("confidence", 0.8)),
            usage_count=int(data.get("usageCount", 1)),
        )


@dataclass
class VendorMemory:
    """Everything learned for one vendor."""

    vendor_name: str
    patterns: List[ExtractionPattern] = field(default_factory=list)
    static_corrections: List[ValueCorrection] = field(default_factory=list)

    def upsert_pattern(self, pattern: ExtractionPattern) -> ExtractionPattern:
        """Insert pattern or reinforce the existing one with the same key."""
        for existing in self.patterns:
            if existing.key == pattern.key:
                existing.reinforce()
                return existing
        self.patterns.append(pattern)
        return pattern

    def upsert_static_correction(self, correction: ValueCorrection) -> ValueCorrection:
        """Insert rule or reinforce the existing one with the same key."""
        for existing in self.static_corrections:
            if existing.key == correction.key:
                existing.reinforce()
                return existing
        self.static_corrections.append(correction)
        return correction

    @property
    def is_empty(self) -> bool:
        return not self.patterns and not self.static_corrections

    def to_dict(self) -> Dict[str, Any]:
        return {
            "vendorName": self.vendor_name,
            "patterns": [p.to_dict() for p in self.patterns],
            "staticCorrections": [c.to_dict() for c in self.static_corrections],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> VendorMemory:
        return cls(
            vendor_name=data["vendorName"],
            patterns=[ExtractionPattern.from_dict(p) for p in data.get("patterns", [])],
            static_corrections=[
                ValueCorrection.from_dict(c) for c in data.get("staticCorrections", [])
            ],
        )
