"""Field-level corrections and human correction logs."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

# Tagged value union carried by corrections and static rules.
# bool is excluded explicitly (it is an int subclass).
FieldValue = Union[str, int, float, None]

FINAL_DECISIONS = ("approved", "rejected")


def value_kind(value: Any) -> str:
    """Return the tag of a field value: "string", "number" or "null".

    Raises:
        TypeError: If value is not a str, int, float or None
    """
    if value is None:
        return "null"
    if isinstance(value, bool):
        raise TypeError("bool is not a valid field value")
    if isinstance(value, str):
        return "string"
    if isinstance(value, (int, float)):
        return "number"
    raise TypeError(f"Unsupported field value type: {type(value).__name__}")


def is_empty(value: FieldValue) -> bool:
    """True for None and the empty string (a missing field)."""
    return value is None or value == ""


def as_search_text(value: FieldValue) -> Optional[str]:
    """Text representation used to search for a value in raw document text."""
    kind = value_kind(value)
    if kind == "null":
        return None
    if kind == "number" and float(value).is_integer():
        return str(int(value))
    return str(value)


def normalize_value(value: FieldValue) -> FieldValue:
    """Canonical form of a field value: integral floats become ints (1.0 -> 1)."""
    if value_kind(value) == "number" and isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def encode_value(value: FieldValue) -> str:
    """Serialize a field value for storage.

    Numbers are normalized first so that equal values (1 and 1.0) always
    encode to the same text.
    """
    return json.dumps(normalize_value(value), ensure_ascii=False)


def decode_value(text: Optional[str]) -> FieldValue:
    """Inverse of encode_value."""
    if text is None:
        return None
    value = json.loads(text)
    value_kind(value)
    return value


@dataclass
class Correction:
    """One field-level change proposed by the engine or made by a human.

    Attributes:
        field: Field path, e.g. "serviceDate" or "lineItems[2].sku"
        before: Value before the change
        after: Value after the change
        reason: Human-readable reason
    """

    field: str
    before: FieldValue = None
    after: FieldValue = None
    reason: str = ""

    def __post_init__(self):
        """Validate value types."""
        value_kind(self.before)
        value_kind(self.after)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the {field, from, to, reason} wire shape."""
        return {
            "field": self.field,
            "from": self.before,
            "to": self.after,
            "reason": self.reason,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Correction:
        return cls(
            field=data["field"],
            before=data.get("from"),
            after=data.get("to"),
            reason=data.get("reason", ""),
        )


@dataclass
class HumanCorrectionLog:
    """A batch of human corrections for one invoice plus the final decision."""

    invoice_id: str
    vendor: str
    corrections: List[Correction] = field(default_factory=list)
    final_decision: str = "approved"

    def __post_init__(self):
        """Validate final decision."""
        if self.final_decision not in FINAL_DECISIONS:
            raise ValueError(
                f"final_decision must be 'approved' or 'rejected', got '{self.final_decision}'"
            )

    @property
    def rejected(self) -> bool:
        return self.final_decision == "rejected"
