"""Applies a vendor's learned memory to the working copy of an invoice."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import List, Optional

from ..models.correction import Correction, is_empty
from ..models.field_path import FieldPath, get_field, set_field
from ..models.invoice import InvoiceFields
from ..models.memory import ExtractionPattern, ValueCorrection, VendorMemory
from ..models.process_result import AuditTrail

logger = logging.getLogger(__name__)


def extract_with_regex(text: str, pattern: str) -> Optional[str]:
    """Run a learned pattern (case-insensitive) against raw text.

    Returns:
        First capture group, or the whole match for patterns without groups;
        None when nothing matches or the pattern does not compile
    """
    try:
        regex = re.compile(pattern, re.IGNORECASE)
    except re.error as e:
        logger.warning(f"Skipping malformed pattern {pattern!r}: {e}")
        return None

    match = regex.search(text or "")
    if not match:
        return None
    value = match.group(1) if regex.groups else match.group(0)
    return value or None


@dataclass
class ApplyOutcome:
    """Corrections made by memory application and the memory entries used."""
    corrections: List[Correction] = field(default_factory=list)
    memory_updates: List[str] = field(default_factory=list)


class MemoryApplier:
    """Fills missing fields with learned patterns and applies static rules.

    Patterns only ever fill empty fields. Static line-item SKU rules map every
    item whose description contains the trigger and whose SKU is empty;
    top-level rules fill missing values, or always apply with condition "always".
    """

    def apply(
        self,
        fields: InvoiceFields,
        raw_text: str,
        memory: VendorMemory,
        audit_trail: AuditTrail,
    ) -> ApplyOutcome:
        """Apply memory to fields in place.

        Args:
            fields: Working copy to normalize (mutated)
            raw_text: Document text the patterns run against
            memory: Vendor memory snapshot
            audit_trail: Trail receiving one "apply" entry per application

        Returns:
            ApplyOutcome with the corrections in application order
        """
        outcome = ApplyOutcome()

        for pattern in memory.patterns:
            self._apply_pattern(fields, raw_text, pattern, audit_trail, outcome)

        for rule in memory.static_corrections:
            self._apply_static_correction(fields, rule, audit_trail, outcome)

        if outcome.corrections:
            logger.debug(
                f"Memory for {memory.vendor_name} produced {len(outcome.corrections)} corrections"
            )
        return outcome

    def _apply_pattern(
        self,
        fields: InvoiceFields,
        raw_text: str,
        pattern: ExtractionPattern,
        audit_trail: AuditTrail,
        outcome: ApplyOutcome,
    ) -> None:
        path = _parse_path(pattern.field)
        if path is None or path.is_generic:
            return

        current = get_field(fields, path)
        if not is_empty(current):
            return
        if path.line_item and path.index >= len(fields.line_items):
            return

        extracted = extract_with_regex(raw_text, pattern.regex_pattern)
        if extracted is None:
            return

        set_field(fields, path, extracted)
        outcome.corrections.append(Correction(
            field=str(path),
            before=current,
            after=extracted,
            reason=f"Memory applied: Found match in raw text using learned pattern for {path}",
        ))
        outcome.memory_updates.append(
            f"Used pattern {pattern.regex_pattern!r} for {path} "
            f"(confidence {pattern.confidence:.2f}, used {pattern.usage_count}x)"
        )
        audit_trail.record("apply", f"Applied pattern for {path}: {extracted}")

    def _apply_static_correction(
        self,
        fields: InvoiceFields,
        rule: ValueCorrection,
        audit_trail: AuditTrail,
        outcome: ApplyOutcome,
    ) -> None:
        path = _parse_path(rule.field)
        if path is None:
            return

        if path.line_item:
            if path.is_line_item_sku and rule.trigger_value:
                self._apply_sku_mapping(fields, path, rule, audit_trail, outcome)
            return

        current = get_field(fields, path)
        if not (is_empty(current) or rule.condition == "always"):
            return
        if current == rule.corrected_value:
            return

        set_field(fields, path, rule.corrected_value)
        outcome.corrections.append(Correction(
            field=str(path),
            before=current,
            after=rule.corrected_value,
            reason=f"Memory applied: Static correction for {path}",
        ))
        outcome.memory_updates.append(
            f"Used static correction {path} -> {rule.corrected_value!r} "
            f"(confidence {rule.confidence:.2f})"
        )
        audit_trail.record("apply", f"Applied static correction for {path}: {rule.corrected_value}")

    def _apply_sku_mapping(
        self,
        fields: InvoiceFields,
        path: FieldPath,
        rule: ValueCorrection,
        audit_trail: AuditTrail,
        outcome: ApplyOutcome,
    ) -> None:
        for index, item in enumerate(fields.line_items):
            if not item.description or rule.trigger_value not in item.description:
                continue
            if not is_empty(item.sku):
                continue

            before = item.sku
            item.sku = rule.corrected_value
            outcome.corrections.append(Correction(
                field=str(path.at(index)),
                before=before,
                after=rule.corrected_value,
                reason=(
                    f"Memory applied: Mapped description '{item.description}' "
                    f"to SKU '{rule.corrected_value}'"
                ),
            ))
            outcome.memory_updates.append(
                f"Used SKU mapping {rule.trigger_value!r} -> {rule.corrected_value!r} "
                f"(confidence {rule.confidence:.2f})"
            )
            audit_trail.record(
                "apply",
                f"Mapped line item {index} '{item.description}' to SKU {rule.corrected_value}",
            )


def _parse_path(text: str) -> Optional[FieldPath]:
    try:
        return FieldPath.parse(text)
    except ValueError:
        logger.warning(f"Ignoring memory entry with unknown field path {text!r}")
        return None
