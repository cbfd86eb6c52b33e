"""Vendor memory engine: process invoices with learned memory, learn from corrections."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from .config.profile_loader import ProfileConfig, get_default_profile
from .learning.correction_learner import CorrectionLearner
from .learning.memory_applier import MemoryApplier
from .learning.pattern_learner import PatternLearner
from .learning.store import MemoryStoreError, VendorMemoryStore
from .models.correction import Correction, HumanCorrectionLog
from .models.invoice import Invoice
from .models.memory import ExtractionPattern, ValueCorrection
from .models.process_result import AuditTrail, ProcessResult
from .models.reference import ReferenceData
from .pipeline.duplicate_detection import duplicate_correction, find_duplicate
from .pipeline.po_matching import find_matching_po
from .pipeline.tax_reconciliation import reconcile_tax
from .quality.score import score_invoice

logger = logging.getLogger(__name__)


@dataclass
class LearnResult:
    """What one learn call wrote to the store.

    Attributes:
        vendor: Vendor the log belongs to
        patterns: Induced extraction patterns, in log order
        static_corrections: Induced static corrections, in log order
        descriptions: One human-readable line per stored rule
        skipped: True for rejected logs (nothing learned)
    """

    vendor: str
    patterns: List[ExtractionPattern] = field(default_factory=list)
    static_corrections: List[ValueCorrection] = field(default_factory=list)
    descriptions: List[str] = field(default_factory=list)
    skipped: bool = False

    @property
    def rule_count(self) -> int:
        return len(self.patterns) + len(self.static_corrections)


class MemoryEngine:
    """Applies vendor memory and heuristics to invoices and learns from humans.

    The store is injected; process() only reads from it and learn() writes
    all rules induced from one correction log in a single atomic update.
    """

    def __init__(self, store: VendorMemoryStore, profile: Optional[ProfileConfig] = None):
        self.store = store
        self.profile = profile or get_default_profile()
        self.applier = MemoryApplier()
        self.pattern_learner = PatternLearner(self.profile.learning)
        self.correction_learner = CorrectionLearner(self.profile.learning)

    def process(
        self,
        invoice: Invoice,
        reference_data: ReferenceData,
        processed_invoices: Iterable[Invoice] = (),
    ) -> ProcessResult:
        """Normalize an invoice and decide whether it needs human review.

        Steps: recall memory, duplicate check, memory application, PO
        matching, tax reconciliation, scoring. A duplicate short-circuits
        after the duplicate check with score 0.0.

        Args:
            invoice: Invoice to process (never mutated)
            reference_data: Known purchase orders and delivery notes
            processed_invoices: Invoices processed earlier in this run

        Returns:
            ProcessResult

        Raises:
            MemoryStoreError: If vendor memory cannot be read
        """
        vendor = invoice.vendor
        audit_trail = AuditTrail()
        fields = invoice.fields.copy()
        corrections = []
        reasons = []
        requires_review = False

        try:
            memory = self.store.get_vendor_memory(vendor)
        except MemoryStoreError as e:
            logger.error(f"Failed to load memory for {vendor}: {e}")
            raise
        audit_trail.record("recall", f"Loaded memory for {vendor}")

        duplicate = find_duplicate(invoice, processed_invoices)
        if duplicate is not None:
            audit_trail.record("decide", "Flagged as duplicate.")
            logger.info(f"{invoice.invoice_id}: duplicate of {duplicate.invoice_id}, review required")
            return ProcessResult(
                normalized_fields=fields,
                proposed_corrections=[duplicate_correction(invoice)],
                requires_human_review=True,
                reasoning=f"Potential duplicate of invoice {duplicate.invoice_id}.",
                confidence_score=0.0,
                memory_updates=[],
                audit_trail=audit_trail.entries,
            )

        applied = self.applier.apply(fields, invoice.raw_text, memory, audit_trail)
        corrections.extend(applied.corrections)

        if not fields.po_number:
            po = find_matching_po(
                fields,
                vendor,
                reference_data,
                window_days=int(self.profile.heuristics["po_window_days"]),
                price_tolerance=float(self.profile.tolerances["price"]),
            )
            if po is not None:
                corrections.append(Correction(
                    field="poNumber",
                    before=fields.po_number,
                    after=po.po_number,
                    reason="Heuristic: Found matching PO based on vendor and line items.",
                ))
                fields.po_number = po.po_number

        tax = reconcile_tax(
            fields,
            invoice.raw_text,
            tolerance=float(self.profile.tolerances["tax"]),
            markers=self.profile.heuristics["inclusive_vat_markers"],
        )
        corrections.extend(tax.corrections)
        reasons.extend(tax.reasons)
        requires_review = requires_review or tax.requires_review

        decision = score_invoice(
            fields,
            invoice.confidence,
            corrections_proposed=bool(corrections),
            settings=self.profile.scoring,
        )
        reasons.extend(decision.reasons)
        requires_review = requires_review or decision.requires_review

        audit_trail.record("decide", f"Review: {str(requires_review).lower()}, Score: {decision.score:.2f}")
        logger.info(
            f"{invoice.invoice_id} ({vendor}): score {decision.score:.2f}, "
            f"{'review required' if requires_review else 'auto-approved'}, "
            f"{len(corrections)} corrections"
        )

        return ProcessResult(
            normalized_fields=fields,
            proposed_corrections=corrections,
            requires_human_review=requires_review,
            reasoning="".join(reasons).strip(),
            confidence_score=decision.score,
            memory_updates=applied.memory_updates,
            audit_trail=audit_trail.entries,
        )

    def learn(self, invoice: Invoice, log: HumanCorrectionLog) -> LearnResult:
        """Induce patterns and static corrections from a human correction log.

        Rejected logs are skipped. Corrections are handled in log order, the
        pattern learner before the correction learner for each one, and all
        induced rules are written with one store update.

        Args:
            invoice: The original invoice the corrections were made on
            log: Human correction log for that invoice

        Returns:
            LearnResult

        Raises:
            ValueError: If the log does not belong to the invoice
            MemoryStoreError: If the store write fails (nothing is written)
        """
        result = LearnResult(vendor=invoice.vendor)

        if log.rejected:
            logger.info(f"{log.invoice_id}: correction log rejected, nothing learned")
            result.skipped = True
            return result

        if log.invoice_id != invoice.invoice_id:
            raise ValueError(
                f"Correction log for {log.invoice_id} does not belong to invoice {invoice.invoice_id}"
            )

        for correction in log.corrections:
            pattern = self.pattern_learner.induce(correction, invoice.raw_text)
            if pattern is not None:
                result.patterns.append(pattern)
                result.descriptions.append(
                    f"Learned pattern for {pattern.field}: {pattern.regex_pattern}"
                )

            rule = self.correction_learner.induce(correction, invoice, pattern_learned=pattern is not None)
            if rule is not None:
                result.static_corrections.append(rule)
                if rule.trigger_value is not None:
                    result.descriptions.append(
                        f"Learned mapping {rule.trigger_value!r} -> {rule.corrected_value!r} for {rule.field}"
                    )
                else:
                    result.descriptions.append(
                        f"Learned default {rule.field} = {rule.corrected_value!r}"
                    )

        if result.rule_count == 0:
            logger.debug(f"{log.invoice_id}: no rules induced")
            return result

        try:
            self.store.apply_updates(
                invoice.vendor,
                patterns=result.patterns,
                corrections=result.static_corrections,
            )
        except MemoryStoreError as e:
            logger.error(f"Failed to store learned rules for {invoice.vendor}: {e}")
            raise

        for description in result.descriptions:
            logger.info(f"{invoice.vendor}: {description}")
        return result
