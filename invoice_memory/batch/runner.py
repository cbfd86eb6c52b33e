"""Batch runner: process a run of invoices in order and learn from human corrections."""

import dataclasses
import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from ..config.settings import get_learning_enabled
from ..engine import LearnResult, MemoryEngine
from ..learning.store import MemoryStoreError
from ..models.correction import HumanCorrectionLog
from ..models.field_path import FieldPath, set_field
from ..models.invoice import Invoice
from ..models.process_result import ProcessResult
from ..models.reference import ReferenceData
from ..pipeline.duplicate_detection import DUPLICATE_FLAG
from ..run_summary import RunSummary

logger = logging.getLogger(__name__)


@dataclass
class InvoiceOutcome:
    """Result of one invoice in a batch."""
    invoice: Invoice
    result: Optional[ProcessResult] = None
    learned: Optional[LearnResult] = None
    error: Optional[str] = None

    @property
    def is_duplicate(self) -> bool:
        if self.result is None:
            return False
        return any(c.after == DUPLICATE_FLAG for c in self.result.proposed_corrections)


@dataclass
class BatchResult:
    """All outcomes of a batch plus its run summary."""
    outcomes: List[InvoiceOutcome] = field(default_factory=list)
    summary: Optional[RunSummary] = None

    @property
    def results(self) -> List[ProcessResult]:
        return [o.result for o in self.outcomes if o.result is not None]

    @property
    def review_required(self) -> bool:
        return any(r.requires_human_review for r in self.results)


def apply_human_corrections(invoice: Invoice, log: HumanCorrectionLog) -> Invoice:
    """Return a copy of invoice with the log's top-level corrections applied.

    Line-item corrections are not patched; the copy is only used as history
    for duplicate detection.
    """
    fields = invoice.fields.copy()
    for correction in log.corrections:
        try:
            path = FieldPath.parse(correction.field)
        except ValueError:
            logger.warning(f"{invoice.invoice_id}: ignoring correction on unknown field {correction.field!r}")
            continue
        if path.line_item:
            continue
        set_field(fields, path, correction.after)
    return dataclasses.replace(invoice, fields=fields)


def _index_logs(logs: Iterable[HumanCorrectionLog]) -> Dict[str, HumanCorrectionLog]:
    indexed: Dict[str, HumanCorrectionLog] = {}
    for log in logs:
        # First log per invoice wins
        indexed.setdefault(log.invoice_id, log)
    return indexed


def run_batch(
    invoices: List[Invoice],
    reference_data: ReferenceData,
    engine: MemoryEngine,
    correction_logs: Iterable[HumanCorrectionLog] = (),
    learning_enabled: Optional[bool] = None,
    fail_fast: bool = False,
    summary: Optional[RunSummary] = None,
) -> BatchResult:
    """Process invoices sequentially, learning from correction logs as they come.

    Each invoice is processed against the invoices processed before it. When a
    correction log exists for the invoice (and learning is enabled) the engine
    learns from it and the human-corrected copy joins the history; otherwise
    the invoice joins the history as received.

    Args:
        invoices: Invoices in processing order
        reference_data: Purchase orders and delivery notes
        engine: MemoryEngine to use
        correction_logs: Human correction logs, matched by invoice_id
        learning_enabled: Override for LEARNING_ENABLED
        fail_fast: Re-raise the first per-invoice error
        summary: RunSummary to fill (a new one is created if None)

    Returns:
        BatchResult

    Raises:
        MemoryStoreError: Always re-raised; the run summary is marked FAILED
    """
    if learning_enabled is None:
        learning_enabled = get_learning_enabled()
    if summary is None:
        summary = RunSummary.create(input_path="", profile_name=engine.profile.name)

    logs = _index_logs(correction_logs)
    batch = BatchResult(summary=summary)
    history: List[Invoice] = []
    summary.total_invoices = len(invoices)

    for i, invoice in enumerate(invoices, start=1):
        logger.info(f"Processing {i}/{len(invoices)}: {invoice.invoice_id} ({invoice.vendor})")
        outcome = InvoiceOutcome(invoice=invoice)
        batch.outcomes.append(outcome)

        try:
            outcome.result = engine.process(invoice, reference_data, history)
            summary.processed_count += 1
            if outcome.is_duplicate:
                summary.duplicate_count += 1
            if outcome.result.requires_human_review:
                summary.review_count += 1
            else:
                summary.auto_approved_count += 1

            log = logs.get(invoice.invoice_id)
            if log is not None and learning_enabled:
                outcome.learned = engine.learn(invoice, log)
                if outcome.learned.skipped:
                    history.append(invoice)
                else:
                    summary.learned_count += 1
                    summary.rules_learned += outcome.learned.rule_count
                    history.append(apply_human_corrections(invoice, log))
            else:
                history.append(invoice)

        except MemoryStoreError as e:
            outcome.error = str(e)
            summary.failed_count += 1
            summary.add_error(invoice.invoice_id, e)
            summary.complete("FAILED")
            logger.error(f"Memory store failure on {invoice.invoice_id}, aborting run: {e}")
            raise
        except Exception as e:
            outcome.error = str(e)
            summary.failed_count += 1
            summary.add_error(invoice.invoice_id, e)
            logger.warning(f"Failed to process {invoice.invoice_id}: {e}")
            if fail_fast:
                summary.complete("FAILED")
                raise

    summary.complete()
    logger.info(
        f"Batch done: {summary.processed_count} processed, {summary.auto_approved_count} auto-approved, "
        f"{summary.review_count} review, {summary.failed_count} failed"
    )
    return batch
