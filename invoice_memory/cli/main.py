"""CLI for running the vendor memory engine over a batch of invoices."""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from ..batch.runner import BatchResult, InvoiceOutcome, run_batch
from ..config.profile_manager import get_profile, set_profile
from ..config.settings import (
    MEMORY_BACKENDS,
    get_app_name,
    get_app_version,
    get_learning_enabled,
    get_memory_backend,
)
from ..engine import MemoryEngine
from ..ingest.loader import load_correction_logs, load_invoices, load_reference_data
from ..learning.store import MemoryStoreError, VendorMemoryStore, create_memory_store
from ..models.reference import ReferenceData
from ..run_summary import RunSummary

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="invoice-memory",
        description=f"{get_app_name()} - apply and learn vendor-specific invoice corrections",
    )

    parser.add_argument(
        "--invoices",
        required=False,
        help="JSON file with the invoices to process (in order)"
    )

    parser.add_argument(
        "--reference",
        required=False,
        help="JSON file with purchase orders and delivery notes"
    )

    parser.add_argument(
        "--corrections",
        required=False,
        help="JSON file with human correction logs to learn from"
    )

    parser.add_argument(
        "--reset-memory",
        action="store_true",
        help="Clear all vendor memory (before processing, if --invoices is given)"
    )

    parser.add_argument(
        "--show-memory",
        action="store_true",
        help="Print the stored vendor memory as JSON and exit"
    )

    parser.add_argument(
        "--vendor",
        type=str,
        help="Limit --show-memory to one vendor"
    )

    parser.add_argument(
        "--backend",
        choices=MEMORY_BACKENDS,
        help="Memory store backend (default: MEMORY_BACKEND or json)"
    )

    parser.add_argument(
        "--memory-path",
        type=str,
        help="Memory file (JSON file or SQLite database)"
    )

    parser.add_argument(
        "--profile",
        type=str,
        default="default",
        help="Profile name under configs/profiles, or path to a profile YAML file (default: default)"
    )

    parser.add_argument(
        "--output",
        type=str,
        help="Output directory for results.json and run_summary.json"
    )

    parser.add_argument(
        "--excel",
        type=str,
        help="Write results to this Excel file"
    )

    parser.add_argument(
        "--no-learn",
        action="store_true",
        help="Process only; do not learn from correction logs"
    )

    parser.add_argument(
        "--fail-fast",
        action="store_true",
        help="Stop processing on first error"
    )

    parser.add_argument(
        "--strict",
        action="store_true",
        help="Exit with error code if any invoice requires review"
    )

    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable verbose output"
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {get_app_version()}"
    )

    return parser


def _print_outcome(outcome: InvoiceOutcome) -> None:
    invoice = outcome.invoice
    print("-" * 60)
    print(f"Invoice: {invoice.invoice_id} ({invoice.vendor})")

    if outcome.result is None:
        print(f"  Failed: {outcome.error}")
        return

    result = outcome.result
    print(f"  Confidence: {result.confidence_score:.2f}")
    print(f"  Requires review: {'yes' if result.requires_human_review else 'no'}")
    if result.reasoning:
        print(f"  Reasoning: {result.reasoning}")

    if result.proposed_corrections:
        print("  Proposed corrections:")
        for c in result.proposed_corrections:
            print(f"    - [{c.field}] {c.before} -> {c.after} ({c.reason})")

    if outcome.learned is not None:
        if outcome.learned.skipped:
            print("  Human decision: rejected, nothing learned")
        for description in outcome.learned.descriptions:
            print(f"  Learned: {description}")


def _print_summary(summary: RunSummary) -> None:
    print("\n" + "=" * 60)
    print("Run Summary")
    print("=" * 60)
    print(f"Processed:     {summary.processed_count}/{summary.total_invoices}")
    print(f"Auto-approved: {summary.auto_approved_count}")
    print(f"Review:        {summary.review_count}")
    print(f"Duplicates:    {summary.duplicate_count}")
    print(f"Learned from:  {summary.learned_count} logs ({summary.rules_learned} rules)")
    print(f"Failed:        {summary.failed_count}")


def _write_outputs(batch: BatchResult, output_dir: Path) -> Path:
    output_dir.mkdir(parents=True, exist_ok=True)
    results_path = output_dir / "results.json"
    payload = [
        {
            "invoiceId": o.invoice.invoice_id,
            "vendor": o.invoice.vendor,
            "result": o.result.to_dict() if o.result is not None else None,
            "learned": o.learned.descriptions if o.learned is not None else [],
            "error": o.error,
        }
        for o in batch.outcomes
    ]
    with open(results_path, "w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2, ensure_ascii=False)

    batch.summary.output_path = str(results_path)
    return results_path


def _show_memory(store: VendorMemoryStore, vendor: Optional[str]) -> None:
    vendors = [vendor] if vendor else store.list_vendors()
    data = {name: store.get_vendor_memory(name).to_dict() for name in vendors}
    print(json.dumps({"vendors": data}, indent=2, ensure_ascii=False))


def main(argv: Optional[List[str]] = None):
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(message)s",
    )

    if not (args.invoices or args.show_memory or args.reset_memory):
        parser.error("--invoices is required (unless using --show-memory or --reset-memory)")

    try:
        backend = args.backend or get_memory_backend()
        store = create_memory_store(backend, Path(args.memory_path) if args.memory_path else None)

        if args.reset_memory:
            store.reset()
            print("Vendor memory cleared")

        if args.show_memory:
            _show_memory(store, args.vendor)
            sys.exit(0)

        if not args.invoices:
            sys.exit(0)

        profile = set_profile(args.profile)
        invoices = load_invoices(Path(args.invoices))
        reference = load_reference_data(Path(args.reference)) if args.reference else ReferenceData()
        logs = load_correction_logs(Path(args.corrections)) if args.corrections else []

        summary = RunSummary.create(args.invoices, profile_name=profile.name, memory_backend=backend)
        engine = MemoryEngine(store, get_profile())
        batch = run_batch(
            invoices,
            reference,
            engine,
            correction_logs=logs,
            learning_enabled=False if args.no_learn else get_learning_enabled(),
            fail_fast=args.fail_fast,
            summary=summary,
        )

        for outcome in batch.outcomes:
            _print_outcome(outcome)
        _print_summary(summary)

        if args.excel:
            from ..export.excel_export import export_results_to_excel

            summary.excel_path = export_results_to_excel(batch.outcomes, args.excel)
            print(f"Excel: {summary.excel_path}")

        if args.output:
            output_dir = Path(args.output)
            results_path = _write_outputs(batch, output_dir)
            summary.save(output_dir / "run_summary.json")
            print(f"Results: {results_path}")

        exit_code = 0
        if summary.failed_count > 0:
            exit_code = 1
        elif args.strict and batch.review_required:
            exit_code = 1

        sys.exit(exit_code)

    except MemoryStoreError as e:
        print(f"Memory store error ({e.operation}, vendor={e.vendor}): {e}", file=sys.stderr)
        sys.exit(1)
    except (FileNotFoundError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
