"""Excel export of processing results (one row per invoice, one per correction)."""

import logging
from pathlib import Path
from typing import Any, Dict, List, Sequence, Union

import pandas as pd

from ..batch.runner import InvoiceOutcome

logger = logging.getLogger(__name__)

RESULTS_SHEET = "Results"
CORRECTIONS_SHEET = "Corrections"

RESULT_COLUMNS = [
    "Invoice ID",
    "Vendor",
    "Invoice Number",
    "Invoice Date",
    "Currency",
    "PO Number",
    "Net Total",
    "Tax Total",
    "Gross Total",
    "Confidence",
    "Requires Review",
    "Corrections",
    "Learned Rules",
    "Reasoning",
    "Error",
]

CORRECTION_COLUMNS = ["Invoice ID", "Field", "From", "To", "Reason"]

_MONEY_COLUMNS = ("Net Total", "Tax Total", "Gross Total")


def _result_row(outcome: InvoiceOutcome) -> Dict[str, Any]:
    invoice = outcome.invoice
    result = outcome.result
    fields = result.normalized_fields if result is not None else invoice.fields
    return {
        "Invoice ID": invoice.invoice_id,
        "Vendor": invoice.vendor,
        "Invoice Number": fields.invoice_number or "",
        "Invoice Date": fields.invoice_date or "",
        "Currency": fields.currency or "",
        "PO Number": fields.po_number or "",
        "Net Total": fields.net_total,
        "Tax Total": fields.tax_total,
        "Gross Total": fields.gross_total,
        "Confidence": result.confidence_score if result is not None else 0.0,
        "Requires Review": "Yes" if result is None or result.requires_human_review else "No",
        "Corrections": len(result.proposed_corrections) if result is not None else 0,
        "Learned Rules": outcome.learned.rule_count if outcome.learned is not None else 0,
        "Reasoning": result.reasoning if result is not None else "",
        "Error": outcome.error or "",
    }


def _correction_rows(outcome: InvoiceOutcome) -> List[Dict[str, Any]]:
    if outcome.result is None:
        return []
    return [
        {
            "Invoice ID": outcome.invoice.invoice_id,
            "Field": c.field,
            "From": "" if c.before is None else c.before,
            "To": "" if c.after is None else c.after,
            "Reason": c.reason,
        }
        for c in outcome.result.proposed_corrections
    ]


def export_results_to_excel(
    outcomes: Sequence[InvoiceOutcome],
    output_path: Union[str, Path],
) -> str:
    """Export batch outcomes to an Excel workbook.

    Args:
        outcomes: Invoice outcomes from run_batch
        output_path: Path to output Excel file

    Returns:
        Path to created Excel file

    Excel structure:
    - "Results": one row per invoice (normalized fields, score, decision)
    - "Corrections": one row per proposed correction
    """
    if not outcomes:
        raise ValueError("Cannot export an empty result list")

    results_df = pd.DataFrame([_result_row(o) for o in outcomes], columns=RESULT_COLUMNS)
    correction_rows = [row for o in outcomes for row in _correction_rows(o)]
    corrections_df = pd.DataFrame(correction_rows, columns=CORRECTION_COLUMNS)

    output_path_obj = Path(output_path)
    output_path_obj.parent.mkdir(parents=True, exist_ok=True)

    with pd.ExcelWriter(output_path_obj, engine='openpyxl') as writer:
        results_df.to_excel(writer, index=False, sheet_name=RESULTS_SHEET)
        corrections_df.to_excel(writer, index=False, sheet_name=CORRECTIONS_SHEET)

        worksheet = writer.sheets[RESULTS_SHEET]

        from openpyxl.styles.numbers import FORMAT_NUMBER_00, FORMAT_PERCENTAGE_00

        money_idx = [results_df.columns.get_loc(name) for name in _MONEY_COLUMNS]
        confidence_idx = results_df.columns.get_loc("Confidence")

        for row in worksheet.iter_rows(min_row=2, max_row=worksheet.max_row):
            for idx in money_idx:
                row[idx].number_format = FORMAT_NUMBER_00
            row[confidence_idx].number_format = FORMAT_PERCENTAGE_00

    logger.info(f"Exported {len(outcomes)} invoices and {len(corrections_df)} corrections to {output_path_obj}")
    return str(output_path_obj)
