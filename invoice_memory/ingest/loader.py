"""Load invoices, reference data and correction logs from JSON files."""

import json
import logging
from pathlib import Path
from typing import Any, List, Type, TypeVar

from pydantic import BaseModel, ValidationError

from ..models.correction import HumanCorrectionLog
from ..models.invoice import Invoice
from ..models.reference import ReferenceData
from .schemas import CorrectionLogSchema, InvoiceSchema, ReferenceDataSchema

logger = logging.getLogger(__name__)

SchemaT = TypeVar("SchemaT", bound=BaseModel)


def _read_json(path: Path) -> Any:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Input file not found: {path}")

    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except json.JSONDecodeError as e:
        raise ValueError(f"{path}: invalid JSON: {e}") from e


def _validate(schema: Type[SchemaT], data: Any, path: Path, entry: str) -> SchemaT:
    try:
        return schema.model_validate(data)
    except ValidationError as e:
        raise ValueError(f"{path}: invalid {entry}: {e}") from e


def _read_list(path: Path, what: str) -> List[Any]:
    data = _read_json(path)
    if not isinstance(data, list):
        raise ValueError(f"{path}: expected a JSON array of {what}, got {type(data).__name__}")
    return data


def load_invoices(path: Path) -> List[Invoice]:
    """Load a JSON array of invoices.

    Args:
        path: Path to the invoices file

    Returns:
        List of Invoice in file order

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If the file or an entry is malformed
    """
    invoices = []
    for index, entry in enumerate(_read_list(path, "invoices")):
        schema = _validate(InvoiceSchema, entry, path, f"invoice #{index}")
        invoices.append(schema.to_domain())

    logger.info(f"Loaded {len(invoices)} invoices from {path}")
    return invoices


def load_reference_data(path: Path) -> ReferenceData:
    """Load the purchase order / delivery note bundle.

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If the document is malformed
    """
    data = _read_json(path)
    if not isinstance(data, dict):
        raise ValueError(f"{path}: expected a JSON object with purchaseOrders/deliveryNotes")

    reference = _validate(ReferenceDataSchema, data, path, "reference data").to_domain()
    logger.info(
        f"Loaded {len(reference.purchase_orders)} purchase orders and "
        f"{len(reference.delivery_notes)} delivery notes from {path}"
    )
    return reference


def load_correction_logs(path: Path) -> List[HumanCorrectionLog]:
    """Load a JSON array of human correction logs.

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If the file or an entry is malformed
    """
    logs = []
    for index, entry in enumerate(_read_list(path, "correction logs")):
        schema = _validate(CorrectionLogSchema, entry, path, f"correction log #{index}")
        logs.append(schema.to_domain())

    logger.info(f"Loaded {len(logs)} correction logs from {path}")
    return logs
