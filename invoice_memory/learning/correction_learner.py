"""Induces static value corrections (SKU mappings, vendor defaults)."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from ..models.correction import Correction, is_empty
from ..models.field_path import FieldPath
from ..models.invoice import Invoice
from ..models.memory import ValueCorrection

logger = logging.getLogger(__name__)

GENERIC_SKU_FIELD = "lineItems.sku"


class CorrectionLearner:
    """Learns deterministic rules from a human correction.

    - lineItems[i].sku: maps the original description of item i to the SKU
      (e.g. "Seefracht" -> "FREIGHT").
    - default-value fields (currency by default): when no pattern could be
      learned for the correction, the value is kept as the vendor's default
      for when the field is missing.
    """

    def __init__(self, settings: Optional[Dict[str, Any]] = None):
        from ..config.profile_loader import DEFAULT_LEARNING

        self.settings = dict(DEFAULT_LEARNING)
        self.settings.update(settings or {})

    @property
    def confidence(self) -> float:
        return float(self.settings["static_correction_confidence"])

    def induce(
        self,
        correction: Correction,
        invoice: Invoice,
        pattern_learned: bool = False,
    ) -> Optional[ValueCorrection]:
        """Induce a static correction from one human correction.

        Args:
            correction: Human correction
            invoice: The original invoice (descriptions are read from it)
            pattern_learned: A pattern was already learned for this correction,
                so no default is needed
        """
        if is_empty(correction.after):
            return None

        try:
            path = FieldPath.parse(correction.field)
        except ValueError:
            logger.warning(f"Cannot learn from correction with unknown field {correction.field!r}")
            return None

        if path.is_line_item_sku and path.index is not None:
            return self._sku_mapping(path, correction, invoice)

        if not path.line_item and path.name in self.settings.get("default_value_fields", []):
            if pattern_learned:
                return None
            return self._default_value(path, correction, invoice)

        return None

    def _sku_mapping(self, path: FieldPath, correction: Correction, invoice: Invoice) -> Optional[ValueCorrection]:
        line_items = invoice.fields.line_items
        if path.index >= len(line_items):
            logger.debug(f"{path} has no line item on invoice {invoice.invoice_id}")
            return None

        description = line_items[path.index].description
        if not description:
            return None

        logger.debug(f"Learning SKU mapping {description!r} -> {correction.after!r}")
        return ValueCorrection(
            field=GENERIC_SKU_FIELD,
            trigger_value=description,
            corrected_value=correction.after,
            confidence=self.confidence,
            usage_count=1,
        )

    def _default_value(self, path: FieldPath, correction: Correction, invoice: Invoice) -> ValueCorrection:
        logger.debug(f"Learning default {path} = {correction.after!r} for {invoice.vendor}")
        return ValueCorrection(
            field=str(path),
            trigger_value=None,
            corrected_value=correction.after,
            condition="if_missing",
            confidence=self.confidence,
            usage_count=1,
        )
