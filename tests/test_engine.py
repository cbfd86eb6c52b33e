"""Tests for MemoryEngine.process and MemoryEngine.learn."""

import logging
from unittest.mock import MagicMock, patch

import pytest

from invoice_memory.config.profile_loader import ProfileConfig
from invoice_memory.engine import MemoryEngine
from invoice_memory.learning.store import (
    InMemoryVendorMemoryStore,
    MemoryStoreError,
    VendorMemoryStore,
)
from invoice_memory.models.correction import Correction, HumanCorrectionLog
from invoice_memory.models.invoice import Invoice, InvoiceFields, LineItem
from invoice_memory.models.memory import VendorMemory
from invoice_memory.models.reference import PurchaseOrder, ReferenceData
from invoice_memory.pipeline.duplicate_detection import DUPLICATE_FLAG

SUPPLIER = "Supplier GmbH"
FREIGHT = "Freight & Co"
NO_REFERENCE = ReferenceData()


def _invoice(
    invoice_id,
    number,
    vendor=SUPPLIER,
    raw_text="",
    confidence=0.9,
    line_items=None,
    **overrides,
) -> Invoice:
    values = dict(
        invoice_number=number,
        invoice_date="05.01.2024",
        currency="EUR",
        net_total=100.0,
        tax_rate=0.19,
        tax_total=19.0,
        gross_total=119.0,
        line_items=line_items or [],
    )
    values.update(overrides)
    return Invoice(
        invoice_id=invoice_id,
        vendor=vendor,
        fields=InvoiceFields(**values),
        confidence=confidence,
        raw_text=raw_text,
    )


def _service_date_log(invoice_id="INV-A-001") -> HumanCorrectionLog:
    return HumanCorrectionLog(
        invoice_id=invoice_id,
        vendor=SUPPLIER,
        corrections=[Correction(field="serviceDate", before=None, after="2024-01-01", reason="Leistungsdatum")],
    )


@pytest.fixture
def store():
    return InMemoryVendorMemoryStore()


@pytest.fixture
def engine(store):
    return MemoryEngine(store, ProfileConfig(name="test"))


@pytest.fixture
def first_supplier_invoice():
    return _invoice(
        "INV-A-001",
        "INV-2024-001",
        raw_text="Rechnung INV-2024-001\nLeistungsdatum: 01.01.2024",
        confidence=0.78,
    )


class TestProcess:
    """Test MemoryEngine.process."""

    def test_without_memory(self, engine, first_supplier_invoice):
        result = engine.process(first_supplier_invoice, NO_REFERENCE)

        assert result.proposed_corrections == []
        assert result.confidence_score == 0.78
        assert result.requires_human_review
        assert result.reasoning == ""
        assert [e.step for e in result.audit_trail] == ["recall", "decide"]
        assert result.audit_trail[0].details == f"Loaded memory for {SUPPLIER}"
        assert result.audit_trail[-1].details == "Review: true, Score: 0.78"

    def test_input_is_not_mutated(self, engine, store, first_supplier_invoice):
        engine.learn(first_supplier_invoice, _service_date_log())
        second = _invoice("INV-A-002", "INV-2024-002", raw_text="Leistungsdatum: 05.01.2024")

        result = engine.process(second, NO_REFERENCE)

        assert result.normalized_fields.service_date == "05.01.2024"
        assert second.fields.service_date is None

    def test_duplicate_short_circuits(self, engine, first_supplier_invoice):
        resubmitted = _invoice("INV-A-004", "INV-2024-001", confidence=0.9)
        result = engine.process(resubmitted, NO_REFERENCE, [first_supplier_invoice])

        assert result.requires_human_review
        assert result.confidence_score == 0.0
        assert result.reasoning == "Potential duplicate of invoice INV-A-001."
        assert [c.after for c in result.proposed_corrections] == [DUPLICATE_FLAG]
        assert [e.step for e in result.audit_trail] == ["recall", "decide"]
        assert result.audit_trail[-1].details == "Flagged as duplicate."
        assert result.memory_updates == []

    def test_duplicate_logged_once(self, engine, first_supplier_invoice, caplog):
        resubmitted = _invoice("INV-A-004", "INV-2024-001")

        with caplog.at_level(logging.INFO, logger="invoice_memory"):
            engine.process(resubmitted, NO_REFERENCE, [first_supplier_invoice])

        messages = [r.getMessage() for r in caplog.records if r.levelno >= logging.INFO]
        assert messages == ["INV-A-004: duplicate of INV-A-001, review required"]

    def test_invoice_is_not_its_own_duplicate(self, engine, first_supplier_invoice):
        result = engine.process(first_supplier_invoice, NO_REFERENCE, [first_supplier_invoice])
        assert result.confidence_score > 0.0

    def test_matches_purchase_order(self, engine):
        invoice = _invoice(
            "INV-A-003",
            "INV-2024-003",
            confidence=0.74,
            invoice_date="20.02.2024",
            po_number=None,
            net_total=1000.0,
            tax_total=190.0,
            gross_total=1190.0,
            line_items=[LineItem(sku="WIDGET-002", description="Widget", quantity=50, unit_price=20.0)],
        )
        po = PurchaseOrder(
            po_number="PO-A-051",
            vendor=SUPPLIER,
            date="05.02.2024",
            line_items=(LineItem(sku="WIDGET-002", description="Widget", quantity=50, unit_price=21.0),),
        )
        result = engine.process(invoice, ReferenceData(purchase_orders=(po,)))

        assert result.normalized_fields.po_number == "PO-A-051"
        correction = result.proposed_corrections[0]
        assert correction.field == "poNumber"
        assert correction.before is None
        assert correction.reason == "Heuristic: Found matching PO based on vendor and line items."
        assert result.confidence_score == pytest.approx(0.84)
        assert not result.requires_human_review

    def test_existing_po_number_is_kept(self, engine):
        invoice = _invoice(
            "INV-A-005",
            "INV-2024-005",
            po_number="PO-A-999",
            line_items=[LineItem(sku="WIDGET-002", quantity=50, unit_price=20.0)],
        )
        po = PurchaseOrder(
            po_number="PO-A-051",
            vendor=SUPPLIER,
            date="01.01.2024",
            line_items=(LineItem(sku="WIDGET-002", quantity=50, unit_price=20.0),),
        )
        result = engine.process(invoice, ReferenceData(purchase_orders=(po,)))

        assert result.normalized_fields.po_number == "PO-A-999"
        assert result.proposed_corrections == []

    def test_inclusive_vat_repair(self, engine):
        invoice = _invoice(
            "INV-B-002",
            "PA-7781",
            vendor="Parts AG",
            raw_text="Gesamtbetrag 2.400,00 (incl. VAT)",
            confidence=0.75,
            net_total=2400.0,
            tax_total=0.0,
            gross_total=2400.0,
        )
        result = engine.process(invoice, NO_REFERENCE)

        assert result.normalized_fields.net_total == 2016.81
        assert result.normalized_fields.tax_total == 383.19
        assert [c.field for c in result.proposed_corrections] == ["netTotal", "taxTotal"]
        assert result.confidence_score == pytest.approx(0.85)
        assert not result.requires_human_review

    def test_invalid_totals_force_review(self, engine):
        invoice = _invoice("INV-X-001", "X-1", confidence=0.95, gross_total=150.0)
        result = engine.process(invoice, NO_REFERENCE)

        assert result.requires_human_review
        assert result.confidence_score == 0.95
        assert result.reasoning == (
            "Totals do not sum up (Net + Tax != Gross). "
            "Tax calculation invalid (Net * Rate != Gross)."
        )

    def test_missing_critical_field(self, engine):
        invoice = _invoice("INV-X-002", "X-2", confidence=0.95, currency=None)
        result = engine.process(invoice, NO_REFERENCE)

        assert result.requires_human_review
        assert result.reasoning == "Critical fields missing."

    def test_process_never_writes_memory(self):
        store = MagicMock(spec=VendorMemoryStore)
        store.get_vendor_memory.return_value = VendorMemory(vendor_name=SUPPLIER)
        engine = MemoryEngine(store, ProfileConfig(name="test"))

        engine.process(_invoice("INV-A-001", "INV-2024-001"), NO_REFERENCE)

        store.get_vendor_memory.assert_called_once_with(SUPPLIER)
        store.apply_updates.assert_not_called()
        store.add_pattern.assert_not_called()
        store.add_static_correction.assert_not_called()

    def test_store_failure_propagates(self, engine, store, first_supplier_invoice):
        with patch.object(store, "get_vendor_memory", side_effect=MemoryStoreError("unavailable")):
            with pytest.raises(MemoryStoreError):
                engine.process(first_supplier_invoice, NO_REFERENCE)

    def test_to_dict(self, engine, first_supplier_invoice):
        data = engine.process(first_supplier_invoice, NO_REFERENCE).to_dict()

        assert data["requiresHumanReview"] is True
        assert data["confidenceScore"] == 0.78
        assert data["normalizedInvoice"]["invoiceNumber"] == "INV-2024-001"
        assert [entry["step"] for entry in data["auditTrail"]] == ["recall", "decide"]


class TestLearn:
    """Test MemoryEngine.learn and its effect on later invoices."""

    def test_service_date_pattern_end_to_end(self, engine, store, first_supplier_invoice):
        learned = engine.learn(first_supplier_invoice, _service_date_log())

        assert learned.rule_count == 1
        assert learned.descriptions == [
            r"Learned pattern for serviceDate: Leistungsdatum:?\s*(\d{2}\.\d{2}\.\d{4})"
        ]

        second = _invoice(
            "INV-A-002",
            "INV-2024-002",
            raw_text="Rechnung INV-2024-002\nLeistungsdatum: 05.01.2024",
            confidence=0.72,
        )
        result = engine.process(second, NO_REFERENCE, [first_supplier_invoice])

        assert result.normalized_fields.service_date == "05.01.2024"
        assert result.proposed_corrections[0].field == "serviceDate"
        assert result.confidence_score == pytest.approx(0.82)
        assert not result.requires_human_review
        assert result.reasoning == "Applied corrections based on memory/heuristics."
        assert [e.step for e in result.audit_trail] == ["recall", "apply", "decide"]
        assert len(result.memory_updates) == 1

    def test_sku_mapping_end_to_end(self, engine):
        first = _invoice(
            "INV-C-001",
            "FC-1001",
            vendor=FREIGHT,
            raw_text="Pos 1 Seefracht 500,00",
            line_items=[LineItem(description="Seefracht", quantity=1, unit_price=100.0)],
        )
        log = HumanCorrectionLog(
            invoice_id="INV-C-001",
            vendor=FREIGHT,
            corrections=[Correction(field="lineItems[0].sku", before=None, after="FREIGHT")],
        )
        learned = engine.learn(first, log)

        assert learned.patterns == []
        assert learned.descriptions == ["Learned mapping 'Seefracht' -> 'FREIGHT' for lineItems.sku"]

        second = _invoice(
            "INV-C-002",
            "FC-1002",
            vendor=FREIGHT,
            line_items=[LineItem(description="Seefracht Hamburg", quantity=1, unit_price=100.0)],
        )
        result = engine.process(second, NO_REFERENCE)

        assert result.normalized_fields.line_items[0].sku == "FREIGHT"
        assert result.proposed_corrections[0].field == "lineItems[0].sku"

    def test_currency_default_end_to_end(self, engine):
        first = _invoice("INV-B-001", "PA-7780", vendor="Parts AG", currency=None, raw_text="Netto 100,00")
        log = HumanCorrectionLog(
            invoice_id="INV-B-001",
            vendor="Parts AG",
            corrections=[Correction(field="currency", after="EUR")],
        )
        learned = engine.learn(first, log)
        assert learned.descriptions == ["Learned default currency = 'EUR'"]

        second = _invoice("INV-B-002", "PA-7781", vendor="Parts AG", currency=None, confidence=0.75)
        result = engine.process(second, NO_REFERENCE)

        assert result.normalized_fields.currency == "EUR"
        assert not result.requires_human_review

    def test_unlabeled_currency_becomes_default(self, engine, store):
        first = _invoice("INV-B-001", "PA-7780", vendor="Parts AG", currency=None, raw_text="Total 119,00 EUR")
        log = HumanCorrectionLog(
            invoice_id="INV-B-001",
            vendor="Parts AG",
            corrections=[Correction(field="currency", after="EUR")],
        )
        learned = engine.learn(first, log)

        assert learned.patterns == []
        assert learned.descriptions == ["Learned default currency = 'EUR'"]
        assert len(store.get_vendor_memory("Parts AG").static_corrections) == 1

        second = _invoice("INV-B-002", "PA-7781", vendor="Parts AG", currency=None, raw_text="Total 238,00 EUR")
        result = engine.process(second, NO_REFERENCE)

        assert result.normalized_fields.currency == "EUR"
        assert not result.requires_human_review

    def test_labeled_currency_learns_pattern_only(self, engine):
        first = _invoice("INV-B-001", "PA-7780", vendor="Parts AG", currency=None, raw_text="Währung: EUR")
        log = HumanCorrectionLog(
            invoice_id="INV-B-001",
            vendor="Parts AG",
            corrections=[Correction(field="currency", after="EUR")],
        )
        learned = engine.learn(first, log)

        assert len(learned.patterns) == 1
        assert learned.static_corrections == []

    def test_memory_is_vendor_scoped(self, engine, first_supplier_invoice):
        engine.learn(first_supplier_invoice, _service_date_log())
        other = _invoice("INV-B-003", "PA-1", vendor="Parts AG", raw_text="Leistungsdatum: 05.01.2024")

        assert engine.process(other, NO_REFERENCE).normalized_fields.service_date is None

    def test_learning_twice_reinforces(self, engine, store, first_supplier_invoice):
        engine.learn(first_supplier_invoice, _service_date_log())
        engine.learn(first_supplier_invoice, _service_date_log())

        patterns = store.get_vendor_memory(SUPPLIER).patterns
        assert len(patterns) == 1
        assert patterns[0].usage_count == 2
        assert patterns[0].confidence == pytest.approx(0.65)

    def test_rejected_log_is_a_noop(self, engine, store, first_supplier_invoice):
        log = _service_date_log()
        log.final_decision = "rejected"

        learned = engine.learn(first_supplier_invoice, log)

        assert learned.skipped
        assert learned.rule_count == 0
        assert store.list_vendors() == []

    def test_nothing_induced_writes_nothing(self, engine, store, first_supplier_invoice):
        log = HumanCorrectionLog(
            invoice_id="INV-A-001",
            vendor=SUPPLIER,
            corrections=[Correction(field="poNumber", after="P1")],
        )
        learned = engine.learn(first_supplier_invoice, log)

        assert learned.rule_count == 0
        assert not learned.skipped
        assert store.list_vendors() == []

    def test_log_for_other_invoice(self, engine, first_supplier_invoice):
        with pytest.raises(ValueError, match="does not belong"):
            engine.learn(first_supplier_invoice, _service_date_log(invoice_id="INV-A-999"))

    def test_store_failure_writes_nothing(self, engine, store, first_supplier_invoice):
        log = HumanCorrectionLog(
            invoice_id="INV-A-001",
            vendor=SUPPLIER,
            corrections=[
                Correction(field="serviceDate", after="2024-01-01"),
                Correction(field="currency", after="CHF"),
            ],
        )
        failure = MemoryStoreError("disk full", vendor=SUPPLIER, operation="apply_updates")

        with patch.object(store, "_commit", side_effect=failure):
            with pytest.raises(MemoryStoreError):
                engine.learn(first_supplier_invoice, log)

        assert store.get_vendor_memory(SUPPLIER).is_empty

    def test_all_rules_in_one_update(self, first_supplier_invoice):
        store = MagicMock(spec=VendorMemoryStore)
        engine = MemoryEngine(store, ProfileConfig(name="test"))
        log = HumanCorrectionLog(
            invoice_id="INV-A-001",
            vendor=SUPPLIER,
            corrections=[
                Correction(field="serviceDate", after="2024-01-01"),
                Correction(field="currency", after="CHF"),
            ],
        )

        learned = engine.learn(first_supplier_invoice, log)

        assert learned.rule_count == 2
        store.apply_updates.assert_called_once_with(
            SUPPLIER,
            patterns=learned.patterns,
            corrections=learned.static_corrections,
        )
