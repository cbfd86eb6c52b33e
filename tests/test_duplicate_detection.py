"""Tests for duplicate detection and date parsing."""

from datetime import date

import pytest

from invoice_memory.models.invoice import Invoice, InvoiceFields
from invoice_memory.pipeline.date_normalizer import parse_document_date
from invoice_memory.pipeline.duplicate_detection import (
    DUPLICATE_FLAG,
    duplicate_correction,
    find_duplicate,
)


def _invoice(invoice_id, number="INV-2024-001", vendor="Supplier GmbH") -> Invoice:
    return Invoice(
        invoice_id=invoice_id,
        vendor=vendor,
        fields=InvoiceFields(invoice_number=number),
        confidence=0.9,
    )


class TestFindDuplicate:
    """Test find_duplicate."""

    def test_same_vendor_and_number(self):
        first = _invoice("INV-A-001")
        assert find_duplicate(_invoice("INV-A-004"), [first]) is first

    def test_returns_first_match(self):
        first = _invoice("INV-A-001")
        second = _invoice("INV-A-002")
        assert find_duplicate(_invoice("INV-A-004"), [first, second]) is first

    def test_other_vendor_is_not_a_duplicate(self):
        other = _invoice("INV-B-001", vendor="Parts AG")
        assert find_duplicate(_invoice("INV-A-004"), [other]) is None

    def test_other_number_is_not_a_duplicate(self):
        other = _invoice("INV-A-002", number="INV-2024-002")
        assert find_duplicate(_invoice("INV-A-004"), [other]) is None

    def test_invoice_is_not_its_own_duplicate(self):
        invoice = _invoice("INV-A-001")
        assert find_duplicate(invoice, [invoice]) is None

    @pytest.mark.parametrize("number", [None, ""])
    def test_missing_number_never_matches(self, number):
        assert find_duplicate(_invoice("INV-A-004", number=number), [_invoice("INV-A-001", number=number)]) is None

    def test_empty_history(self):
        assert find_duplicate(_invoice("INV-A-001"), []) is None

    def test_duplicate_correction(self):
        correction = duplicate_correction(_invoice("INV-A-004"))
        assert correction.field == "invoiceNumber"
        assert correction.before == "INV-2024-001"
        assert correction.after == DUPLICATE_FLAG
        assert correction.reason == "Duplicate submission detected"


class TestParseDocumentDate:
    """Test parse_document_date."""

    @pytest.mark.parametrize("text, expected", [
        ("05.01.2024", date(2024, 1, 5)),
        ("5.1.2024", date(2024, 1, 5)),
        ("2024-01-05", date(2024, 1, 5)),
        ("2024-01-05T10:30:00", date(2024, 1, 5)),
        ("2024-01-05T10:30:00Z", date(2024, 1, 5)),
        (" 28.01.2024 ", date(2024, 1, 28)),
    ])
    def test_supported_formats(self, text, expected):
        assert parse_document_date(text) == expected

    @pytest.mark.parametrize("text", [None, "", "next week", "31.02.2024", "2024/01/05"])
    def test_unparseable(self, text):
        assert parse_document_date(text) is None
