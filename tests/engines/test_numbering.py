"""Tests for store document numbering."""

from retail_engines.numbering import (
    PURCHASE_PREFIX,
    next_document_number,
    parse_sequence,
)


class TestNextDocumentNumber:

    def test_first_number(self):
        assert next_document_number([]) == "SAL-0001"

    def test_after_highest(self):
        """A gap left by a deletion is not refilled."""
        assert next_document_number(["SAL-0001", "SAL-0005", "SAL-0003"]) == "SAL-0006"

    def test_ignores_foreign_and_malformed(self):
        numbers = ["PUR-0099", "INV7", None, "", "SAL-00x2", "SAL-0002"]
        assert next_document_number(numbers) == "SAL-0003"

    def test_purchase_prefix(self):
        assert next_document_number(["SAL-0010", "PUR-0002"], prefix=PURCHASE_PREFIX) == "PUR-0003"

    def test_width_and_overflow(self):
        assert next_document_number([], prefix="INV", width=6) == "INV-000001"
        assert next_document_number(["SAL-9999"]) == "SAL-10000"


class TestParseSequence:

    def test_case_insensitive_prefix(self):
        assert parse_sequence("sal-0042", "SAL") == 42

    def test_no_match(self):
        assert parse_sequence("SAL-", "SAL") is None
        assert parse_sequence(None, "SAL") is None
