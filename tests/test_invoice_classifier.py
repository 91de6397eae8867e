"""
Unit tests for sales vs purchase classification.
"""
import pytest

from statement_ledger.models import Invoice, PURCHASE, SALES
from statement_ledger.reconciliation import InvoiceClassifier


class TestInvoiceClassifier:
    """Tests for filer-vs-vendor matching."""

    def test_trn_exact_match(self):
        classifier = InvoiceClassifier("Anything", "100-2345-6789-0003")
        invoice = Invoice(vendor_name="Other Co", vendor_trn="100234567890003")
        assert classifier.classify(invoice).invoice_type == SALES

    def test_trn_containment_needs_length(self):
        invoice = Invoice(vendor_name="Other Co", vendor_trn="TRN 100234567890003")
        assert InvoiceClassifier(None, "100234567890003").classify(invoice).invoice_type == SALES
        assert InvoiceClassifier(None, "10023").classify(invoice).invoice_type == PURCHASE

    def test_name_containment(self):
        classifier = InvoiceClassifier("Acme Trading")
        invoice = Invoice(vendor_name="ACME TRADING L.L.C")
        assert classifier.classify(invoice).invoice_type == SALES

    def test_token_ratio(self):
        classifier = InvoiceClassifier("Gulf Star Technical Services")
        invoice = Invoice(vendor_name="Gulfstar Technical Services FZE")
        assert classifier.classify(invoice).invoice_type == SALES

    def test_customer_match_is_purchase(self):
        classifier = InvoiceClassifier("Acme Trading", "100234567890003")
        invoice = Invoice(
            vendor_name="Dubai Electricity and Water Authority",
            vendor_trn="100000000000009",
            customer_name="Acme Trading LLC",
            customer_trn="100234567890003",
        )
        assert classifier.classify(invoice).invoice_type == PURCHASE

    @pytest.mark.parametrize("company_name,vendor_name", [
        (None, "Some Vendor"),
        ("", ""),
        ("Acme", ""),
    ])
    def test_empty_names_default_to_purchase(self, company_name, vendor_name):
        classifier = InvoiceClassifier(company_name)
        invoice = Invoice(vendor_name=vendor_name)
        assert classifier.classify(invoice).invoice_type == PURCHASE

    def test_classify_returns_copy(self):
        invoice = Invoice(vendor_name="Acme Trading", invoice_type=PURCHASE)
        classified = InvoiceClassifier("Acme Trading").classify(invoice)
        assert classified is not invoice
        assert invoice.invoice_type == PURCHASE
        assert classified.invoice_type == SALES
