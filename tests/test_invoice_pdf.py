"""Tests for the PDF invoice layout."""

from storefront.services.invoice_pdf import invoice_to_pdf


def test_renders_a_pdf_document():
    pdf = invoice_to_pdf("INVOICE\n\nItems\n1) Logo Tee x 1 = 20.00 INR\n\nTotal: 20.00 INR\n")

    assert pdf.startswith(b"%PDF-")
    assert pdf.rstrip().endswith(b"%%EOF")


def test_text_outside_latin1_does_not_fail():
    pdf = invoice_to_pdf("INVOICE\nCustomer: Zoë “Z” Ng\n1) Kurta – ₹ edition x 1 = 20.00 INR\n")

    assert pdf.startswith(b"%PDF-")


def test_empty_text_still_has_a_heading():
    assert invoice_to_pdf("").startswith(b"%PDF-")
