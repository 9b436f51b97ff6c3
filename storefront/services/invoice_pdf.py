# storefront/services/invoice_pdf.py
"""
PDF layout for order invoices.

Takes the plain-text invoice from OrderService.render_invoice (first line
is the heading) and lays it out on an A4 page with the core Helvetica font.
"""
from fpdf import FPDF

SECTION_HEADINGS = {"Items"}


def _latin1(text: str) -> str:
    # core PDF fonts only cover latin-1
    return text.encode("latin-1", "replace").decode("latin-1")


def invoice_to_pdf(text: str, title: str = "Invoice") -> bytes:
    heading, *rows = text.rstrip("\n").splitlines() or [title]

    pdf = FPDF(format="A4")
    pdf.set_title(_latin1(title))
    pdf.add_page()

    pdf.set_font("Helvetica", "B", 18)
    pdf.cell(0, 12, _latin1(heading), new_x="LMARGIN", new_y="NEXT", align="C")

    for row in rows:
        if not row:
            pdf.ln(4)
            continue
        bold = row in SECTION_HEADINGS or row.startswith("Total:")
        pdf.set_font("Helvetica", "B" if bold else "", 11)
        pdf.multi_cell(0, 7, _latin1(row), new_x="LMARGIN", new_y="NEXT", align="L")

    return bytes(pdf.output())
