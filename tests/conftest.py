"""Shared fixtures: branding, Scenario A quote, Scenario B invoice, logo bytes."""

import io
from datetime import date

import pytest
from PIL import Image

from document_model import (
    DocumentKind,
    DocumentModel,
    Footer,
    Header,
    LineItem,
    Recipient,
    SystemConfig,
    Totals,
)


def make_png(width: int = 40, height: int = 20, color: str = "red") -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", (width, height), color).save(buf, "PNG")
    return buf.getvalue()


def make_document(kind=DocumentKind.QUOTE, number="Q-2024", items=None, tax="8", amount_paid=None,
                  branding=None, **kwargs) -> DocumentModel:
    branding = branding or SystemConfig(company_name="FibreUS", tagline="Electronic Security & Tech Services")
    if items is None:
        items = (
            LineItem.create("Dome camera", "50.00", 3, description="4MP outdoor dome"),
            LineItem.create("NVR install", "200.00", 1),
        )
    items = tuple(items)
    totals = Totals.compute(items, tax, amount_paid=amount_paid)
    kwargs.setdefault("recipient", Recipient(name="Jane Doe", company="Acme", email="jane@acme.test"))
    return DocumentModel(
        kind=kind,
        document_number=number,
        issue_date=date(2024, 3, 1),
        header=Header.from_branding(branding),
        totals=totals,
        line_items=items,
        footer=Footer.from_branding(branding),
        **kwargs,
    )


@pytest.fixture
def png_bytes():
    return make_png()


@pytest.fixture
def branding():
    return SystemConfig(
        company_name="FibreUS",
        tagline="Electronic Security & Tech Services",
        phone="555-0100",
        email="info@fibreus.test",
        website="fibreus.test",
        address="1 Main St, Springfield",
        legal_terms="Payment due within 30 days.\nWork warranted for 90 days.",
        service_types=("CCTV", "Access Control", "Networking"),
    )


@pytest.fixture
def quote_document(branding):
    """Scenario A: 3 x 50.00 + 1 x 200.00 at 8% tax."""
    return make_document(DocumentKind.QUOTE, "Q-2024", branding=branding, notes="Install on weekdays only.")


@pytest.fixture
def invoice_document(branding):
    """Scenario B: total 378.00, 100.00 paid."""
    return make_document(DocumentKind.INVOICE, "INV-1001", amount_paid="100.00", branding=branding,
                         due_or_valid_until=date(2024, 3, 31))


@pytest.fixture
def long_quote():
    items = [LineItem.create(f"Item {i:02d}", "10.00", 2) for i in range(60)]
    return make_document(DocumentKind.QUOTE, "Q-LONG", items=items)
