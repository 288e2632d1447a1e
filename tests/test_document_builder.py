"""Tests for building DocumentModels from stored records."""

from datetime import datetime
from decimal import Decimal

import pytest

from config import Config
from document_builder import (
    document_for,
    document_from_invoice,
    document_from_quote,
    line_items_from_json,
    load_branding,
)
from document_model import DocumentKind, PaymentStatus
from models import (
    Base,
    Client,
    Invoice,
    Lead,
    LegalDocuments,
    Quote,
    ServiceType,
    SystemConfigRecord,
    make_engine,
    make_session_factory,
)

ITEMS = [
    {"itemName": "Dome camera", "description": "4MP", "unit": "each", "unitPrice": "50.00", "quantity": 3, "total": 150},
    {"itemName": "NVR install", "description": "", "unit": "job", "unitPrice": "200.00", "quantity": 1, "total": 200},
]


@pytest.fixture
def session():
    engine = make_engine("sqlite://")
    Base.metadata.create_all(engine)
    with make_session_factory(engine)() as s:
        yield s


def _quote(**kwargs):
    values = dict(quote_number="Q-2024", items=ITEMS, tax_rate=Decimal("8"), total=Decimal("378.00"),
                  created_at=datetime(2024, 3, 1))
    values.update(kwargs)
    return Quote(**values)


class TestLoadBranding:

    def test_defaults_without_config_row(self, session):
        branding = load_branding(session)
        assert branding.company_name == Config.DEFAULT_COMPANY_NAME
        assert branding.logo_url is None

    def test_reads_first_row_terms_and_active_services(self, session):
        session.add(SystemConfigRecord(company_name="Acme Security", header_tagline="Safe", phone_number="555",
                                       logo_url="  "))
        session.add(LegalDocuments(terms_and_conditions="Net 30"))
        session.add_all([
            ServiceType(name="cctv", display_name="CCTV"),
            ServiceType(name="old", display_name="Retired", is_active=False),
        ])
        session.commit()

        branding = load_branding(session)
        assert branding.company_name == "Acme Security"
        assert branding.phone == "555"
        assert branding.logo_url is None
        assert branding.legal_terms == "Net 30"
        assert branding.service_types == ("CCTV",)


class TestQuoteDocuments:

    def test_totals_recomputed_from_items(self, session):
        quote = _quote()
        session.add(quote)
        session.commit()

        doc = document_from_quote(session, quote)
        assert doc.kind is DocumentKind.QUOTE
        assert doc.totals.subtotal == Decimal("350.00")
        assert doc.totals.tax_amount == Decimal("28.00")
        assert doc.totals.total == Decimal("378.00")
        assert [i.name for i in doc.line_items] == ["Dome camera", "NVR install"]
        assert doc.line_items[1].description is None
        assert doc.issue_date.isoformat() == "2024-03-01"

    def test_client_preferred_over_lead(self, session):
        lead = Lead(name="Lead Person", email="lead@x.test", phone="1")
        client = Client(name="Client Person", email="client@x.test", phone="2", company="Acme")
        session.add_all([lead, client])
        session.flush()
        quote = _quote(lead_id=lead.id, client_id=client.id)
        session.add(quote)
        session.commit()

        doc = document_from_quote(session, quote)
        assert doc.recipient.name == "Client Person"
        assert doc.recipient.company == "Acme"

    def test_lead_used_when_no_client(self, session):
        lead = Lead(name="Lead Person", email="lead@x.test", phone="1")
        session.add(lead)
        session.flush()
        quote = _quote(lead_id=lead.id)
        session.add(quote)
        session.commit()

        assert document_from_quote(session, quote).recipient.name == "Lead Person"

    def test_record_terms_override_legal_documents(self, session):
        session.add(LegalDocuments(terms_and_conditions="Standard terms"))
        plain = _quote()
        custom = _quote(quote_number="Q-2025", terms_and_conditions="Special terms")
        session.add_all([plain, custom])
        session.commit()

        assert document_from_quote(session, plain).footer.legal_terms == "Standard terms"
        assert document_from_quote(session, custom).footer.legal_terms == "Special terms"


class TestInvoiceDocuments:

    def test_payment_tracking(self, session):
        invoice = Invoice(invoice_number="INV-1001", items=ITEMS, tax_rate=Decimal("8"),
                          total=Decimal("378.00"), amount_paid=Decimal("100.00"),
                          due_date=datetime(2024, 3, 31), created_at=datetime(2024, 3, 1))
        session.add(invoice)
        session.commit()

        doc = document_from_invoice(session, invoice)
        assert doc.kind is DocumentKind.INVOICE
        assert doc.totals.balance_due == Decimal("278.00")
        assert doc.totals.payment_status is PaymentStatus.PARTIAL
        assert doc.due_or_valid_until.isoformat() == "2024-03-31"
        assert doc.filename == "Invoice-INV-1001.pdf"

    def test_document_for_dispatches_on_record_type(self, session):
        invoice = Invoice(invoice_number="INV-2", items=[], created_at=datetime(2024, 1, 1))
        session.add(invoice)
        session.commit()

        doc = document_for(session, invoice)
        assert doc.is_invoice
        assert doc.line_items == ()
        assert doc.totals.payment_status is PaymentStatus.PAID


class TestMalformedItems:

    def test_non_object_item(self):
        with pytest.raises(ValueError, match="Malformed line item"):
            line_items_from_json(["legacy string item"])

    def test_non_numeric_price(self):
        with pytest.raises(ValueError):
            line_items_from_json([{"itemName": "X", "unitPrice": "abc", "quantity": 1}])

    def test_missing_quantity_defaults_to_one(self):
        (item,) = line_items_from_json([{"itemName": "X", "unitPrice": "5"}])
        assert item.quantity == 1
