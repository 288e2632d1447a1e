# document_builder.py
"""
Turn persisted quote/invoice rows into a fresh DocumentModel for export.

Totals are recomputed from the stored line items with Decimal rather than
trusting the stored subtotal/tax/total columns; a mismatch is logged.
"""
from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Iterable, Optional

from config import Config
from document_model import (
    DocumentKind,
    DocumentModel,
    Footer,
    Header,
    LineItem,
    Recipient,
    SystemConfig,
    Totals,
    round_money,
)
from models import Invoice, Quote, active_service_types, first_legal_documents, first_system_config

logger = logging.getLogger(__name__)


def load_branding(session) -> SystemConfig:
    row = first_system_config(session)
    legal = first_legal_documents(session)
    services = tuple(s.display_name for s in active_service_types(session))

    if row is None:
        return SystemConfig(
            company_name=Config.DEFAULT_COMPANY_NAME,
            tagline=Config.DEFAULT_TAGLINE,
            legal_terms=legal.terms_and_conditions if legal else None,
            service_types=services,
        )

    return SystemConfig(
        company_name=(row.company_name or "").strip() or Config.DEFAULT_COMPANY_NAME,
        tagline=(row.header_tagline or "").strip() or Config.DEFAULT_TAGLINE,
        phone=row.phone_number,
        email=row.contact_email,
        website=row.website,
        address=row.address,
        logo_url=(row.logo_url or "").strip() or None,
        legal_terms=legal.terms_and_conditions if legal else None,
        service_types=services,
    )


def resolve_recipient(record: Quote | Invoice) -> Optional[Recipient]:
    """
    Client wins over lead when both are linked, as the on-screen preview
    shows it. The legacy quote download picked the lead first; here the same
    rule applies to both export modes.
    """
    person = record.client or record.lead
    if person is None:
        return None
    return Recipient(
        name=person.name,
        company=person.company or None,
        email=person.email or None,
        phone=person.phone or None,
        address=(person.address or "").strip() or None,
    )


def line_items_from_json(items: Iterable[dict] | None) -> tuple[LineItem, ...]:
    """Raises ValueError for malformed stored items."""
    out = []
    for raw in items or []:
        if not isinstance(raw, dict):
            raise ValueError(f"Malformed line item: {raw!r}")
        out.append(LineItem.create(
            name=raw.get("itemName") or raw.get("name") or "",
            unit_price=raw.get("unitPrice", "0"),
            quantity=max(1, int(raw.get("quantity") or 1)),
            unit=raw.get("unit") or "each",
            description=raw.get("description"),
        ))
    return tuple(out)


def _as_date(value: date | datetime | None) -> Optional[date]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    return value


def _check_stored_total(label: str, stored, computed) -> None:
    if stored is not None and round_money(stored) != computed:
        logger.warning("%s: stored total %s differs from recomputed %s", label, stored, computed)


def _terms(record: Quote | Invoice, branding: SystemConfig) -> Footer:
    terms = (record.terms_and_conditions or "").strip() or branding.legal_terms
    return Footer(legal_terms=(terms or "").strip() or None, service_types=branding.service_types)


def document_from_quote(session, quote: Quote, branding: SystemConfig | None = None) -> DocumentModel:
    branding = branding or load_branding(session)
    items = line_items_from_json(quote.items)
    totals = Totals.compute(items, quote.tax_rate or 0)
    _check_stored_total(f"quote {quote.quote_number}", quote.total, totals.total)

    return DocumentModel(
        kind=DocumentKind.QUOTE,
        document_number=quote.quote_number,
        issue_date=_as_date(quote.created_at) or date.today(),
        header=Header.from_branding(branding),
        totals=totals,
        line_items=items,
        recipient=resolve_recipient(quote),
        notes=(quote.notes or "").strip() or None,
        footer=_terms(quote, branding),
        due_or_valid_until=_as_date(quote.valid_until),
    )


def document_from_invoice(session, invoice: Invoice, branding: SystemConfig | None = None) -> DocumentModel:
    branding = branding or load_branding(session)
    items = line_items_from_json(invoice.items)
    totals = Totals.compute(items, invoice.tax_rate or 0, amount_paid=invoice.amount_paid or 0)
    _check_stored_total(f"invoice {invoice.invoice_number}", invoice.total, totals.total)

    return DocumentModel(
        kind=DocumentKind.INVOICE,
        document_number=invoice.invoice_number,
        issue_date=_as_date(invoice.created_at) or date.today(),
        header=Header.from_branding(branding),
        totals=totals,
        line_items=items,
        recipient=resolve_recipient(invoice),
        notes=(invoice.notes or "").strip() or None,
        footer=_terms(invoice, branding),
        due_or_valid_until=_as_date(invoice.due_date),
    )


def document_for(session, record: Quote | Invoice, branding: SystemConfig | None = None) -> DocumentModel:
    if isinstance(record, Invoice):
        return document_from_invoice(session, record, branding)
    return document_from_quote(session, record, branding)
