# document_model.py
"""
Read-only values describing one exportable quote or invoice.

A DocumentModel is built fresh for every export call (see document_builder.py)
and never mutated by the renderers. Money is carried as Decimal and rounded
to cents with ROUND_HALF_UP so repeated additions of line items never drift.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from enum import Enum
from typing import Iterable, Optional

from reportlab.lib.pagesizes import LETTER

CENT = Decimal("0.01")
ZERO = Decimal("0.00")

# Display colours (Tailwind 600 shades used by the web previews)
ORANGE = "#ea580c"
GREEN = "#16a34a"
RED = "#dc2626"


def to_decimal(value) -> Decimal:
    if isinstance(value, Decimal):
        return value
    if value is None:
        return Decimal("0")
    raw = str(value).strip()
    if not raw:
        return Decimal("0")
    try:
        return Decimal(raw)
    except InvalidOperation as exc:
        raise ValueError(f"Not a decimal amount: {value!r}") from exc


def round_money(value) -> Decimal:
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def money(value) -> str:
    return f"${round_money(value):,.2f}"


def percent(value) -> str:
    return f"{round_money(value):.2f}"


def format_date(value: date | datetime | None) -> str:
    if value is None:
        return ""
    return value.strftime("%B %d, %Y")


class DocumentKind(str, Enum):
    QUOTE = "quote"
    INVOICE = "invoice"

    @property
    def label(self) -> str:
        return "Quote" if self is DocumentKind.QUOTE else "Invoice"

    @property
    def filename_prefix(self) -> str:
        # Casing differs on purpose; downloads have always been named this way.
        return "quote" if self is DocumentKind.QUOTE else "Invoice"


class PaymentStatus(str, Enum):
    UNPAID = "unpaid"
    PARTIAL = "partial"
    PAID = "paid"

    @property
    def color(self) -> str:
        if self is PaymentStatus.PAID:
            return GREEN
        if self is PaymentStatus.PARTIAL:
            return ORANGE
        return RED


@dataclass(frozen=True)
class Recipient:
    name: str
    company: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None


@dataclass(frozen=True)
class SystemConfig:
    """Branding and legal text supplied by the caller (never fetched here)."""
    company_name: str
    tagline: str = ""
    phone: Optional[str] = None
    email: Optional[str] = None
    website: Optional[str] = None
    address: Optional[str] = None
    logo_url: Optional[str] = None
    legal_terms: Optional[str] = None
    service_types: tuple[str, ...] = ()


@dataclass(frozen=True)
class Header:
    company_name: str
    tagline: str = ""
    logo_url: Optional[str] = None
    contact_lines: tuple[str, ...] = ()
    address: Optional[str] = None

    @classmethod
    def from_branding(cls, branding: SystemConfig) -> "Header":
        contact = tuple(c.strip() for c in (branding.phone, branding.email, branding.website) if c and c.strip())
        return cls(
            company_name=branding.company_name,
            tagline=branding.tagline or "",
            logo_url=branding.logo_url or None,
            contact_lines=contact,
            address=(branding.address or "").strip() or None,
        )


@dataclass(frozen=True)
class Footer:
    legal_terms: Optional[str] = None
    service_types: tuple[str, ...] = ()

    @classmethod
    def from_branding(cls, branding: SystemConfig) -> "Footer":
        terms = (branding.legal_terms or "").strip() or None
        return cls(legal_terms=terms, service_types=tuple(branding.service_types))


@dataclass(frozen=True)
class LineItem:
    name: str
    unit_price: Decimal
    quantity: int
    line_total: Decimal
    unit: str = "each"
    description: Optional[str] = None

    def __post_init__(self):
        if int(self.quantity) < 1:
            raise ValueError(f"Line item {self.name!r}: quantity must be >= 1")
        if round_money(self.unit_price * self.quantity) != round_money(self.line_total):
            raise ValueError(
                f"Line item {self.name!r}: total {self.line_total} != {self.unit_price} x {self.quantity}"
            )

    @classmethod
    def create(cls, name: str, unit_price, quantity, *, unit: str = "each", description: str | None = None) -> "LineItem":
        price = round_money(unit_price)
        qty = int(quantity)
        return cls(
            name=(name or "").strip() or "Item",
            unit_price=price,
            quantity=qty,
            line_total=round_money(price * qty),
            unit=(unit or "each").strip(),
            description=(description or "").strip() or None,
        )


@dataclass(frozen=True)
class Totals:
    subtotal: Decimal
    tax_rate_percent: Decimal
    tax_amount: Decimal
    total: Decimal
    # Invoices only
    amount_paid: Optional[Decimal] = None
    balance_due: Optional[Decimal] = None
    payment_status: Optional[PaymentStatus] = None

    def __post_init__(self):
        if round_money(self.subtotal * self.tax_rate_percent / 100) != round_money(self.tax_amount):
            raise ValueError("Tax amount does not match subtotal x tax rate")
        if round_money(self.subtotal + self.tax_amount) != round_money(self.total):
            raise ValueError("Total does not equal subtotal + tax")
        if self.amount_paid is not None and self.balance_due is not None:
            if round_money(self.total - self.amount_paid) != round_money(self.balance_due):
                raise ValueError("Balance due does not equal total - amount paid")

    @classmethod
    def compute(cls, items: Iterable[LineItem], tax_rate_percent, amount_paid=None) -> "Totals":
        subtotal = round_money(sum((i.line_total for i in items), ZERO))
        rate = to_decimal(tax_rate_percent)
        tax = round_money(subtotal * rate / 100)
        total = round_money(subtotal + tax)
        if amount_paid is None:
            return cls(subtotal=subtotal, tax_rate_percent=rate, tax_amount=tax, total=total)

        paid = round_money(amount_paid)
        balance = round_money(total - paid)
        if balance <= 0:
            status = PaymentStatus.PAID
        elif paid > 0:
            status = PaymentStatus.PARTIAL
        else:
            status = PaymentStatus.UNPAID
        return cls(
            subtotal=subtotal,
            tax_rate_percent=rate,
            tax_amount=tax,
            total=total,
            amount_paid=paid,
            balance_due=balance,
            payment_status=status,
        )

    @property
    def tracks_payment(self) -> bool:
        return self.amount_paid is not None

    @property
    def display_balance(self) -> Decimal:
        return max(round_money(self.balance_due or ZERO), ZERO)

    @property
    def balance_color(self) -> str:
        return ORANGE if (self.balance_due or ZERO) > 0 else GREEN


@dataclass(frozen=True)
class DocumentModel:
    kind: DocumentKind
    document_number: str
    issue_date: date
    header: Header
    totals: Totals
    line_items: tuple[LineItem, ...] = ()
    recipient: Optional[Recipient] = None
    notes: Optional[str] = None
    footer: Footer = field(default_factory=Footer)
    due_or_valid_until: Optional[date] = None

    def __post_init__(self):
        expected = round_money(sum((i.line_total for i in self.line_items), ZERO))
        if expected != round_money(self.totals.subtotal):
            raise ValueError(f"Subtotal {self.totals.subtotal} != sum of line totals {expected}")

    @property
    def is_invoice(self) -> bool:
        return self.kind is DocumentKind.INVOICE

    @property
    def export_key(self) -> str:
        return f"{self.kind.value}:{self.document_number}"

    @property
    def date_label(self) -> str:
        return "Due Date" if self.is_invoice else "Valid Until"

    @property
    def filename(self) -> str:
        return f"{self.kind.filename_prefix}-{self.document_number}.pdf"


@dataclass(frozen=True)
class PageGeometry:
    page_width: float
    page_height: float
    margin_top: float = 20.0
    margin_bottom: float = 48.0
    margin_left: float = 20.0
    margin_right: float = 20.0

    @classmethod
    def letter(cls, margin: float = 20.0, margin_bottom: float = 48.0) -> "PageGeometry":
        page_w, page_h = LETTER
        return cls(
            page_width=page_w,
            page_height=page_h,
            margin_top=margin,
            margin_bottom=margin_bottom,
            margin_left=margin,
            margin_right=margin,
        )

    @property
    def content_width(self) -> float:
        return self.page_width - self.margin_left - self.margin_right

    @property
    def right_edge(self) -> float:
        return self.page_width - self.margin_right

    def break_threshold(self, row_height: float) -> float:
        return self.page_height - self.margin_bottom - row_height
