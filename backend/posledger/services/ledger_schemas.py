# Overview: Typed drafts passed into the ledger services, with payload parsing.

"""
Drafts are what the Order Service and the Payments UI hand to the ledger.
from_payload() normalizes a JSON body (cents or decimal amounts) and raises
ValidationError for anything malformed; validate() checks cross-field rules.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from ..money import cents_from_payload
from ..time_utils import parse_iso_datetime
from ..validation import ValidationError, optional_int, optional_str, require_choice, require_int


# =============================================================================
# STATUS VOCABULARY
# =============================================================================

ORDER_STATUS_DRAFT = "draft"
ORDER_STATUS_QR_PENDING = "qr-pending"
ORDER_STATUS_CONFIRMED = "confirmed"
ORDER_STATUS_COMPLETED = "completed"
ORDER_STATUS_CANCELLED = "cancelled"

ORDER_STATUSES = {
    ORDER_STATUS_DRAFT,
    ORDER_STATUS_QR_PENDING,
    ORDER_STATUS_CONFIRMED,
    ORDER_STATUS_COMPLETED,
    ORDER_STATUS_CANCELLED,
}

PAYMENT_STATUS_PAID = "paid"
PAYMENT_STATUS_DUE = "due"
PAYMENT_STATUS_PARTIAL = "partial"

PAYMENT_STATUSES = {PAYMENT_STATUS_PAID, PAYMENT_STATUS_DUE, PAYMENT_STATUS_PARTIAL}

# "partial" only ever comes out of the allocation engine
CREATION_PAYMENT_STATUSES = {PAYMENT_STATUS_PAID, PAYMENT_STATUS_DUE}

# Orders that still carry a balance
DUE_PAYMENT_STATUSES = (PAYMENT_STATUS_DUE, PAYMENT_STATUS_PARTIAL)


def _parse_datetime(value: Any, field_name: str) -> datetime | None:
    if value is None or isinstance(value, datetime):
        return value
    try:
        return parse_iso_datetime(str(value))
    except ValueError:
        raise ValidationError(f"{field_name} must be an ISO-8601 datetime")


# =============================================================================
# ORDERS
# =============================================================================

@dataclass
class LineItemDraft:
    quantity: int
    unit_price_cents: int
    total_cents: int | None = None
    product_id: int | None = None
    product_name: str | None = None

    @classmethod
    def from_payload(cls, data: dict) -> "LineItemDraft":
        if not isinstance(data, dict):
            raise ValidationError("Each item must be an object")
        # The POS sends "price"; "unit_price" is accepted as the explicit name
        unit_price = cents_from_payload(data, "unit_price", required=False)
        if unit_price is None:
            unit_price = cents_from_payload(data, "price")
        return cls(
            quantity=require_int(data.get("quantity"), "quantity"),
            unit_price_cents=unit_price,
            total_cents=cents_from_payload(data, "total", required=False),
            product_id=optional_int(data.get("product_id"), "product_id"),
            product_name=optional_str(data.get("product_name"), "product_name", max_length=255),
        )

    def validate(self) -> None:
        if self.quantity <= 0:
            raise ValidationError("Item quantity must be positive")
        if self.unit_price_cents < 0:
            raise ValidationError("Item price cannot be negative")
        expected = self.quantity * self.unit_price_cents
        if self.total_cents is None:
            self.total_cents = expected
        elif self.total_cents != expected:
            raise ValidationError(
                "Item total does not equal quantity x unit price",
                details={"expected_total_cents": expected, "total_cents": self.total_cents},
            )


@dataclass
class OrderDraft:
    subtotal_cents: int | None = None
    discount_cents: int = 0
    total_cents: int | None = None
    status: str = ORDER_STATUS_DRAFT
    payment_method: str | None = None
    payment_status: str = PAYMENT_STATUS_PAID
    customer_id: int | None = None
    customer_name: str | None = None
    customer_phone: str | None = None
    branch_id: int | None = None
    order_type: str | None = None
    table_label: str | None = None
    notes: str | None = None

    @classmethod
    def from_payload(cls, data: dict) -> "OrderDraft":
        if not isinstance(data, dict):
            raise ValidationError("Invalid JSON payload")
        return cls(
            subtotal_cents=cents_from_payload(data, "subtotal", required=False),
            discount_cents=cents_from_payload(data, "discount", required=False, default=0),
            total_cents=cents_from_payload(data, "total", required=False),
            status=require_choice(data.get("status") or ORDER_STATUS_DRAFT, "order status", ORDER_STATUSES),
            payment_method=optional_str(data.get("payment_method"), "payment_method", max_length=32),
            payment_status=require_choice(
                data.get("payment_status") or PAYMENT_STATUS_PAID, "payment_status at creation", CREATION_PAYMENT_STATUSES,
            ),
            customer_id=optional_int(data.get("customer_id"), "customer_id"),
            customer_name=optional_str(data.get("customer_name"), "customer_name", max_length=255),
            customer_phone=optional_str(data.get("customer_phone"), "customer_phone", max_length=32),
            branch_id=optional_int(data.get("branch_id"), "branch_id"),
            order_type=optional_str(data.get("order_type"), "order_type", max_length=32),
            table_label=optional_str(data.get("table_label"), "table_label", max_length=32),
            notes=optional_str(data.get("notes"), "notes"),
        )

    def validate(self, items: list[LineItemDraft] | None = None) -> None:
        """Check statuses and settle subtotal/total; fills in derived amounts."""
        require_choice(self.status, "order status", ORDER_STATUSES)
        require_choice(self.payment_status, "payment_status at creation", CREATION_PAYMENT_STATUSES)

        for item in items or []:
            item.validate()

        if self.subtotal_cents is None:
            if not items:
                raise ValidationError("subtotal is required when no items are supplied")
            self.subtotal_cents = sum(item.total_cents for item in items)

        if self.subtotal_cents < 0:
            raise ValidationError("subtotal cannot be negative")
        if self.discount_cents < 0:
            raise ValidationError("discount cannot be negative")
        if self.discount_cents > self.subtotal_cents:
            raise ValidationError("discount cannot exceed subtotal")

        expected_total = self.subtotal_cents - self.discount_cents
        if self.total_cents is None:
            self.total_cents = expected_total
        elif self.total_cents != expected_total:
            raise ValidationError(
                "total must equal subtotal minus discount",
                details={"expected_total_cents": expected_total, "total_cents": self.total_cents},
            )

    @property
    def is_credit_sale(self) -> bool:
        return self.payment_status == PAYMENT_STATUS_DUE


# =============================================================================
# DUE PAYMENTS
# =============================================================================

@dataclass
class AllocationRequest:
    order_id: int
    amount_cents: int

    @classmethod
    def from_payload(cls, data: dict) -> "AllocationRequest":
        if not isinstance(data, dict):
            raise ValidationError("Each allocation must be an object")
        return cls(
            order_id=require_int(data.get("order_id"), "order_id"),
            amount_cents=cents_from_payload(data, "amount"),
        )


@dataclass
class PaymentDraft:
    customer_id: int
    amount_cents: int
    payment_method: str = "cash"
    payment_date: datetime | None = None
    branch_id: int | None = None
    reference: str | None = None
    note: str | None = None
    allocations: list[AllocationRequest] = field(default_factory=list)

    @classmethod
    def from_payload(cls, data: dict) -> "PaymentDraft":
        """Parse a payment body. `allocations` must be present and a list."""
        if not isinstance(data, dict):
            raise ValidationError("Invalid JSON payload")
        raw_allocations = data.get("allocations")
        if not isinstance(raw_allocations, list):
            raise ValidationError("Allocations array is required")
        return cls(
            customer_id=require_int(data.get("customer_id"), "customer_id", minimum=1),
            amount_cents=cents_from_payload(data, "amount"),
            payment_method=optional_str(data.get("payment_method"), "payment_method", max_length=32) or "cash",
            payment_date=_parse_datetime(data.get("payment_date"), "payment_date"),
            branch_id=optional_int(data.get("branch_id"), "branch_id"),
            reference=optional_str(data.get("reference"), "reference", max_length=128),
            note=optional_str(data.get("note"), "note"),
            allocations=[AllocationRequest.from_payload(a) for a in raw_allocations],
        )
