"""Invoice aggregate — billing for a finished order.

Paying an invoice is the trigger for the commission engine (see
``workshop.invoice.payment``).

State Machine:
    DRAFT → ISSUED → PAID
    DRAFT → PAID
    {DRAFT, ISSUED} → CANCELLED
"""

from datetime import UTC, datetime
from enum import Enum
from uuid import uuid4

from protean.exceptions import ValidationError
from protean.fields import DateTime, Float, Identifier, String, Text
from protean.utils.globals import current_domain

from workshop.domain import workshop
from workshop.errors import InvalidTransition
from workshop.invoice.events import (
    InvoiceCancelled,
    InvoiceCreated,
    InvoiceIssued,
    InvoicePaid,
)


class InvoiceStatus(Enum):
    DRAFT = "draft"
    ISSUED = "issued"
    PAID = "paid"
    CANCELLED = "cancelled"


class PaymentMethod(Enum):
    CASH = "cash"
    TRANSFER = "transfer"
    CARD = "card"


_VALID_TRANSITIONS = {
    InvoiceStatus.DRAFT: {InvoiceStatus.ISSUED, InvoiceStatus.PAID, InvoiceStatus.CANCELLED},
    InvoiceStatus.ISSUED: {InvoiceStatus.PAID, InvoiceStatus.CANCELLED},
    InvoiceStatus.PAID: set(),  # Terminal
    InvoiceStatus.CANCELLED: set(),  # Terminal
}


@workshop.aggregate
class Invoice:
    order_id = Identifier(required=True)
    invoice_code = String(required=True, max_length=20, unique=True)
    total_amount = Float(default=0.0, min_value=0.0)
    payment_method = String(choices=PaymentMethod, default=PaymentMethod.CASH.value)
    status = String(choices=InvoiceStatus, default=InvoiceStatus.DRAFT.value)
    notes = Text()
    created_by = Identifier()
    issued_at = DateTime()
    paid_at = DateTime()
    cancelled_at = DateTime()
    cancellation_reason = String(max_length=500)
    created_at = DateTime()
    updated_at = DateTime()

    def _assert_can_transition(self, target_status: InvoiceStatus, attempted: str) -> None:
        current = InvoiceStatus(self.status)
        if target_status not in _VALID_TRANSITIONS.get(current, set()):
            raise InvalidTransition(self.id, current.value, attempted, entity="invoice")

    @property
    def is_paid(self) -> bool:
        return InvoiceStatus(self.status) == InvoiceStatus.PAID

    @classmethod
    def create(
        cls,
        order_id: str,
        total_amount: float,
        payment_method: str | None = None,
        notes: str | None = None,
        created_by: str | None = None,
    ):
        """Create a draft invoice carrying the order's total."""
        now = datetime.now(UTC)
        invoice_code = f"HD{uuid4().hex[:8].upper()}"
        invoice = cls(
            order_id=order_id,
            invoice_code=invoice_code,
            total_amount=total_amount,
            payment_method=payment_method or PaymentMethod.CASH.value,
            notes=notes,
            created_by=created_by,
            created_at=now,
            updated_at=now,
        )
        invoice.raise_(
            InvoiceCreated(
                invoice_id=str(invoice.id),
                order_id=str(order_id),
                invoice_code=invoice_code,
                total_amount=total_amount,
                payment_method=invoice.payment_method,
                created_at=now,
            )
        )
        return invoice

    def issue(self) -> None:
        """Issue the invoice to the customer."""
        self._assert_can_transition(InvoiceStatus.ISSUED, "issue")
        now = datetime.now(UTC)
        self.status = InvoiceStatus.ISSUED.value
        self.issued_at = now
        self.updated_at = now
        self.raise_(
            InvoiceIssued(
                invoice_id=str(self.id),
                order_id=str(self.order_id),
                invoice_code=self.invoice_code,
                issued_at=now,
            )
        )

    def assert_payable(self) -> None:
        self._assert_can_transition(InvoiceStatus.PAID, "pay")

    def mark_paid(self, commission_count: int = 0) -> None:
        self.assert_payable()
        now = datetime.now(UTC)
        self.status = InvoiceStatus.PAID.value
        self.paid_at = now
        self.updated_at = now
        self.raise_(
            InvoicePaid(
                invoice_id=str(self.id),
                order_id=str(self.order_id),
                total_amount=self.total_amount,
                commission_count=commission_count,
                paid_at=now,
            )
        )

    def cancel(self, reason: str) -> None:
        if reason is None or not reason.strip():
            raise ValidationError({"reason": ["A non-empty reason is required"]})
        self._assert_can_transition(InvoiceStatus.CANCELLED, "cancel")
        now = datetime.now(UTC)
        self.status = InvoiceStatus.CANCELLED.value
        self.cancelled_at = now
        self.cancellation_reason = reason.strip()
        self.updated_at = now
        self.raise_(
            InvoiceCancelled(
                invoice_id=str(self.id),
                order_id=str(self.order_id),
                reason=self.cancellation_reason,
                cancelled_at=now,
            )
        )


def paid_invoice_for(order_id: str):
    """The paid invoice of an order, or None. Its commissions are already recorded."""
    repo = current_domain.repository_for(Invoice)
    invoices = repo._dao.query.filter(order_id=str(order_id), status=InvoiceStatus.PAID.value).all().items
    return invoices[0] if invoices else None
