"""Commission aggregate — one payout owed to a user for one invoice line.

Rows are written only by the invoice-paid trigger. ``idempotency_key``
(``<invoice_id>:<user_id>:<line reference>``) is unique, so a replayed trigger
can never create a second row for the same line and user.

State Machine:
    PENDING → APPROVED → PAID
"""

from datetime import UTC, datetime
from enum import Enum

from protean.fields import DateTime, Float, Identifier, String, Text
from protean.utils.globals import current_domain

from workshop.commission.events import (
    CommissionApproved,
    CommissionPaidOut,
    CommissionRecorded,
)
from workshop.domain import workshop
from workshop.errors import InvalidTransition


class CommissionStatus(Enum):
    PENDING = "pending"
    APPROVED = "approved"
    PAID = "paid"


class CommissionType(Enum):
    SALE = "sale"
    SERVICE = "service"
    PRODUCT = "product"


_VALID_TRANSITIONS = {
    CommissionStatus.PENDING: {CommissionStatus.APPROVED},
    CommissionStatus.APPROVED: {CommissionStatus.PAID},
    CommissionStatus.PAID: set(),  # Terminal
}


@workshop.aggregate
class Commission:
    user_id = Identifier(required=True)
    invoice_id = Identifier(required=True)
    order_id = Identifier(required=True)
    order_item_id = Identifier()
    commission_type = String(choices=CommissionType, required=True)
    amount = Float(required=True, min_value=0.0)
    percentage = Float(required=True, min_value=0.0, max_value=100.0)
    base_amount = Float(required=True, min_value=0.0)
    status = String(choices=CommissionStatus, default=CommissionStatus.PENDING.value)
    idempotency_key = String(required=True, max_length=255, unique=True)
    note = Text()
    approved_by = Identifier()
    approved_at = DateTime()
    paid_at = DateTime()
    created_at = DateTime()
    updated_at = DateTime()

    def _assert_can_transition(self, target_status: CommissionStatus, attempted: str) -> None:
        current = CommissionStatus(self.status)
        if target_status not in _VALID_TRANSITIONS.get(current, set()):
            raise InvalidTransition(self.id, current.value, attempted, entity="commission")

    @classmethod
    def record(cls, draft, invoice_id: str, order_id: str):
        """Create a pending commission from an engine draft."""
        now = datetime.now(UTC)
        key = draft.idempotency_key(invoice_id)
        commission = cls(
            user_id=draft.user_id,
            invoice_id=str(invoice_id),
            order_id=str(order_id),
            order_item_id=draft.order_item_id,
            commission_type=draft.commission_type,
            amount=draft.amount,
            percentage=draft.percentage,
            base_amount=draft.base_amount,
            idempotency_key=key,
            note=draft.note,
            created_at=now,
            updated_at=now,
        )
        commission.raise_(
            CommissionRecorded(
                commission_id=str(commission.id),
                user_id=draft.user_id,
                invoice_id=str(invoice_id),
                order_id=str(order_id),
                order_item_id=draft.order_item_id,
                commission_type=draft.commission_type,
                amount=draft.amount,
                percentage=draft.percentage,
                base_amount=draft.base_amount,
                idempotency_key=key,
                recorded_at=now,
            )
        )
        return commission

    def approve(self, approved_by: str | None = None) -> None:
        self._assert_can_transition(CommissionStatus.APPROVED, "approve")
        now = datetime.now(UTC)
        self.status = CommissionStatus.APPROVED.value
        self.approved_by = approved_by
        self.approved_at = now
        self.updated_at = now
        self.raise_(
            CommissionApproved(
                commission_id=str(self.id),
                user_id=str(self.user_id),
                amount=self.amount,
                approved_by=approved_by,
                approved_at=now,
            )
        )

    def mark_paid(self) -> None:
        self._assert_can_transition(CommissionStatus.PAID, "pay out")
        now = datetime.now(UTC)
        self.status = CommissionStatus.PAID.value
        self.paid_at = now
        self.updated_at = now
        self.raise_(
            CommissionPaidOut(
                commission_id=str(self.id),
                user_id=str(self.user_id),
                amount=self.amount,
                paid_at=now,
            )
        )


def commissions_for_invoice(invoice_id: str) -> list:
    repo = current_domain.repository_for(Commission)
    return repo._dao.query.filter(invoice_id=str(invoice_id)).all().items


def commissions_for_user(user_id: str, status: str | None = None) -> list:
    repo = current_domain.repository_for(Commission)
    criteria = {"user_id": str(user_id)}
    if status:
        criteria["status"] = status
    return repo._dao.query.filter(**criteria).all().items
