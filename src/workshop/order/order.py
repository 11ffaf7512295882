"""Order aggregate — the customer order header.

Holds the totals, the due date and the due-date extension requests. The
order's items are separate ``OrderItem`` aggregates; the order's progress is
derived from them on every read (see ``workshop.order.progress``).

Extension requests:
    PENDING → APPROVED | REJECTED (both terminal)
    At most one request is pending per order.
"""

import json
import uuid
from datetime import UTC, datetime
from enum import Enum

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Float, HasMany, Identifier, String, Text

from workshop.domain import workshop
from workshop.errors import Conflict, InvalidTransition
from workshop.order.events import (
    ExtensionApproved,
    ExtensionRejected,
    ExtensionRequested,
    OrderPlaced,
)


class ExtensionStatus(Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


def generate_order_code() -> str:
    return f"DH{uuid.uuid4().hex[:8].upper()}"


def as_utc(value: datetime | None) -> datetime | None:
    """Treat naive datetimes as UTC so due dates compare reliably."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=UTC)


@workshop.entity(part_of="Order")
class ExtensionRequest:
    """A request to push the order's due date."""

    requested_by = Identifier()
    reason = String(required=True, max_length=500)
    status = String(choices=ExtensionStatus, default=ExtensionStatus.PENDING.value)
    customer_result = String(max_length=500)
    previous_due_at = DateTime()
    new_due_at = DateTime()
    approved_by = Identifier()
    approved_at = DateTime()
    valid_reason = Boolean(default=False)
    requested_at = DateTime()
    resolved_at = DateTime()


@workshop.aggregate
class Order:
    order_code = String(required=True, max_length=40, unique=True)
    customer_id = Identifier(required=True)
    sales_id = Identifier()
    subtotal = Float(default=0.0, min_value=0.0)
    discount = Float(default=0.0, min_value=0.0)
    surcharges = Float(default=0.0, min_value=0.0)
    total_amount = Float(default=0.0, min_value=0.0)
    due_at = DateTime()
    notes = Text()
    extension_requests = HasMany(ExtensionRequest)
    created_by = Identifier()
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def at_most_one_pending_extension(self):
        pending = [r for r in self.extension_requests if r.status == ExtensionStatus.PENDING.value]
        if len(pending) > 1:
            raise ValidationError({"extension_requests": ["Only one extension request may be pending"]})

    @classmethod
    def place(
        cls,
        customer_id: str,
        lines: list[dict],
        sales_id: str | None = None,
        discount: float = 0.0,
        surcharges: float = 0.0,
        due_at: datetime | None = None,
        notes: str | None = None,
        created_by: str | None = None,
        order_code: str | None = None,
    ):
        """Create the order header and compute its totals from the lines.

        ``lines`` need ``quantity`` and ``unit_price``; the total is
        ``max(0, subtotal - discount + surcharges)``.
        """
        if not lines:
            raise ValidationError({"items": ["An order needs at least one item"]})

        subtotal = round(sum((line.get("quantity") or 1) * float(line["unit_price"]) for line in lines), 2)
        discount = float(discount or 0)
        surcharges = float(surcharges or 0)
        now = datetime.now(UTC)
        return cls(
            order_code=order_code or generate_order_code(),
            customer_id=customer_id,
            sales_id=sales_id,
            subtotal=subtotal,
            discount=discount,
            surcharges=surcharges,
            total_amount=max(0.0, round(subtotal - discount + surcharges, 2)),
            due_at=due_at,
            notes=notes,
            created_by=created_by,
            created_at=now,
            updated_at=now,
        )

    def item_code(self, position: int) -> str:
        return f"{self.order_code}-{position}"

    def record_placement(self, item_ids: list[str]) -> None:
        self.raise_(
            OrderPlaced(
                order_id=str(self.id),
                order_code=self.order_code,
                customer_id=str(self.customer_id),
                sales_id=self.sales_id,
                item_ids=json.dumps(item_ids),
                item_count=len(item_ids),
                subtotal=self.subtotal,
                discount=self.discount,
                surcharges=self.surcharges,
                total_amount=self.total_amount,
                due_at=self.due_at,
                placed_at=self.created_at,
            )
        )

    # -------------------------------------------------------------------
    # Due-date extensions
    # -------------------------------------------------------------------
    def pending_extension(self):
        return next(
            (r for r in self.extension_requests if r.status == ExtensionStatus.PENDING.value),
            None,
        )

    def request_extension(self, reason: str, requested_by: str | None = None):
        if reason is None or not reason.strip():
            raise ValidationError({"reason": ["A non-empty reason is required"]})
        pending = self.pending_extension()
        if pending is not None:
            raise Conflict(self.id, f"Extension request {pending.id} is already pending for order {self.order_code}")

        now = datetime.now(UTC)
        request = ExtensionRequest(
            requested_by=requested_by,
            reason=reason.strip(),
            status=ExtensionStatus.PENDING.value,
            previous_due_at=self.due_at,
            requested_at=now,
        )
        self.add_extension_requests(request)
        self.updated_at = now
        self.raise_(
            ExtensionRequested(
                order_id=str(self.id),
                request_id=str(request.id),
                requested_by=requested_by,
                reason=request.reason,
                current_due_at=self.due_at,
                requested_at=now,
            )
        )
        return request

    def resolve_extension(
        self,
        request_id: str,
        approve: bool,
        resolved_by: str | None = None,
        new_due_at: datetime | None = None,
        valid_reason: bool | None = None,
        customer_result: str | None = None,
    ):
        """Approve (moving due_at) or reject a pending extension request."""
        request = next((r for r in self.extension_requests if str(r.id) == str(request_id)), None)
        if request is None:
            raise ValidationError({"request_id": [f"Extension request {request_id} not found on order {self.id}"]})
        if request.status != ExtensionStatus.PENDING.value:
            raise InvalidTransition(request.id, request.status, "resolve", entity="extension_request")

        now = datetime.now(UTC)
        if approve:
            if new_due_at is None:
                raise ValidationError({"new_due_at": ["A new due date is required to approve an extension"]})
            if self.due_at is not None and as_utc(new_due_at) < as_utc(self.due_at):
                raise ValidationError({"new_due_at": ["The new due date cannot be earlier than the current one"]})

            previous_due_at = self.due_at
            request.status = ExtensionStatus.APPROVED.value
            request.previous_due_at = previous_due_at
            request.new_due_at = new_due_at
            request.approved_by = resolved_by
            request.approved_at = now
            request.valid_reason = bool(valid_reason)
            request.customer_result = customer_result
            request.resolved_at = now
            self.due_at = new_due_at
            self.updated_at = now
            self.raise_(
                ExtensionApproved(
                    order_id=str(self.id),
                    request_id=str(request.id),
                    previous_due_at=previous_due_at,
                    new_due_at=new_due_at,
                    valid_reason=bool(valid_reason),
                    customer_result=customer_result,
                    approved_by=resolved_by,
                    approved_at=now,
                )
            )
        else:
            request.status = ExtensionStatus.REJECTED.value
            request.customer_result = customer_result
            request.resolved_at = now
            self.updated_at = now
            self.raise_(
                ExtensionRejected(
                    order_id=str(self.id),
                    request_id=str(request.id),
                    customer_result=customer_result,
                    rejected_by=resolved_by,
                    rejected_at=now,
                )
            )
        return request
