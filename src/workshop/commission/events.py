"""Commission domain events."""

from protean.fields import DateTime, Float, Identifier, String

from workshop.domain import workshop


@workshop.event(part_of="Commission")
class CommissionRecorded:
    """A commission row was written when its invoice was paid."""

    __version__ = 1

    commission_id = Identifier(required=True)
    user_id = Identifier(required=True)
    invoice_id = Identifier(required=True)
    order_id = Identifier(required=True)
    order_item_id = Identifier()
    commission_type = String(required=True)
    amount = Float(required=True)
    percentage = Float(required=True)
    base_amount = Float(required=True)
    idempotency_key = String(required=True)
    recorded_at = DateTime(required=True)


@workshop.event(part_of="Commission")
class CommissionApproved:
    __version__ = 1

    commission_id = Identifier(required=True)
    user_id = Identifier(required=True)
    amount = Float(required=True)
    approved_by = Identifier()
    approved_at = DateTime(required=True)


@workshop.event(part_of="Commission")
class CommissionPaidOut:
    __version__ = 1

    commission_id = Identifier(required=True)
    user_id = Identifier(required=True)
    amount = Float(required=True)
    paid_at = DateTime(required=True)
