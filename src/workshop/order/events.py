"""Order domain events."""

from protean.fields import Boolean, DateTime, Float, Identifier, Integer, String, Text

from workshop.domain import workshop


@workshop.event(part_of="Order")
class OrderPlaced:
    """An order and all of its items were created."""

    __version__ = 1

    order_id = Identifier(required=True)
    order_code = String(required=True)
    customer_id = Identifier(required=True)
    sales_id = Identifier()
    item_ids = Text(required=True)  # JSON list of OrderItem ids
    item_count = Integer(required=True)
    subtotal = Float(required=True)
    discount = Float()
    surcharges = Float()
    total_amount = Float(required=True)
    due_at = DateTime()
    placed_at = DateTime(required=True)


@workshop.event(part_of="Order")
class ExtensionRequested:
    """Staff asked to push the order's due date."""

    __version__ = 1

    order_id = Identifier(required=True)
    request_id = Identifier(required=True)
    requested_by = Identifier()
    reason = String(required=True)
    current_due_at = DateTime()
    requested_at = DateTime(required=True)


@workshop.event(part_of="Order")
class ExtensionApproved:
    """An extension was approved and the order's due date moved."""

    __version__ = 1

    order_id = Identifier(required=True)
    request_id = Identifier(required=True)
    previous_due_at = DateTime()
    new_due_at = DateTime(required=True)
    valid_reason = Boolean(default=False)
    customer_result = String()
    approved_by = Identifier()
    approved_at = DateTime(required=True)


@workshop.event(part_of="Order")
class ExtensionRejected:
    """An extension was rejected; the due date is unchanged."""

    __version__ = 1

    order_id = Identifier(required=True)
    request_id = Identifier(required=True)
    customer_result = String()
    rejected_by = Identifier()
    rejected_at = DateTime(required=True)
