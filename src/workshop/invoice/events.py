"""Invoice domain events."""

from protean.fields import DateTime, Float, Identifier, Integer, String

from workshop.domain import workshop


@workshop.event(part_of="Invoice")
class InvoiceCreated:
    """A draft invoice was created for a finished order."""

    __version__ = 1

    invoice_id = Identifier(required=True)
    order_id = Identifier(required=True)
    invoice_code = String(required=True)
    total_amount = Float(required=True)
    payment_method = String()
    created_at = DateTime(required=True)


@workshop.event(part_of="Invoice")
class InvoiceIssued:
    """The invoice was issued to the customer."""

    __version__ = 1

    invoice_id = Identifier(required=True)
    order_id = Identifier(required=True)
    invoice_code = String(required=True)
    issued_at = DateTime(required=True)


@workshop.event(part_of="Invoice")
class InvoicePaid:
    """The invoice was paid and its commissions were recorded."""

    __version__ = 1

    invoice_id = Identifier(required=True)
    order_id = Identifier(required=True)
    total_amount = Float(required=True)
    commission_count = Integer(default=0)
    paid_at = DateTime(required=True)


@workshop.event(part_of="Invoice")
class InvoiceCancelled:
    """The invoice was cancelled before payment."""

    __version__ = 1

    invoice_id = Identifier(required=True)
    order_id = Identifier(required=True)
    reason = String(required=True)
    cancelled_at = DateTime(required=True)
