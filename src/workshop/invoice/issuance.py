"""Invoice creation, issuing and cancellation — commands and handler."""

from protean import handle
from protean.fields import Identifier, String, Text
from protean.utils.globals import current_domain

from workshop.domain import workshop
from workshop.errors import Conflict, InvalidTransition
from workshop.invoice.invoice import Invoice, InvoiceStatus, PaymentMethod
from workshop.order.order import Order
from workshop.order.progress import order_progress


@workshop.command(part_of="Invoice")
class CreateInvoice:
    order_id = Identifier(required=True)
    payment_method = String(choices=PaymentMethod, default=PaymentMethod.CASH.value)
    notes = Text()
    created_by = Identifier()


@workshop.command(part_of="Invoice")
class IssueInvoice:
    invoice_id = Identifier(required=True)


@workshop.command(part_of="Invoice")
class CancelInvoice:
    invoice_id = Identifier(required=True)
    reason = String(max_length=500)


def open_invoice_for(order_id: str):
    repo = current_domain.repository_for(Invoice)
    invoices = repo._dao.query.filter(order_id=str(order_id)).all().items
    return next((i for i in invoices if i.status != InvoiceStatus.CANCELLED.value), None)


@workshop.command_handler(part_of=Invoice)
class InvoiceIssuanceHandler:
    @handle(CreateInvoice)
    def create_invoice(self, command):
        order = current_domain.repository_for(Order).get(command.order_id)
        progress = order_progress(order.id)
        if not progress["ready_to_invoice"]:
            raise InvalidTransition(order.id, "not_ready", "invoice", entity="order")
        existing = open_invoice_for(order.id)
        if existing is not None:
            raise Conflict(order.id, f"Order {order.order_code} already has invoice {existing.invoice_code}")

        invoice = Invoice.create(
            order_id=str(order.id),
            total_amount=order.total_amount,
            payment_method=command.payment_method,
            notes=command.notes,
            created_by=command.created_by,
        )
        current_domain.repository_for(Invoice).add(invoice)
        return str(invoice.id)

    @handle(IssueInvoice)
    def issue_invoice(self, command):
        repo = current_domain.repository_for(Invoice)
        invoice = repo.get(command.invoice_id)
        invoice.issue()
        repo.add(invoice)

    @handle(CancelInvoice)
    def cancel_invoice(self, command):
        repo = current_domain.repository_for(Invoice)
        invoice = repo.get(command.invoice_id)
        invoice.cancel(command.reason)
        repo.add(invoice)
