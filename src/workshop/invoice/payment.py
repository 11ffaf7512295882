"""Invoice payment — the commission trigger.

``MarkInvoicePaid`` computes the commissions owed for the invoice's order,
records them and flips the invoice to paid, all in the handler's single unit
of work: if anything fails, neither the commissions nor the status change are
committed.

Triggering it again on a paid invoice is a replay. The commissions were fixed
when the invoice was paid, so a replay returns the recorded rows without
consulting the engine and writes nothing.
"""

from protean import handle
from protean.fields import Identifier
from protean.utils.globals import current_domain

from workshop.commission.commission import Commission, commissions_for_invoice
from workshop.commission.engine import CommissionEngine
from workshop.config import sales_commission_rate
from workshop.domain import logger, workshop
from workshop.invoice.invoice import Invoice
from workshop.order.order import Order
from workshop.order.progress import items_for_order


@workshop.command(part_of="Invoice")
class MarkInvoicePaid:
    invoice_id = Identifier(required=True)


def _result(invoice, commission_ids, replayed):
    return {
        "invoice_id": str(invoice.id),
        "status": invoice.status,
        "replayed": replayed,
        "commission_ids": commission_ids,
    }


@workshop.command_handler(part_of=Invoice)
class InvoicePaymentHandler:
    @handle(MarkInvoicePaid)
    def mark_invoice_paid(self, command):
        invoice_repo = current_domain.repository_for(Invoice)
        invoice = invoice_repo.get(command.invoice_id)

        if invoice.is_paid:
            existing = commissions_for_invoice(invoice.id)
            logger.info("commission_replay", invoice_id=str(invoice.id), existing=len(existing))
            return _result(invoice, [str(c.id) for c in existing], replayed=True)

        invoice.assert_payable()
        order = current_domain.repository_for(Order).get(invoice.order_id)
        items = items_for_order(order.id)

        # Rows left behind by an earlier failed run are kept, not duplicated
        existing = {c.idempotency_key: c for c in commissions_for_invoice(invoice.id)}
        drafts = CommissionEngine(sales_commission_rate()).compute(order, items)

        commission_repo = current_domain.repository_for(Commission)
        recorded = []
        for draft in drafts:
            if draft.idempotency_key(invoice.id) in existing:
                continue
            commission = Commission.record(draft, invoice_id=invoice.id, order_id=order.id)
            commission_repo.add(commission)
            recorded.append(commission)

        invoice.mark_paid(commission_count=len(existing) + len(recorded))
        invoice_repo.add(invoice)
        logger.info(
            "invoice_paid",
            invoice_id=str(invoice.id),
            order_id=str(order.id),
            drafts=len(drafts),
            recorded=len(recorded),
        )
        commission_ids = [str(c.id) for c in existing.values()] + [str(c.id) for c in recorded]
        return _result(invoice, commission_ids, replayed=False)
