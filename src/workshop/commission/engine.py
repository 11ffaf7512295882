"""Commission engine — computes the commissions owed for a paid invoice.

The engine is pure: it reads an order and its items and returns drafts. The
invoice-paid handler persists the drafts whose idempotency keys are not yet
recorded, in the same unit of work as the invoice status flip.

* Sales: ``order.total_amount × sales_rate / 100`` for the order's sales rep,
  keyed by ``order:<order_id>``.
* Service: ``unit_price × commission_percent / 100`` for every technician with
  a non-zero share on every completed service item, keyed by the item id.
* Failed and skipped items earn nothing.

Amounts are rounded half-up to whole currency units.
"""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from workshop.commission.commission import CommissionType
from workshop.domain import logger
from workshop.errors import InvalidCommissionConfiguration
from workshop.item.item import ItemStatus, ItemType


def commission_amount(base_amount: float, percentage: float) -> float:
    amount = Decimal(str(base_amount)) * Decimal(str(percentage)) / Decimal(100)
    return float(amount.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


@dataclass(frozen=True)
class CommissionDraft:
    """A commission the engine has computed but not yet recorded."""

    user_id: str
    commission_type: str
    line_ref: str
    base_amount: float
    percentage: float
    amount: float
    order_item_id: str | None = None
    note: str | None = None

    def idempotency_key(self, invoice_id: str) -> str:
        return f"{invoice_id}:{self.user_id}:{self.line_ref}"


class CommissionEngine:
    def __init__(self, sales_rate: float):
        self.sales_rate = float(sales_rate)

    @staticmethod
    def contributes(item) -> bool:
        return item.item_type == ItemType.SERVICE.value and item.status == ItemStatus.COMPLETED.value

    @staticmethod
    def validate_split(item) -> None:
        percentages = [float(t.commission_percent or 0) for t in item.technicians]
        if any(p < 0 or p > 100 for p in percentages) or sum(percentages) > 100:
            raise InvalidCommissionConfiguration(item.id, percentages)

    def sales_commission(self, order) -> CommissionDraft | None:
        if not order.sales_id:
            logger.warning("sales_commission_skipped", order_id=str(order.id), reason="no sales representative")
            return None
        amount = commission_amount(order.total_amount, self.sales_rate)
        if amount <= 0:
            return None
        return CommissionDraft(
            user_id=str(order.sales_id),
            commission_type=CommissionType.SALE.value,
            line_ref=f"order:{order.id}",
            base_amount=order.total_amount,
            percentage=self.sales_rate,
            amount=amount,
            note=f"Sales commission for order {order.order_code}",
        )

    def service_commissions(self, order, items) -> list[CommissionDraft]:
        drafts = []
        for item in items:
            if not self.contributes(item):
                continue
            for assignment in sorted(item.technicians, key=lambda t: t.position or 0):
                percent = float(assignment.commission_percent or 0)
                if percent == 0:
                    continue
                amount = commission_amount(item.unit_price, percent)
                if amount <= 0:
                    continue
                drafts.append(
                    CommissionDraft(
                        user_id=str(assignment.technician_id),
                        commission_type=CommissionType.SERVICE.value,
                        line_ref=str(item.id),
                        base_amount=item.unit_price,
                        percentage=percent,
                        amount=amount,
                        order_item_id=str(item.id),
                        note=f"Technician commission for {item.name} (order {order.order_code})",
                    )
                )
        return drafts

    def compute(self, order, items) -> list[CommissionDraft]:
        """All commissions owed for ``order``; raises before producing any on a bad split."""
        for item in items:
            if self.contributes(item):
                self.validate_split(item)

        drafts = self.service_commissions(order, items)
        sales = self.sales_commission(order)
        if sales is not None:
            drafts.insert(0, sales)
        return drafts
