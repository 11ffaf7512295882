"""Order progress, derived from the current state of the order's items.

Nothing here is stored: every call reads the items again, so concurrent item
updates can never leave a stale "ready to invoice" flag behind.
"""

from decimal import ROUND_HALF_UP, Decimal

from protean.utils.globals import current_domain

from workshop.item.item import TERMINAL_STATUSES, ItemStatus, OrderItem, StepStatus
from workshop.order.order import Order


def items_for_order(order_id: str) -> list:
    repo = current_domain.repository_for(OrderItem)
    items = repo._dao.query.filter(order_id=str(order_id)).all().items
    return sorted(items, key=_line_number)


def _line_number(item) -> int:
    suffix = item.item_code.rsplit("-", 1)[-1]
    return int(suffix) if suffix.isdigit() else 0


def summarize(items: list) -> dict:
    counts = {status.value: 0 for status in ItemStatus}
    for item in items:
        counts[item.status] += 1
    terminal = sum(counts[status.value] for status in TERMINAL_STATUSES)
    total = len(items)
    return {
        "total_items": total,
        "counts": counts,
        "terminal_items": terminal,
        "ready_to_invoice": total > 0 and terminal == total and counts[ItemStatus.FAILED.value] < total,
    }


def order_progress(order_id: str) -> dict:
    """Counts per item status and whether the order can be invoiced.

    An order is ready to invoice once every item is terminal and at least one
    item did not fail. Raises ObjectNotFoundError for an unknown order.
    """
    order = current_domain.repository_for(Order).get(order_id)
    progress = summarize(items_for_order(order.id))
    progress.update(order_id=str(order.id), order_code=order.order_code)
    return progress


_DONE_STEP_STATUSES = (StepStatus.COMPLETED.value, StepStatus.SKIPPED.value)
_DONE_ITEM_STATUSES = (ItemStatus.COMPLETED.value, ItemStatus.SKIPPED.value)


def _percentage(done: int, total: int) -> int:
    if not total:
        return 0
    return int((Decimal(done * 100) / Decimal(total)).quantize(Decimal(1), rounding=ROUND_HALF_UP))


def _units(item) -> list[tuple[bool, object, object]]:
    """(done, started_at, completed_at) per workflow step, or for the item itself when it has none."""
    if item.steps:
        return [(s.status in _DONE_STEP_STATUSES, s.started_at, s.completed_at) for s in item.steps]
    return [(item.status in _DONE_ITEM_STATUSES, item.started_at, item.completed_at)]


def _group_status(items: list, done: int, total: int, started: list) -> str:
    if done == total:
        return "completed"
    if all(ItemStatus(item.status) in TERMINAL_STATUSES for item in items):
        return "failed"
    if done or started or any(item.status == ItemStatus.IN_PROGRESS.value for item in items):
        return "in_progress"
    return "pending"


def group_summaries(order_id: str) -> list[dict]:
    """Status summary per product group of an order.

    Items sharing a ``group_code`` belong to one product; an item without one
    is a group of its own. Completion counts finished (completed or skipped)
    workflow steps, and an item with no steps counts as a single step.
    """
    order = current_domain.repository_for(Order).get(order_id)
    groups: dict[str, list] = {}
    for item in items_for_order(order.id):
        groups.setdefault(item.group_code or item.item_code, []).append(item)

    summaries = []
    for group_code, items in groups.items():
        units = [unit for item in items for unit in _units(item)]
        done = sum(1 for finished, _, _ in units if finished)
        started = [started_at for _, started_at, _ in units if started_at is not None]
        completed = [completed_at for _, _, completed_at in units if completed_at is not None]
        summaries.append(
            {
                "group_code": group_code,
                "overall_status": _group_status(items, done, len(units), started),
                "total_steps": len(units),
                "completed_steps": done,
                "completion_percentage": _percentage(done, len(units)),
                "earliest_started_at": min(started) if started else None,
                "latest_completed_at": max(completed) if completed else None,
                "items": [
                    {
                        "item_id": str(item.id),
                        "item_code": item.item_code,
                        "name": item.name,
                        "status": item.status,
                        "completion_percentage": _percentage(
                            sum(1 for finished, _, _ in _units(item) if finished), len(_units(item))
                        ),
                    }
                    for item in items
                ],
            }
        )
    return summaries
