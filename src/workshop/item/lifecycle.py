"""Item lifecycle — commands and handler.

Assign, start, complete (in batches), fail and skip items, and replace the
technician commission split. Every command accepts an optional
``expected_revision``; a stale revision is rejected with ConcurrentModification.
"""

import json

from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Float, Identifier, Integer, String, Text
from protean.utils.globals import current_domain

from workshop.domain import logger, workshop
from workshop.errors import Conflict, InvalidTransition, PartialBatchRejected
from workshop.invoice.invoice import paid_invoice_for
from workshop.item.item import ItemStatus, OrderItem


@workshop.command(part_of="OrderItem")
class AssignItem:
    item_id = Identifier(required=True)
    technician_id = Identifier()
    department_id = Identifier()
    commission_percent = Float(min_value=0.0, max_value=100.0)
    reason = String(max_length=500)
    deadline_days = Integer(min_value=1)
    created_by = Identifier()
    expected_revision = Integer()


@workshop.command(part_of="OrderItem")
class StartItem:
    item_id = Identifier(required=True)
    expected_revision = Integer()


@workshop.command(part_of="OrderItem")
class CompleteItems:
    """Complete several items of one order together: all of them or none."""

    item_ids = Text(required=True)  # JSON list of item ids
    note = Text()
    expected_revisions = Text()  # JSON object {item_id: revision}


@workshop.command(part_of="OrderItem")
class FailItem:
    item_id = Identifier(required=True)
    reason = String(max_length=500)
    expected_revision = Integer()


@workshop.command(part_of="OrderItem")
class SkipItem:
    item_id = Identifier(required=True)
    reason = String(max_length=500)
    expected_revision = Integer()


@workshop.command(part_of="OrderItem")
class SetTechnicians:
    item_id = Identifier(required=True)
    technicians = Text(required=True)  # JSON list of {technician_id, commission_percent}
    expected_revision = Integer()


def _load(value):
    return json.loads(value) if isinstance(value, str) else value


@workshop.command_handler(part_of=OrderItem)
class ItemLifecycleHandler:
    @handle(AssignItem)
    def assign_item(self, command):
        repo = current_domain.repository_for(OrderItem)
        item = repo.get(command.item_id)
        item.check_revision(command.expected_revision)
        item.assign(
            technician_id=command.technician_id,
            department_id=command.department_id,
            commission_percent=command.commission_percent,
            reason=command.reason,
            deadline_days=command.deadline_days,
            created_by=command.created_by,
        )
        repo.add(item)
        return item.revision

    @handle(StartItem)
    def start_item(self, command):
        repo = current_domain.repository_for(OrderItem)
        item = repo.get(command.item_id)
        item.check_revision(command.expected_revision)
        item.start()
        repo.add(item)
        return item.revision

    @handle(CompleteItems)
    def complete_items(self, command):
        item_ids = _load(command.item_ids) or []
        if not item_ids:
            raise ValidationError({"item_ids": ["At least one item is required"]})
        expected = _load(command.expected_revisions) or {}

        repo = current_domain.repository_for(OrderItem)
        items = [repo.get(item_id) for item_id in dict.fromkeys(item_ids)]

        order_ids = {str(item.order_id) for item in items}
        if len(order_ids) > 1:
            raise ValidationError({"item_ids": ["All items in a batch must belong to the same order"]})

        for item in items:
            item.check_revision(expected.get(str(item.id)))

        rejected = [
            {"item_id": str(item.id), "status": item.status}
            for item in items
            if not item.can_transition_to(ItemStatus.COMPLETED)
        ]
        if rejected:
            logger.info("batch_completion_rejected", rejections=rejected)
            if len(items) == 1:
                raise InvalidTransition(rejected[0]["item_id"], rejected[0]["status"], "complete")
            raise PartialBatchRejected("complete", rejected)

        for item in items:
            item.complete(note=command.note)
            repo.add(item)
        return [str(item.id) for item in items]

    @handle(FailItem)
    def fail_item(self, command):
        repo = current_domain.repository_for(OrderItem)
        item = repo.get(command.item_id)
        item.check_revision(command.expected_revision)
        item.fail(command.reason)
        repo.add(item)
        return item.revision

    @handle(SkipItem)
    def skip_item(self, command):
        repo = current_domain.repository_for(OrderItem)
        item = repo.get(command.item_id)
        item.check_revision(command.expected_revision)
        item.skip(command.reason)
        repo.add(item)
        return item.revision

    @handle(SetTechnicians)
    def set_technicians(self, command):
        repo = current_domain.repository_for(OrderItem)
        item = repo.get(command.item_id)
        item.check_revision(command.expected_revision)
        paid = paid_invoice_for(item.order_id)
        if paid is not None:
            raise Conflict(item.id, f"Commissions were recorded when invoice {paid.invoice_code} was paid")
        item.set_technicians(_load(command.technicians) or [])
        repo.add(item)
        return item.revision
