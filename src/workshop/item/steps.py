"""Item workflow steps — commands and handler.

When the last step of an item is completed or skipped, the item completes.
"""

from protean import handle
from protean.fields import Identifier, Integer, String, Text
from protean.utils.globals import current_domain

from workshop.domain import workshop
from workshop.item.item import OrderItem


@workshop.command(part_of="OrderItem")
class AssignItemStep:
    item_id = Identifier(required=True)
    step_id = Identifier(required=True)
    technician_id = Identifier(required=True)
    expected_revision = Integer()


@workshop.command(part_of="OrderItem")
class StartItemStep:
    item_id = Identifier(required=True)
    step_id = Identifier(required=True)
    expected_revision = Integer()


@workshop.command(part_of="OrderItem")
class CompleteItemStep:
    item_id = Identifier(required=True)
    step_id = Identifier(required=True)
    note = Text()
    expected_revision = Integer()


@workshop.command(part_of="OrderItem")
class SkipItemStep:
    item_id = Identifier(required=True)
    step_id = Identifier(required=True)
    reason = String(max_length=500)
    expected_revision = Integer()


@workshop.command_handler(part_of=OrderItem)
class ItemStepHandler:
    @handle(AssignItemStep)
    def assign_item_step(self, command):
        repo = current_domain.repository_for(OrderItem)
        item = repo.get(command.item_id)
        item.check_revision(command.expected_revision)
        item.assign_step(command.step_id, command.technician_id)
        repo.add(item)
        return item.status

    @handle(StartItemStep)
    def start_item_step(self, command):
        repo = current_domain.repository_for(OrderItem)
        item = repo.get(command.item_id)
        item.check_revision(command.expected_revision)
        item.start_step(command.step_id)
        repo.add(item)
        return item.status

    @handle(CompleteItemStep)
    def complete_item_step(self, command):
        repo = current_domain.repository_for(OrderItem)
        item = repo.get(command.item_id)
        item.check_revision(command.expected_revision)
        item.complete_step(command.step_id, note=command.note)
        repo.add(item)
        return item.status

    @handle(SkipItemStep)
    def skip_item_step(self, command):
        repo = current_domain.repository_for(OrderItem)
        item = repo.get(command.item_id)
        item.check_revision(command.expected_revision)
        item.skip_step(command.step_id, command.reason)
        repo.add(item)
        return item.status
