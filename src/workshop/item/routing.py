"""Department routing — command and handler."""

from protean import handle
from protean.fields import Identifier, Integer, String
from protean.utils.globals import current_domain

from workshop.domain import workshop
from workshop.item.item import OrderItem


@workshop.command(part_of="OrderItem")
class MoveToDepartment:
    """Hand an item to another department with a reason and a deadline in days."""

    item_id = Identifier(required=True)
    target_department_id = Identifier(required=True)
    reason = String(max_length=500)
    deadline_days = Integer(required=True)
    created_by = Identifier()
    expected_revision = Integer()


@workshop.command_handler(part_of=OrderItem)
class RoutingHandler:
    @handle(MoveToDepartment)
    def move_to_department(self, command):
        repo = current_domain.repository_for(OrderItem)
        item = repo.get(command.item_id)
        item.check_revision(command.expected_revision)
        route = item.move_to_department(
            target_department_id=command.target_department_id,
            reason=command.reason,
            deadline_days=command.deadline_days,
            created_by=command.created_by,
        )
        repo.add(item)
        return str(route.id)
