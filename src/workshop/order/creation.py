"""Order placement — command and handler.

Placing an order creates the ``Order`` header and one pending ``OrderItem``
per line, in the same unit of work. Service lines that name a workflow get
the workflow's steps copied onto the item.
"""

import json

from protean import handle
from protean.exceptions import ValidationError
from protean.fields import DateTime, Float, Identifier, String, Text
from protean.utils.globals import current_domain

from workshop.domain import logger, workshop
from workshop.item.item import ItemType, OrderItem
from workshop.order.order import Order
from workshop.workflow.workflow import Workflow


@workshop.command(part_of="Order")
class PlaceOrder:
    customer_id = Identifier(required=True)
    sales_id = Identifier()
    # JSON list of {item_type, name, quantity, unit_price, group_code,
    # is_customer_supplied, workflow_id, note, technicians: [...]}
    items = Text(required=True)
    discount = Float(default=0.0, min_value=0.0)
    surcharges = Float(default=0.0, min_value=0.0)
    due_at = DateTime()
    notes = Text()
    created_by = Identifier()
    order_code = String(max_length=40)


def _steps_for(workflow_id: str | None, cache: dict) -> list[dict]:
    if not workflow_id:
        return []
    if workflow_id not in cache:
        workflow = current_domain.repository_for(Workflow).get(workflow_id)
        cache[workflow_id] = [
            {
                "workflow_step_id": str(step.id),
                "step_order": step.step_order,
                "name": step.name,
                "department_id": step.department_id,
                "estimated_duration": step.estimated_duration,
                "is_required": step.is_required,
            }
            for step in workflow.ordered_steps()
        ]
    return cache[workflow_id]


@workshop.command_handler(part_of=Order)
class PlaceOrderHandler:
    @handle(PlaceOrder)
    def place_order(self, command):
        lines = json.loads(command.items) if isinstance(command.items, str) else command.items
        if not isinstance(lines, list):
            raise ValidationError({"items": ["Items must be a list"]})
        for position, line in enumerate(lines, start=1):
            if not line.get("name") or line.get("unit_price") is None:
                raise ValidationError({"items": [f"Line {position} needs a name and a unit_price"]})

        order = Order.place(
            customer_id=command.customer_id,
            lines=lines,
            sales_id=command.sales_id,
            discount=command.discount,
            surcharges=command.surcharges,
            due_at=command.due_at,
            notes=command.notes,
            created_by=command.created_by,
            order_code=command.order_code,
        )

        item_repo = current_domain.repository_for(OrderItem)
        workflows: dict = {}
        item_ids = []
        for position, line in enumerate(lines, start=1):
            item_type = line.get("item_type") or ItemType.SERVICE.value
            steps = _steps_for(line.get("workflow_id"), workflows) if item_type == ItemType.SERVICE.value else []
            item = OrderItem.create(
                order_id=str(order.id),
                item_code=order.item_code(position),
                name=line["name"],
                unit_price=float(line["unit_price"]),
                quantity=int(line.get("quantity") or 1),
                item_type=item_type,
                group_code=line.get("group_code"),
                is_customer_supplied=bool(line.get("is_customer_supplied", False)),
                workflow_id=line.get("workflow_id"),
                note=line.get("note"),
                technicians_data=line.get("technicians") or [],
                steps_data=steps,
            )
            item_repo.add(item)
            item_ids.append(str(item.id))

        order.record_placement(item_ids)
        current_domain.repository_for(Order).add(order)
        logger.info("order_placed", order_id=str(order.id), order_code=order.order_code, item_count=len(item_ids))
        return str(order.id)
