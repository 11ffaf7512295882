"""Order item domain events — immutable facts about item lifecycle and routing.

Every event carries ``item_id`` and ``order_id`` so the item timeline
projection can file it without loading the aggregate.
"""

from protean.fields import Date, DateTime, Float, Identifier, Integer, String, Text

from workshop.domain import workshop


@workshop.event(part_of="OrderItem")
class ItemCreated:
    """An order line was created with its order."""

    __version__ = 1

    item_id = Identifier(required=True)
    order_id = Identifier(required=True)
    item_code = String(required=True)
    item_type = String(required=True)
    name = String(required=True)
    quantity = Integer(required=True)
    unit_price = Float(required=True)
    step_count = Integer(default=0)
    created_at = DateTime(required=True)


@workshop.event(part_of="OrderItem")
class ItemAssigned:
    """An item was assigned to a technician and/or department."""

    __version__ = 1

    item_id = Identifier(required=True)
    order_id = Identifier(required=True)
    from_status = String(required=True)
    technician_id = Identifier()
    department_id = Identifier()
    from_department_id = Identifier()
    routing_event_id = Identifier()
    closed_routing_event_id = Identifier()
    assigned_at = DateTime(required=True)


@workshop.event(part_of="OrderItem")
class ItemStarted:
    """Work on an item began."""

    __version__ = 1

    item_id = Identifier(required=True)
    order_id = Identifier(required=True)
    from_status = String(required=True)
    started_at = DateTime(required=True)


@workshop.event(part_of="OrderItem")
class ItemCompleted:
    """An item finished successfully."""

    __version__ = 1

    item_id = Identifier(required=True)
    order_id = Identifier(required=True)
    from_status = String(required=True)
    note = Text()
    completed_at = DateTime(required=True)


@workshop.event(part_of="OrderItem")
class ItemFailed:
    """An item was failed (e.g. the customer cancelled it). Irreversible."""

    __version__ = 1

    item_id = Identifier(required=True)
    order_id = Identifier(required=True)
    from_status = String(required=True)
    reason = String(required=True)
    failed_at = DateTime(required=True)


@workshop.event(part_of="OrderItem")
class ItemSkipped:
    """An item was waived as not applicable."""

    __version__ = 1

    item_id = Identifier(required=True)
    order_id = Identifier(required=True)
    from_status = String(required=True)
    reason = String(required=True)
    skipped_at = DateTime(required=True)


@workshop.event(part_of="OrderItem")
class ItemRouted:
    """An item was handed off to a department with a reason and deadline."""

    __version__ = 1

    item_id = Identifier(required=True)
    order_id = Identifier(required=True)
    routing_event_id = Identifier(required=True)
    closed_routing_event_id = Identifier()
    from_department_id = Identifier()
    to_department_id = Identifier(required=True)
    reason = String(required=True)
    deadline = Date(required=True)
    from_status = String(required=True)
    to_status = String(required=True)
    created_by = Identifier()
    routed_at = DateTime(required=True)


@workshop.event(part_of="OrderItem")
class TechnicianSplitUpdated:
    """The commission split roster of an item was replaced."""

    __version__ = 1

    item_id = Identifier(required=True)
    order_id = Identifier(required=True)
    technicians = Text(required=True)  # JSON list of {technician_id, commission_percent}
    total_percent = Float(required=True)
    updated_at = DateTime(required=True)


@workshop.event(part_of="OrderItem")
class ItemStepAssigned:
    """A technician was put on a workflow step of an item."""

    __version__ = 1

    item_id = Identifier(required=True)
    order_id = Identifier(required=True)
    step_id = Identifier(required=True)
    step_order = Integer(required=True)
    step_name = String(required=True)
    technician_id = Identifier(required=True)
    previous_technician_id = Identifier()
    assigned_at = DateTime(required=True)


@workshop.event(part_of="OrderItem")
class ItemStepStarted:
    """A workflow step on an item started."""

    __version__ = 1

    item_id = Identifier(required=True)
    order_id = Identifier(required=True)
    step_id = Identifier(required=True)
    step_order = Integer(required=True)
    step_name = String(required=True)
    department_id = Identifier()
    started_at = DateTime(required=True)


@workshop.event(part_of="OrderItem")
class ItemStepCompleted:
    """A workflow step on an item completed."""

    __version__ = 1

    item_id = Identifier(required=True)
    order_id = Identifier(required=True)
    step_id = Identifier(required=True)
    step_order = Integer(required=True)
    step_name = String(required=True)
    note = Text()
    completed_at = DateTime(required=True)


@workshop.event(part_of="OrderItem")
class ItemStepSkipped:
    """An optional workflow step on an item was skipped."""

    __version__ = 1

    item_id = Identifier(required=True)
    order_id = Identifier(required=True)
    step_id = Identifier(required=True)
    step_order = Integer(required=True)
    step_name = String(required=True)
    reason = String(required=True)
    skipped_at = DateTime(required=True)
