"""OrderItem aggregate — one line of a customer order, the unit of work on the floor.

Each item runs its own lifecycle, carries the technician commission split,
holds the routing history between departments and the workflow steps seeded
from its service's workflow when the order was placed.

State Machine:
    PENDING → ASSIGNED → IN_PROGRESS → COMPLETED
    ASSIGNED → ASSIGNED (re-assign), ASSIGNED → COMPLETED (no explicit start)
    {PENDING, ASSIGNED, IN_PROGRESS} → FAILED | SKIPPED
    COMPLETED, FAILED, SKIPPED are terminal.

Every mutation bumps ``revision`` so writers holding a stale copy can be
detected (see ``check_revision``).
"""

import json
from datetime import UTC, date, datetime, timedelta
from enum import Enum

from protean import atomic_change, invariant
from protean.exceptions import ValidationError
from protean.fields import (
    Boolean,
    Date,
    DateTime,
    Float,
    HasMany,
    Identifier,
    Integer,
    String,
    Text,
)

from workshop.domain import workshop
from workshop.errors import ConcurrentModification, InvalidTransition
from workshop.item.events import (
    ItemAssigned,
    ItemCompleted,
    ItemCreated,
    ItemFailed,
    ItemRouted,
    ItemSkipped,
    ItemStarted,
    ItemStepAssigned,
    ItemStepCompleted,
    ItemStepSkipped,
    ItemStepStarted,
    TechnicianSplitUpdated,
)


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class ItemStatus(Enum):
    PENDING = "pending"
    ASSIGNED = "assigned"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"
    SKIPPED = "skipped"


class ItemType(Enum):
    PRODUCT = "product"
    SERVICE = "service"


class RoutingStatus(Enum):
    OPEN = "open"
    CLOSED = "closed"


class StepStatus(Enum):
    PENDING = "pending"
    ASSIGNED = "assigned"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    SKIPPED = "skipped"


_VALID_TRANSITIONS = {
    ItemStatus.PENDING: {ItemStatus.ASSIGNED, ItemStatus.FAILED, ItemStatus.SKIPPED},
    ItemStatus.ASSIGNED: {
        ItemStatus.ASSIGNED,
        ItemStatus.IN_PROGRESS,
        ItemStatus.COMPLETED,
        ItemStatus.FAILED,
        ItemStatus.SKIPPED,
    },
    ItemStatus.IN_PROGRESS: {ItemStatus.COMPLETED, ItemStatus.FAILED, ItemStatus.SKIPPED},
    ItemStatus.COMPLETED: set(),  # terminal
    ItemStatus.FAILED: set(),  # terminal
    ItemStatus.SKIPPED: set(),  # terminal
}

TERMINAL_STATUSES = frozenset({ItemStatus.COMPLETED, ItemStatus.FAILED, ItemStatus.SKIPPED})

DEFAULT_ASSIGNMENT_DEADLINE_DAYS = 1

_FINISHED_STEP_STATUSES = {StepStatus.COMPLETED.value, StepStatus.SKIPPED.value}
_STARTABLE_STEP_STATUSES = {StepStatus.PENDING.value, StepStatus.ASSIGNED.value}


def validate_technician_split(entries: list[dict]) -> None:
    """Reject a split with out-of-range percentages, duplicate technicians or a total above 100."""
    seen = set()
    total = 0.0
    for entry in entries:
        technician_id = entry.get("technician_id")
        if not technician_id:
            raise ValidationError({"technicians": ["Every entry needs a technician_id"]})
        if technician_id in seen:
            raise ValidationError({"technicians": [f"Technician {technician_id} is listed more than once"]})
        seen.add(technician_id)

        percent = float(entry.get("commission_percent") or 0)
        if percent < 0 or percent > 100:
            raise ValidationError(
                {"commission_percent": [f"Commission for {technician_id} must be between 0 and 100, got {percent}"]}
            )
        total += percent

    if total > 100:
        raise ValidationError({"commission_percent": [f"Commission percentages add up to {total}, above 100"]})


def _require_reason(reason: str | None, field: str = "reason") -> str:
    if reason is None or not str(reason).strip():
        raise ValidationError({field: ["A non-empty reason is required"]})
    return str(reason).strip()


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@workshop.entity(part_of="OrderItem")
class TechnicianAssignment:
    """A technician on the item's roster and their commission share."""

    technician_id = Identifier(required=True)
    commission_percent = Float(default=0.0)
    position = Integer(default=0)


@workshop.entity(part_of="OrderItem")
class RoutingEvent:
    """A hand-off of the item to a department. At most one is open at a time."""

    from_department_id = Identifier()
    to_department_id = Identifier(required=True)
    reason = String(required=True, max_length=500)
    deadline = Date(required=True)
    status = String(choices=RoutingStatus, default=RoutingStatus.OPEN.value)
    created_by = Identifier()
    opened_at = DateTime()
    closed_at = DateTime()


@workshop.entity(part_of="OrderItem")
class ItemStep:
    """A workflow step copied onto the item when the order was placed."""

    workflow_step_id = Identifier()
    step_order = Integer(required=True, min_value=1)
    name = String(required=True, max_length=200)
    department_id = Identifier()
    estimated_duration = Integer(default=0)
    is_required = Boolean(default=True)
    technician_id = Identifier()
    status = String(choices=StepStatus, default=StepStatus.PENDING.value)
    assigned_at = DateTime()
    started_at = DateTime()
    completed_at = DateTime()
    note = Text()


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@workshop.aggregate
class OrderItem:
    order_id = Identifier(required=True)
    item_code = String(required=True, max_length=60, unique=True)
    item_type = String(choices=ItemType, default=ItemType.SERVICE.value)
    name = String(required=True, max_length=255)
    quantity = Integer(default=1, min_value=1)
    unit_price = Float(default=0.0, min_value=0.0)
    total_price = Float(default=0.0, min_value=0.0)
    status = String(choices=ItemStatus, default=ItemStatus.PENDING.value)
    current_department_id = Identifier()
    group_code = String(max_length=60)
    is_customer_supplied = Boolean(default=False)
    workflow_id = Identifier()
    note = Text()
    status_reason = String(max_length=500)
    technicians = HasMany(TechnicianAssignment)
    routing_events = HasMany(RoutingEvent)
    steps = HasMany(ItemStep)
    revision = Integer(default=0)
    assigned_at = DateTime()
    started_at = DateTime()
    completed_at = DateTime()
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def completed_at_is_stamped_exactly_on_terminal_items(self):
        terminal = ItemStatus(self.status) in TERMINAL_STATUSES
        if terminal and self.completed_at is None:
            raise ValidationError({"completed_at": ["Terminal items must record completed_at"]})
        if not terminal and self.completed_at is not None:
            raise ValidationError({"completed_at": ["Only terminal items may record completed_at"]})

    @invariant.post
    def at_most_one_open_routing_event(self):
        open_events = [r for r in self.routing_events if r.status == RoutingStatus.OPEN.value]
        if len(open_events) > 1:
            raise ValidationError({"routing_events": ["An item can have only one open routing event"]})
        if open_events and ItemStatus(self.status) in TERMINAL_STATUSES:
            raise ValidationError({"routing_events": ["Terminal items cannot have an open routing event"]})

    # -------------------------------------------------------------------
    # Factory method
    # -------------------------------------------------------------------
    @classmethod
    def create(
        cls,
        order_id: str,
        item_code: str,
        name: str,
        unit_price: float,
        quantity: int = 1,
        item_type: str = ItemType.SERVICE.value,
        group_code: str | None = None,
        is_customer_supplied: bool = False,
        workflow_id: str | None = None,
        note: str | None = None,
        technicians_data: list[dict] | None = None,
        steps_data: list[dict] | None = None,
    ):
        """Create a pending item, seeding its technician roster and workflow steps."""
        technicians_data = technicians_data or []
        steps_data = steps_data or []
        if item_type == ItemType.PRODUCT.value and steps_data:
            raise ValidationError({"steps": ["Product items do not carry workflow steps"]})
        validate_technician_split(technicians_data)

        now = datetime.now(UTC)
        item = cls(
            order_id=order_id,
            item_code=item_code,
            item_type=item_type,
            name=name,
            quantity=quantity,
            unit_price=unit_price,
            total_price=round(unit_price * quantity, 2),
            group_code=group_code,
            is_customer_supplied=is_customer_supplied,
            workflow_id=workflow_id,
            note=note,
            status=ItemStatus.PENDING.value,
            created_at=now,
            updated_at=now,
        )
        for position, entry in enumerate(technicians_data):
            item.add_technicians(
                TechnicianAssignment(
                    technician_id=entry["technician_id"],
                    commission_percent=float(entry.get("commission_percent") or 0),
                    position=position,
                )
            )
        for step_data in steps_data:
            item.add_steps(ItemStep(**step_data))

        item.raise_(
            ItemCreated(
                item_id=str(item.id),
                order_id=str(order_id),
                item_code=item_code,
                item_type=item_type,
                name=name,
                quantity=quantity,
                unit_price=unit_price,
                step_count=len(steps_data),
                created_at=now,
            )
        )
        return item

    # -------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------
    @property
    def is_terminal(self) -> bool:
        return ItemStatus(self.status) in TERMINAL_STATUSES

    def technician_split(self) -> list[dict]:
        return [
            {"technician_id": t.technician_id, "commission_percent": t.commission_percent}
            for t in sorted(self.technicians, key=lambda t: t.position or 0)
        ]

    def open_routing_event(self):
        return next((r for r in self.routing_events if r.status == RoutingStatus.OPEN.value), None)

    def ordered_steps(self) -> list:
        return sorted(self.steps, key=lambda s: s.step_order)

    def check_revision(self, expected: int | None) -> None:
        """Raise ConcurrentModification when the caller worked from a stale copy."""
        if expected is not None and expected != self.revision:
            raise ConcurrentModification(self.id, expected=expected, actual=self.revision)

    def can_transition_to(self, target: ItemStatus) -> bool:
        return target in _VALID_TRANSITIONS.get(ItemStatus(self.status), set())

    def _assert_can_transition(self, target: ItemStatus, attempted: str) -> None:
        if not self.can_transition_to(target):
            raise InvalidTransition(self.id, self.status, attempted)

    def _touch(self, now: datetime) -> None:
        self.revision = (self.revision or 0) + 1
        self.updated_at = now

    def _close_open_route(self, now: datetime):
        route = self.open_routing_event()
        if route is not None:
            route.status = RoutingStatus.CLOSED.value
            route.closed_at = now
        return route

    def _finish(self, target: ItemStatus, now: datetime, reason: str | None = None, note: str | None = None) -> str:
        from_status = self.status
        with atomic_change(self):
            self._close_open_route(now)
            self.status = target.value
            self.completed_at = now
            if reason is not None:
                self.status_reason = reason
            if note:
                self.note = note
        self._touch(now)
        return from_status

    # -------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------
    def assign(
        self,
        technician_id: str | None = None,
        department_id: str | None = None,
        commission_percent: float | None = None,
        reason: str | None = None,
        deadline_days: int | None = None,
        created_by: str | None = None,
    ) -> None:
        """Assign to a technician and/or department; new technicians join the roster.

        Handing the item to a different department is a routing event: the open
        route is closed and a new one is opened, with a default reason and a
        one-day deadline when none are given.
        """
        if not technician_id and not department_id:
            raise ValidationError({"assignment": ["Provide a technician_id or a department_id"]})
        self._assert_can_transition(ItemStatus.ASSIGNED, "assign")

        if technician_id:
            roster = self.technician_split()
            existing = next((e for e in roster if e["technician_id"] == technician_id), None)
            if existing is None:
                roster.append({"technician_id": technician_id, "commission_percent": commission_percent or 0.0})
            elif commission_percent is not None:
                existing["commission_percent"] = commission_percent
            validate_technician_split(roster)

            current = next((t for t in self.technicians if t.technician_id == technician_id), None)
            if current is None:
                self.add_technicians(
                    TechnicianAssignment(
                        technician_id=technician_id,
                        commission_percent=float(commission_percent or 0),
                        position=len(self.technicians),
                    )
                )
            elif commission_percent is not None:
                current.commission_percent = float(commission_percent)

        now = datetime.now(UTC)
        from_status = self.status
        from_department_id = self.current_department_id
        route = closed = None
        if department_id and (department_id != from_department_id or self.open_routing_event() is None):
            route, closed = self._route_to(
                department_id,
                reason or f"Assigned to department {department_id}",
                deadline_days or DEFAULT_ASSIGNMENT_DEADLINE_DAYS,
                created_by,
                now,
            )
        self.status = ItemStatus.ASSIGNED.value
        self.assigned_at = now
        self._touch(now)
        self.raise_(
            ItemAssigned(
                item_id=str(self.id),
                order_id=str(self.order_id),
                from_status=from_status,
                technician_id=technician_id,
                department_id=department_id,
                from_department_id=from_department_id,
                routing_event_id=str(route.id) if route is not None else None,
                closed_routing_event_id=str(closed.id) if closed is not None else None,
                assigned_at=now,
            )
        )

    def start(self) -> None:
        """Begin work. Starting an item that is already in progress changes nothing."""
        if ItemStatus(self.status) == ItemStatus.IN_PROGRESS:
            return
        self._assert_can_transition(ItemStatus.IN_PROGRESS, "start")
        now = datetime.now(UTC)
        from_status = self.status
        self.status = ItemStatus.IN_PROGRESS.value
        if self.started_at is None:
            self.started_at = now
        self._touch(now)
        self.raise_(
            ItemStarted(
                item_id=str(self.id),
                order_id=str(self.order_id),
                from_status=from_status,
                started_at=self.started_at,
            )
        )

    def complete(self, note: str | None = None) -> None:
        self._assert_can_transition(ItemStatus.COMPLETED, "complete")
        now = datetime.now(UTC)
        from_status = self._finish(ItemStatus.COMPLETED, now, note=note)
        self.raise_(
            ItemCompleted(
                item_id=str(self.id),
                order_id=str(self.order_id),
                from_status=from_status,
                note=note,
                completed_at=now,
            )
        )

    def fail(self, reason: str) -> None:
        """Fail the item (e.g. the customer cancelled). Irreversible."""
        reason = _require_reason(reason)
        self._assert_can_transition(ItemStatus.FAILED, "fail")
        now = datetime.now(UTC)
        from_status = self._finish(ItemStatus.FAILED, now, reason=reason)
        self.raise_(
            ItemFailed(
                item_id=str(self.id),
                order_id=str(self.order_id),
                from_status=from_status,
                reason=reason,
                failed_at=now,
            )
        )

    def skip(self, reason: str) -> None:
        """Waive the item as not applicable. Irreversible."""
        reason = _require_reason(reason)
        self._assert_can_transition(ItemStatus.SKIPPED, "skip")
        now = datetime.now(UTC)
        from_status = self._finish(ItemStatus.SKIPPED, now, reason=reason)
        self.raise_(
            ItemSkipped(
                item_id=str(self.id),
                order_id=str(self.order_id),
                from_status=from_status,
                reason=reason,
                skipped_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Commission split
    # -------------------------------------------------------------------
    def set_technicians(self, technicians_data: list[dict]) -> None:
        """Replace the whole roster. Completed items stay editable until the order's invoice is paid."""
        if ItemStatus(self.status) in (ItemStatus.FAILED, ItemStatus.SKIPPED):
            raise InvalidTransition(self.id, self.status, "set technicians on")
        validate_technician_split(technicians_data)

        for assignment in list(self.technicians):
            self.remove_technicians(assignment)
        for position, entry in enumerate(technicians_data):
            self.add_technicians(
                TechnicianAssignment(
                    technician_id=entry["technician_id"],
                    commission_percent=float(entry.get("commission_percent") or 0),
                    position=position,
                )
            )

        now = datetime.now(UTC)
        self._touch(now)
        split = self.technician_split()
        self.raise_(
            TechnicianSplitUpdated(
                item_id=str(self.id),
                order_id=str(self.order_id),
                technicians=json.dumps(split),
                total_percent=sum(e["commission_percent"] for e in split),
                updated_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Routing
    # -------------------------------------------------------------------
    def _route_to(self, target_department_id, reason, deadline_days, created_by, now):
        """Close the open route and open one to ``target_department_id``. Returns ``(route, closed)``."""
        if not target_department_id:
            raise ValidationError({"target_department_id": ["A target department is required"]})
        reason = _require_reason(reason)
        if deadline_days is None or int(deadline_days) < 1:
            raise ValidationError({"deadline_days": ["Deadline must be at least one day"]})

        deadline: date = now.date() + timedelta(days=int(deadline_days))
        route = RoutingEvent(
            from_department_id=self.current_department_id,
            to_department_id=target_department_id,
            reason=reason,
            deadline=deadline,
            status=RoutingStatus.OPEN.value,
            created_by=created_by,
            opened_at=now,
        )
        with atomic_change(self):
            closed = self._close_open_route(now)
            self.add_routing_events(route)
            self.current_department_id = target_department_id
        return route, closed

    def move_to_department(
        self,
        target_department_id: str,
        reason: str,
        deadline_days: int,
        created_by: str | None = None,
    ):
        """Hand the item to another department, closing the previous hand-off."""
        if self.is_terminal:
            raise InvalidTransition(self.id, self.status, "move")

        now = datetime.now(UTC)
        from_status = self.status
        from_department_id = self.current_department_id
        route, closed = self._route_to(target_department_id, reason, deadline_days, created_by, now)
        if ItemStatus(self.status) == ItemStatus.PENDING:
            self.status = ItemStatus.ASSIGNED.value
            self.assigned_at = now
        self._touch(now)

        self.raise_(
            ItemRouted(
                item_id=str(self.id),
                order_id=str(self.order_id),
                routing_event_id=str(route.id),
                closed_routing_event_id=str(closed.id) if closed is not None else None,
                from_department_id=from_department_id,
                to_department_id=target_department_id,
                reason=route.reason,
                deadline=route.deadline,
                from_status=from_status,
                to_status=self.status,
                created_by=created_by,
                routed_at=now,
            )
        )
        return route

    # -------------------------------------------------------------------
    # Workflow steps
    # -------------------------------------------------------------------
    def _find_step(self, step_id: str):
        step = next((s for s in self.steps if str(s.id) == str(step_id)), None)
        if step is None:
            raise ValidationError({"step_id": [f"Step {step_id} not found on item {self.id}"]})
        return step

    def _assert_workable(self, attempted: str) -> None:
        if ItemStatus(self.status) not in (ItemStatus.ASSIGNED, ItemStatus.IN_PROGRESS):
            raise InvalidTransition(self.id, self.status, attempted)

    def _complete_if_all_steps_finished(self, now: datetime) -> None:
        if self.steps and all(s.status in _FINISHED_STEP_STATUSES for s in self.steps):
            from_status = self._finish(ItemStatus.COMPLETED, now)
            self.raise_(
                ItemCompleted(
                    item_id=str(self.id),
                    order_id=str(self.order_id),
                    from_status=from_status,
                    note="All workflow steps finished",
                    completed_at=now,
                )
            )

    def assign_step(self, step_id: str, technician_id: str) -> None:
        """Put a technician on one workflow step.

        A pending step becomes assigned. A step already in progress keeps its
        status and changes hands. Finished steps cannot be reassigned.
        """
        if not technician_id:
            raise ValidationError({"technician_id": ["Technician is required to assign a step"]})
        if ItemStatus(self.status) in TERMINAL_STATUSES:
            raise InvalidTransition(self.id, self.status, "assign a step on")
        step = self._find_step(step_id)
        if step.status in _FINISHED_STEP_STATUSES:
            raise InvalidTransition(step.id, step.status, "assign", entity="item_step")

        now = datetime.now(UTC)
        previous_technician_id = step.technician_id
        if step.status == StepStatus.PENDING.value:
            step.status = StepStatus.ASSIGNED.value
        step.technician_id = technician_id
        step.assigned_at = now
        self._touch(now)
        self.raise_(
            ItemStepAssigned(
                item_id=str(self.id),
                order_id=str(self.order_id),
                step_id=str(step.id),
                step_order=step.step_order,
                step_name=step.name,
                technician_id=technician_id,
                previous_technician_id=previous_technician_id,
                assigned_at=now,
            )
        )

    def start_step(self, step_id: str) -> None:
        """Start a workflow step; an assigned item moves to in_progress with it."""
        self._assert_workable("start a step on")
        step = self._find_step(step_id)
        if step.status not in _STARTABLE_STEP_STATUSES:
            raise InvalidTransition(step.id, step.status, "start", entity="item_step")

        now = datetime.now(UTC)
        step.status = StepStatus.IN_PROGRESS.value
        step.started_at = now
        if ItemStatus(self.status) == ItemStatus.ASSIGNED:
            self.start()
        self._touch(now)
        self.raise_(
            ItemStepStarted(
                item_id=str(self.id),
                order_id=str(self.order_id),
                step_id=str(step.id),
                step_order=step.step_order,
                step_name=step.name,
                department_id=step.department_id,
                started_at=now,
            )
        )

    def complete_step(self, step_id: str, note: str | None = None) -> None:
        self._assert_workable("complete a step on")
        step = self._find_step(step_id)
        if step.status in _FINISHED_STEP_STATUSES:
            raise InvalidTransition(step.id, step.status, "complete", entity="item_step")

        now = datetime.now(UTC)
        step.status = StepStatus.COMPLETED.value
        if step.started_at is None:
            step.started_at = now
        step.completed_at = now
        if note:
            step.note = note
        self._touch(now)
        self.raise_(
            ItemStepCompleted(
                item_id=str(self.id),
                order_id=str(self.order_id),
                step_id=str(step.id),
                step_order=step.step_order,
                step_name=step.name,
                note=note,
                completed_at=now,
            )
        )
        self._complete_if_all_steps_finished(now)

    def skip_step(self, step_id: str, reason: str) -> None:
        """Skip an optional step. Required steps cannot be skipped."""
        reason = _require_reason(reason)
        self._assert_workable("skip a step on")
        step = self._find_step(step_id)
        if step.is_required:
            raise ValidationError({"step_id": [f"Step '{step.name}' is required and cannot be skipped"]})
        if step.status in _FINISHED_STEP_STATUSES:
            raise InvalidTransition(step.id, step.status, "skip", entity="item_step")

        now = datetime.now(UTC)
        step.status = StepStatus.SKIPPED.value
        step.completed_at = now
        step.note = reason
        self._touch(now)
        self.raise_(
            ItemStepSkipped(
                item_id=str(self.id),
                order_id=str(self.order_id),
                step_id=str(step.id),
                step_order=step.step_order,
                step_name=step.name,
                reason=reason,
                skipped_at=now,
            )
        )
        self._complete_if_all_steps_finished(now)
