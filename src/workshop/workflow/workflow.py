"""Workflow aggregate — the catalog of department routes a service follows.

A workflow is an ordered list of steps; each step names the department that
works the item, an estimated duration and whether the step may be waived.
Order placement copies the steps onto each service item as its expected
routing.
"""

import json
from datetime import UTC, datetime

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, HasMany, Identifier, Integer, String, Text

from workshop.domain import workshop
from workshop.workflow.events import WorkflowDefined, WorkflowStepAdded


@workshop.entity(part_of="Workflow")
class WorkflowStep:
    """A department stage in a workflow template."""

    step_order = Integer(required=True, min_value=1)
    department_id = Identifier(required=True)
    name = String(required=True, max_length=200)
    estimated_duration = Integer(default=0)  # minutes
    is_required = Boolean(default=True)


def _validate_step_orders(orders: list[int]) -> None:
    if not orders:
        raise ValidationError({"steps": ["A workflow needs at least one step"]})
    for previous, current in zip(orders, orders[1:], strict=False):
        if current <= previous:
            raise ValidationError({"steps": ["Step order must be strictly increasing"]})


@workshop.aggregate
class Workflow:
    name = String(required=True, max_length=200)
    description = Text()
    steps = HasMany(WorkflowStep)
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def step_orders_are_unique(self):
        orders = [s.step_order for s in (self.steps or [])]
        if len(orders) != len(set(orders)):
            raise ValidationError({"steps": ["Step order must be unique within a workflow"]})

    @classmethod
    def define(cls, name: str, steps_data: list[dict], description: str | None = None):
        """Create a workflow from an ordered list of step dicts."""
        _validate_step_orders([int(s["step_order"]) for s in steps_data])

        now = datetime.now(UTC)
        workflow = cls(name=name, description=description, created_at=now, updated_at=now)
        for step_data in steps_data:
            workflow.add_steps(WorkflowStep(**step_data))

        workflow.raise_(
            WorkflowDefined(
                workflow_id=str(workflow.id),
                name=name,
                steps=json.dumps(steps_data),
                step_count=len(steps_data),
                defined_at=now,
            )
        )
        return workflow

    def ordered_steps(self) -> list[WorkflowStep]:
        return sorted(self.steps or [], key=lambda s: s.step_order)

    def add_step(
        self,
        step_order: int,
        department_id: str,
        name: str,
        estimated_duration: int = 0,
        is_required: bool = True,
    ) -> WorkflowStep:
        """Append a step; its order must come after every existing step."""
        existing = [s.step_order for s in self.ordered_steps()]
        _validate_step_orders(existing + [step_order])

        now = datetime.now(UTC)
        step = WorkflowStep(
            step_order=step_order,
            department_id=department_id,
            name=name,
            estimated_duration=estimated_duration,
            is_required=is_required,
        )
        self.add_steps(step)
        self.updated_at = now
        self.raise_(
            WorkflowStepAdded(
                workflow_id=str(self.id),
                step_id=str(step.id),
                step_order=step_order,
                department_id=department_id,
                name=name,
                added_at=now,
            )
        )
        return step
