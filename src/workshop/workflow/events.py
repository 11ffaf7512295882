"""Workflow domain events."""

from protean.fields import DateTime, Identifier, Integer, String, Text

from workshop.domain import workshop


@workshop.event(part_of="Workflow")
class WorkflowDefined:
    """A workflow template was defined with its ordered steps."""

    __version__ = 1

    workflow_id = Identifier(required=True)
    name = String(required=True)
    steps = Text(required=True)  # JSON list of step dicts
    step_count = Integer(required=True)
    defined_at = DateTime(required=True)


@workshop.event(part_of="Workflow")
class WorkflowStepAdded:
    """A step was appended to an existing workflow."""

    __version__ = 1

    workflow_id = Identifier(required=True)
    step_id = Identifier(required=True)
    step_order = Integer(required=True)
    department_id = Identifier(required=True)
    name = String(required=True)
    added_at = DateTime(required=True)
