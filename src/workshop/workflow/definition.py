"""Workflow definition — commands and handler."""

import json

from protean import handle
from protean.fields import Boolean, Identifier, Integer, String, Text
from protean.utils.globals import current_domain

from workshop.domain import workshop
from workshop.workflow.workflow import Workflow


@workshop.command(part_of="Workflow")
class DefineWorkflow:
    """Define a new workflow template."""

    name = String(required=True, max_length=200)
    description = Text()
    steps = Text(required=True)  # JSON: list of {step_order, department_id, name, estimated_duration, is_required}


@workshop.command(part_of="Workflow")
class AddWorkflowStep:
    """Append a step to an existing workflow."""

    workflow_id = Identifier(required=True)
    step_order = Integer(required=True, min_value=1)
    department_id = Identifier(required=True)
    name = String(required=True, max_length=200)
    estimated_duration = Integer(default=0)
    is_required = Boolean(default=True)


@workshop.command_handler(part_of=Workflow)
class WorkflowDefinitionHandler:
    @handle(DefineWorkflow)
    def define_workflow(self, command):
        steps_data = json.loads(command.steps) if isinstance(command.steps, str) else command.steps
        workflow = Workflow.define(
            name=command.name,
            steps_data=steps_data,
            description=command.description,
        )
        current_domain.repository_for(Workflow).add(workflow)
        return str(workflow.id)

    @handle(AddWorkflowStep)
    def add_workflow_step(self, command):
        repo = current_domain.repository_for(Workflow)
        workflow = repo.get(command.workflow_id)
        step = workflow.add_step(
            step_order=command.step_order,
            department_id=command.department_id,
            name=command.name,
            estimated_duration=command.estimated_duration or 0,
            is_required=command.is_required if command.is_required is not None else True,
        )
        repo.add(workflow)
        return str(step.id)
