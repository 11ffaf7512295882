"""Item timeline — the audit trail of one item, for the floor and for disputes."""

import json

from protean.core.projector import on
from protean.fields import DateTime, Identifier, String, Text
from protean.utils.globals import current_domain

from workshop.domain import workshop
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
from workshop.item.item import OrderItem


@workshop.projection
class ItemTimeline:
    item_id = Identifier(identifier=True, required=True)
    order_id = Identifier(required=True)
    item_code = String(required=True)
    name = String()
    current_status = String(required=True)
    current_department_id = Identifier()
    entries_json = Text()  # JSON list of {kind, at, ...details}
    updated_at = DateTime()


def _append(view, kind, at, **details):
    entries = json.loads(view.entries_json) if view.entries_json else []
    entries.append({"kind": kind, "at": at.isoformat() if at else None, **details})
    view.entries_json = json.dumps(entries)
    view.updated_at = at


@workshop.projector(projector_for=ItemTimeline, aggregates=[OrderItem])
class ItemTimelineProjector:
    @on(ItemCreated)
    def on_item_created(self, event):
        view = ItemTimeline(
            item_id=event.item_id,
            order_id=event.order_id,
            item_code=event.item_code,
            name=event.name,
            current_status="pending",
        )
        _append(view, "created", event.created_at, item_type=event.item_type, step_count=event.step_count)
        current_domain.repository_for(ItemTimeline).add(view)

    @on(ItemAssigned)
    def on_item_assigned(self, event):
        repo = current_domain.repository_for(ItemTimeline)
        view = repo.get(event.item_id)
        view.current_status = "assigned"
        if event.department_id:
            view.current_department_id = event.department_id
        _append(
            view,
            "assigned",
            event.assigned_at,
            from_status=event.from_status,
            technician_id=event.technician_id,
            department_id=event.department_id,
        )
        repo.add(view)

    @on(ItemStarted)
    def on_item_started(self, event):
        repo = current_domain.repository_for(ItemTimeline)
        view = repo.get(event.item_id)
        view.current_status = "in_progress"
        _append(view, "started", event.started_at, from_status=event.from_status)
        repo.add(view)

    @on(ItemCompleted)
    def on_item_completed(self, event):
        repo = current_domain.repository_for(ItemTimeline)
        view = repo.get(event.item_id)
        view.current_status = "completed"
        _append(view, "completed", event.completed_at, from_status=event.from_status, note=event.note)
        repo.add(view)

    @on(ItemFailed)
    def on_item_failed(self, event):
        repo = current_domain.repository_for(ItemTimeline)
        view = repo.get(event.item_id)
        view.current_status = "failed"
        _append(view, "failed", event.failed_at, from_status=event.from_status, reason=event.reason)
        repo.add(view)

    @on(ItemSkipped)
    def on_item_skipped(self, event):
        repo = current_domain.repository_for(ItemTimeline)
        view = repo.get(event.item_id)
        view.current_status = "skipped"
        _append(view, "skipped", event.skipped_at, from_status=event.from_status, reason=event.reason)
        repo.add(view)

    @on(ItemRouted)
    def on_item_routed(self, event):
        repo = current_domain.repository_for(ItemTimeline)
        view = repo.get(event.item_id)
        view.current_status = event.to_status
        view.current_department_id = event.to_department_id
        _append(
            view,
            "routed",
            event.routed_at,
            from_department_id=event.from_department_id,
            to_department_id=event.to_department_id,
            reason=event.reason,
            deadline=event.deadline.isoformat() if event.deadline else None,
            created_by=event.created_by,
        )
        repo.add(view)

    @on(TechnicianSplitUpdated)
    def on_technician_split_updated(self, event):
        repo = current_domain.repository_for(ItemTimeline)
        view = repo.get(event.item_id)
        _append(view, "technicians_updated", event.updated_at, technicians=json.loads(event.technicians))
        repo.add(view)

    @on(ItemStepAssigned)
    def on_item_step_assigned(self, event):
        repo = current_domain.repository_for(ItemTimeline)
        view = repo.get(event.item_id)
        _append(
            view,
            "step_assigned",
            event.assigned_at,
            step_id=event.step_id,
            step_name=event.step_name,
            technician_id=event.technician_id,
        )
        repo.add(view)

    @on(ItemStepStarted)
    def on_item_step_started(self, event):
        repo = current_domain.repository_for(ItemTimeline)
        view = repo.get(event.item_id)
        _append(view, "step_started", event.started_at, step_id=event.step_id, step_name=event.step_name)
        repo.add(view)

    @on(ItemStepCompleted)
    def on_item_step_completed(self, event):
        repo = current_domain.repository_for(ItemTimeline)
        view = repo.get(event.item_id)
        _append(view, "step_completed", event.completed_at, step_id=event.step_id, step_name=event.step_name)
        repo.add(view)

    @on(ItemStepSkipped)
    def on_item_step_skipped(self, event):
        repo = current_domain.repository_for(ItemTimeline)
        view = repo.get(event.item_id)
        _append(
            view,
            "step_skipped",
            event.skipped_at,
            step_id=event.step_id,
            step_name=event.step_name,
            reason=event.reason,
        )
        repo.add(view)
