"""FastAPI routes for the workshop.

Item commands go through ``process_serialized`` so that the per-item locks
are held for the whole dispatch; everything else is processed directly.
"""

import json

from fastapi import APIRouter, Depends
from protean.utils.globals import current_domain

from workshop.api.principal import Principal, current_principal
from workshop.api.schemas import (
    AssignItemRequest,
    CancelInvoiceRequest,
    CompletedItemsResponse,
    CompleteItemsRequest,
    CreateInvoiceRequest,
    DefineWorkflowRequest,
    GroupSummaryResponse,
    IdResponse,
    MoveToDepartmentRequest,
    OrderProgressResponse,
    PaymentResponse,
    PlaceOrderRequest,
    ReasonRequest,
    RequestExtensionRequest,
    ResolveExtensionRequest,
    RevisionRequest,
    RevisionResponse,
    SetTechniciansRequest,
    StatusResponse,
    StepAssignRequest,
    StepCompleteRequest,
    WorkflowStepRequest,
)
from workshop.commission.commission import Commission, commissions_for_invoice, commissions_for_user
from workshop.commission.payout import ApproveCommission, MarkCommissionPaid
from workshop.invoice.invoice import Invoice
from workshop.invoice.issuance import CancelInvoice, CreateInvoice, IssueInvoice
from workshop.invoice.payment import MarkInvoicePaid
from workshop.item.item import OrderItem
from workshop.item.lifecycle import AssignItem, CompleteItems, FailItem, SetTechnicians, SkipItem, StartItem
from workshop.item.routing import MoveToDepartment
from workshop.item.steps import AssignItemStep, CompleteItemStep, SkipItemStep, StartItemStep
from workshop.order.creation import PlaceOrder
from workshop.order.extension import RequestExtension, ResolveExtension
from workshop.order.order import Order
from workshop.order.progress import group_summaries, items_for_order, order_progress
from workshop.projections.item_timeline import ItemTimeline
from workshop.utils.locking import process_serialized
from workshop.workflow.definition import AddWorkflowStep, DefineWorkflow
from workshop.workflow.workflow import Workflow

# ---------------------------------------------------------------------------
# Workflow Router
# ---------------------------------------------------------------------------
workflow_router = APIRouter(prefix="/workflows", tags=["workflows"])


@workflow_router.post("", status_code=201, response_model=IdResponse)
async def define_workflow(body: DefineWorkflowRequest) -> IdResponse:
    command = DefineWorkflow(
        name=body.name,
        description=body.description,
        steps=json.dumps([step.model_dump() for step in body.steps]),
    )
    result = current_domain.process(command, asynchronous=False)
    return IdResponse(id=result)


@workflow_router.post("/{workflow_id}/steps", status_code=201, response_model=IdResponse)
async def add_workflow_step(workflow_id: str, body: WorkflowStepRequest) -> IdResponse:
    command = AddWorkflowStep(workflow_id=workflow_id, **body.model_dump())
    result = current_domain.process(command, asynchronous=False)
    return IdResponse(id=result)


@workflow_router.get("/{workflow_id}")
async def get_workflow(workflow_id: str) -> dict:
    return current_domain.repository_for(Workflow).get(workflow_id).to_dict()


# ---------------------------------------------------------------------------
# Order Router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


@order_router.post("", status_code=201, response_model=IdResponse)
async def place_order(body: PlaceOrderRequest, principal: Principal = Depends(current_principal)) -> IdResponse:
    """Place an order; every line becomes a pending item."""
    command = PlaceOrder(
        customer_id=body.customer_id,
        sales_id=body.sales_id,
        items=json.dumps([line.model_dump() for line in body.items]),
        discount=body.discount,
        surcharges=body.surcharges,
        due_at=body.due_at,
        notes=body.notes,
        order_code=body.order_code,
        created_by=principal.user_id,
    )
    result = current_domain.process(command, asynchronous=False)
    return IdResponse(id=result)


@order_router.get("/{order_id}")
async def get_order(order_id: str) -> dict:
    order = current_domain.repository_for(Order).get(order_id)
    return {**order.to_dict(), "items": [item.to_dict() for item in items_for_order(order.id)]}


@order_router.get("/{order_id}/progress", response_model=OrderProgressResponse)
async def get_order_progress(order_id: str) -> OrderProgressResponse:
    return OrderProgressResponse(**order_progress(order_id))


@order_router.get("/{order_id}/groups", response_model=list[GroupSummaryResponse])
async def get_order_groups(order_id: str) -> list[GroupSummaryResponse]:
    return [GroupSummaryResponse(**summary) for summary in group_summaries(order_id)]


@order_router.post("/{order_id}/extension-requests", status_code=201, response_model=IdResponse)
async def request_extension(
    order_id: str,
    body: RequestExtensionRequest,
    principal: Principal = Depends(current_principal),
) -> IdResponse:
    command = RequestExtension(order_id=order_id, reason=body.reason, requested_by=principal.user_id)
    result = current_domain.process(command, asynchronous=False)
    return IdResponse(id=result)


@order_router.put("/{order_id}/extension-requests/{request_id}", response_model=StatusResponse)
async def resolve_extension(
    order_id: str,
    request_id: str,
    body: ResolveExtensionRequest,
    principal: Principal = Depends(current_principal),
) -> StatusResponse:
    command = ResolveExtension(
        order_id=order_id,
        request_id=request_id,
        approve=body.approve,
        new_due_at=body.new_due_at,
        valid_reason=body.valid_reason,
        customer_result=body.customer_result,
        resolved_by=principal.user_id,
    )
    result = current_domain.process(command, asynchronous=False)
    return StatusResponse(status=result)


# ---------------------------------------------------------------------------
# Item Router
# ---------------------------------------------------------------------------
item_router = APIRouter(prefix="/items", tags=["items"])


@item_router.get("/by-code/{item_code}")
async def get_item_by_code(item_code: str) -> dict:
    return current_domain.repository_for(OrderItem)._dao.find_by(item_code=item_code).to_dict()


@item_router.get("/{item_id}")
async def get_item(item_id: str) -> dict:
    return current_domain.repository_for(OrderItem).get(item_id).to_dict()


@item_router.get("/{item_id}/timeline")
async def get_item_timeline(item_id: str) -> dict:
    view = current_domain.repository_for(ItemTimeline).get(item_id)
    return {
        "item_id": view.item_id,
        "order_id": view.order_id,
        "item_code": view.item_code,
        "current_status": view.current_status,
        "current_department_id": view.current_department_id,
        "entries": json.loads(view.entries_json) if view.entries_json else [],
    }


@item_router.put("/{item_id}/assign", response_model=RevisionResponse)
async def assign_item(item_id: str, body: AssignItemRequest) -> RevisionResponse:
    command = AssignItem(item_id=item_id, **body.model_dump())
    revision = process_serialized(command, [item_id])
    return RevisionResponse(item_id=item_id, revision=revision)


@item_router.put("/{item_id}/start", response_model=RevisionResponse)
async def start_item(item_id: str, body: RevisionRequest | None = None) -> RevisionResponse:
    command = StartItem(item_id=item_id, expected_revision=body.expected_revision if body else None)
    revision = process_serialized(command, [item_id])
    return RevisionResponse(item_id=item_id, revision=revision)


@item_router.post("/complete", response_model=CompletedItemsResponse)
async def complete_items(body: CompleteItemsRequest) -> CompletedItemsResponse:
    """Complete a batch of items of one order: all of them or none."""
    command = CompleteItems(
        item_ids=json.dumps(body.item_ids),
        note=body.note,
        expected_revisions=json.dumps(body.expected_revisions),
    )
    completed = process_serialized(command, body.item_ids)
    return CompletedItemsResponse(completed=completed)


@item_router.put("/{item_id}/fail", response_model=RevisionResponse)
async def fail_item(item_id: str, body: ReasonRequest) -> RevisionResponse:
    command = FailItem(item_id=item_id, reason=body.reason, expected_revision=body.expected_revision)
    revision = process_serialized(command, [item_id])
    return RevisionResponse(item_id=item_id, revision=revision)


@item_router.put("/{item_id}/skip", response_model=RevisionResponse)
async def skip_item(item_id: str, body: ReasonRequest) -> RevisionResponse:
    command = SkipItem(item_id=item_id, reason=body.reason, expected_revision=body.expected_revision)
    revision = process_serialized(command, [item_id])
    return RevisionResponse(item_id=item_id, revision=revision)


@item_router.put("/{item_id}/technicians", response_model=RevisionResponse)
async def set_technicians(item_id: str, body: SetTechniciansRequest) -> RevisionResponse:
    command = SetTechnicians(
        item_id=item_id,
        technicians=json.dumps([share.model_dump() for share in body.technicians]),
        expected_revision=body.expected_revision,
    )
    revision = process_serialized(command, [item_id])
    return RevisionResponse(item_id=item_id, revision=revision)


@item_router.post("/{item_id}/routes", status_code=201, response_model=IdResponse)
async def move_to_department(
    item_id: str,
    body: MoveToDepartmentRequest,
    principal: Principal = Depends(current_principal),
) -> IdResponse:
    command = MoveToDepartment(
        item_id=item_id,
        target_department_id=body.target_department_id,
        reason=body.reason,
        deadline_days=body.deadline_days,
        created_by=principal.user_id,
        expected_revision=body.expected_revision,
    )
    result = process_serialized(command, [item_id])
    return IdResponse(id=result)


@item_router.put("/{item_id}/steps/{step_id}/assign", response_model=StatusResponse)
async def assign_item_step(item_id: str, step_id: str, body: StepAssignRequest) -> StatusResponse:
    command = AssignItemStep(
        item_id=item_id,
        step_id=step_id,
        technician_id=body.technician_id,
        expected_revision=body.expected_revision,
    )
    return StatusResponse(status=process_serialized(command, [item_id]))


@item_router.put("/{item_id}/steps/{step_id}/start", response_model=StatusResponse)
async def start_item_step(item_id: str, step_id: str, body: RevisionRequest | None = None) -> StatusResponse:
    command = StartItemStep(
        item_id=item_id,
        step_id=step_id,
        expected_revision=body.expected_revision if body else None,
    )
    return StatusResponse(status=process_serialized(command, [item_id]))


@item_router.put("/{item_id}/steps/{step_id}/complete", response_model=StatusResponse)
async def complete_item_step(item_id: str, step_id: str, body: StepCompleteRequest | None = None) -> StatusResponse:
    body = body or StepCompleteRequest()
    command = CompleteItemStep(
        item_id=item_id,
        step_id=step_id,
        note=body.note,
        expected_revision=body.expected_revision,
    )
    return StatusResponse(status=process_serialized(command, [item_id]))


@item_router.put("/{item_id}/steps/{step_id}/skip", response_model=StatusResponse)
async def skip_item_step(item_id: str, step_id: str, body: ReasonRequest) -> StatusResponse:
    command = SkipItemStep(
        item_id=item_id,
        step_id=step_id,
        reason=body.reason,
        expected_revision=body.expected_revision,
    )
    return StatusResponse(status=process_serialized(command, [item_id]))


# ---------------------------------------------------------------------------
# Invoice Router
# ---------------------------------------------------------------------------
invoice_router = APIRouter(prefix="/invoices", tags=["invoices"])


@invoice_router.post("", status_code=201, response_model=IdResponse)
async def create_invoice(body: CreateInvoiceRequest, principal: Principal = Depends(current_principal)) -> IdResponse:
    command = CreateInvoice(
        order_id=body.order_id,
        payment_method=body.payment_method,
        notes=body.notes,
        created_by=principal.user_id,
    )
    result = current_domain.process(command, asynchronous=False)
    return IdResponse(id=result)


@invoice_router.get("/{invoice_id}")
async def get_invoice(invoice_id: str) -> dict:
    return current_domain.repository_for(Invoice).get(invoice_id).to_dict()


@invoice_router.put("/{invoice_id}/issue", response_model=StatusResponse)
async def issue_invoice(invoice_id: str) -> StatusResponse:
    current_domain.process(IssueInvoice(invoice_id=invoice_id), asynchronous=False)
    return StatusResponse(status="issued")


@invoice_router.put("/{invoice_id}/cancel", response_model=StatusResponse)
async def cancel_invoice(invoice_id: str, body: CancelInvoiceRequest) -> StatusResponse:
    current_domain.process(CancelInvoice(invoice_id=invoice_id, reason=body.reason), asynchronous=False)
    return StatusResponse(status="cancelled")


@invoice_router.put("/{invoice_id}/pay", response_model=PaymentResponse)
async def pay_invoice(invoice_id: str) -> PaymentResponse:
    """Mark the invoice paid and record the commissions it triggers."""
    result = current_domain.process(MarkInvoicePaid(invoice_id=invoice_id), asynchronous=False)
    return PaymentResponse(**result)


# ---------------------------------------------------------------------------
# Commission Router
# ---------------------------------------------------------------------------
commission_router = APIRouter(prefix="/commissions", tags=["commissions"])


@commission_router.get("")
async def list_commissions(
    invoice_id: str | None = None,
    user_id: str | None = None,
    status: str | None = None,
) -> list[dict]:
    if invoice_id:
        commissions = commissions_for_invoice(invoice_id)
        if user_id:
            commissions = [c for c in commissions if c.user_id == user_id]
        if status:
            commissions = [c for c in commissions if c.status == status]
    elif user_id:
        commissions = commissions_for_user(user_id, status=status)
    else:
        repo = current_domain.repository_for(Commission)
        commissions = repo._dao.query.filter(status=status).all().items if status else repo._dao.query.all().items
    return [c.to_dict() for c in commissions]


@commission_router.put("/{commission_id}/approve", response_model=StatusResponse)
async def approve_commission(commission_id: str, principal: Principal = Depends(current_principal)) -> StatusResponse:
    command = ApproveCommission(commission_id=commission_id, approved_by=principal.user_id)
    current_domain.process(command, asynchronous=False)
    return StatusResponse(status="approved")


@commission_router.put("/{commission_id}/paid", response_model=StatusResponse)
async def mark_commission_paid(commission_id: str) -> StatusResponse:
    current_domain.process(MarkCommissionPaid(commission_id=commission_id), asynchronous=False)
    return StatusResponse(status="paid")
