"""Pydantic API schemas for the workshop.

These are the external API contracts, separate from domain commands.
The routes translate between these schemas and domain commands.
"""

from datetime import datetime

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------
class WorkflowStepRequest(BaseModel):
    step_order: int
    department_id: str
    name: str
    estimated_duration: int = 0
    is_required: bool = True


class DefineWorkflowRequest(BaseModel):
    name: str
    description: str | None = None
    steps: list[WorkflowStepRequest]


class TechnicianShare(BaseModel):
    technician_id: str
    commission_percent: float = 0.0


class OrderLineRequest(BaseModel):
    item_type: str = "service"
    name: str
    quantity: int = 1
    unit_price: float
    group_code: str | None = None
    is_customer_supplied: bool = False
    workflow_id: str | None = None
    note: str | None = None
    technicians: list[TechnicianShare] = Field(default_factory=list)


class PlaceOrderRequest(BaseModel):
    customer_id: str
    sales_id: str | None = None
    items: list[OrderLineRequest]
    discount: float = 0.0
    surcharges: float = 0.0
    due_at: datetime | None = None
    notes: str | None = None
    order_code: str | None = None


class RequestExtensionRequest(BaseModel):
    reason: str


class ResolveExtensionRequest(BaseModel):
    approve: bool
    new_due_at: datetime | None = None
    valid_reason: bool = False
    customer_result: str | None = None


class AssignItemRequest(BaseModel):
    technician_id: str | None = None
    department_id: str | None = None
    commission_percent: float | None = None
    reason: str | None = None
    deadline_days: int | None = None
    expected_revision: int | None = None


class RevisionRequest(BaseModel):
    expected_revision: int | None = None


class CompleteItemsRequest(BaseModel):
    item_ids: list[str]
    note: str | None = None
    expected_revisions: dict[str, int] = Field(default_factory=dict)


class ReasonRequest(BaseModel):
    reason: str = ""
    expected_revision: int | None = None


class SetTechniciansRequest(BaseModel):
    technicians: list[TechnicianShare]
    expected_revision: int | None = None


class StepAssignRequest(BaseModel):
    technician_id: str
    expected_revision: int | None = None


class StepCompleteRequest(BaseModel):
    note: str | None = None
    expected_revision: int | None = None


class MoveToDepartmentRequest(BaseModel):
    target_department_id: str
    reason: str = ""
    deadline_days: int
    expected_revision: int | None = None


class CreateInvoiceRequest(BaseModel):
    order_id: str
    payment_method: str = "cash"
    notes: str | None = None


class CancelInvoiceRequest(BaseModel):
    reason: str = ""


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------
class IdResponse(BaseModel):
    id: str


class StatusResponse(BaseModel):
    status: str


class RevisionResponse(BaseModel):
    item_id: str
    revision: int


class CompletedItemsResponse(BaseModel):
    completed: list[str]


class OrderProgressResponse(BaseModel):
    order_id: str
    order_code: str
    total_items: int
    terminal_items: int
    counts: dict[str, int]
    ready_to_invoice: bool


class GroupItemSummary(BaseModel):
    item_id: str
    item_code: str
    name: str
    status: str
    completion_percentage: int


class GroupSummaryResponse(BaseModel):
    group_code: str
    overall_status: str
    total_steps: int
    completed_steps: int
    completion_percentage: int
    earliest_started_at: datetime | None = None
    latest_completed_at: datetime | None = None
    items: list[GroupItemSummary]


class PaymentResponse(BaseModel):
    invoice_id: str
    status: str
    replayed: bool
    commission_ids: list[str]
