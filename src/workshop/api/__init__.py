"""Workshop API package."""

from workshop.api.routes import (
    commission_router,
    invoice_router,
    item_router,
    order_router,
    workflow_router,
)

__all__ = ["commission_router", "invoice_router", "item_router", "order_router", "workflow_router"]
