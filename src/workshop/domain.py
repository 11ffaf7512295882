"""Workshop bounded context — Order Fulfillment Workflow and Commissions.

Tracks order line items as they move through departments and technicians,
routes them between departments with reasons and deadlines, and writes
commission entries when an invoice is paid. All aggregates are CQRS (not
event sourced); commission generation shares a unit of work with the
invoice status flip.
"""

import structlog
from protean.domain import Domain

workshop = Domain(name="workshop")

logger = structlog.get_logger(__name__)
