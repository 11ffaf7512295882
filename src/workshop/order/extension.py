"""Due-date extensions — commands and handler."""

from protean import handle
from protean.fields import Boolean, DateTime, Identifier, String
from protean.utils.globals import current_domain

from workshop.domain import logger, workshop
from workshop.order.order import Order


@workshop.command(part_of="Order")
class RequestExtension:
    order_id = Identifier(required=True)
    reason = String(max_length=500)
    requested_by = Identifier()


@workshop.command(part_of="Order")
class ResolveExtension:
    order_id = Identifier(required=True)
    request_id = Identifier(required=True)
    approve = Boolean(required=True)
    new_due_at = DateTime()
    valid_reason = Boolean(default=False)
    customer_result = String(max_length=500)
    resolved_by = Identifier()


@workshop.command_handler(part_of=Order)
class ExtensionHandler:
    @handle(RequestExtension)
    def request_extension(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        request = order.request_extension(command.reason, requested_by=command.requested_by)
        repo.add(order)
        logger.info("extension_requested", order_id=str(order.id), request_id=str(request.id))
        return str(request.id)

    @handle(ResolveExtension)
    def resolve_extension(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        request = order.resolve_extension(
            command.request_id,
            approve=command.approve,
            resolved_by=command.resolved_by,
            new_due_at=command.new_due_at,
            valid_reason=command.valid_reason,
            customer_result=command.customer_result,
        )
        repo.add(order)
        logger.info(
            "extension_resolved",
            order_id=str(order.id),
            request_id=str(request.id),
            status=request.status,
        )
        return request.status
