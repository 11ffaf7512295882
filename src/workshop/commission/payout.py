"""Commission payout ledger — commands and handler."""

from protean import handle
from protean.fields import Identifier
from protean.utils.globals import current_domain

from workshop.commission.commission import Commission
from workshop.domain import workshop


@workshop.command(part_of="Commission")
class ApproveCommission:
    commission_id = Identifier(required=True)
    approved_by = Identifier()


@workshop.command(part_of="Commission")
class MarkCommissionPaid:
    commission_id = Identifier(required=True)


@workshop.command_handler(part_of=Commission)
class CommissionPayoutHandler:
    @handle(ApproveCommission)
    def approve_commission(self, command):
        repo = current_domain.repository_for(Commission)
        commission = repo.get(command.commission_id)
        commission.approve(command.approved_by)
        repo.add(commission)

    @handle(MarkCommissionPaid)
    def mark_commission_paid(self, command):
        repo = current_domain.repository_for(Commission)
        commission = repo.get(command.commission_id)
        commission.mark_paid()
        repo.add(commission)
