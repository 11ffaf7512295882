"""Application tests for the commission payout ledger."""

import json

import pytest
from protean import current_domain

from workshop.commission.commission import Commission, CommissionStatus, commissions_for_user
from workshop.commission.payout import ApproveCommission, MarkCommissionPaid
from workshop.errors import InvalidTransition
from workshop.invoice.issuance import CreateInvoice
from workshop.invoice.payment import MarkInvoicePaid
from workshop.item.lifecycle import AssignItem, CompleteItems


def _process(command):
    return current_domain.process(command, asynchronous=False)


@pytest.fixture()
def commission_ids(place_order):
    order_id, items = place_order()
    ids = [str(i.id) for i in items]
    for item_id in ids:
        _process(AssignItem(item_id=item_id, department_id="dept-1"))
    _process(CompleteItems(item_ids=json.dumps(ids)))
    invoice_id = _process(CreateInvoice(order_id=order_id))
    return _process(MarkInvoicePaid(invoice_id=invoice_id))["commission_ids"]


class TestPayout:
    def test_approve_and_pay(self, commission_ids):
        commission_id = commission_ids[0]
        _process(ApproveCommission(commission_id=commission_id, approved_by="mgr-1"))
        _process(MarkCommissionPaid(commission_id=commission_id))

        commission = current_domain.repository_for(Commission).get(commission_id)
        assert commission.status == CommissionStatus.PAID.value
        assert commission.approved_by == "mgr-1"

    def test_paying_unapproved_commission_is_rejected(self, commission_ids):
        with pytest.raises(InvalidTransition):
            _process(MarkCommissionPaid(commission_id=commission_ids[0]))

    def test_list_by_user_and_status(self, commission_ids):
        assert len(commissions_for_user("tech-1")) == 1
        assert commissions_for_user("tech-1", status="approved") == []
