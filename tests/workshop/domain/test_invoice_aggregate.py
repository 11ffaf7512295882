"""Tests for the Invoice aggregate state machine."""

import re

import pytest
from protean.exceptions import ValidationError

from workshop.errors import InvalidTransition
from workshop.invoice.events import InvoiceCancelled, InvoiceCreated, InvoicePaid
from workshop.invoice.invoice import Invoice, InvoiceStatus


def _make_invoice():
    return Invoice.create(order_id="ord-001", total_amount=1_500_000.0, payment_method="transfer")


class TestCreate:
    def test_new_invoice_is_draft_with_code(self):
        invoice = _make_invoice()
        assert invoice.status == InvoiceStatus.DRAFT.value
        assert re.fullmatch(r"HD[0-9A-F]{8}", invoice.invoice_code)
        assert isinstance(invoice._events[-1], InvoiceCreated)

    def test_payment_method_defaults_to_cash(self):
        invoice = Invoice.create(order_id="ord-001", total_amount=10.0)
        assert invoice.payment_method == "cash"


class TestTransitions:
    def test_draft_issued_paid(self):
        invoice = _make_invoice()
        invoice.issue()
        invoice.mark_paid(commission_count=3)
        assert invoice.status == InvoiceStatus.PAID.value
        assert invoice.issued_at is not None
        assert invoice.paid_at is not None
        assert invoice._events[-1].commission_count == 3

    def test_draft_can_be_paid_directly(self):
        invoice = _make_invoice()
        invoice.mark_paid()
        assert invoice.is_paid
        assert isinstance(invoice._events[-1], InvoicePaid)

    @pytest.mark.parametrize("issue_first", [False, True])
    def test_cancel_before_payment(self, issue_first):
        invoice = _make_invoice()
        if issue_first:
            invoice.issue()
        invoice.cancel("customer disputed")
        assert invoice.status == InvoiceStatus.CANCELLED.value
        assert invoice.cancellation_reason == "customer disputed"
        assert isinstance(invoice._events[-1], InvoiceCancelled)

    def test_cancel_requires_reason(self):
        invoice = _make_invoice()
        with pytest.raises(ValidationError):
            invoice.cancel(" ")

    def test_cancelled_invoice_cannot_be_paid(self):
        invoice = _make_invoice()
        invoice.cancel("duplicate")
        with pytest.raises(InvalidTransition) as exc:
            invoice.mark_paid()
        assert exc.value.entity == "invoice"
        assert exc.value.attempted == "pay"

    def test_paid_invoice_cannot_be_cancelled_or_issued(self):
        invoice = _make_invoice()
        invoice.mark_paid()
        with pytest.raises(InvalidTransition):
            invoice.cancel("too late")
        with pytest.raises(InvalidTransition):
            invoice.issue()
