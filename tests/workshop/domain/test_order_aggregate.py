"""Tests for the Order aggregate — totals and due-date extensions."""

from datetime import UTC, datetime, timedelta

import pytest
from protean.exceptions import ValidationError

from workshop.errors import Conflict, InvalidTransition
from workshop.order.events import ExtensionApproved, ExtensionRejected, ExtensionRequested
from workshop.order.order import ExtensionStatus, Order

DUE_AT = datetime(2026, 11, 1, 17, 0, tzinfo=UTC)


def _lines():
    return [
        {"name": "Wash", "unit_price": 200_000, "quantity": 2},
        {"name": "Polish", "unit_price": 300_000},
    ]


def _make_order(**overrides):
    data = {"customer_id": "cust-001", "lines": _lines(), "due_at": DUE_AT}
    data.update(overrides)
    return Order.place(**data)


class TestPlacement:
    def test_totals(self):
        order = _make_order(discount=100_000, surcharges=50_000)
        assert order.subtotal == 700_000
        assert order.total_amount == 650_000

    def test_total_never_goes_negative(self):
        order = _make_order(discount=1_000_000)
        assert order.total_amount == 0

    def test_order_needs_lines(self):
        with pytest.raises(ValidationError):
            _make_order(lines=[])

    def test_generated_code_and_item_codes(self):
        order = _make_order()
        assert order.order_code.startswith("DH")
        assert order.item_code(2) == f"{order.order_code}-2"

    def test_explicit_order_code_is_kept(self):
        order = _make_order(order_code="DH20261019")
        assert order.order_code == "DH20261019"


class TestRequestExtension:
    def test_request_captures_current_due_date(self):
        order = _make_order()
        request = order.request_extension("waiting for parts", requested_by="tech-1")
        assert request.status == ExtensionStatus.PENDING.value
        assert request.previous_due_at == DUE_AT
        assert isinstance(order._events[-1], ExtensionRequested)

    @pytest.mark.parametrize("reason", [None, "", "   "])
    def test_reason_is_required(self, reason):
        order = _make_order()
        with pytest.raises(ValidationError):
            order.request_extension(reason)

    def test_second_pending_request_conflicts(self):
        order = _make_order()
        order.request_extension("waiting for parts")
        with pytest.raises(Conflict):
            order.request_extension("still waiting")
        assert len(order.extension_requests) == 1

    def test_new_request_allowed_after_resolution(self):
        order = _make_order()
        first = order.request_extension("waiting for parts")
        order.resolve_extension(first.id, approve=False)
        order.request_extension("parts delayed again")
        assert len(order.extension_requests) == 2


class TestResolveExtension:
    def test_approve_with_later_date_moves_due_date_once(self):
        order = _make_order()
        request = order.request_extension("waiting for parts")
        new_due = DUE_AT + timedelta(days=2)

        order.resolve_extension(request.id, approve=True, resolved_by="mgr-1", new_due_at=new_due, valid_reason=True)

        assert order.due_at == new_due
        assert request.status == ExtensionStatus.APPROVED.value
        assert request.approved_by == "mgr-1"
        assert request.valid_reason is True
        event = order._events[-1]
        assert isinstance(event, ExtensionApproved)
        assert event.previous_due_at == DUE_AT

    def test_approve_with_same_date_is_allowed(self):
        order = _make_order()
        request = order.request_extension("paperwork")
        order.resolve_extension(request.id, approve=True, new_due_at=DUE_AT)
        assert order.due_at == DUE_AT

    def test_approve_with_earlier_date_is_rejected(self):
        order = _make_order()
        request = order.request_extension("waiting for parts")
        with pytest.raises(ValidationError):
            order.resolve_extension(request.id, approve=True, new_due_at=DUE_AT - timedelta(days=1))
        assert order.due_at == DUE_AT
        assert request.status == ExtensionStatus.PENDING.value

    def test_approve_requires_new_date(self):
        order = _make_order()
        request = order.request_extension("waiting for parts")
        with pytest.raises(ValidationError):
            order.resolve_extension(request.id, approve=True)

    def test_naive_datetimes_compare_as_utc(self):
        order = _make_order()
        request = order.request_extension("waiting for parts")
        order.resolve_extension(request.id, approve=True, new_due_at=datetime(2026, 11, 3, 9, 0))
        assert request.status == ExtensionStatus.APPROVED.value

    def test_reject_leaves_due_date_untouched(self):
        order = _make_order()
        request = order.request_extension("waiting for parts")
        order.resolve_extension(request.id, approve=False, customer_result="customer refused")
        assert order.due_at == DUE_AT
        assert request.status == ExtensionStatus.REJECTED.value
        assert isinstance(order._events[-1], ExtensionRejected)

    def test_resolving_twice_is_an_invalid_transition(self):
        order = _make_order()
        request = order.request_extension("waiting for parts")
        order.resolve_extension(request.id, approve=True, new_due_at=DUE_AT + timedelta(days=1))
        with pytest.raises(InvalidTransition) as exc:
            order.resolve_extension(request.id, approve=True, new_due_at=DUE_AT + timedelta(days=5))
        assert exc.value.entity == "extension_request"
        assert order.due_at == DUE_AT + timedelta(days=1)

    def test_unknown_request_is_rejected(self):
        order = _make_order()
        with pytest.raises(ValidationError):
            order.resolve_extension("missing", approve=False)
