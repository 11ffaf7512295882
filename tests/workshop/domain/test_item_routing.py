"""Tests for department routing on OrderItem."""

from datetime import UTC, datetime, timedelta

import pytest
from protean.exceptions import ValidationError

from workshop.item.events import ItemRouted
from workshop.item.item import ItemStatus, OrderItem, RoutingStatus


def _make_item():
    return OrderItem.create(
        order_id="ord-001",
        item_code="DH0001-1",
        name="Repaint door",
        unit_price=800_000.0,
    )


def _open_routes(item):
    return [r for r in item.routing_events if r.status == RoutingStatus.OPEN.value]


class TestMoveToDepartment:
    def test_first_move_opens_a_route_and_assigns_pending_item(self):
        item = _make_item()
        route = item.move_to_department("dept-paint", "needs primer", 3, created_by="staff-1")

        assert item.status == ItemStatus.ASSIGNED.value
        assert item.current_department_id == "dept-paint"
        assert route.status == RoutingStatus.OPEN.value
        assert route.from_department_id is None
        assert route.created_by == "staff-1"

    def test_deadline_is_today_plus_days(self):
        item = _make_item()
        route = item.move_to_department("dept-paint", "needs primer", 3)
        assert route.deadline == datetime.now(UTC).date() + timedelta(days=3)

    def test_second_move_closes_previous_route(self):
        item = _make_item()
        first = item.move_to_department("dept-paint", "needs primer", 3)
        second = item.move_to_department("dept-polish", "ready for polish", 1)

        assert first.status == RoutingStatus.CLOSED.value
        assert first.closed_at is not None
        assert second.from_department_id == "dept-paint"
        assert _open_routes(item) == [second]

    def test_in_progress_item_keeps_its_status(self):
        item = _make_item()
        item.assign(technician_id="tech-1")
        item.start()
        item.move_to_department("dept-qc", "quality check", 1)
        assert item.status == ItemStatus.IN_PROGRESS.value

    def test_routed_event_describes_the_hand_off(self):
        item = _make_item()
        item.move_to_department("dept-paint", "needs primer", 2)
        item._events.clear()
        item.move_to_department("dept-polish", "ready", 1)

        event = item._events[-1]
        assert isinstance(event, ItemRouted)
        assert event.from_department_id == "dept-paint"
        assert event.to_department_id == "dept-polish"
        assert event.closed_routing_event_id is not None
        assert event.from_status == event.to_status == ItemStatus.ASSIGNED.value

    @pytest.mark.parametrize("reason", [None, "", "  "])
    def test_reason_is_required(self, reason):
        item = _make_item()
        with pytest.raises(ValidationError):
            item.move_to_department("dept-paint", reason, 2)
        assert len(item.routing_events) == 0

    @pytest.mark.parametrize("days", [0, -1, None])
    def test_deadline_must_be_in_the_future(self, days):
        item = _make_item()
        with pytest.raises(ValidationError):
            item.move_to_department("dept-paint", "needs primer", days)

    def test_target_department_is_required(self):
        item = _make_item()
        with pytest.raises(ValidationError):
            item.move_to_department(None, "needs primer", 2)


class TestRoutesCloseWithTheItem:
    @pytest.mark.parametrize("finish", ["complete", "fail", "skip"])
    def test_finishing_an_item_closes_its_open_route(self, finish):
        item = _make_item()
        item.move_to_department("dept-paint", "needs primer", 2)
        if finish == "complete":
            item.complete()
        else:
            getattr(item, finish)("stopped")

        assert _open_routes(item) == []
        assert item.routing_events[0].closed_at is not None

    def test_many_moves_leave_exactly_one_open_route(self):
        item = _make_item()
        for department in ("dept-a", "dept-b", "dept-c", "dept-d"):
            item.move_to_department(department, f"to {department}", 1)
        assert len(item.routing_events) == 4
        assert len(_open_routes(item)) == 1
        assert _open_routes(item)[0].to_department_id == "dept-d"


class TestAssignDepartment:
    def test_assign_with_department_opens_a_route(self):
        item = _make_item()
        item.assign(department_id="dept-wash")

        route = item.open_routing_event()
        assert route.to_department_id == item.current_department_id == "dept-wash"
        assert route.reason == "Assigned to department dept-wash"
        assert route.deadline == datetime.now(UTC).date() + timedelta(days=1)

    def test_assign_to_another_department_closes_the_previous_route(self):
        item = _make_item()
        item.move_to_department("dept-wash", "pre-wash", 2)
        item.assign(department_id="dept-paint", reason="paint booth free", deadline_days=3)

        assert len(item.routing_events) == 2
        assert item.routing_events[0].status == RoutingStatus.CLOSED.value
        assert _open_routes(item)[0].to_department_id == item.current_department_id == "dept-paint"
        assert _open_routes(item)[0].reason == "paint booth free"

    def test_technician_only_assignment_leaves_routing_alone(self):
        item = _make_item()
        item.move_to_department("dept-wash", "pre-wash", 2)
        item.assign(technician_id="tech-1")
        assert len(item.routing_events) == 1
        assert item.current_department_id == "dept-wash"
