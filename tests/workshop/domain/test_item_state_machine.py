"""Tests for OrderItem lifecycle — valid and invalid transitions."""

import pytest
from protean.exceptions import ValidationError

from workshop.errors import ConcurrentModification, InvalidTransition
from workshop.item.item import ItemStatus, OrderItem


def _make_item(**overrides):
    data = {
        "order_id": "ord-001",
        "item_code": "DH0001-1",
        "name": "Leather sofa clean",
        "unit_price": 500_000.0,
    }
    data.update(overrides)
    return OrderItem.create(**data)


def _assigned():
    item = _make_item()
    item.assign(technician_id="tech-1")
    return item


def _in_progress():
    item = _assigned()
    item.start()
    return item


def _terminal(kind):
    item = _in_progress()
    if kind == "completed":
        item.complete()
    elif kind == "failed":
        item.fail("customer cancelled")
    else:
        item.skip("not needed")
    return item


class TestCreation:
    def test_new_item_is_pending(self):
        item = _make_item()
        assert item.status == ItemStatus.PENDING.value
        assert item.revision == 0
        assert item.completed_at is None

    def test_total_price_is_quantity_times_unit_price(self):
        item = _make_item(quantity=3, unit_price=120_000.0)
        assert item.total_price == 360_000.0

    def test_product_items_cannot_carry_steps(self):
        with pytest.raises(ValidationError):
            _make_item(item_type="product", steps_data=[{"step_order": 1, "name": "Wash"}])


class TestAssign:
    def test_assign_from_pending(self):
        item = _make_item()
        item.assign(technician_id="tech-1")
        assert item.status == ItemStatus.ASSIGNED.value
        assert item.assigned_at is not None
        assert item.started_at is None

    def test_reassign_from_assigned(self):
        item = _assigned()
        item.assign(department_id="dept-paint")
        assert item.status == ItemStatus.ASSIGNED.value
        assert item.current_department_id == "dept-paint"

    def test_assign_requires_a_target(self):
        item = _make_item()
        with pytest.raises(ValidationError):
            item.assign()
        assert item.status == ItemStatus.PENDING.value

    def test_assign_in_progress_item_is_rejected(self):
        item = _in_progress()
        with pytest.raises(InvalidTransition) as exc:
            item.assign(technician_id="tech-2")
        assert exc.value.from_status == ItemStatus.IN_PROGRESS.value
        assert exc.value.attempted == "assign"


class TestStart:
    def test_start_from_assigned(self):
        item = _assigned()
        item.start()
        assert item.status == ItemStatus.IN_PROGRESS.value
        assert item.started_at is not None

    def test_start_twice_is_a_no_op(self):
        item = _in_progress()
        started_at = item.started_at
        revision = item.revision
        item.start()
        assert item.started_at == started_at
        assert item.revision == revision

    def test_start_from_pending_is_rejected(self):
        item = _make_item()
        with pytest.raises(InvalidTransition):
            item.start()


class TestComplete:
    def test_complete_from_in_progress(self):
        item = _in_progress()
        item.complete(note="done")
        assert item.status == ItemStatus.COMPLETED.value
        assert item.completed_at is not None
        assert item.note == "done"

    def test_complete_from_assigned(self):
        item = _assigned()
        item.complete()
        assert item.status == ItemStatus.COMPLETED.value

    def test_complete_from_pending_is_rejected(self):
        item = _make_item()
        with pytest.raises(InvalidTransition):
            item.complete()
        assert item.completed_at is None


class TestFailAndSkip:
    @pytest.mark.parametrize("reason", [None, "", "   "])
    def test_fail_requires_reason(self, reason):
        item = _in_progress()
        with pytest.raises(ValidationError):
            item.fail(reason)
        assert item.status == ItemStatus.IN_PROGRESS.value
        assert item.completed_at is None

    @pytest.mark.parametrize("reason", [None, "", "   "])
    def test_skip_requires_reason(self, reason):
        item = _assigned()
        with pytest.raises(ValidationError):
            item.skip(reason)
        assert item.status == ItemStatus.ASSIGNED.value

    def test_fail_stamps_completed_at_and_reason(self):
        item = _in_progress()
        item.fail("khách huỷ")
        assert item.status == ItemStatus.FAILED.value
        assert item.completed_at is not None
        assert item.status_reason == "khách huỷ"

    def test_skip_from_pending(self):
        item = _make_item()
        item.skip("customer brought their own part")
        assert item.status == ItemStatus.SKIPPED.value
        assert item.completed_at is not None


class TestTerminalStates:
    @pytest.mark.parametrize("kind", ["completed", "failed", "skipped"])
    @pytest.mark.parametrize(
        "operation",
        [
            lambda i: i.assign(technician_id="tech-9"),
            lambda i: i.start(),
            lambda i: i.complete(),
            lambda i: i.fail("again"),
            lambda i: i.skip("again"),
            lambda i: i.move_to_department("dept-x", "rework", 2),
        ],
    )
    def test_terminal_items_reject_every_transition(self, kind, operation):
        item = _terminal(kind)
        revision = item.revision
        with pytest.raises(InvalidTransition):
            operation(item)
        assert item.status == kind
        assert item.revision == revision


class TestRevision:
    def test_every_mutation_bumps_revision(self):
        item = _make_item()
        item.assign(technician_id="tech-1")
        assert item.revision == 1
        item.start()
        assert item.revision == 2
        item.complete()
        assert item.revision == 3

    def test_check_revision_accepts_current(self):
        item = _assigned()
        item.check_revision(item.revision)
        item.check_revision(None)

    def test_check_revision_rejects_stale(self):
        item = _assigned()
        with pytest.raises(ConcurrentModification) as exc:
            item.check_revision(0)
        assert exc.value.expected == 0
        assert exc.value.actual == 1
