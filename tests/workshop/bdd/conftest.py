"""Shared BDD fixtures and step definitions for the workshop domain."""

import pytest
from protean.exceptions import ValidationError
from pytest_bdd import given, parsers, then

from workshop.errors import InvalidTransition
from workshop.item.events import ItemAssigned, ItemCompleted, ItemFailed, ItemRouted, ItemSkipped, ItemStarted
from workshop.item.item import OrderItem

# Map event name strings to classes for dynamic lookup
_EVENT_CLASSES = {
    "ItemAssigned": ItemAssigned,
    "ItemStarted": ItemStarted,
    "ItemCompleted": ItemCompleted,
    "ItemFailed": ItemFailed,
    "ItemSkipped": ItemSkipped,
    "ItemRouted": ItemRouted,
}


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------
@pytest.fixture()
def error():
    """Container for captured domain errors."""
    return {"exc": None}


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(parsers.cfparse('a pending item "{name}" priced {price:d}'), target_fixture="item")
def pending_item(name, price):
    item = OrderItem.create(order_id="ord-001", item_code="DH0001-1", name=name, unit_price=float(price))
    item._events.clear()
    return item


@given(parsers.cfparse('the item is assigned to "{technician_id}"'))
def item_is_assigned(item, technician_id):
    item.assign(technician_id=technician_id)
    item._events.clear()


@given("the item is in progress")
def item_in_progress(item):
    item.start()
    item._events.clear()


# ---------------------------------------------------------------------------
# Then steps (shared)
# ---------------------------------------------------------------------------
@then(parsers.cfparse('the item status is "{status}"'))
def item_status_is(item, status):
    assert item.status == status


@then("the action fails with a validation error")
def action_fails_with_validation_error(error):
    assert error["exc"] is not None, "Expected a validation error but none was raised"
    assert isinstance(error["exc"], ValidationError)


@then("the action is rejected as an invalid transition")
def action_rejected_as_invalid_transition(error):
    assert error["exc"] is not None, "Expected an invalid transition but none was raised"
    assert isinstance(error["exc"], InvalidTransition)


@then(parsers.cfparse("an {event_type} event is raised"))
def generic_event_raised(item, event_type):
    event_cls = _EVENT_CLASSES[event_type]
    assert any(
        isinstance(e, event_cls) for e in item._events
    ), f"No {event_type} event found. Events: {[type(e).__name__ for e in item._events]}"


@then("no event is raised")
def no_event_raised(item):
    assert len(item._events) == 0
