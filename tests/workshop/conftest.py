import json

import pytest
from protean import current_domain
from protean.integrations.pytest import DomainFixture


@pytest.fixture(scope="session")
def workshop_bed():
    from workshop.domain import workshop

    bed = DomainFixture(workshop)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(workshop_bed):
    with workshop_bed.domain_context():
        yield

        # Clear all databases and drain the event store after every test
        for _, provider in current_domain.providers.items():
            provider._data_reset()
        current_domain.event_store.store._data_reset()


@pytest.fixture()
def place_order():
    """Place an order through the domain and return ``(order_id, [items])`` in line order."""
    from workshop.order.creation import PlaceOrder
    from workshop.order.progress import items_for_order

    def _place(lines=None, sales_id="sales-1", **overrides):
        lines = lines or [
            {
                "name": "Deep clean",
                "unit_price": 1_000_000,
                "technicians": [{"technician_id": "tech-1", "commission_percent": 20}],
            }
        ]
        command = PlaceOrder(
            customer_id=overrides.pop("customer_id", "cust-1"),
            sales_id=sales_id,
            items=json.dumps(lines),
            created_by=overrides.pop("created_by", "staff-1"),
            **overrides,
        )
        order_id = current_domain.process(command, asynchronous=False)
        return order_id, items_for_order(order_id)

    return _place
