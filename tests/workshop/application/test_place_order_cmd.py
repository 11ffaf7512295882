"""Application tests for order placement via domain.process()."""

import json

import pytest
from protean import current_domain
from protean.exceptions import ObjectNotFoundError, ValidationError

from workshop.item.item import ItemStatus
from workshop.order.creation import PlaceOrder
from workshop.order.order import Order
from workshop.workflow.definition import DefineWorkflow


def _define_workflow():
    steps = [
        {"step_order": 1, "department_id": "dept-qc", "name": "Inspect"},
        {"step_order": 2, "department_id": "dept-wash", "name": "Wash", "is_required": False},
    ]
    return current_domain.process(
        DefineWorkflow(name="Detail", steps=json.dumps(steps)),
        asynchronous=False,
    )


class TestPlaceOrder:
    def test_creates_order_and_pending_items(self, place_order):
        order_id, items = place_order(
            lines=[
                {"name": "Wash", "unit_price": 200_000, "quantity": 2},
                {"name": "Wax", "unit_price": 300_000, "item_type": "product"},
            ],
            discount=50_000,
        )
        order = current_domain.repository_for(Order).get(order_id)
        assert order.subtotal == 700_000
        assert order.total_amount == 650_000
        assert order.created_by == "staff-1"

        assert [i.item_code for i in items] == [f"{order.order_code}-1", f"{order.order_code}-2"]
        assert all(i.status == ItemStatus.PENDING.value for i in items)
        assert items[0].total_price == 400_000
        assert items[1].item_type == "product"

    def test_technician_split_is_carried_onto_the_item(self, place_order):
        _, items = place_order(
            lines=[
                {
                    "name": "Detail",
                    "unit_price": 1_000_000,
                    "technicians": [
                        {"technician_id": "t1", "commission_percent": 30},
                        {"technician_id": "t2", "commission_percent": 40},
                    ],
                }
            ]
        )
        assert items[0].technician_split() == [
            {"technician_id": "t1", "commission_percent": 30},
            {"technician_id": "t2", "commission_percent": 40},
        ]

    def test_service_lines_get_workflow_steps(self, place_order):
        workflow_id = _define_workflow()
        _, items = place_order(lines=[{"name": "Detail", "unit_price": 900_000, "workflow_id": workflow_id}])
        steps = items[0].ordered_steps()
        assert [s.name for s in steps] == ["Inspect", "Wash"]
        assert steps[1].is_required is False
        assert items[0].workflow_id == workflow_id

    def test_product_lines_ignore_workflows(self, place_order):
        workflow_id = _define_workflow()
        _, items = place_order(
            lines=[{"name": "Spray", "unit_price": 90_000, "item_type": "product", "workflow_id": workflow_id}]
        )
        assert len(items[0].steps) == 0

    def test_unknown_workflow_is_not_found(self, place_order):
        with pytest.raises(ObjectNotFoundError):
            place_order(lines=[{"name": "Detail", "unit_price": 900_000, "workflow_id": "missing"}])

    def test_order_without_lines_is_rejected(self):
        with pytest.raises(ValidationError):
            current_domain.process(
                PlaceOrder(customer_id="cust-1", items=json.dumps([])),
                asynchronous=False,
            )

    def test_line_without_price_is_rejected(self):
        with pytest.raises(ValidationError):
            current_domain.process(
                PlaceOrder(customer_id="cust-1", items=json.dumps([{"name": "Wash"}])),
                asynchronous=False,
            )

    def test_invalid_split_rejects_the_whole_order(self, place_order):
        with pytest.raises(ValidationError):
            place_order(
                lines=[
                    {
                        "name": "Detail",
                        "unit_price": 1_000_000,
                        "technicians": [
                            {"technician_id": "t1", "commission_percent": 70},
                            {"technician_id": "t2", "commission_percent": 40},
                        ],
                    }
                ]
            )
        assert current_domain.repository_for(Order)._dao.query.all().total == 0
