"""Typed errors raised by the workshop domain.

Each error extends the matching Protean exception, so callers that only know
Protean (``register_exception_handlers``, generic handlers) still classify it
correctly, and carries a machine-readable ``code`` plus the structured context
an API response needs to render a corrective message.

    ValidationError (protean)
    └── InvalidCommissionConfiguration
    InvalidStateError (protean)
    ├── InvalidTransition
    ├── ConcurrentModification
    └── PartialBatchRejected
    InvalidOperationError (protean)
    └── Conflict
"""

from protean.exceptions import InvalidOperationError, InvalidStateError, ValidationError


class InvalidTransition(InvalidStateError):
    """A state machine rejected the attempted operation."""

    code = "invalid_transition"

    def __init__(self, entity_id, from_status: str, attempted: str, entity: str = "order_item"):
        self.entity = entity
        self.entity_id = str(entity_id)
        self.from_status = from_status
        self.attempted = attempted
        super().__init__({"status": [f"Cannot {attempted} {entity} {self.entity_id} in {from_status} state"]})

    def context(self) -> dict:
        return {
            "entity": self.entity,
            "entity_id": self.entity_id,
            "from_status": self.from_status,
            "attempted": self.attempted,
        }


class ConcurrentModification(InvalidStateError):
    """Another writer changed (or is changing) the same item."""

    code = "concurrent_modification"

    def __init__(self, entity_id, expected=None, actual=None):
        self.entity_id = str(entity_id)
        self.expected = expected
        self.actual = actual
        if expected is None:
            message = f"Item {self.entity_id} is being modified by another request"
        else:
            message = f"Item {self.entity_id} is at revision {actual}, expected {expected}"
        super().__init__({"revision": [message]})

    def context(self) -> dict:
        return {"entity_id": self.entity_id, "expected": self.expected, "actual": self.actual}


class PartialBatchRejected(InvalidStateError):
    """A batch operation found members that are not eligible; nothing was applied."""

    code = "partial_batch_rejected"

    def __init__(self, attempted: str, rejections: list[dict]):
        self.attempted = attempted
        self.rejections = rejections
        super().__init__(
            {
                "items": [
                    f"Cannot {attempted} item {r['item_id']} in {r['status']} state" for r in rejections
                ]
            }
        )

    def context(self) -> dict:
        return {"attempted": self.attempted, "rejections": self.rejections}


class Conflict(InvalidOperationError):
    """A uniqueness rule would be violated (e.g. a second pending extension request)."""

    code = "conflict"

    def __init__(self, entity_id, reason: str):
        self.entity_id = str(entity_id)
        self.reason = reason
        super().__init__({"conflict": [reason]})

    def context(self) -> dict:
        return {"entity_id": self.entity_id, "reason": self.reason}


class InvalidCommissionConfiguration(ValidationError):
    """A service line carries commission percentages that cannot be paid out."""

    code = "invalid_commission_configuration"

    def __init__(self, item_id, percentages: list[float]):
        self.item_id = str(item_id)
        self.percentages = percentages
        super().__init__(
            {
                "commission_percent": [
                    f"Item {self.item_id} has commission percentages {percentages} "
                    "(each must be within 0-100 and the total must not exceed 100)"
                ]
            }
        )

    def context(self) -> dict:
        return {"item_id": self.item_id, "percentages": self.percentages}
