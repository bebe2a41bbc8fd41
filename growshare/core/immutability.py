"""Insert-only enforcement for history records using SQLAlchemy events."""

import logging
from datetime import UTC, datetime

from sqlalchemy import event

from growshare.core.exceptions import ValidationError

logger = logging.getLogger(__name__)


class ImmutabilityViolationError(ValidationError):
    """Raised when attempting to modify an insert-only record."""

    def __init__(self, model_name: str, operation: str, record_id: str):
        self.model_name = model_name
        self.operation = operation
        self.record_id = record_id
        super().__init__(
            f"Immutability violation: Cannot {operation} {model_name} record {record_id}. "
            "History records are immutable after creation."
        )


def _log_immutability_violation(model_name: str, operation: str, record_id: str) -> None:
    logger.error(
        f"IMMUTABILITY_VIOLATION: Attempted to {operation} {model_name} "
        f"record_id={record_id} at {datetime.now(UTC).isoformat()}"
    )


def _prevent_update(mapper, connection, target):
    name = type(target).__name__
    _log_immutability_violation(name, "UPDATE", str(target.id))
    raise ImmutabilityViolationError(name, "UPDATE", str(target.id))


def _prevent_delete(mapper, connection, target):
    name = type(target).__name__
    _log_immutability_violation(name, "DELETE", str(target.id))
    raise ImmutabilityViolationError(name, "DELETE", str(target.id))


def register_immutability_enforcement() -> None:
    """Register listeners that block UPDATE and DELETE of activity records.

    Safe to call more than once.
    """
    from growshare.models.activity import UserActivity

    if not event.contains(UserActivity, "before_update", _prevent_update):
        event.listen(UserActivity, "before_update", _prevent_update)
    if not event.contains(UserActivity, "before_delete", _prevent_delete):
        event.listen(UserActivity, "before_delete", _prevent_delete)

    logger.debug("Immutability enforcement registered for activity records")
