"""Booking state machine."""

from enum import Enum

from growshare.core.exceptions import InvalidBookingStatus, ValidationError


class BookingStatus(str, Enum):
    """Booking lifecycle states."""

    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    CANCELLED = "CANCELLED"
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"


# ACTIVE and COMPLETED are entered outside the status-update endpoint;
# they are listed here so cancellation eligibility is checked against them.
BOOKING_TRANSITIONS: dict[BookingStatus, set[BookingStatus]] = {
    BookingStatus.PENDING: {BookingStatus.APPROVED, BookingStatus.REJECTED, BookingStatus.CANCELLED},
    BookingStatus.APPROVED: {BookingStatus.CANCELLED, BookingStatus.ACTIVE},
    BookingStatus.ACTIVE: {BookingStatus.COMPLETED},
    BookingStatus.REJECTED: set(),
    BookingStatus.CANCELLED: set(),
    BookingStatus.COMPLETED: set(),
}

# Targets a caller may request explicitly.
REQUESTABLE_TARGETS = (BookingStatus.APPROVED, BookingStatus.REJECTED, BookingStatus.CANCELLED)

# Statuses that hold a plot's dates.
BLOCKING_STATUSES = (BookingStatus.PENDING, BookingStatus.APPROVED, BookingStatus.ACTIVE)

_VERBS = {
    BookingStatus.APPROVED: "approve",
    BookingStatus.REJECTED: "reject",
    BookingStatus.CANCELLED: "cancel",
    BookingStatus.ACTIVE: "activate",
    BookingStatus.COMPLETED: "complete",
}


def parse_requested_status(value: object) -> BookingStatus:
    """Turn the raw ``status`` field of an update request into a target status."""
    if isinstance(value, str):
        for target in REQUESTABLE_TARGETS:
            if value == target.value:
                return target
    raise ValidationError("Invalid status. Must be APPROVED, REJECTED, or CANCELLED")


def _with_article(word: str) -> str:
    return f"an {word}" if word[0] in "aeiou" else f"a {word}"


def assert_booking_transition(current: str | BookingStatus, target: BookingStatus) -> None:
    """Raise InvalidBookingStatus unless ``current`` may move to ``target``."""
    current = BookingStatus(current)
    if target not in BOOKING_TRANSITIONS.get(current, set()):
        raise InvalidBookingStatus(
            f"Cannot {_VERBS[target]} {_with_article(current.value.lower())} booking"
        )
