"""Who may move a booking to which status."""

from enum import Enum
from uuid import UUID

from growshare.core.exceptions import AuthorizationError, ValidationError
from growshare.domain.booking_state import BookingStatus


class BookingParty(str, Enum):
    """The caller's relationship to a booking."""

    OWNER = "owner"
    RENTER = "renter"


def resolve_party(user_id: UUID, owner_id: UUID, renter_id: UUID) -> BookingParty | None:
    """Return the caller's party on the booking, or None for outsiders."""
    if user_id == owner_id:
        return BookingParty.OWNER
    if user_id == renter_id:
        return BookingParty.RENTER
    return None


def authorize_status_change(
    user_id: UUID,
    owner_id: UUID,
    renter_id: UUID,
    target: BookingStatus,
) -> BookingParty:
    """Check that ``user_id`` may request ``target`` and return their party.

    Owners approve and reject; either party may cancel.
    """
    party = resolve_party(user_id, owner_id, renter_id)

    if target in (BookingStatus.APPROVED, BookingStatus.REJECTED):
        if party is not BookingParty.OWNER:
            raise AuthorizationError("Only the plot owner can approve or reject bookings")
        return party

    if target is BookingStatus.CANCELLED:
        if party is None:
            raise AuthorizationError("You do not have permission to cancel this booking")
        return party

    raise ValidationError("Invalid status. Must be APPROVED, REJECTED, or CANCELLED")


def authorize_view(user_id: UUID, owner_id: UUID, renter_id: UUID) -> BookingParty:
    """Only the two parties of a booking may read it."""
    party = resolve_party(user_id, owner_id, renter_id)
    if party is None:
        raise AuthorizationError("You do not have permission to view this booking")
    return party
