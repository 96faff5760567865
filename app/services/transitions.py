# app/services/transitions.py
"""
Booking status transition policy.

The policy is a table of allowed (current, requested, role) triples. Anything
not in the table is refused. Terminal statuses have no rows at all, so a
booking that is declined, cancelled or completed never changes again, not even
to its own status.
"""
from app.models import BookingStatus, UserRole

TERMINAL_STATUSES = frozenset({
    BookingStatus.DECLINED,
    BookingStatus.CANCELLED,
    BookingStatus.COMPLETED,
})

# Owners may only withdraw a booking that still holds the car
_OWNER_TRANSITIONS = {
    (BookingStatus.PENDING, BookingStatus.CANCELLED),
    (BookingStatus.CONFIRMED, BookingStatus.CANCELLED),
}

# Admins may set any status on a live booking, but a confirmed booking never goes back to pending
_ADMIN_TRANSITIONS = {
    (current, requested)
    for current in BookingStatus
    if current not in TERMINAL_STATUSES
    for requested in BookingStatus
    if not (current == BookingStatus.CONFIRMED and requested == BookingStatus.PENDING)
}

ALLOWED_TRANSITIONS = frozenset(
    {(current, requested, UserRole.USER) for current, requested in _OWNER_TRANSITIONS}
    | {(current, requested, UserRole.ADMIN) for current, requested in _ADMIN_TRANSITIONS}
)


def is_terminal(status: BookingStatus) -> bool:
    return status in TERMINAL_STATUSES


def can_transition(current: BookingStatus, requested: BookingStatus, role: UserRole) -> bool:
    return (current, requested, role) in ALLOWED_TRANSITIONS


def refusal_reason(current: BookingStatus, requested: BookingStatus) -> str:
    if is_terminal(current):
        return f"Cannot change status of a booking that is already '{current.value}'."
    if current == BookingStatus.CONFIRMED and requested == BookingStatus.PENDING:
        return ("Cannot change status from 'confirmed' back to 'pending'. "
                "Consider 'declined' or 'cancelled'.")
    return f"Booking cannot move from '{current.value}' to '{requested.value}'."
