# app/services/bookings.py
"""
Booking engine: creation with availability checks, status transitions and
booking listings.

Every operation takes the acting user explicitly and raises one of the
app.errors kinds when a request is refused.
"""
import math
from datetime import date
from decimal import Decimal
from typing import List, Optional

from loguru import logger
from sqlalchemy.orm import Session

from app import repository
from app.actors import Actor
from app.errors import (
    ValidationError, NotFoundError, ConflictError, StateError, AuthorizationError,
)
from app.models import Booking, BookingStatus, CarStatus, ACTIVE_BOOKING_STATUSES, UserRole, rental_days
from app.repository import BookingFilter, SORTABLE_BOOKING_FIELDS
from app.services import transitions
from app.services.locks import car_locks

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100


def quote_price(price_per_day, start_date: date, end_date: date) -> Decimal:
    """Total price for renting at `price_per_day` from start_date to end_date."""
    return Decimal(rental_days(start_date, end_date)) * Decimal(str(price_per_day))


def create_booking(db: Session, actor: Actor, car_id: int, start_date: date, end_date: date,
                   today: Optional[date] = None) -> Booking:
    if start_date is None or end_date is None:
        raise ValidationError("Start date and end date are required.")
    if end_date <= start_date:
        raise ValidationError("End date must be after start date.",
                              start_date=start_date, end_date=end_date)

    today = today or date.today()
    if start_date < today:
        raise ValidationError("Start date cannot be in the past.", start_date=start_date)

    # Unknown ids never get a lock entry
    if not repository.find_car_by_id(db, car_id):
        raise NotFoundError("Car", car_id)

    with car_locks.hold(car_id):
        car = repository.find_car_by_id(db, car_id, for_update=True)
        if not car:
            raise NotFoundError("Car", car_id)

        if car.status != CarStatus.AVAILABLE:
            logger.warning("Booking refused: car {} has status {}", car_id, car.status.value)
            raise StateError(
                "Car is not currently available for booking "
                "(might be under maintenance or generally unavailable).",
                car_id=car_id, car_status=car.status.value,
            )

        conflicts = repository.find_overlapping(db, car_id, start_date, end_date, ACTIVE_BOOKING_STATUSES)
        if conflicts:
            logger.warning("Booking refused: car {} already booked by booking {}", car_id, conflicts[0].id)
            raise ConflictError("Car is already booked for the selected dates.",
                                car_id=car_id, conflicting_booking_id=conflicts[0].id)

        duration = rental_days(start_date, end_date)
        if duration < 1:
            raise ValidationError("Booking duration must be at least 1 day.")

        booking = Booking(
            user_id=actor.id,
            car_id=car.id,
            start_date=start_date,
            end_date=end_date,
            total_price=quote_price(car.price_per_day, start_date, end_date),
            status=BookingStatus.PENDING,
        )
        booking = repository.insert_booking(db, booking)

    logger.info("Booking {} created for car {} by user {} ({} days, total {})",
                booking.id, car_id, actor.id, duration, booking.total_price)
    return booking


def _get_booking(db: Session, booking_id: int) -> Booking:
    booking = repository.find_booking_by_id(db, booking_id)
    if not booking:
        raise NotFoundError("Booking", booking_id)
    return booking


def _apply_transition(db: Session, booking: Booking, requested: BookingStatus, role: UserRole) -> Booking:
    current = booking.status
    if not transitions.can_transition(current, requested, role):
        logger.warning("Booking {}: refused {} -> {} for {}", booking.id, current.value, requested.value, role.value)
        raise StateError(transitions.refusal_reason(current, requested),
                         booking_id=booking.id, current_status=current.value,
                         requested_status=requested.value)
    booking.status = requested
    booking = repository.update_booking(db, booking)
    logger.info("Booking {}: {} -> {} by {}", booking.id, current.value, requested.value, role.value)
    return booking


def cancel_booking(db: Session, booking_id: int, actor: Actor) -> Booking:
    booking = _get_booking(db, booking_id)
    if booking.user_id != actor.id:
        raise AuthorizationError("You are not authorized to cancel this booking.",
                                 booking_id=booking_id, requester_id=actor.id)
    if booking.status not in ACTIVE_BOOKING_STATUSES:
        raise StateError(f"Booking cannot be cancelled as it is already {booking.status.value}.",
                         booking_id=booking_id, current_status=booking.status.value,
                         requested_status=BookingStatus.CANCELLED.value)
    return _apply_transition(db, booking, BookingStatus.CANCELLED, UserRole.USER)


def set_booking_status(db: Session, booking_id: int, new_status, actor: Actor) -> Booking:
    if not actor.is_admin:
        raise AuthorizationError("Only administrators can change a booking status.",
                                 booking_id=booking_id, requester_id=actor.id)

    try:
        requested = BookingStatus(new_status)
    except ValueError:
        raise ValidationError("Valid booking status is required.", requested_status=new_status)

    booking = _get_booking(db, booking_id)
    return _apply_transition(db, booking, requested, UserRole.ADMIN)


def get_booking(db: Session, booking_id: int, actor: Actor) -> Booking:
    booking = _get_booking(db, booking_id)
    if booking.user_id != actor.id and not actor.is_admin:
        raise AuthorizationError("You are not authorized to view this booking.",
                                 booking_id=booking_id, requester_id=actor.id)
    return booking


def list_user_bookings(db: Session, actor: Actor) -> List[Booking]:
    return repository.find_bookings_by_user(db, actor.id)


def list_all_bookings(db: Session, actor: Actor, booking_filter: Optional[BookingFilter] = None,
                      page: int = 1, page_size: int = DEFAULT_PAGE_SIZE,
                      sort_by: str = "created_at", sort_order: str = "desc") -> dict:
    if not actor.is_admin:
        raise AuthorizationError("Only administrators can list all bookings.", requester_id=actor.id)
    if page < 1:
        raise ValidationError("Page must be 1 or greater.", page=page)
    if page_size < 1 or page_size > MAX_PAGE_SIZE:
        raise ValidationError(f"Page size must be between 1 and {MAX_PAGE_SIZE}.", page_size=page_size)
    if sort_by not in SORTABLE_BOOKING_FIELDS:
        raise ValidationError(f"Cannot sort bookings by '{sort_by}'.", sort_by=sort_by)
    if sort_order not in ("asc", "desc"):
        raise ValidationError("Sort order must be 'asc' or 'desc'.", sort_order=sort_order)

    bookings, total = repository.query_bookings(
        db, booking_filter or BookingFilter(), page, page_size, sort_by, sort_order == "desc"
    )
    return {
        "bookings": bookings,
        "pagination": {
            "current_page": page,
            "total_pages": math.ceil(total / page_size),
            "total_bookings": total,
            "limit": page_size,
        },
    }
