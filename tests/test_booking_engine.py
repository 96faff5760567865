from contextlib import contextmanager
from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import text

from app import repository
from app.errors import (
    AuthorizationError, ConflictError, NotFoundError, StateError, ValidationError,
)
from app.models import BookingStatus, CarStatus
from app.services import bookings as engine
from app.services.locks import car_locks

TODAY = date(2024, 5, 1)


def book(db, actor, car, start, end):
    return engine.create_booking(db, actor, car.id, start, end, today=TODAY)


def test_create_booking_is_pending_with_frozen_price(db, user_actor, car):
    booking = book(db, user_actor, car, date(2024, 5, 10), date(2024, 5, 12))

    assert booking.status == BookingStatus.PENDING
    assert booking.total_price == Decimal("120")
    assert booking.duration_days == 2
    assert booking.user_id == user_actor.id

    # Later price changes do not touch an existing booking
    car.price_per_day = Decimal("999")
    db.commit()
    db.refresh(booking)
    assert booking.total_price == Decimal("120")


def test_create_booking_leaves_car_status_alone(db, user_actor, car):
    book(db, user_actor, car, date(2024, 5, 10), date(2024, 5, 12))
    db.refresh(car)
    assert car.status == CarStatus.AVAILABLE


def test_overlap_with_confirmed_booking_conflicts(db, user_actor, other_actor, admin_actor, car):
    first = book(db, user_actor, car, date(2024, 5, 10), date(2024, 5, 12))
    engine.set_booking_status(db, first.id, "confirmed", admin_actor)

    with pytest.raises(ConflictError) as exc:
        book(db, other_actor, car, date(2024, 5, 11), date(2024, 5, 13))
    assert exc.value.context["conflicting_booking_id"] == first.id


def test_pending_booking_also_blocks_the_dates(db, user_actor, other_actor, car):
    book(db, user_actor, car, date(2024, 5, 10), date(2024, 5, 15))
    with pytest.raises(ConflictError):
        book(db, other_actor, car, date(2024, 5, 5), date(2024, 5, 20))


def test_back_to_back_bookings_do_not_conflict(db, user_actor, other_actor, car):
    book(db, user_actor, car, date(2024, 5, 10), date(2024, 5, 12))
    follow_up = book(db, other_actor, car, date(2024, 5, 12), date(2024, 5, 14))
    earlier = book(db, other_actor, car, date(2024, 5, 8), date(2024, 5, 10))
    assert follow_up.status == BookingStatus.PENDING
    assert earlier.status == BookingStatus.PENDING


@pytest.mark.parametrize("released", ["cancelled", "declined"])
def test_released_bookings_free_the_dates(db, user_actor, other_actor, admin_actor, car, released):
    first = book(db, user_actor, car, date(2024, 5, 10), date(2024, 5, 12))
    engine.set_booking_status(db, first.id, released, admin_actor)

    second = book(db, other_actor, car, date(2024, 5, 10), date(2024, 5, 12))
    assert second.id != first.id


def test_other_cars_are_independent(db, user_actor, other_actor, car, make_car):
    other_car = make_car(make="Toyota", model="Corolla")
    book(db, user_actor, car, date(2024, 5, 10), date(2024, 5, 12))
    assert book(db, other_actor, other_car, date(2024, 5, 10), date(2024, 5, 12)).car_id == other_car.id


@pytest.mark.parametrize("car_status", [CarStatus.MAINTENANCE, CarStatus.BOOKED])
def test_unavailable_car_is_refused_before_date_checks(db, user_actor, make_car, car_status):
    car = make_car(status=car_status)
    with pytest.raises(StateError, match="not currently available"):
        book(db, user_actor, car, date(2024, 5, 10), date(2024, 5, 12))


def test_start_in_the_past_is_refused(db, user_actor, car):
    with pytest.raises(ValidationError, match="past"):
        book(db, user_actor, car, date(2024, 4, 30), date(2024, 5, 2))


def test_start_today_is_allowed(db, user_actor, car):
    booking = book(db, user_actor, car, TODAY, date(2024, 5, 2))
    assert booking.total_price == Decimal("60")


@pytest.mark.parametrize("start,end", [
    (date(2024, 5, 12), date(2024, 5, 10)),
    (date(2024, 5, 10), date(2024, 5, 10)),
])
def test_end_must_follow_start(db, user_actor, car, start, end):
    with pytest.raises(ValidationError, match="End date must be after start date"):
        book(db, user_actor, car, start, end)


def test_missing_car(db, user_actor):
    with pytest.raises(NotFoundError) as exc:
        engine.create_booking(db, user_actor, 404, date(2024, 5, 10), date(2024, 5, 12), today=TODAY)
    assert exc.value.message == "Car not found."


def test_create_holds_the_car_lock_during_the_overlap_check(db, user_actor, car, monkeypatch):
    seen = []
    original = repository.find_overlapping

    def spy(*args, **kwargs):
        seen.append(car_locks.is_locked(car.id))
        return original(*args, **kwargs)

    monkeypatch.setattr(repository, "find_overlapping", spy)
    book(db, user_actor, car, date(2024, 5, 10), date(2024, 5, 12))

    assert seen == [True]
    assert not car_locks.is_locked(car.id)


def test_lock_is_released_when_the_request_is_refused(db, user_actor, make_car):
    car = make_car(status=CarStatus.MAINTENANCE)
    with pytest.raises(StateError):
        book(db, user_actor, car, date(2024, 5, 10), date(2024, 5, 12))
    assert not car_locks.is_locked(car.id)


# ---------- cancellation ----------

def test_owner_cancels_pending_booking(db, user_actor, car):
    booking = book(db, user_actor, car, date(2024, 5, 10), date(2024, 5, 12))
    cancelled = engine.cancel_booking(db, booking.id, user_actor)
    assert cancelled.status == BookingStatus.CANCELLED


def test_owner_cancels_confirmed_booking(db, user_actor, admin_actor, car):
    booking = book(db, user_actor, car, date(2024, 5, 10), date(2024, 5, 12))
    engine.set_booking_status(db, booking.id, BookingStatus.CONFIRMED, admin_actor)
    assert engine.cancel_booking(db, booking.id, user_actor).status == BookingStatus.CANCELLED


def test_non_owner_cannot_cancel(db, user_actor, other_actor, car):
    booking = book(db, user_actor, car, date(2024, 5, 10), date(2024, 5, 12))
    with pytest.raises(AuthorizationError):
        engine.cancel_booking(db, booking.id, other_actor)
    db.refresh(booking)
    assert booking.status == BookingStatus.PENDING


def test_cancel_twice_is_a_state_error(db, user_actor, car):
    booking = book(db, user_actor, car, date(2024, 5, 10), date(2024, 5, 12))
    engine.cancel_booking(db, booking.id, user_actor)
    with pytest.raises(StateError, match="already cancelled"):
        engine.cancel_booking(db, booking.id, user_actor)


def test_cancel_missing_booking(db, user_actor):
    with pytest.raises(NotFoundError):
        engine.cancel_booking(db, 12345, user_actor)


# ---------- admin status changes ----------

def test_completed_booking_cannot_go_back(db, user_actor, admin_actor, car):
    booking = book(db, user_actor, car, date(2024, 5, 10), date(2024, 5, 12))
    engine.set_booking_status(db, booking.id, "confirmed", admin_actor)
    engine.set_booking_status(db, booking.id, "completed", admin_actor)

    for _ in range(3):
        with pytest.raises(StateError) as exc:
            engine.set_booking_status(db, booking.id, "pending", admin_actor)
        assert exc.value.context["current_status"] == "completed"
        assert exc.value.context["requested_status"] == "pending"


def test_terminal_booking_refuses_its_own_status(db, user_actor, admin_actor, car):
    booking = book(db, user_actor, car, date(2024, 5, 10), date(2024, 5, 12))
    engine.set_booking_status(db, booking.id, "declined", admin_actor)
    with pytest.raises(StateError):
        engine.set_booking_status(db, booking.id, "declined", admin_actor)


def test_confirmed_cannot_return_to_pending(db, user_actor, admin_actor, car):
    booking = book(db, user_actor, car, date(2024, 5, 10), date(2024, 5, 12))
    engine.set_booking_status(db, booking.id, "confirmed", admin_actor)
    with pytest.raises(StateError, match="back to 'pending'"):
        engine.set_booking_status(db, booking.id, "pending", admin_actor)


def test_non_admin_cannot_set_status(db, user_actor, car):
    booking = book(db, user_actor, car, date(2024, 5, 10), date(2024, 5, 12))
    with pytest.raises(AuthorizationError):
        engine.set_booking_status(db, booking.id, "confirmed", user_actor)


def test_unknown_status_is_a_validation_error(db, admin_actor):
    with pytest.raises(ValidationError):
        engine.set_booking_status(db, 1, "archived", admin_actor)


def test_status_changes_keep_dates_and_price(db, user_actor, admin_actor, car):
    booking = book(db, user_actor, car, date(2024, 5, 10), date(2024, 5, 13))
    updated = engine.set_booking_status(db, booking.id, "confirmed", admin_actor)
    assert (updated.start_date, updated.end_date) == (date(2024, 5, 10), date(2024, 5, 13))
    assert updated.total_price == Decimal("180")


# ---------- listings ----------

def test_get_booking_owner_or_admin_only(db, user_actor, other_actor, admin_actor, car):
    booking = book(db, user_actor, car, date(2024, 5, 10), date(2024, 5, 12))
    assert engine.get_booking(db, booking.id, user_actor).id == booking.id
    assert engine.get_booking(db, booking.id, admin_actor).id == booking.id
    with pytest.raises(AuthorizationError):
        engine.get_booking(db, booking.id, other_actor)


def test_list_user_bookings_newest_start_first(db, user_actor, other_actor, car):
    early = book(db, user_actor, car, date(2024, 5, 2), date(2024, 5, 4))
    late = book(db, user_actor, car, date(2024, 6, 1), date(2024, 6, 3))
    book(db, other_actor, car, date(2024, 7, 1), date(2024, 7, 3))

    listed = engine.list_user_bookings(db, user_actor)
    assert [b.id for b in listed] == [late.id, early.id]


def test_list_all_bookings_paginates_and_filters(db, user_actor, other_actor, admin_actor, car):
    created = [
        book(db, user_actor, car, date(2024, 5, day), date(2024, 5, day + 1))
        for day in range(2, 9)
    ]
    engine.set_booking_status(db, created[0].id, "confirmed", admin_actor)

    page = engine.list_all_bookings(db, admin_actor, page=2, page_size=3,
                                    sort_by="start_date", sort_order="asc")
    assert [b.id for b in page["bookings"]] == [b.id for b in created[3:6]]
    assert page["pagination"] == {
        "current_page": 2, "total_pages": 3, "total_bookings": 7, "limit": 3,
    }

    confirmed = engine.list_all_bookings(
        db, admin_actor, repository.BookingFilter(status=BookingStatus.CONFIRMED)
    )
    assert [b.id for b in confirmed["bookings"]] == [created[0].id]


def test_list_all_bookings_requires_admin(db, user_actor):
    with pytest.raises(AuthorizationError):
        engine.list_all_bookings(db, user_actor)


@pytest.mark.parametrize("kwargs", [
    {"page": 0},
    {"page_size": 0},
    {"page_size": 101},
    {"sort_by": "password"},
    {"sort_order": "sideways"},
])
def test_list_all_bookings_rejects_bad_paging(db, admin_actor, kwargs):
    with pytest.raises(ValidationError):
        engine.list_all_bookings(db, admin_actor, **kwargs)


def test_quote_price_rounds_partial_days_up():
    from datetime import datetime
    assert engine.quote_price(Decimal("50"), date(2024, 5, 1), date(2024, 5, 4)) == Decimal("150")
    assert engine.quote_price(
        Decimal("50"), datetime(2024, 5, 1, 10), datetime(2024, 5, 2, 11)
    ) == Decimal("100")


def test_unknown_cars_leave_no_lock_behind(db, user_actor):
    before = len(car_locks)
    for car_id in range(100000, 100200):
        with pytest.raises(NotFoundError):
            engine.create_booking(db, user_actor, car_id, date(2024, 5, 10), date(2024, 5, 12), today=TODAY)
    assert len(car_locks) == before


def test_lock_registry_is_empty_after_bookings(db, user_actor, other_actor, car):
    book(db, user_actor, car, date(2024, 5, 10), date(2024, 5, 12))
    with pytest.raises(ConflictError):
        book(db, other_actor, car, date(2024, 5, 11), date(2024, 5, 13))
    assert len(car_locks) == 0


def test_non_admin_with_unknown_status_is_refused_as_unauthorized(db, user_actor):
    with pytest.raises(AuthorizationError):
        engine.set_booking_status(db, 1, "archived", user_actor)


def test_status_is_reread_under_the_lock(db, user_actor, car, monkeypatch):
    real_hold = car_locks.hold

    @contextmanager
    def hold_after_status_change(car_id):
        # The car goes to the shop between the first lookup and taking the lock
        db.execute(text("UPDATE cars SET status = 'MAINTENANCE' WHERE id = :id"), {"id": car_id})
        with real_hold(car_id):
            yield

    monkeypatch.setattr(car_locks, "hold", hold_after_status_change)
    with pytest.raises(StateError):
        book(db, user_actor, car, date(2024, 5, 10), date(2024, 5, 12))
