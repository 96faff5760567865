# app/repository.py
"""
Store queries for users, cars and bookings.

Services go through these functions instead of building queries inline, so
every read the booking engine relies on is in one place.
"""
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, List, Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session, joinedload

from app.models import User, Car, Booking, UserRole, CarStatus, BookingStatus


# ---------- Identity store ----------

def find_user_by_id(db: Session, user_id: int) -> Optional[User]:
    return db.query(User).filter(User.id == user_id).first()

def find_user_by_email(db: Session, email: str) -> Optional[User]:
    return db.query(User).filter(func.lower(User.email) == email.lower()).first()

def find_user_by_username(db: Session, username: str) -> Optional[User]:
    return db.query(User).filter(User.username == username).first()

def insert_user(db: Session, user: User) -> User:
    db.add(user)
    db.commit()
    db.refresh(user)
    return user

def count_users_by_role(db: Session) -> dict:
    rows = db.query(User.role, func.count(User.id)).group_by(User.role).all()
    counts = {role: 0 for role in UserRole}
    counts.update({role: count for role, count in rows})
    return counts


# ---------- Inventory store ----------

@dataclass
class CarFilter:
    status: Optional[CarStatus] = None
    search: Optional[str] = None
    min_price: Optional[Decimal] = None
    max_price: Optional[Decimal] = None


def find_car_by_id(db: Session, car_id: int, for_update: bool = False) -> Optional[Car]:
    query = db.query(Car).filter(Car.id == car_id)
    if for_update:
        # Row lock on backends that support it (SQLite ignores it); reload any
        # copy already in the session so the status is read under the lock
        query = query.with_for_update().populate_existing()
    return query.first()

def list_cars(db: Session, car_filter: CarFilter) -> List[Car]:
    query = db.query(Car)
    if car_filter.status is not None:
        query = query.filter(Car.status == car_filter.status)
    if car_filter.search and car_filter.search.strip():
        term = car_filter.search.strip().lower()
        # autoescape keeps '%' and '_' literal
        query = query.filter(or_(
            func.lower(Car.make).contains(term, autoescape=True),
            func.lower(Car.model).contains(term, autoescape=True),
        ))
    if car_filter.min_price is not None:
        query = query.filter(Car.price_per_day >= car_filter.min_price)
    if car_filter.max_price is not None:
        query = query.filter(Car.price_per_day <= car_filter.max_price)
    return query.order_by(Car.created_at.desc(), Car.id.desc()).all()

def count_cars_by_status(db: Session) -> dict:
    rows = db.query(Car.status, func.count(Car.id)).group_by(Car.status).all()
    counts = {car_status: 0 for car_status in CarStatus}
    counts.update({car_status: count for car_status, count in rows})
    return counts

def car_has_bookings(db: Session, car_id: int) -> bool:
    return db.query(Booking.id).filter(Booking.car_id == car_id).first() is not None


# ---------- Booking store ----------

@dataclass
class BookingFilter:
    status: Optional[BookingStatus] = None
    user_id: Optional[int] = None
    car_id: Optional[int] = None


SORTABLE_BOOKING_FIELDS = {
    "created_at": Booking.created_at,
    "start_date": Booking.start_date,
    "end_date": Booking.end_date,
    "total_price": Booking.total_price,
    "status": Booking.status,
}


def find_booking_by_id(db: Session, booking_id: int) -> Optional[Booking]:
    return db.query(Booking).filter(Booking.id == booking_id).first()

def find_overlapping(db: Session, car_id: int, start, end, statuses: Iterable[BookingStatus]) -> List[Booking]:
    """Bookings of `car_id` in `statuses` whose [start, end) intersects the given range."""
    return db.query(Booking).filter(
        Booking.car_id == car_id,
        Booking.status.in_(list(statuses)),
        Booking.start_date < end,
        Booking.end_date > start,
    ).all()

def find_bookings_by_user(db: Session, user_id: int) -> List[Booking]:
    return db.query(Booking).options(joinedload(Booking.car)).filter(
        Booking.user_id == user_id
    ).order_by(Booking.start_date.desc(), Booking.id.desc()).all()

def insert_booking(db: Session, booking: Booking) -> Booking:
    db.add(booking)
    db.commit()
    db.refresh(booking)
    return booking

def update_booking(db: Session, booking: Booking) -> Booking:
    db.commit()
    db.refresh(booking)
    return booking

def count_bookings_by_status(db: Session) -> dict:
    rows = db.query(Booking.status, func.count(Booking.id)).group_by(Booking.status).all()
    counts = {booking_status: 0 for booking_status in BookingStatus}
    counts.update({booking_status: count for booking_status, count in rows})
    return counts

def list_recent_bookings(db: Session, limit: int) -> List[Booking]:
    return db.query(Booking).options(
        joinedload(Booking.user), joinedload(Booking.car)
    ).order_by(Booking.created_at.desc(), Booking.id.desc()).limit(limit).all()

def sum_price_where(db: Session, booking_status: BookingStatus) -> Decimal:
    total = db.query(func.sum(Booking.total_price)).filter(Booking.status == booking_status).scalar()
    return Decimal(str(total)) if total is not None else Decimal("0")

def query_bookings(db: Session, booking_filter: BookingFilter, page: int, page_size: int,
                   sort_by: str, descending: bool):
    """Return (bookings on the requested page, total matching bookings)."""
    query = db.query(Booking)
    if booking_filter.status is not None:
        query = query.filter(Booking.status == booking_filter.status)
    if booking_filter.user_id is not None:
        query = query.filter(Booking.user_id == booking_filter.user_id)
    if booking_filter.car_id is not None:
        query = query.filter(Booking.car_id == booking_filter.car_id)

    total = query.count()

    column = SORTABLE_BOOKING_FIELDS[sort_by]
    order = [column.desc(), Booking.id.desc()] if descending else [column.asc(), Booking.id.asc()]
    bookings = query.options(joinedload(Booking.user), joinedload(Booking.car)) \
        .order_by(*order) \
        .offset((page - 1) * page_size) \
        .limit(page_size) \
        .all()
    return bookings, total
