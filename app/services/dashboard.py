# app/services/dashboard.py
from sqlalchemy.orm import Session

from app import repository
from app.models import UserRole, CarStatus, BookingStatus

RECENT_BOOKINGS_LIMIT = 5


def compute_dashboard_stats(db: Session) -> dict:
    """
    Point-in-time counts, revenue and recent bookings for the admin dashboard.

    Nothing is cached; every call reads the current store. Revenue only counts
    completed bookings.
    """
    users = repository.count_users_by_role(db)
    cars = repository.count_cars_by_status(db)
    bookings = repository.count_bookings_by_status(db)

    return {
        "users": {
            "total": sum(users.values()),
            "users": users[UserRole.USER],
            "admins": users[UserRole.ADMIN],
        },
        "cars": {
            "total": sum(cars.values()),
            "available": cars[CarStatus.AVAILABLE],
            "booked": cars[CarStatus.BOOKED],
            "maintenance": cars[CarStatus.MAINTENANCE],
        },
        "bookings": {
            "total": sum(bookings.values()),
            **{booking_status.value: bookings[booking_status] for booking_status in BookingStatus},
        },
        "revenue": {
            "total_completed_revenue": repository.sum_price_where(db, BookingStatus.COMPLETED),
        },
        "recent_bookings": repository.list_recent_bookings(db, RECENT_BOOKINGS_LIMIT),
    }
