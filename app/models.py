# app/models.py
import datetime
import enum
import math

from sqlalchemy import (
    Column, Integer, String, ForeignKey, DateTime, Date, Numeric, JSON,
    Enum, CheckConstraint, Index,
)
from sqlalchemy.orm import relationship
from app.database import Base


class UserRole(str, enum.Enum):
    USER = "user"
    ADMIN = "admin"


class CarStatus(str, enum.Enum):
    AVAILABLE = "available"
    BOOKED = "booked"
    MAINTENANCE = "maintenance"


class BookingStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    DECLINED = "declined"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


# Statuses that hold a car for their date range
ACTIVE_BOOKING_STATUSES = (BookingStatus.PENDING, BookingStatus.CONFIRMED)


class User(Base):
    __tablename__ = "users"
    id = Column(Integer, primary_key=True, index=True)
    username = Column(String, unique=True, index=True, nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)
    password = Column(String, nullable=False)  # bcrypt hash
    role = Column(Enum(UserRole), nullable=False, default=UserRole.USER)
    created_at = Column(DateTime, default=datetime.datetime.utcnow)

    bookings = relationship("Booking", back_populates="user")

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN


class Car(Base):
    __tablename__ = "cars"
    id = Column(Integer, primary_key=True, index=True)
    make = Column(String, nullable=False)
    model = Column(String, nullable=False)
    year = Column(Integer, nullable=False)
    price_per_day = Column(Numeric(10, 2), nullable=False)
    status = Column(Enum(CarStatus), nullable=False, default=CarStatus.AVAILABLE)
    image_url = Column(String, nullable=True)
    features = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime, default=datetime.datetime.utcnow)

    bookings = relationship("Booking", back_populates="car")

    __table_args__ = (
        CheckConstraint("year >= 1900", name="check_car_year_min"),
        CheckConstraint("price_per_day >= 0", name="check_car_price_non_negative"),
    )


class Booking(Base):
    __tablename__ = "bookings"
    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    car_id = Column(Integer, ForeignKey("cars.id"), nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    total_price = Column(Numeric(10, 2), nullable=False)
    status = Column(Enum(BookingStatus), nullable=False, default=BookingStatus.PENDING)
    created_at = Column(DateTime, default=datetime.datetime.utcnow)

    user = relationship("User", back_populates="bookings")
    car = relationship("Car", back_populates="bookings")

    __table_args__ = (
        CheckConstraint("start_date < end_date", name="check_booking_dates_ordered"),
        CheckConstraint("total_price >= 0", name="check_booking_price_non_negative"),
        Index("ix_bookings_user_created", "user_id", "created_at"),
        Index("ix_bookings_car_dates", "car_id", "start_date", "end_date"),
    )

    @property
    def duration_days(self) -> int:
        return rental_days(self.start_date, self.end_date)

    def __repr__(self) -> str:
        return f"<Booking(id={self.id}, car={self.car_id}, user={self.user_id}, status={self.status})>"


def rental_days(start, end) -> int:
    """Whole rental days between two dates or datetimes, partial days rounded up."""
    seconds = (end - start).total_seconds()
    return math.ceil(seconds / 86400)
