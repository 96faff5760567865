# app/schemas.py
from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator
from typing import List, Optional, Union
from datetime import date, datetime
from decimal import Decimal

from app.models import UserRole, CarStatus, BookingStatus


def max_car_year() -> int:
    return date.today().year + 1


def _split_features(value):
    if value is None:
        return value
    if isinstance(value, str):
        value = value.split(",")
    return [str(feature).strip() for feature in value if str(feature).strip()]


# ---------- Users ----------

class UserCreate(BaseModel):
    username: str
    email: EmailStr
    password: str
    confirm_password: str

class UserLogin(BaseModel):
    email: EmailStr
    password: str

class ChangePasswordRequest(BaseModel):
    current_password: str
    new_password: str
    confirm_new_password: str

class UserOut(BaseModel):
    id: int
    username: str
    email: EmailStr
    role: UserRole

    class Config:
        from_attributes = True

class UserSummary(BaseModel):
    id: int
    username: str

    class Config:
        from_attributes = True

class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserOut


# ---------- Cars ----------

class CarCreate(BaseModel):
    make: str = Field(..., min_length=1)
    model: str = Field(..., min_length=1)
    year: int
    price_per_day: Decimal = Field(..., ge=0)
    status: CarStatus = CarStatus.AVAILABLE
    image_url: Optional[str] = None
    features: Union[List[str], str] = []

    @field_validator("make", "model")
    @classmethod
    def strip_text(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value

    @field_validator("year")
    @classmethod
    def check_year(cls, value: int) -> int:
        if value < 1900 or value > max_car_year():
            raise ValueError(f"Year must be between 1900 and {max_car_year()}.")
        return value

    @field_validator("features", mode="before")
    @classmethod
    def parse_features(cls, value):
        return _split_features(value)

class CarUpdate(BaseModel):
    make: Optional[str] = None
    model: Optional[str] = None
    year: Optional[int] = None
    price_per_day: Optional[Decimal] = Field(None, ge=0)
    status: Optional[CarStatus] = None
    image_url: Optional[str] = None
    features: Optional[Union[List[str], str]] = None

    @field_validator("make", "model")
    @classmethod
    def strip_text(cls, value):
        if value is None:
            return value
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value

    @field_validator("year")
    @classmethod
    def check_year(cls, value):
        if value is not None and (value < 1900 or value > max_car_year()):
            raise ValueError(f"Year must be between 1900 and {max_car_year()}.")
        return value

    @field_validator("features", mode="before")
    @classmethod
    def parse_features(cls, value):
        return _split_features(value)

class CarOut(BaseModel):
    id: int
    make: str
    model: str
    year: int
    price_per_day: Decimal
    status: CarStatus
    image_url: Optional[str] = None
    features: List[str] = []
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class CarSummary(BaseModel):
    id: int
    make: str
    model: str
    year: int

    class Config:
        from_attributes = True


# ---------- Bookings ----------

class BookingCreate(BaseModel):
    car_id: int
    start_date: date
    end_date: date

    @model_validator(mode="after")
    def check_date_order(self):
        if self.end_date <= self.start_date:
            raise ValueError("End date must be after start date.")
        return self

class BookingStatusUpdate(BaseModel):
    status: BookingStatus

class BookingOut(BaseModel):
    id: int
    user_id: int
    car_id: int
    start_date: date
    end_date: date
    duration_days: int
    total_price: Decimal
    status: BookingStatus
    created_at: Optional[datetime] = None
    car: Optional[CarSummary] = None
    user: Optional[UserSummary] = None

    class Config:
        from_attributes = True

class Pagination(BaseModel):
    current_page: int
    total_pages: int
    total_bookings: int
    limit: int

class BookingPage(BaseModel):
    bookings: List[BookingOut]
    pagination: Pagination


# ---------- Dashboard ----------

class UserStats(BaseModel):
    total: int
    users: int
    admins: int

class CarStats(BaseModel):
    total: int
    available: int
    booked: int
    maintenance: int

class BookingStats(BaseModel):
    total: int
    pending: int
    confirmed: int
    declined: int
    cancelled: int
    completed: int

class RevenueStats(BaseModel):
    total_completed_revenue: Decimal

class DashboardStats(BaseModel):
    users: UserStats
    cars: CarStats
    bookings: BookingStats
    revenue: RevenueStats
    recent_bookings: List[BookingOut]
