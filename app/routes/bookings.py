# app/routes/bookings.py
from typing import List, Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from app import database, schemas, auth
from app.actors import Actor
from app.models import BookingStatus
from app.repository import BookingFilter
from app.services import bookings as booking_service

router = APIRouter(
    prefix="/bookings",
    tags=["Bookings"]
)

# ✅ Request a Booking (starts as pending, awaiting admin confirmation)
@router.post("/", status_code=status.HTTP_201_CREATED)
def create_booking(
    booking_data: schemas.BookingCreate,
    db: Session = Depends(database.get_db),
    actor: Actor = Depends(auth.get_current_actor)
):
    booking = booking_service.create_booking(
        db, actor, booking_data.car_id, booking_data.start_date, booking_data.end_date
    )
    return {
        "message": "Booking request created successfully. Awaiting confirmation.",
        "booking": schemas.BookingOut.model_validate(booking)
    }

# ✅ List User Bookings (most recent start date first)
@router.get("/my-bookings", response_model=List[schemas.BookingOut])
def list_user_bookings(
    db: Session = Depends(database.get_db),
    actor: Actor = Depends(auth.get_current_actor)
):
    return booking_service.list_user_bookings(db, actor)

# ✅ Admin - List All Bookings (filter, paginate, sort)
@router.get("/admin/all-bookings", response_model=schemas.BookingPage)
def list_all_bookings(
    status: Optional[BookingStatus] = None,
    user_id: Optional[int] = None,
    car_id: Optional[int] = None,
    page: int = 1,
    limit: int = booking_service.DEFAULT_PAGE_SIZE,
    sort_by: str = "created_at",
    sort_order: str = "desc",
    db: Session = Depends(database.get_db),
    actor: Actor = Depends(auth.get_admin_actor)
):
    return booking_service.list_all_bookings(
        db, actor,
        BookingFilter(status=status, user_id=user_id, car_id=car_id),
        page=page, page_size=limit, sort_by=sort_by, sort_order=sort_order
    )

# ✅ Admin - Update Booking Status
@router.put("/admin/{booking_id}/status")
def update_booking_status(
    booking_id: int,
    payload: schemas.BookingStatusUpdate,
    db: Session = Depends(database.get_db),
    actor: Actor = Depends(auth.get_admin_actor)
):
    booking = booking_service.set_booking_status(db, booking_id, payload.status, actor)
    return {
        "message": f"Booking status updated to '{booking.status.value}'.",
        "booking": schemas.BookingOut.model_validate(booking)
    }

# ✅ Booking Details (owner or admin)
@router.get("/{booking_id}", response_model=schemas.BookingOut)
def get_booking(
    booking_id: int,
    db: Session = Depends(database.get_db),
    actor: Actor = Depends(auth.get_current_actor)
):
    return booking_service.get_booking(db, booking_id, actor)

# ✅ Cancel User Booking (pending or confirmed only)
@router.post("/{booking_id}/cancel")
def cancel_user_booking(
    booking_id: int,
    db: Session = Depends(database.get_db),
    actor: Actor = Depends(auth.get_current_actor)
):
    booking = booking_service.cancel_booking(db, booking_id, actor)
    return {
        "message": "Booking cancelled successfully.",
        "booking_id": booking.id,
        "new_status": booking.status.value
    }
