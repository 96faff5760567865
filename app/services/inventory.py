# app/services/inventory.py
from typing import List

from loguru import logger
from sqlalchemy.orm import Session

from app import repository, schemas
from app.errors import NotFoundError, StateError, ValidationError
from app.models import Car
from app.repository import CarFilter


def list_cars(db: Session, car_filter: CarFilter) -> List[Car]:
    if (car_filter.min_price is not None and car_filter.max_price is not None
            and car_filter.min_price > car_filter.max_price):
        raise ValidationError("Minimum price cannot be greater than maximum price.",
                              min_price=car_filter.min_price, max_price=car_filter.max_price)
    return repository.list_cars(db, car_filter)


def get_car(db: Session, car_id: int) -> Car:
    car = repository.find_car_by_id(db, car_id)
    if not car:
        raise NotFoundError("Car", car_id)
    return car


def add_car(db: Session, car_data: schemas.CarCreate) -> Car:
    car = Car(
        make=car_data.make,
        model=car_data.model,
        year=car_data.year,
        price_per_day=car_data.price_per_day,
        status=car_data.status,
        image_url=car_data.image_url,
        features=list(car_data.features or []),
    )
    db.add(car)
    db.commit()
    db.refresh(car)
    logger.info("Car {} added: {} {} ({})", car.id, car.make, car.model, car.year)
    return car


def update_car(db: Session, car_id: int, car_data: schemas.CarUpdate) -> Car:
    car = get_car(db, car_id)

    # Partial update: only fields the caller actually sent
    changes = car_data.model_dump(exclude_unset=True)
    for field in ("make", "model", "year", "price_per_day", "status"):
        if field in changes and changes[field] is None:
            raise ValidationError(f"{field} cannot be empty.", field=field)
    if "features" in changes:
        changes["features"] = list(changes["features"] or [])

    for field, value in changes.items():
        setattr(car, field, value)

    db.commit()
    db.refresh(car)
    logger.info("Car {} updated: {}", car.id, ", ".join(sorted(changes)) or "no changes")
    return car


def delete_car(db: Session, car_id: int) -> None:
    car = get_car(db, car_id)
    # Bookings are never deleted, so a car with booking history stays
    if repository.car_has_bookings(db, car_id):
        raise StateError(
            "Car has bookings and cannot be deleted. Set its status to 'maintenance' instead.",
            car_id=car_id,
        )
    db.delete(car)
    db.commit()
    logger.info("Car {} deleted", car_id)
