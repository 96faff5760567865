# app/routes/cars.py
from decimal import Decimal
from typing import List, Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from app import database, schemas, auth
from app.models import CarStatus
from app.repository import CarFilter
from app.services import inventory

router = APIRouter(
    prefix="/cars",
    tags=["Cars"]
)

# Public - List Available Cars (search on make/model, price range)
@router.get("/", response_model=List[schemas.CarOut])
def list_available_cars(
    search: Optional[str] = None,
    min_price: Optional[Decimal] = None,
    max_price: Optional[Decimal] = None,
    db: Session = Depends(database.get_db)
):
    return inventory.list_cars(db, CarFilter(
        status=CarStatus.AVAILABLE, search=search, min_price=min_price, max_price=max_price
    ))

# Admin Only - List All Cars (any status unless filtered)
@router.get("/admin/all", response_model=List[schemas.CarOut], dependencies=[Depends(auth.verify_admin_user)])
def list_all_cars(
    status: Optional[CarStatus] = None,
    search: Optional[str] = None,
    min_price: Optional[Decimal] = None,
    max_price: Optional[Decimal] = None,
    db: Session = Depends(database.get_db)
):
    return inventory.list_cars(db, CarFilter(
        status=status, search=search, min_price=min_price, max_price=max_price
    ))

# Public - Car Details
@router.get("/{car_id}", response_model=schemas.CarOut)
def get_car(car_id: int, db: Session = Depends(database.get_db)):
    return inventory.get_car(db, car_id)

# Admin Only - Create a Car
@router.post("/", status_code=status.HTTP_201_CREATED, dependencies=[Depends(auth.verify_admin_user)])
def create_car(car: schemas.CarCreate, db: Session = Depends(database.get_db)):
    new_car = inventory.add_car(db, car)
    return {"message": "Car added successfully.", "car": schemas.CarOut.model_validate(new_car)}

# Admin Only - Update a Car
@router.put("/{car_id}", dependencies=[Depends(auth.verify_admin_user)])
def update_car(car_id: int, car: schemas.CarUpdate, db: Session = Depends(database.get_db)):
    updated = inventory.update_car(db, car_id, car)
    return {"message": "Car updated successfully.", "car": schemas.CarOut.model_validate(updated)}

# Admin Only - Delete a Car
@router.delete("/{car_id}", dependencies=[Depends(auth.verify_admin_user)])
def delete_car(car_id: int, db: Session = Depends(database.get_db)):
    inventory.delete_car(db, car_id)
    return {"message": "Car deleted successfully."}
