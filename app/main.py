# app/main.py
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger
from app.config import settings
from app.database import engine, Base, SessionLocal
from app.errors import BookingServiceError
from app.logging_config import setup_logging
from app.routes import users, cars, bookings, dashboard
from app.services import identity

setup_logging()

# Create the database tables
Base.metadata.create_all(bind=engine)


def seed_first_admin():
    if not (settings.FIRST_ADMIN_EMAIL and settings.FIRST_ADMIN_USERNAME and settings.FIRST_ADMIN_PASSWORD):
        return
    db = SessionLocal()
    try:
        identity.ensure_admin(
            db, settings.FIRST_ADMIN_USERNAME, settings.FIRST_ADMIN_EMAIL, settings.FIRST_ADMIN_PASSWORD
        )
    finally:
        db.close()


@asynccontextmanager
async def lifespan(app: FastAPI):
    seed_first_admin()
    logger.info("Car Rental API started")
    yield


app = FastAPI(
    title="Car Rental Booking System",
    description="Browse cars, request bookings and manage them as an administrator",
    version="1.0.0",
    lifespan=lifespan
)

# CORS Middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(BookingServiceError)
async def booking_service_error_handler(request: Request, exc: BookingServiceError):
    logger.info("{} {} -> {} {}: {}", request.method, request.url.path, exc.status_code, exc.kind, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


# Registering Routers
app.include_router(users.router)
app.include_router(cars.router)
app.include_router(bookings.router)
app.include_router(dashboard.router)

@app.get("/", tags=["Root"])
def read_root():
    return {"message": "Welcome to the Car Rental Booking System"}
