import os

# Point the application at a throwaway in-memory database before it is imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET_KEY"] = "test-secret-key"
for key in ("FIRST_ADMIN_EMAIL", "FIRST_ADMIN_USERNAME", "FIRST_ADMIN_PASSWORD"):
    os.environ.pop(key, None)

from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from app import auth
from app.actors import Actor
from app.database import Base, SessionLocal, engine
from app.main import app
from app.models import Car, CarStatus, UserRole
from app.services import identity

# Cheap hashes keep the suite fast
auth.pwd_context.update(bcrypt__rounds=4)


@pytest.fixture
def db():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(db):
    return TestClient(app)


@pytest.fixture
def make_user(db):
    def _make_user(username, role=UserRole.USER, password="secret123"):
        return identity.register_user(
            db, username, f"{username}@example.com", password, password, role=role
        )
    return _make_user


@pytest.fixture
def user(make_user):
    return make_user("alice")


@pytest.fixture
def other_user(make_user):
    return make_user("bob")


@pytest.fixture
def admin(make_user):
    return make_user("root", role=UserRole.ADMIN)


@pytest.fixture
def user_actor(user):
    return Actor.from_user(user)


@pytest.fixture
def other_actor(other_user):
    return Actor.from_user(other_user)


@pytest.fixture
def admin_actor(admin):
    return Actor.from_user(admin)


def bearer(user):
    return {"Authorization": f"Bearer {auth.create_access_token(user)}"}


@pytest.fixture
def user_headers(user):
    return bearer(user)


@pytest.fixture
def other_headers(other_user):
    return bearer(other_user)


@pytest.fixture
def admin_headers(admin):
    return bearer(admin)


@pytest.fixture
def make_car(db):
    def _make_car(make="Honda", model="Civic", year=2023, price_per_day="60",
                  status=CarStatus.AVAILABLE, features=None):
        car = Car(
            make=make,
            model=model,
            year=year,
            price_per_day=Decimal(price_per_day),
            status=status,
            features=features or [],
        )
        db.add(car)
        db.commit()
        db.refresh(car)
        return car
    return _make_car


@pytest.fixture
def car(make_car):
    return make_car()
