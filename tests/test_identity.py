import pytest

import app.main
from app import repository
from app.errors import ConflictError
from app.models import User, UserRole
from app.services import identity


def admins(db):
    return db.query(User).filter(User.role == UserRole.ADMIN).all()


def test_duplicate_slipping_past_the_lookups_is_a_conflict(db, make_user, monkeypatch):
    make_user("alice")
    # Both lookups miss, as when another request inserts between check and write
    monkeypatch.setattr(repository, "find_user_by_email", lambda db, email: None)
    monkeypatch.setattr(repository, "find_user_by_username", lambda db, username: None)

    with pytest.raises(ConflictError) as exc:
        identity.register_user(db, "alice", "alice@example.com", "secret123", "secret123")
    assert exc.value.context["email"] == "alice@example.com"

    # The session was rolled back and is still usable
    assert db.query(User).filter(User.username == "alice").count() == 1
    assert identity.register_user(db, "carol", "carol@example.com", "secret123", "secret123").id


def test_duplicate_registration_over_http_is_409(client, db, make_user, monkeypatch):
    make_user("alice")
    monkeypatch.setattr(repository, "find_user_by_email", lambda db, email: None)
    monkeypatch.setattr(repository, "find_user_by_username", lambda db, username: None)

    response = client.post("/users/register", json={
        "username": "alice",
        "email": "alice@example.com",
        "password": "secret123",
        "confirm_password": "secret123",
    })
    assert response.status_code == 409
    assert response.json()["error"] == "conflict"


def test_ensure_admin_is_idempotent(db):
    first = identity.ensure_admin(db, "root", "root@example.com", "secret123")
    second = identity.ensure_admin(db, "root", "root@example.com", "secret123")

    assert first.id == second.id
    assert first.role == UserRole.ADMIN
    assert len(admins(db)) == 1


def test_ensure_admin_keeps_an_existing_account_as_is(db, make_user):
    existing = make_user("root")
    found = identity.ensure_admin(db, "someone-else", "root@example.com", "different1")

    assert found.id == existing.id
    assert found.username == "root"
    assert admins(db) == []


def test_seed_first_admin_runs_once(db, monkeypatch):
    monkeypatch.setattr(app.main.settings, "FIRST_ADMIN_EMAIL", "boss@example.com")
    monkeypatch.setattr(app.main.settings, "FIRST_ADMIN_USERNAME", "boss")
    monkeypatch.setattr(app.main.settings, "FIRST_ADMIN_PASSWORD", "secret123")

    app.main.seed_first_admin()
    app.main.seed_first_admin()

    seeded = admins(db)
    assert [user.email for user in seeded] == ["boss@example.com"]


def test_seed_first_admin_needs_every_setting(db, monkeypatch):
    monkeypatch.setattr(app.main.settings, "FIRST_ADMIN_EMAIL", "boss@example.com")
    monkeypatch.setattr(app.main.settings, "FIRST_ADMIN_USERNAME", "boss")
    monkeypatch.setattr(app.main.settings, "FIRST_ADMIN_PASSWORD", None)

    app.main.seed_first_admin()
    assert admins(db) == []
