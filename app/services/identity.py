# app/services/identity.py
from loguru import logger
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app import auth, repository
from app.errors import AuthenticationError, ConflictError, NotFoundError, ValidationError
from app.models import User, UserRole

MIN_PASSWORD_LENGTH = 6


def _check_new_password(password: str, confirmation: str) -> None:
    if password != confirmation:
        raise ValidationError("Passwords do not match.")
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters.")


def register_user(db: Session, username: str, email: str, password: str, confirm_password: str,
                  role: UserRole = UserRole.USER) -> User:
    username = (username or "").strip()
    email = (email or "").strip().lower()
    if not username or not email or not password or not confirm_password:
        raise ValidationError("Please fill in all fields.")
    _check_new_password(password, confirm_password)

    if repository.find_user_by_email(db, email):
        raise ConflictError("User with that email already exists.", email=email)
    if repository.find_user_by_username(db, username):
        raise ConflictError("User with that username already exists.", username=username)

    user = User(
        username=username,
        email=email,
        password=auth.get_password_hash(password),
        role=role,
    )
    try:
        user = repository.insert_user(db, user)
    except IntegrityError:
        # Lost a race with a concurrent registration for the same email or username
        db.rollback()
        logger.warning("Registration for {} / {} hit a unique constraint", username, email)
        raise ConflictError("User with that email or username already exists.",
                            email=email, username=username)
    logger.info("Registered {} {} ({})", role.value, user.username, user.id)
    return user


def authenticate(db: Session, email: str, password: str) -> User:
    if not email or not password:
        raise ValidationError("Please provide email and password.")
    user = repository.find_user_by_email(db, email.strip())
    if not user or not auth.verify_password(password, user.password):
        logger.warning("Failed login for {}", email)
        raise AuthenticationError("Invalid credentials.")
    return user


def change_password(db: Session, user_id: int, current_password: str, new_password: str,
                    confirm_new_password: str) -> None:
    if not current_password or not new_password or not confirm_new_password:
        raise ValidationError("Please fill in all password fields.")
    if new_password != confirm_new_password:
        raise ValidationError("New passwords do not match.")
    if len(new_password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"New password must be at least {MIN_PASSWORD_LENGTH} characters long.")

    user = repository.find_user_by_id(db, user_id)
    if not user:
        raise NotFoundError("User", user_id)
    if not auth.verify_password(current_password, user.password):
        raise AuthenticationError("Incorrect current password.")

    user.password = auth.get_password_hash(new_password)
    db.commit()
    logger.info("Password changed for user {}", user_id)


def ensure_admin(db: Session, username: str, email: str, password: str) -> User:
    """Create the bootstrap admin unless a user with that email already exists."""
    existing = repository.find_user_by_email(db, email)
    if existing:
        return existing
    return register_user(db, username, email, password, password, role=UserRole.ADMIN)
