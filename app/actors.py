# app/actors.py
from dataclasses import dataclass

from app.models import User, UserRole


@dataclass(frozen=True)
class Actor:
    """The authenticated caller of a service operation."""
    id: int
    role: UserRole = UserRole.USER

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    @classmethod
    def from_user(cls, user: User) -> "Actor":
        return cls(id=user.id, role=user.role)
