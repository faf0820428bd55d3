from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class Role(str, Enum):
    """Roles an actor may hold in the complaint desk."""

    ADMIN = "admin"
    MANAGER = "manager"
    EMPLOYEE = "employee"
    CLIENT = "client"


STAFF_ROLES: frozenset[Role] = frozenset({Role.ADMIN, Role.MANAGER, Role.EMPLOYEE})
DEPARTMENT_ROLES: frozenset[Role] = frozenset({Role.MANAGER, Role.EMPLOYEE})


@dataclass(frozen=True, slots=True)
class DirectoryUser:
    """User record as exposed by the directory."""

    id: str
    name: str
    email: str
    role: Role
    department_id: str | None
    is_active: bool
    created_at: datetime
    updated_at: datetime
    phone: str | None = None

    @property
    def is_staff(self) -> bool:
        return self.role in STAFF_ROLES


@dataclass(frozen=True, slots=True)
class Department:
    """Routing unit with a manager and a default assignee."""

    id: str
    name: str
    description: str
    manager_id: str | None
    default_assignee_id: str | None
    is_active: bool
    created_at: datetime
    updated_at: datetime


@dataclass(frozen=True, slots=True)
class NatureType:
    """Category tag describing the kind of issue."""

    id: str
    name: str
    description: str
    is_active: bool
    created_at: datetime


@dataclass(frozen=True, slots=True)
class ActorContext:
    """Identity of the user performing a request."""

    user_id: str
    role: Role
    department_id: str | None = None

    @classmethod
    def from_user(cls, user: DirectoryUser) -> "ActorContext":
        return cls(user_id=user.id, role=user.role, department_id=user.department_id)
