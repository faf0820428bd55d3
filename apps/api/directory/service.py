from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator

from sqlalchemy.exc import SQLAlchemyError

from apps.api.core.errors import (
    DepartmentNotFoundError,
    InvalidRequestError,
    NatureTypeNotFoundError,
    StorageError,
    UserNotFoundError,
)

from .models import DEPARTMENT_ROLES, Department, DirectoryUser, NatureType, Role
from .repository import DirectoryRepository

logger = logging.getLogger(__name__)

_UNSET = object()


@contextmanager
def _storage_errors(action: str) -> Iterator[None]:
    try:
        yield
    except SQLAlchemyError as exc:
        logger.exception("Storage failure while trying to %s", action)
        raise StorageError(f"Could not {action}, please retry") from exc


@dataclass(slots=True)
class DirectoryService:
    """User, department and nature type management used by the lifecycle."""

    repository: DirectoryRepository

    async def create_user(
        self,
        *,
        name: str,
        email: str,
        role: Role,
        department_id: str | None = None,
        phone: str | None = None,
        api_token: str | None = None,
    ) -> DirectoryUser:
        if not name.strip() or not email.strip():
            raise InvalidRequestError("Name and email are required")
        if role in DEPARTMENT_ROLES:
            if department_id is None:
                raise InvalidRequestError(f"A {role.value} must belong to a department")
            await self.get_department(department_id)
        with _storage_errors("create user"):
            user = await self.repository.create_user(
                name=name.strip(),
                email=email.strip().lower(),
                role=role,
                department_id=department_id,
                phone=phone,
                api_token=api_token,
            )
        logger.info("Created %s user %s", role.value, user.id)
        return user

    async def get_user(self, user_id: str) -> DirectoryUser:
        with _storage_errors("load user"):
            user = await self.repository.get_user(user_id)
        if user is None:
            raise UserNotFoundError(f"User {user_id} not found")
        return user

    async def list_users(
        self,
        *,
        role: Role | None = None,
        department_id: str | None = None,
        active_only: bool = False,
    ) -> list[DirectoryUser]:
        with _storage_errors("list users"):
            return await self.repository.list_users(role=role, department_id=department_id, active_only=active_only)

    async def set_user_active(self, user_id: str, is_active: bool) -> DirectoryUser:
        with _storage_errors("update user"):
            user = await self.repository.update_user(user_id, is_active=is_active)
        if user is None:
            raise UserNotFoundError(f"User {user_id} not found")
        logger.info("User %s active=%s", user_id, is_active)
        return user

    async def create_department(
        self,
        *,
        name: str,
        description: str = "",
        manager_id: str | None = None,
        default_assignee_id: str | None = None,
    ) -> Department:
        if not name.strip():
            raise InvalidRequestError("Department name is required")
        if manager_id is not None:
            await self._require_staff(manager_id, Role.MANAGER)
        if default_assignee_id is not None:
            await self._require_staff(default_assignee_id)
        with _storage_errors("create department"):
            department = await self.repository.create_department(
                name=name.strip(),
                description=description,
                manager_id=manager_id,
                default_assignee_id=default_assignee_id,
            )
        logger.info("Created department %s (%s)", department.name, department.id)
        return department

    async def get_department(self, department_id: str) -> Department:
        with _storage_errors("load department"):
            department = await self.repository.get_department(department_id)
        if department is None:
            raise DepartmentNotFoundError(f"Department {department_id} not found")
        return department

    async def list_departments(self, *, active_only: bool = False) -> list[Department]:
        with _storage_errors("list departments"):
            return await self.repository.list_departments(active_only=active_only)

    async def update_department(
        self,
        department_id: str,
        *,
        manager_id: str | None | object = _UNSET,
        default_assignee_id: str | None | object = _UNSET,
        is_active: bool | None = None,
        description: str | None = None,
    ) -> Department:
        """Update routing fields of a department.

        Deactivation only hides the department from routing; complaints
        already sitting in it keep their department and assignee.
        """

        await self.get_department(department_id)
        changes: dict[str, object] = {}
        if manager_id is not _UNSET:
            if manager_id is not None:
                await self._require_staff(str(manager_id), Role.MANAGER)
            changes["manager_id"] = manager_id
        if default_assignee_id is not _UNSET:
            if default_assignee_id is not None:
                await self._require_staff(str(default_assignee_id))
            changes["default_assignee_id"] = default_assignee_id
        if is_active is not None:
            changes["is_active"] = is_active
        if description is not None:
            changes["description"] = description
        if not changes:
            raise InvalidRequestError("No fields provided for update")
        with _storage_errors("update department"):
            department = await self.repository.update_department(department_id, **changes)
        if department is None:
            raise DepartmentNotFoundError(f"Department {department_id} not found")
        return department

    async def create_nature_type(self, *, name: str, description: str = "") -> NatureType:
        if not name.strip():
            raise InvalidRequestError("Nature type name is required")
        with _storage_errors("create nature type"):
            return await self.repository.create_nature_type(name=name.strip(), description=description)

    async def get_nature_type(self, nature_type_id: str) -> NatureType:
        with _storage_errors("load nature type"):
            nature_type = await self.repository.get_nature_type(nature_type_id)
        if nature_type is None:
            raise NatureTypeNotFoundError(f"Nature type {nature_type_id} not found")
        return nature_type

    async def list_nature_types(self, *, active_only: bool = False) -> list[NatureType]:
        with _storage_errors("list nature types"):
            return await self.repository.list_nature_types(active_only=active_only)

    async def set_nature_type_active(self, nature_type_id: str, is_active: bool) -> NatureType:
        with _storage_errors("update nature type"):
            nature_type = await self.repository.set_nature_type_active(nature_type_id, is_active)
        if nature_type is None:
            raise NatureTypeNotFoundError(f"Nature type {nature_type_id} not found")
        return nature_type

    async def _require_staff(self, user_id: str, role: Role | None = None) -> DirectoryUser:
        user = await self.get_user(user_id)
        if not user.is_active or not user.is_staff:
            raise InvalidRequestError(f"User {user_id} is not an active staff member")
        if role is not None and user.role is not role:
            raise InvalidRequestError(f"User {user_id} is not a {role.value}")
        return user
