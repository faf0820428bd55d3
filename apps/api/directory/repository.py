from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlmodel import select

from apps.api.core.errors import DuplicateRecordError
from apps.api.services.database import ensure_datetime
from packages.db.models import DepartmentTable, NatureTypeTable, UserTable

from .models import Department, DirectoryUser, NatureType, Role


class DirectoryRepository:
    """Persistence helper for users, departments and nature types."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    # Users
    async def create_user(
        self,
        *,
        name: str,
        email: str,
        role: Role,
        department_id: str | None = None,
        phone: str | None = None,
        api_token: str | None = None,
        is_active: bool = True,
    ) -> DirectoryUser:
        now = datetime.now(timezone.utc)
        row = UserTable(
            name=name,
            email=email,
            phone=phone,
            role=role.value,
            department_id=department_id,
            api_token=api_token,
            is_active=is_active,
            created_at=now,
            updated_at=now,
        )
        async with self._session_factory() as session:
            session.add(row)
            try:
                await session.commit()
            except IntegrityError as exc:
                await session.rollback()
                raise DuplicateRecordError(f"User with email {email} already exists") from exc
            await session.refresh(row)
            return self._table_to_user(row)

    async def get_user(self, user_id: str) -> DirectoryUser | None:
        async with self._session_factory() as session:
            row = await session.get(UserTable, user_id)
            return self._table_to_user(row) if row is not None else None

    async def get_user_by_token(self, token: str) -> DirectoryUser | None:
        async with self._session_factory() as session:
            result = await session.execute(select(UserTable).where(UserTable.api_token == token))
            row = result.scalars().first()
            return self._table_to_user(row) if row is not None else None

    async def list_users(
        self,
        *,
        role: Role | None = None,
        department_id: str | None = None,
        active_only: bool = False,
    ) -> list[DirectoryUser]:
        statement = select(UserTable)
        if role is not None:
            statement = statement.where(UserTable.role == role.value)
        if department_id is not None:
            statement = statement.where(UserTable.department_id == department_id)
        if active_only:
            statement = statement.where(UserTable.is_active.is_(True))
        async with self._session_factory() as session:
            result = await session.execute(statement.order_by(UserTable.name.asc()))
            return [self._table_to_user(row) for row in result.scalars().all()]

    async def update_user(self, user_id: str, **changes: Any) -> DirectoryUser | None:
        async with self._session_factory() as session:
            row = await session.get(UserTable, user_id)
            if row is None:
                return None
            for key, value in changes.items():
                setattr(row, key, value.value if isinstance(value, Role) else value)
            row.updated_at = datetime.now(timezone.utc)
            await session.commit()
            await session.refresh(row)
            return self._table_to_user(row)

    # Departments
    async def create_department(
        self,
        *,
        name: str,
        description: str = "",
        manager_id: str | None = None,
        default_assignee_id: str | None = None,
        is_active: bool = True,
    ) -> Department:
        now = datetime.now(timezone.utc)
        row = DepartmentTable(
            name=name,
            description=description,
            manager_id=manager_id,
            default_assignee_id=default_assignee_id,
            is_active=is_active,
            created_at=now,
            updated_at=now,
        )
        async with self._session_factory() as session:
            session.add(row)
            try:
                await session.commit()
            except IntegrityError as exc:
                await session.rollback()
                raise DuplicateRecordError(f"Department {name} already exists") from exc
            await session.refresh(row)
            return self._table_to_department(row)

    async def get_department(self, department_id: str) -> Department | None:
        async with self._session_factory() as session:
            row = await session.get(DepartmentTable, department_id)
            return self._table_to_department(row) if row is not None else None

    async def list_departments(self, *, active_only: bool = False) -> list[Department]:
        statement = select(DepartmentTable)
        if active_only:
            statement = statement.where(DepartmentTable.is_active.is_(True))
        async with self._session_factory() as session:
            result = await session.execute(statement.order_by(DepartmentTable.created_at.asc()))
            return [self._table_to_department(row) for row in result.scalars().all()]

    async def update_department(self, department_id: str, **changes: Any) -> Department | None:
        async with self._session_factory() as session:
            row = await session.get(DepartmentTable, department_id)
            if row is None:
                return None
            for key, value in changes.items():
                setattr(row, key, value)
            row.updated_at = datetime.now(timezone.utc)
            await session.commit()
            await session.refresh(row)
            return self._table_to_department(row)

    # Nature types
    async def create_nature_type(self, *, name: str, description: str = "") -> NatureType:
        row = NatureTypeTable(name=name, description=description, created_at=datetime.now(timezone.utc))
        async with self._session_factory() as session:
            session.add(row)
            try:
                await session.commit()
            except IntegrityError as exc:
                await session.rollback()
                raise DuplicateRecordError(f"Nature type {name} already exists") from exc
            await session.refresh(row)
            return self._table_to_nature_type(row)

    async def get_nature_type(self, nature_type_id: str) -> NatureType | None:
        async with self._session_factory() as session:
            row = await session.get(NatureTypeTable, nature_type_id)
            return self._table_to_nature_type(row) if row is not None else None

    async def list_nature_types(self, *, active_only: bool = False) -> list[NatureType]:
        statement = select(NatureTypeTable)
        if active_only:
            statement = statement.where(NatureTypeTable.is_active.is_(True))
        async with self._session_factory() as session:
            result = await session.execute(statement.order_by(NatureTypeTable.name.asc()))
            return [self._table_to_nature_type(row) for row in result.scalars().all()]

    async def set_nature_type_active(self, nature_type_id: str, is_active: bool) -> NatureType | None:
        async with self._session_factory() as session:
            row = await session.get(NatureTypeTable, nature_type_id)
            if row is None:
                return None
            row.is_active = is_active
            await session.commit()
            await session.refresh(row)
            return self._table_to_nature_type(row)

    @staticmethod
    def _table_to_user(row: UserTable) -> DirectoryUser:
        return DirectoryUser(
            id=row.id,
            name=row.name,
            email=row.email,
            phone=row.phone,
            role=Role(row.role),
            department_id=row.department_id,
            is_active=bool(row.is_active),
            created_at=ensure_datetime(row.created_at),
            updated_at=ensure_datetime(row.updated_at),
        )

    @staticmethod
    def _table_to_department(row: DepartmentTable) -> Department:
        return Department(
            id=row.id,
            name=row.name,
            description=row.description or "",
            manager_id=row.manager_id,
            default_assignee_id=row.default_assignee_id,
            is_active=bool(row.is_active),
            created_at=ensure_datetime(row.created_at),
            updated_at=ensure_datetime(row.updated_at),
        )

    @staticmethod
    def _table_to_nature_type(row: NatureTypeTable) -> NatureType:
        return NatureType(
            id=row.id,
            name=row.name,
            description=row.description or "",
            is_active=bool(row.is_active),
            created_at=ensure_datetime(row.created_at),
        )
