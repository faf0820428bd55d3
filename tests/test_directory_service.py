from __future__ import annotations

from unittest.mock import AsyncMock

import pytest
from sqlalchemy.exc import OperationalError

from apps.api.core.errors import (
    DepartmentNotFoundError,
    DuplicateRecordError,
    InvalidRequestError,
    StorageError,
    UserNotFoundError,
)
from apps.api.directory.models import Role
from apps.api.directory.repository import DirectoryRepository
from apps.api.directory.service import DirectoryService

from .conftest import Org


@pytest.fixture
def directory_service(directory: DirectoryRepository) -> DirectoryService:
    return DirectoryService(directory)


@pytest.mark.asyncio
async def test_create_user_normalizes_email(directory_service: DirectoryService, org: Org):
    user = await directory_service.create_user(
        name=" Nia ", email="Nia@Example.COM", role=Role.EMPLOYEE, department_id=org.support.id
    )
    assert user.name == "Nia"
    assert user.email == "nia@example.com"
    assert user.is_active


@pytest.mark.asyncio
async def test_department_roles_need_existing_department(directory_service: DirectoryService, org: Org):
    with pytest.raises(InvalidRequestError):
        await directory_service.create_user(name="Ned", email="ned@example.com", role=Role.EMPLOYEE)
    with pytest.raises(DepartmentNotFoundError):
        await directory_service.create_user(
            name="Ned", email="ned@example.com", role=Role.MANAGER, department_id="missing"
        )


@pytest.mark.asyncio
async def test_duplicate_email_is_rejected(directory_service: DirectoryService, org: Org):
    with pytest.raises(DuplicateRecordError):
        await directory_service.create_user(name="Cal again", email="cal@example.com", role=Role.CLIENT)


@pytest.mark.asyncio
async def test_token_lookup_and_deactivation(directory_service: DirectoryService, directory: DirectoryRepository, org: Org):
    found = await directory.get_user_by_token("tok-e1")
    assert found is not None and found.id == org.e1.id

    updated = await directory_service.set_user_active(org.e1.id, False)
    assert updated.is_active is False
    active_support = await directory_service.list_users(department_id=org.support.id, active_only=True)
    assert org.e1.id not in {user.id for user in active_support}

    with pytest.raises(UserNotFoundError):
        await directory_service.set_user_active("missing", True)


@pytest.mark.asyncio
async def test_department_manager_must_be_active_manager(directory_service: DirectoryService, org: Org):
    with pytest.raises(InvalidRequestError):
        await directory_service.create_department(name="Sales", manager_id=org.e1.id)
    with pytest.raises(InvalidRequestError):
        await directory_service.create_department(name="Sales", default_assignee_id=org.client.id)

    sales = await directory_service.create_department(
        name="Sales", manager_id=org.manager.id, default_assignee_id=org.e2.id
    )
    assert sales.manager_id == org.manager.id


@pytest.mark.asyncio
async def test_update_department_fields(directory_service: DirectoryService, org: Org):
    with pytest.raises(InvalidRequestError):
        await directory_service.update_department(org.support.id)

    cleared = await directory_service.update_department(org.support.id, default_assignee_id=None)
    assert cleared.default_assignee_id is None
    assert cleared.manager_id == org.manager.id

    inactive = await directory_service.update_department(org.billing.id, is_active=False)
    assert inactive.is_active is False
    active = await directory_service.list_departments(active_only=True)
    assert [department.id for department in active] == [org.support.id]


@pytest.mark.asyncio
async def test_nature_types(directory_service: DirectoryService, org: Org):
    with pytest.raises(DuplicateRecordError):
        await directory_service.create_nature_type(name="Bug")
    feature = await directory_service.create_nature_type(name="Feature request")
    await directory_service.set_nature_type_active(org.nature.id, False)

    active = await directory_service.list_nature_types(active_only=True)

    assert [item.id for item in active] == [feature.id]


@pytest.mark.asyncio
async def test_storage_failures_surface_as_retryable_errors():
    failure = OperationalError("SELECT departments", {}, Exception("connection refused"))
    repository = AsyncMock()
    repository.list_departments.side_effect = failure
    repository.get_user.side_effect = failure
    repository.create_nature_type.side_effect = failure
    service = DirectoryService(repository)

    with pytest.raises(StorageError):
        await service.list_departments()
    with pytest.raises(StorageError):
        await service.get_user("u-1")
    with pytest.raises(StorageError):
        await service.create_nature_type(name="Outage")
