from __future__ import annotations

import secrets

from fastapi import APIRouter, status
from pydantic import BaseModel, Field

from apps.api.api.errors import to_http_error
from apps.api.core.errors import ServiceError
from apps.api.dependencies.auth import CurrentActor
from apps.api.dependencies.services import AdminActor, DirectoryServiceDep, StaffActor
from apps.api.directory.models import Department, DirectoryUser, NatureType, Role

router = APIRouter(tags=["directory"])


class UserModel(BaseModel):
    id: str
    name: str
    email: str
    phone: str | None = None
    role: Role
    department_id: str | None
    is_active: bool
    created_at: str

    @classmethod
    def from_entity(cls, entity: DirectoryUser) -> "UserModel":
        return cls(
            id=entity.id,
            name=entity.name,
            email=entity.email,
            phone=entity.phone,
            role=entity.role,
            department_id=entity.department_id,
            is_active=entity.is_active,
            created_at=entity.created_at.isoformat(),
        )


class UserCreatedModel(UserModel):
    api_token: str


class DepartmentModel(BaseModel):
    id: str
    name: str
    description: str
    manager_id: str | None
    default_assignee_id: str | None
    is_active: bool
    created_at: str

    @classmethod
    def from_entity(cls, entity: Department) -> "DepartmentModel":
        return cls(
            id=entity.id,
            name=entity.name,
            description=entity.description,
            manager_id=entity.manager_id,
            default_assignee_id=entity.default_assignee_id,
            is_active=entity.is_active,
            created_at=entity.created_at.isoformat(),
        )


class NatureTypeModel(BaseModel):
    id: str
    name: str
    description: str
    is_active: bool

    @classmethod
    def from_entity(cls, entity: NatureType) -> "NatureTypeModel":
        return cls(id=entity.id, name=entity.name, description=entity.description, is_active=entity.is_active)


class UserCreateRequest(BaseModel):
    name: str = Field(min_length=1)
    email: str = Field(min_length=3)
    role: Role
    department_id: str | None = None
    phone: str | None = None


class ActiveFlagRequest(BaseModel):
    is_active: bool


class DepartmentCreateRequest(BaseModel):
    name: str = Field(min_length=1)
    description: str = ""
    manager_id: str | None = None
    default_assignee_id: str | None = None


class DepartmentUpdateRequest(BaseModel):
    description: str | None = None
    manager_id: str | None = None
    default_assignee_id: str | None = None
    is_active: bool | None = None


class NatureTypeCreateRequest(BaseModel):
    name: str = Field(min_length=1)
    description: str = ""


# Users
@router.post("/users", response_model=UserCreatedModel, status_code=status.HTTP_201_CREATED)
async def create_user(
    payload: UserCreateRequest,
    service: DirectoryServiceDep,
    actor: AdminActor,
) -> UserCreatedModel:
    token = secrets.token_urlsafe(32)
    try:
        user = await service.create_user(
            name=payload.name,
            email=payload.email,
            role=payload.role,
            department_id=payload.department_id,
            phone=payload.phone,
            api_token=token,
        )
    except ServiceError as exc:
        raise to_http_error(exc) from exc
    return UserCreatedModel(**UserModel.from_entity(user).model_dump(), api_token=token)


@router.get("/users", response_model=list[UserModel])
async def list_users(
    service: DirectoryServiceDep,
    actor: StaffActor,
    role: Role | None = None,
    department_id: str | None = None,
    active_only: bool = False,
) -> list[UserModel]:
    try:
        users = await service.list_users(role=role, department_id=department_id, active_only=active_only)
    except ServiceError as exc:
        raise to_http_error(exc) from exc
    return [UserModel.from_entity(user) for user in users]


@router.get("/users/me", response_model=UserModel)
async def get_current_user(service: DirectoryServiceDep, actor: CurrentActor) -> UserModel:
    try:
        user = await service.get_user(actor.user_id)
    except ServiceError as exc:
        raise to_http_error(exc) from exc
    return UserModel.from_entity(user)


@router.get("/users/{user_id}", response_model=UserModel)
async def get_user(user_id: str, service: DirectoryServiceDep, actor: StaffActor) -> UserModel:
    try:
        user = await service.get_user(user_id)
    except ServiceError as exc:
        raise to_http_error(exc) from exc
    return UserModel.from_entity(user)


@router.patch("/users/{user_id}", response_model=UserModel)
async def set_user_active(
    user_id: str,
    payload: ActiveFlagRequest,
    service: DirectoryServiceDep,
    actor: AdminActor,
) -> UserModel:
    try:
        user = await service.set_user_active(user_id, payload.is_active)
    except ServiceError as exc:
        raise to_http_error(exc) from exc
    return UserModel.from_entity(user)


# Departments
@router.post("/departments", response_model=DepartmentModel, status_code=status.HTTP_201_CREATED)
async def create_department(
    payload: DepartmentCreateRequest,
    service: DirectoryServiceDep,
    actor: AdminActor,
) -> DepartmentModel:
    try:
        department = await service.create_department(
            name=payload.name,
            description=payload.description,
            manager_id=payload.manager_id,
            default_assignee_id=payload.default_assignee_id,
        )
    except ServiceError as exc:
        raise to_http_error(exc) from exc
    return DepartmentModel.from_entity(department)


@router.get("/departments", response_model=list[DepartmentModel])
async def list_departments(
    service: DirectoryServiceDep,
    actor: StaffActor,
    active_only: bool = False,
) -> list[DepartmentModel]:
    try:
        departments = await service.list_departments(active_only=active_only)
    except ServiceError as exc:
        raise to_http_error(exc) from exc
    return [DepartmentModel.from_entity(item) for item in departments]


@router.get("/departments/{department_id}", response_model=DepartmentModel)
async def get_department(department_id: str, service: DirectoryServiceDep, actor: StaffActor) -> DepartmentModel:
    try:
        department = await service.get_department(department_id)
    except ServiceError as exc:
        raise to_http_error(exc) from exc
    return DepartmentModel.from_entity(department)


@router.patch("/departments/{department_id}", response_model=DepartmentModel)
async def update_department(
    department_id: str,
    payload: DepartmentUpdateRequest,
    service: DirectoryServiceDep,
    actor: AdminActor,
) -> DepartmentModel:
    # Only fields present in the body are touched; an explicit null clears a routing field.
    changes = payload.model_dump(exclude_unset=True)
    try:
        department = await service.update_department(department_id, **changes)
    except ServiceError as exc:
        raise to_http_error(exc) from exc
    return DepartmentModel.from_entity(department)


# Nature types
@router.post("/nature-types", response_model=NatureTypeModel, status_code=status.HTTP_201_CREATED)
async def create_nature_type(
    payload: NatureTypeCreateRequest,
    service: DirectoryServiceDep,
    actor: AdminActor,
) -> NatureTypeModel:
    try:
        nature_type = await service.create_nature_type(name=payload.name, description=payload.description)
    except ServiceError as exc:
        raise to_http_error(exc) from exc
    return NatureTypeModel.from_entity(nature_type)


@router.get("/nature-types", response_model=list[NatureTypeModel])
async def list_nature_types(
    service: DirectoryServiceDep,
    actor: CurrentActor,
    active_only: bool = True,
) -> list[NatureTypeModel]:
    try:
        nature_types = await service.list_nature_types(active_only=active_only)
    except ServiceError as exc:
        raise to_http_error(exc) from exc
    return [NatureTypeModel.from_entity(item) for item in nature_types]


@router.patch("/nature-types/{nature_type_id}", response_model=NatureTypeModel)
async def set_nature_type_active(
    nature_type_id: str,
    payload: ActiveFlagRequest,
    service: DirectoryServiceDep,
    actor: AdminActor,
) -> NatureTypeModel:
    try:
        nature_type = await service.set_nature_type_active(nature_type_id, payload.is_active)
    except ServiceError as exc:
        raise to_http_error(exc) from exc
    return NatureTypeModel.from_entity(nature_type)
