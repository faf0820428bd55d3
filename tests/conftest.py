from __future__ import annotations

from dataclasses import dataclass

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine
from sqlmodel import SQLModel

import packages.db.models  # noqa: F401  registers the tables
from apps.api.complaints.repository import ComplaintRepository
from apps.api.complaints.service import ComplaintLifecycleService
from apps.api.directory.models import ActorContext, Department, DirectoryUser, NatureType, Role
from apps.api.directory.repository import DirectoryRepository
from apps.api.metrics import MetricsRegistry
from apps.api.services.notifications import NotificationEvent


@dataclass
class Org:
    """Directory seeded for lifecycle tests.

    ``support`` is routed to ``e1`` by default and managed by ``manager``;
    ``billing`` is a second department with its own manager and employee.
    """

    support: Department
    billing: Department
    admin: DirectoryUser
    manager: DirectoryUser
    e1: DirectoryUser
    e2: DirectoryUser
    billing_manager: DirectoryUser
    billing_employee: DirectoryUser
    client: DirectoryUser
    other_client: DirectoryUser
    nature: NatureType

    @staticmethod
    def actor(user: DirectoryUser) -> ActorContext:
        return ActorContext.from_user(user)


class RecordingNotifier:
    def __init__(self) -> None:
        self.events: list[NotificationEvent] = []

    async def dispatch(self, event: NotificationEvent) -> None:
        self.events.append(event)


@pytest_asyncio.fixture
async def engine() -> AsyncEngine:
    engine = create_async_engine("sqlite+aiosqlite:///:memory:")
    try:
        yield engine
    finally:
        await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine: AsyncEngine) -> async_sessionmaker:
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest.fixture
def directory(session_factory: async_sessionmaker) -> DirectoryRepository:
    return DirectoryRepository(session_factory)


@pytest.fixture
def complaint_repository(session_factory: async_sessionmaker, engine: AsyncEngine) -> ComplaintRepository:
    return ComplaintRepository(session_factory, engine=engine)


@pytest_asyncio.fixture
async def org(directory: DirectoryRepository) -> Org:
    support = await directory.create_department(name="Support")
    billing = await directory.create_department(name="Billing")

    admin = await directory.create_user(name="Ada", email="ada@example.com", role=Role.ADMIN, api_token="tok-admin")
    manager = await directory.create_user(
        name="Mia", email="mia@example.com", role=Role.MANAGER, department_id=support.id, api_token="tok-manager"
    )
    e1 = await directory.create_user(
        name="Eli", email="eli@example.com", role=Role.EMPLOYEE, department_id=support.id, api_token="tok-e1"
    )
    e2 = await directory.create_user(
        name="Eve", email="eve@example.com", role=Role.EMPLOYEE, department_id=support.id, api_token="tok-e2"
    )
    billing_manager = await directory.create_user(
        name="Bo", email="bo@example.com", role=Role.MANAGER, department_id=billing.id
    )
    billing_employee = await directory.create_user(
        name="Bea", email="bea@example.com", role=Role.EMPLOYEE, department_id=billing.id
    )
    client = await directory.create_user(
        name="Cal", email="cal@example.com", role=Role.CLIENT, api_token="tok-client"
    )
    other_client = await directory.create_user(name="Cy", email="cy@example.com", role=Role.CLIENT)

    support = await directory.update_department(support.id, manager_id=manager.id, default_assignee_id=e1.id)
    billing = await directory.update_department(
        billing.id, manager_id=billing_manager.id, default_assignee_id=billing_employee.id
    )
    nature = await directory.create_nature_type(name="Bug", description="Something is broken")

    return Org(
        support=support,
        billing=billing,
        admin=admin,
        manager=manager,
        e1=e1,
        e2=e2,
        billing_manager=billing_manager,
        billing_employee=billing_employee,
        client=client,
        other_client=other_client,
        nature=nature,
    )


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def registry() -> MetricsRegistry:
    return MetricsRegistry()


@pytest.fixture
def service(
    complaint_repository: ComplaintRepository,
    directory: DirectoryRepository,
    notifier: RecordingNotifier,
    registry: MetricsRegistry,
    org: Org,
) -> ComplaintLifecycleService:
    return ComplaintLifecycleService(
        complaint_repository,
        directory,
        notifier=notifier,
        registry=registry,
        routing_department_id=org.support.id,
    )
