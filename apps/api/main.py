from contextlib import asynccontextmanager

from fastapi import FastAPI

from apps.api.api.routes import complaints, directory, metrics, ping
from apps.api.complaints.repository import ComplaintRepository
from apps.api.complaints.service import ComplaintLifecycleService
from apps.api.complaints.state import ComplaintStateMachine
from apps.api.core.config import Settings, get_settings
from apps.api.core.logging import configure_logging, init_tracer, shutdown_tracer
from apps.api.directory.repository import DirectoryRepository
from apps.api.directory.service import DirectoryService
from apps.api.services.database import create_engine, create_schema, create_session_factory
from apps.api.services.notifications import build_notification_dispatcher


@asynccontextmanager
async def lifespan(app: FastAPI):  # pragma: no cover - executed by framework
    settings: Settings = app.state.settings
    logger = configure_logging(settings)
    tracer_provider = init_tracer(settings)

    app.state.logger = logger
    app.state.tracer_provider = tracer_provider
    app.state.db_engine = None
    app.state.directory_repository = None
    app.state.directory_service = None
    app.state.complaint_service = None

    notifier = build_notification_dispatcher(settings)
    db_engine = None
    try:
        db_engine = create_engine(settings.database_dsn)
        session_factory = create_session_factory(db_engine)
        if settings.database_create_schema:
            await create_schema(db_engine)
        directory_repository = DirectoryRepository(session_factory)
        app.state.directory_repository = directory_repository
        app.state.directory_service = DirectoryService(directory_repository)
        app.state.complaint_service = ComplaintLifecycleService(
            ComplaintRepository(session_factory, engine=db_engine),
            directory_repository,
            state_machine=ComplaintStateMachine(strict_order=settings.strict_status_order),
            notifier=notifier,
            routing_department_id=settings.routing_department_id,
            page_size_limit=settings.page_size_limit,
        )
        app.state.db_engine = db_engine
        logger.info("Complaint desk ready (strict_status_order=%s)", settings.strict_status_order)
    except Exception:
        # Routes answer 503 until the database comes back and the app is restarted.
        logger.exception("Failed to initialise the database; complaint routes are unavailable")
        if db_engine is not None:
            await db_engine.dispose()
            db_engine = None
    try:
        yield
    finally:
        if db_engine is not None:
            await db_engine.dispose()
        close = getattr(notifier, "close", None)
        if close is not None:
            await close()
        shutdown_tracer(tracer_provider)


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()
    app = FastAPI(title=settings.app_name, lifespan=lifespan)
    app.state.settings = settings
    app.include_router(ping.router)
    app.include_router(metrics.router)
    app.include_router(complaints.router)
    app.include_router(directory.router)
    return app


app = create_app()
