from contextlib import asynccontextmanager

from fastapi import FastAPI

from ticketdesk.access import TransitionOrchestrator
from ticketdesk.api.errors import register_exception_handlers
from ticketdesk.api.routes import comments, metrics, ping, tickets, users
from ticketdesk.core.config import get_settings
from ticketdesk.core.logging import configure_logging
from ticketdesk.core.tracing import init_tracer, shutdown_tracer
from ticketdesk.dependencies.auth import TokenPrincipalResolver
from ticketdesk.services import TicketService, UserService
from ticketdesk.storage import CommentRepository, PostgresDatabase, TicketRepository, UserRepository


@asynccontextmanager
async def lifespan(app: FastAPI):  # pragma: no cover - executed by framework
    settings = get_settings()
    logger = configure_logging(settings)
    tracer_provider = init_tracer(settings)

    app.state.logger = logger
    app.state.tracer_provider = tracer_provider
    app.state.principal_resolver = TokenPrincipalResolver.from_settings(settings.auth_tokens)
    app.state.ticket_service = None
    app.state.user_service = None

    database = PostgresDatabase(
        dsn=settings.postgres_dsn,
        min_size=settings.postgres_min_pool_size,
        max_size=settings.postgres_max_pool_size,
    )
    app.state.database = database
    try:
        pool = await database.open()
        user_repository = UserRepository(pool)
        ticket_repository = TicketRepository(pool)
        comment_repository = CommentRepository(pool)
        # Foreign keys require users before tickets before comments.
        await user_repository.ensure_schema()
        await ticket_repository.ensure_schema()
        await comment_repository.ensure_schema()

        orchestrator = TransitionOrchestrator()
        app.state.ticket_service = TicketService(
            ticket_repository, comment_repository, orchestrator=orchestrator
        )
        app.state.user_service = UserService(user_repository, orchestrator=orchestrator)
    except Exception:  # pragma: no cover - service initialisation best effort
        logger.exception("Database initialisation failed; ticket and user services disabled")
        await database.close()
    try:
        yield
    finally:
        await database.close()
        shutdown_tracer(tracer_provider)


def create_app() -> FastAPI:
    settings = get_settings()
    app = FastAPI(title=settings.app_name, lifespan=lifespan)
    register_exception_handlers(app)
    app.include_router(ping.router)
    app.include_router(tickets.router)
    app.include_router(comments.router)
    app.include_router(users.router)
    app.include_router(metrics.router)
    return app


app = create_app()
