"""Application entry point for the triage HTTP service.

Configures:
- **structlog** with JSON rendering (production) or colored console (development)
- **Sentry** error forwarding from structlog ERROR events
- **SQLite** progress session and classified email stores
- **Email classifier** backed by Anthropic, when an API key is configured
- **Google Calendar** availability, when a cached OAuth token exists
- **Periodic purge** of expired progress sessions
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager, suppress
from typing import Any

import structlog
import uvicorn
from fastapi import FastAPI

from triage.api.routes import router as api_router
from triage.batch.orchestrator import BatchOrchestrator
from triage.config import Settings, get_settings, validate_credentials
from triage.health import register_health_routes
from triage.observability.metrics import setup_metrics
from triage.observability.middleware import SERVICE_NAME, RequestIdMiddleware
from triage.observability.sentry import get_sentry_processor, init_sentry
from triage.state.classified import SqliteClassifiedEmailStore
from triage.state.notifier import ProgressNotifier
from triage.state.schema import close_database, open_database
from triage.state.store import SqliteProgressStore

logger = structlog.get_logger()


def configure_logging(production: bool = False) -> None:
    """Configure structlog for production (JSON) or development (console).

    Production mode (*production=True*): JSON rendering at INFO level.
    Development mode: colored console rendering at DEBUG level.  ERROR
    events are forwarded to Sentry in both modes once ``init_sentry`` ran.

    Args:
        production: Enable production mode if ``True``.
    """
    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        get_sentry_processor(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if production:
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
        log_level = logging.INFO
    else:
        renderer = structlog.dev.ConsoleRenderer()
        log_level = logging.DEBUG

    structlog.configure(
        processors=[*shared_processors, renderer],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    structlog.contextvars.bind_contextvars(service=SERVICE_NAME)


def initialize_services(settings: Settings | None = None) -> dict[str, Any]:
    """Set up all shared services for the application.

    Opens the SQLite database, creates the progress and classified email
    stores and the change notifier, then the optional collaborators: the
    email classifier (if an Anthropic API key is set), the batch
    orchestrator on top of it, and the Google Calendar client (if a token
    file exists).

    Args:
        settings: Application settings.  If ``None``, ``get_settings()`` is used.

    Returns:
        A dict of initialized service instances keyed by name.
    """
    if settings is None:
        settings = get_settings()

    services: dict[str, Any] = {}

    # a. SQLite database and stores
    settings.database_path.parent.mkdir(parents=True, exist_ok=True)
    db_conn = open_database(settings.database_path)
    services["db_conn"] = db_conn
    services["progress_store"] = SqliteProgressStore(db_conn)
    services["classified_store"] = SqliteClassifiedEmailStore(db_conn)
    services["notifier"] = ProgressNotifier()

    # Track background tasks to prevent garbage collection (per RUF006)
    background_tasks: set[asyncio.Task[Any]] = set()
    services["background_tasks"] = background_tasks

    # b. Email classifier (if anthropic_api_key is set)
    classifier = None
    api_key = settings.anthropic_api_key.get_secret_value()
    if api_key:
        try:
            from triage.llm.classifier import EmailClassifier
            from triage.llm.client import get_anthropic_client

            classifier = EmailClassifier(
                get_anthropic_client(api_key),
                model=settings.classification_model,
                max_tokens=settings.classification_max_tokens,
                concurrency=settings.classification_concurrency,
            )
            logger.info("Email classifier initialized", model=settings.classification_model)
        except Exception:
            logger.warning("Failed to initialize email classifier", exc_info=True)
    else:
        logger.info("ANTHROPIC_API_KEY not set, email classification disabled")
    services["classifier"] = classifier

    # c. Batch orchestrator (needs the classifier)
    orchestrator = None
    if classifier is not None:
        orchestrator = BatchOrchestrator(
            classifier,
            services["progress_store"],
            services["classified_store"],
            services["notifier"],
            max_batch_size=settings.max_batch_size,
            inter_item_delay_ms=settings.inter_item_delay_ms,
            item_timeout_seconds=settings.classification_timeout_seconds,
            retries=settings.classification_retries,
            concurrency=settings.classification_concurrency,
            background_tasks=background_tasks,
        )
    services["orchestrator"] = orchestrator

    # d. Google Calendar client (if token file exists)
    calendar = None
    if settings.google_token_path.exists():
        try:
            from triage.auth.credentials import get_calendar_service, get_google_credentials
            from triage.calendar.client import GoogleCalendarClient

            credentials = get_google_credentials(
                settings.google_token_path,
                settings.google_credentials_path,
                interactive=False,
            )
            calendar = GoogleCalendarClient(
                get_calendar_service(credentials),
                calendar_id=settings.google_calendar_id,
                timezone=settings.timezone,
            )
            logger.info("Google Calendar client initialized")
        except Exception:
            logger.warning("Failed to initialize Google Calendar client", exc_info=True)
    else:
        logger.info("Google token file not found, slot suggestions disabled")
    services["calendar"] = calendar

    services["_settings"] = settings
    return services


async def purge_expired_sessions_periodically(services: dict[str, Any]) -> None:
    """Drop terminal progress sessions once they outlive the configured TTL.

    Args:
        services: The initialized services dict.
    """
    orchestrator: BatchOrchestrator | None = services.get("orchestrator")
    settings: Settings = services.get("_settings") or get_settings()
    if orchestrator is None:
        return

    while True:
        await asyncio.sleep(settings.session_purge_interval_seconds)
        try:
            orchestrator.purge_expired(settings.session_ttl_seconds)
        except Exception:
            logger.exception("Failed to purge expired progress sessions")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    """Lifespan context manager for FastAPI startup and shutdown.

    On startup: starts the expired-session purge loop.
    On shutdown: stops the loop and closes the database connection.

    Args:
        app: The FastAPI application instance.

    Yields:
        Control to the application.
    """
    services = app.state.services
    purge_task = asyncio.create_task(purge_expired_sessions_periodically(services))
    logger.info("FastAPI application starting")
    yield
    purge_task.cancel()
    with suppress(asyncio.CancelledError):
        await purge_task
    db_conn = services.get("db_conn")
    if db_conn is not None:
        close_database(db_conn)
        logger.info("Database connection closed")


def create_app(services: dict[str, Any]) -> FastAPI:
    """Create the FastAPI app with lifespan, middleware, metrics, and routes.

    Args:
        services: The initialized services dict from ``initialize_services``.

    Returns:
        The configured FastAPI application.
    """
    fastapi_app = FastAPI(title="Email Triage", lifespan=lifespan)
    fastapi_app.state.services = services
    fastapi_app.state.settings = services.get("_settings") or get_settings()
    fastapi_app.add_middleware(RequestIdMiddleware)
    setup_metrics(fastapi_app)
    register_health_routes(fastapi_app)
    fastapi_app.include_router(api_router)
    return fastapi_app


async def main() -> None:
    """Main entry point: configure, wire services, and serve HTTP.

    1. Load settings and configure logging and Sentry
    2. Validate credentials
    3. Initialize services and create the FastAPI app
    4. Run uvicorn until shutdown
    """
    settings = get_settings()
    init_sentry(
        settings.sentry_dsn.get_secret_value(),
        environment="production" if settings.production else "development",
    )
    configure_logging(production=settings.production)
    logger.info("Application starting")

    validate_credentials(settings)

    services = initialize_services(settings)
    fastapi_app = create_app(services)

    config = uvicorn.Config(
        fastapi_app,
        host="0.0.0.0",
        port=settings.http_port,
        log_level="info",
    )
    server = uvicorn.Server(config)
    await server.serve()


def run() -> None:
    """Console script entry point."""
    asyncio.run(main())


if __name__ == "__main__":
    run()
