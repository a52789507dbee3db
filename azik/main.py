import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import timedelta
from typing import Optional
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from .api.v1.api import build_router
from .core.config import Settings, get_settings
from .core.database import Database, DuplicateKeyError, build_database
from .core.dependencies import build_services
from .core.exceptions import AppError
from .core.mailer import EmailSender
from .core.push import PushSender
from .core.scheduler import run_scheduled_tasks

logger = logging.getLogger(__name__)

def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=logging.DEBUG if settings.debug else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

def create_app(
    settings: Optional[Settings] = None,
    database: Optional[Database] = None,
    email_sender: Optional[EmailSender] = None,
    push_sender: Optional[PushSender] = None,
) -> FastAPI:
    """
    Build the API application.

    Collaborators default to the ones described by the settings; tests pass
    an in-memory database and fake senders instead.
    """
    settings = settings or get_settings()
    configure_logging(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Startup: connect the store and the delivery channels
        services = build_services(
            settings,
            database or build_database(settings),
            email_sender or EmailSender.from_settings(settings),
            push_sender or PushSender.from_settings(settings),
        )
        app.state.services = services
        logger.info("Starting up in %s environment", settings.environment)

        # Start scheduler in a background task
        task = None
        if settings.enable_scheduler and settings.environment == "production":
            task = asyncio.create_task(run_scheduled_tasks(
                services.notifications,
                timedelta(hours=settings.notification_retention_hours),
                settings.cleanup_interval_seconds,
            ))
            logger.info("Started scheduler for background tasks")

        yield

        # Shutdown: stop the scheduler, then let in-flight deliveries finish
        logger.info("Shutting down")
        if task is not None:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                logger.info("Scheduler task cancelled")
        await services.dispatcher.close()

    app = FastAPI(
        title=settings.app_name,
        description="""
        API for the Azik food exchange app.

        ## Authentication

        1. Register with `/api/v1/users/register` and follow the link in the verification email.
        2. Log in with `/api/v1/users/login` to get a token.
        3. Click "Authorize" and paste the token (no "Bearer" prefix).
        """,
        version="1.0.0",
        debug=settings.debug,
        lifespan=lifespan,
        swagger_ui_parameters={
            "persistAuthorization": True,
            "displayRequestDuration": True,
            "defaultModelsExpandDepth": -1,
            "docExpansion": "none",
        }
    )

    # Configure CORS
    origins = [
        "http://localhost:3000",
        "http://localhost:5173",
        "http://127.0.0.1:3000",
        "http://127.0.0.1:5173",
        settings.frontend_url,
        *settings.cors_origins,
    ]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include API router
    app.include_router(build_router(settings.api_v1_prefix))
    register_exception_handlers(app)

    @app.get("/")
    async def root():
        return {"message": f"Welcome to the {settings.app_name}", "environment": settings.environment}

    @app.get("/health")
    async def health_check():
        return {"status": "healthy", "environment": settings.environment}

    return app

def register_exception_handlers(app: FastAPI) -> None:
    """Render every error as ``{"error": message}`` plus any extra fields."""

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        return JSONResponse(status_code=exc.status_code, content={"error": exc.detail, **exc.extra})

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.detail},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        details = []
        for error in exc.errors():
            message = error.get("msg", "Invalid value")
            # Messages from our own validators arrive as "Value error, <message>"
            if message.startswith("Value error, "):
                message = message[len("Value error, "):]
            details.append({
                "loc": ".".join(str(part) for part in error.get("loc", ())),
                "msg": message,
            })
        return JSONResponse(
            status_code=400,
            content={"error": details[0]["msg"] if details else "Invalid request", "details": details},
        )

    @app.exception_handler(DuplicateKeyError)
    async def duplicate_key_handler(request: Request, exc: DuplicateKeyError):
        logger.warning("Unique constraint violated: %s", exc)
        return JSONResponse(status_code=400, content={"error": "Record already exists"})

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(status_code=500, content={"error": "Internal server error"})

app = create_app()
