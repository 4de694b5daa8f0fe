import logging
from contextlib import asynccontextmanager
from datetime import timedelta
from typing import Optional

import httpx
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from heallink.api.middleware.sessions import SessionStore
from heallink.api.routes import auth, chatbot, doctor, health_id, patient, pharmacy
from heallink.config import Settings, get_settings
from heallink.db.database import Database
import heallink.models  # noqa: F401
from heallink.exceptions import HealLinkError
from heallink.services.health_id_client import HealthIdClient

logger = logging.getLogger(__name__)


def _configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    if not settings.DB_ECHO:
        logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


def _validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    field = ".".join(str(part) for part in first.get("loc", ()) if part not in ("body", "query", "path"))
    return f"{field}: {first.get('msg')}" if field else str(first.get("msg"))


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(HealLinkError)
    async def healink_error_handler(request: Request, exc: HealLinkError):
        return JSONResponse(status_code=exc.http_status, content={"message": exc.message})

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(status_code=exc.status_code, content={"message": str(exc.detail)})

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"message": _validation_message(exc)},
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"message": "Internal server error"},
        )


def create_app(
    settings: Optional[Settings] = None,
    health_id_transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FastAPI:
    settings = settings or get_settings()
    _configure_logging(settings)

    database = Database(settings)
    health_id_client = HealthIdClient(settings, transport=health_id_transport)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await database.create_all()
        logger.info("%s %s started", settings.APP_NAME, settings.APP_VERSION)
        yield
        await health_id_client.aclose()
        await database.dispose()

    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.db = database
    app.state.health_id_client = health_id_client
    app.state.sessions = SessionStore(
        ttl=timedelta(minutes=settings.SESSION_TTL_MINUTES),
        prune_interval=timedelta(minutes=settings.SESSION_PRUNE_INTERVAL_MINUTES),
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    _register_exception_handlers(app)

    app.include_router(auth.router, prefix=settings.API_PREFIX, tags=["Auth"])
    app.include_router(doctor.router, prefix=settings.API_PREFIX, tags=["Doctor"])
    app.include_router(patient.router, prefix=settings.API_PREFIX, tags=["Patient"])
    app.include_router(pharmacy.router, prefix=settings.API_PREFIX, tags=["Pharmacy"])
    app.include_router(health_id.router, prefix=settings.API_PREFIX, tags=["Health ID"])
    app.include_router(chatbot.router, prefix=settings.API_PREFIX, tags=["Chatbot"])

    @app.get("/health")
    async def health_check():
        return {"status": "healthy", "service": settings.APP_NAME}

    return app


app = create_app()
