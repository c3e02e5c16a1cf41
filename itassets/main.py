import os

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_fastapi_instrumentator import Instrumentator
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from .config import settings
from .db import Base, engine
from .errors import AssetServiceError
from .logging import setup_logging, RequestIdMiddleware
from .auth.router import router as auth_router
from .routes.assets import router as assets_router
from .routes.complaints import router as complaints_router
from .routes.maintenance import router as maintenance_router
from .routes.users import router as users_router
from .routes.reports import router as reports_router
from .routes.notifications import router as notifications_router


logger = structlog.get_logger(__name__)


async def handle_service_error(request: Request, exc: AssetServiceError):
    logger.info(
        "service_error",
        error_type=type(exc).__name__,
        detail=exc.message,
        path=request.url.path,
    )
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


def create_app() -> FastAPI:
    setup_logging()
    app = FastAPI(title=settings.app_name)

    # Middlewares
    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    limiter = Limiter(key_func=get_remote_address, default_limits=[settings.rate_limit])
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    app.add_middleware(SlowAPIMiddleware)

    # NotFound, InvalidState, UniquenessViolation, ValidationError, ExternalCollaboratorError
    app.add_exception_handler(AssetServiceError, handle_service_error)

    # Routers
    app.include_router(auth_router)
    app.include_router(assets_router)
    app.include_router(complaints_router)
    app.include_router(maintenance_router)
    app.include_router(users_router)
    app.include_router(reports_router)
    app.include_router(notifications_router)

    # Metrics
    Instrumentator().instrument(app).expose(app)

    @app.get("/health")
    def health():
        return {"status": "ok", "environment": settings.environment}

    @app.on_event("startup")
    def _startup():
        logger.info("startup", app=settings.app_name)
        # Ensure local SQLite directory exists
        if settings.database_url.startswith("sqlite:///./"):
            os.makedirs("var", exist_ok=True)
        os.makedirs(settings.reports_dir, exist_ok=True)
        if settings.auto_create_db:
            Base.metadata.create_all(bind=engine)
            logger.info("database_tables_verified")

    return app


app = create_app()
