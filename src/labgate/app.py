"""FastAPI application factory for Labgate."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from labgate.common.config import get_settings
from labgate.common.exceptions import AuthError, LabgateError
from labgate.common.logging import setup_logging
from labgate.common.schemas import ErrorResponse, HealthResponse

logger = logging.getLogger(__name__)


async def labgate_error_handler(request: Request, exc: LabgateError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s on %s %s: %s", exc.code, request.method, request.url.path, exc.message)
    headers = None
    if isinstance(exc, AuthError) and exc.status_code == 401:
        headers = {"WWW-Authenticate": "Bearer"}
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(error=exc.message, code=exc.code).model_dump(),
        headers=headers,
    )


def create_app() -> FastAPI:
    settings = get_settings()
    setup_logging(settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Startup
        from labgate.deps import get_db
        db = get_db()
        await db.init()
        await db.create_all()
        yield
        # Shutdown
        await db.close()

    app = FastAPI(
        title=settings.api_title,
        version=settings.api_version,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(LabgateError, labgate_error_handler)

    @app.get("/health", response_model=HealthResponse)
    async def health():
        return HealthResponse(version=settings.api_version)

    # Mount routers
    from labgate.auth.router import router as auth_router
    from labgate.users.router import router as users_router
    from labgate.audit.router import router as audit_router

    prefix = settings.api_prefix
    app.include_router(auth_router, prefix=prefix, tags=["auth"])
    app.include_router(users_router, prefix=prefix, tags=["users"])
    app.include_router(audit_router, prefix=prefix, tags=["audit"])

    return app
