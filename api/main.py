"""
FastAPI application for the multi-device session auth service.
"""

import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.exceptions import HTTPException, RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from api.admin import router as admin_router
from api.auth import router as auth_router
from api.handlers import (
    auth_exception_handler,
    general_exception_handler,
    http_exception_handler,
    validation_exception_handler,
)
from config import Config
from session_auth.config import AuthConfig
from session_auth.dependencies import build_principal_store, build_session_manager
from session_auth.exceptions import AuthException
from session_auth.interfaces.principal_store import PrincipalStore
from session_auth.stores.memory_store import MemoryRateLimiter

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown."""
    logger.info("Starting session auth service (store=%s)", app.state.auth_config.AUTH_STORE)
    yield
    logger.info("Shutting down session auth service")


def create_app(
    auth_config: AuthConfig | None = None,
    principal_store: PrincipalStore | None = None,
) -> FastAPI:
    """Build the application.

    The auth configuration is loaded once here and is immutable for the
    lifetime of the app; routes reach it through ``app.state``.
    """
    auth_config = auth_config or AuthConfig.from_env()
    principal_store = principal_store or build_principal_store(auth_config)

    app = FastAPI(
        title="Session Auth API",
        description="Access/refresh credentials and per-device sessions",
        lifespan=lifespan,
    )
    app.state.auth_config = auth_config
    app.state.session_manager = build_session_manager(auth_config, principal_store)
    app.state.rate_limiter = MemoryRateLimiter()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=Config.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Register global exception handlers (apply to all endpoints)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(AuthException, auth_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)

    app.include_router(auth_router, prefix="/api/v1/auth", tags=["auth"])
    app.include_router(admin_router, prefix="/api/v1/admin", tags=["admin"])

    @app.get("/health")
    async def health_check() -> dict:
        return {"status": "OK", "timestamp": int(time.time())}

    return app


def main() -> None:
    import uvicorn

    logging.basicConfig(level=Config.LOG_LEVEL)
    Config.validate()
    uvicorn.run(create_app(), host="0.0.0.0", port=8000)


if __name__ == "__main__":
    main()
