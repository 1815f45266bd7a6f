from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from contextlib import asynccontextmanager
from typing import Mapping, Optional
import os

from dotenv import dotenv_values

from solar_tracker.core.config import Settings, settings as default_settings
from solar_tracker.core.exceptions import ConfigurationError, SolarTrackerError, error_response
from solar_tracker.core.logging_config import logger
from solar_tracker.core.middleware import (
    RequestLoggingMiddleware,
    SecurityHeadersMiddleware,
    TrailingSlashMiddleware,
)
from solar_tracker.api.router import api_router
from solar_tracker.modules.auth.gate import AuthGate
from solar_tracker.modules.auth.users import StaticUserProvider, UserFileStore
from solar_tracker.services.installation_store import InstallationStore
from solar_tracker.services.installation_validator import utc_now_iso


APP_VERSION = "1.0.0"


def load_static_user_environ(env_file: str = ".env") -> Mapping[str, str]:
    """Process environment layered over .env, for AUTH_USER_<n>_* lookups"""
    merged = {key: value for key, value in dotenv_values(env_file).items() if value is not None}
    merged.update(os.environ)
    return merged


def validate_config(config: Settings) -> None:
    """Warn at startup about configuration that will make requests fail"""
    if not config.JWT_SECRET:
        logger.warning("JWT_SECRET is not set. Authentication requests will fail until it is configured.")
    if not config.ADMIN_API_KEY:
        logger.warning("ADMIN_API_KEY is not set. User provisioning endpoints are disabled.")
    if config.is_production and not config.CLIENT_URL:
        logger.warning("CLIENT_URL is not set in production; cross-origin requests will be rejected.")


def register_exception_handlers(app: FastAPI, config: Settings) -> None:
    @app.exception_handler(SolarTrackerError)
    async def tracker_error_handler(request: Request, exc: SolarTrackerError):
        if exc.status_code >= 500:
            logger.log_error_with_context(exc, context=f"{request.method} {request.url.path}")
            # ConfigurationError text is returned in every environment
            if config.is_production and not isinstance(exc, ConfigurationError):
                return JSONResponse(status_code=exc.status_code, content={"error": "Internal server error"})
        return JSONResponse(status_code=exc.status_code, content=error_response(exc))

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        message = "Route not found" if exc.status_code == 404 else str(exc.detail)
        return JSONResponse(status_code=exc.status_code, content={"error": message}, headers=exc.headers)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        if errors:
            first = errors[0]
            location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
            message = f"{location}: {first.get('msg')}" if location else first.get("msg", "Invalid request")
        else:
            message = "Invalid request"
        return JSONResponse(status_code=400, content={"error": message})

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.error(f"Global exception: {exc}", exc_info=True)
        return JSONResponse(
            status_code=500,
            content={"error": "Internal server error" if config.is_production else str(exc)}
        )


def create_app(
    config: Optional[Settings] = None,
    static_user_environ: Optional[Mapping[str, str]] = None,
) -> FastAPI:
    """
    Build the application with its collaborators wired up front.

    Args:
        config: Settings to use (defaults to the environment-loaded settings).
        static_user_environ: Mapping to read AUTH_USER_<n>_* from
            (defaults to os.environ layered over .env).
    """
    config = config or default_settings
    if static_user_environ is None:
        static_user_environ = load_static_user_environ()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("=" * 60)
        logger.info(f"Starting {config.APP_NAME}...")
        logger.info(f"Environment: {config.ENVIRONMENT_NAME}")
        logger.info(f"Per-user storage: {config.INSTALLATIONS_PER_USER}")
        logger.info("=" * 60)
        yield
        logger.info(f"Shutting down {config.APP_NAME}...")

    app = FastAPI(
        title=config.APP_NAME,
        description="Track solar-panel installations per installer account",
        version=APP_VERSION,
        lifespan=lifespan,
        redirect_slashes=False,
    )

    validate_config(config)

    static_users = StaticUserProvider.from_environ(static_user_environ, rounds=config.BCRYPT_ROUNDS)
    app.state.settings = config
    app.state.auth_gate = AuthGate(config, static_users, UserFileStore(config.USERS_DATA_PATH))
    app.state.installation_store = InstallationStore(config)

    # Middleware (order matters - last added runs first)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "X-Response-Time"],
    )
    app.add_middleware(TrailingSlashMiddleware)

    register_exception_handlers(app, config)

    @app.get("/health", tags=["Health"])
    async def health_check():
        """Health check endpoint"""
        return {
            "status": "ok",
            "timestamp": utc_now_iso(),
        }

    app.include_router(api_router, prefix="/api")
    return app


app = create_app()


def run() -> None:
    import uvicorn
    uvicorn.run(
        "solar_tracker.main:app",
        host=default_settings.HOST,
        port=default_settings.PORT,
        reload=not default_settings.is_production
    )


if __name__ == "__main__":
    run()
