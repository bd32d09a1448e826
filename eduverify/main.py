"""
EduVerify Auth Backend - FastAPI Application
Main entry point for wallet-based passwordless sign-in.
Verifies wallet signatures, provisions identities and profiles, and bootstraps sessions.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from eduverify.core.challenge import FRIENDLY_VERIFY_ERROR
from eduverify.core.config import is_development, is_production, settings
from eduverify.core.exceptions import EduVerifyException, get_exception_status_code
from eduverify.core.logging import get_logger, log_error, setup_logging

logger = get_logger(__name__)

WALLET_AUTH_PREFIX = "/api/v1/wallet-auth"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.
    Handles startup and shutdown events.
    """
    # Startup
    setup_logging()
    yield
    # Shutdown
    from eduverify.domain.repositories.profile_repository import profile_repository
    from eduverify.domain.repositories.role_repository import role_repository
    from eduverify.infrastructure.cache import redis_client

    await profile_repository.close()
    await role_repository.close()
    await redis_client.disconnect()


async def eduverify_exception_handler(
    request: Request, exc: EduVerifyException
) -> JSONResponse:
    """Render service errors as ``{"error": <friendly message>}``."""
    status_code = get_exception_status_code(exc)
    context = {
        "path": request.url.path,
        "error_code": exc.error_code,
        "status_code": status_code,
        "details": exc.details,
    }
    if status_code >= 500:
        log_error(exc, context)
    else:
        logger.warning("Request rejected", **context)
    return JSONResponse(status_code=status_code, content={"error": exc.message})


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Render malformed bodies as a 400 without echoing the rejected input."""
    fields = [".".join(str(part) for part in err.get("loc", ())) for err in exc.errors()]
    logger.warning("Request body rejected", path=request.url.path, fields=fields)
    message = (
        FRIENDLY_VERIFY_ERROR
        if request.url.path.startswith(WALLET_AUTH_PREFIX)
        else "Invalid request"
    )
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST, content={"error": message}
    )


async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    """Render framework HTTP errors (404, 405) in the same ``{"error"}`` shape."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns:
        FastAPI: Configured FastAPI application instance
    """
    app = FastAPI(
        title=settings.APP_NAME,
        description="Wallet-based passwordless authentication for the EduVerify credential platform",
        version="1.0.0",
        docs_url="/docs" if not is_production() else None,
        redoc_url="/redoc" if not is_production() else None,
        openapi_url="/openapi.json" if not is_production() else None,
        lifespan=lifespan,
    )

    cors_origins = settings.get_effective_cors_origins()
    logger.info(f"CORS configured with origins: {cors_origins}")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Trusted host middleware only validates the Host header
    if is_production():
        logger.info(
            f"TrustedHost middleware enabled with hosts: {settings.ALLOWED_HOSTS}"
        )
        app.add_middleware(
            TrustedHostMiddleware,
            allowed_hosts=settings.ALLOWED_HOSTS,
        )
    else:
        logger.info("TrustedHost middleware disabled (development mode)")

    app.add_exception_handler(EduVerifyException, eduverify_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)

    from eduverify.api.routers import profile_router, wallet_auth_router

    app.include_router(
        wallet_auth_router.router,
        prefix=WALLET_AUTH_PREFIX,
        tags=["Wallet Authentication"],
    )
    app.include_router(
        profile_router.router, prefix="/api/v1/auth", tags=["Profile & Roles"]
    )

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {
            "status": "healthy",
            "environment": settings.ENVIRONMENT,
            "identity_provider": settings.IDENTITY_PROVIDER_URL,
        }

    return app


# Create the FastAPI app instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "eduverify.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=is_development(),
        log_level="info",
    )
