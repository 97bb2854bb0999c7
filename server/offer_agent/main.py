from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from offer_agent.api.routes import health, offers
from offer_agent.core.config import ConfigurationError, Settings, get_settings
from offer_agent.core.logging import configure_logging, get_logger
from offer_agent.integrations.esignature.base import (
    ESignatureProvider,
    ProviderAuthError,
    SignatureError,
)
from offer_agent.integrations.esignature.docusign_adapter import DocuSignAdapter
from offer_agent.middleware.security import ConcurrencyLimitMiddleware, SharedSecretMiddleware


logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(application: FastAPI):
    settings: Settings = application.state.settings
    logger.info(
        "application.startup",
        port=settings.port,
        oauth_host=settings.oauth_host,
        template_id=settings.template_id,
        token_cache_enabled=settings.token_cache_enabled,
    )
    try:
        yield
    finally:
        await application.state.esignature_provider.close()
        logger.info("application.shutdown")


def register_exception_handlers(application: FastAPI) -> None:
    @application.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        fields = [str(error["loc"][-1]) for error in exc.errors() if error.get("loc")]
        logger.info("request.invalid", path=request.url.path, fields=fields)
        return JSONResponse(status_code=422, content={"error": "Invalid request body", "fields": fields})

    @application.exception_handler(SignatureError)
    async def signature_error_handler(request: Request, exc: SignatureError) -> JSONResponse:
        logger.error(
            "offer.failed",
            stage="exchange" if isinstance(exc, ProviderAuthError) else "dispatch",
            error=exc.error_message,
            error_code=exc.error_code,
            provider_status=exc.status_code,
        )
        return JSONResponse(status_code=500, content={"error": exc.error_message})

    @application.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("request.unhandled_error", path=request.url.path)
        return JSONResponse(status_code=500, content={"error": "Internal server error"})


def create_application(
    settings: Optional[Settings] = None,
    provider: Optional[ESignatureProvider] = None,
) -> FastAPI:
    """
    Build the ASGI app.

    Raises ConfigurationError when settings are not supplied and the
    environment is unusable.
    """
    settings = settings or get_settings()
    application = FastAPI(title=settings.app_name, lifespan=lifespan)
    application.state.settings = settings
    application.state.esignature_provider = provider or DocuSignAdapter.from_settings(settings)

    application.include_router(health.router)
    application.include_router(offers.router)
    register_exception_handlers(application)

    # Last added runs first: authentication gates the concurrency slots
    if settings.max_concurrent_requests:
        application.add_middleware(ConcurrencyLimitMiddleware, limit=settings.max_concurrent_requests)
    application.add_middleware(
        SharedSecretMiddleware,
        token=settings.agent_token,
        exempt_paths=("/",) if settings.public_health_check else (),
    )

    return application


def run() -> None:
    """Console entry point: validate configuration, then serve."""
    configure_logging()
    try:
        settings = get_settings()
    except ConfigurationError as exc:
        logger.critical("startup.aborted", error=str(exc))
        raise SystemExit(1) from exc

    configure_logging(settings.log_level)
    uvicorn.run(create_application(settings), host=settings.host, port=settings.port, log_config=None)


if __name__ == "__main__":
    run()
