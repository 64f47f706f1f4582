"""FastAPI application factory for the gift fulfillment API."""

import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.config import settings
from src.database.engine import engine
from src.database.session import get_db
from src.exceptions import AppException, RateLimitException
from src.middleware.request_id import REQUEST_ID_HEADER, RequestIdMiddleware
from src.modules.courier.providers.factory import close_all_providers
from src.schemas.responses import ErrorBody, ErrorDetail, ErrorResponse

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

limiter = Limiter(key_func=get_remote_address, default_limits=[settings.rate_limit_default])


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Close courier HTTP clients and the async engine on shutdown."""
    logger.info("Gift fulfillment API starting")
    yield
    await close_all_providers()
    await engine.dispose()


def _error_response(
    request: Request,
    status_code: int,
    code: str,
    message: str,
    details: list[dict] | None = None,
    retryable: bool = False,
) -> JSONResponse:
    body = ErrorResponse(
        error=ErrorBody(
            code=code,
            message=message,
            retryable=retryable,
            details=[ErrorDetail(**d) for d in details or []],
            request_id=getattr(request.state, "request_id", "unknown"),
        )
    )
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(mode="json", by_alias=True, exclude_none=True),
    )


def register_exception_handlers(application: FastAPI) -> None:
    """Render every failure in the ``{"error": {...}}`` envelope."""

    @application.exception_handler(AppException)
    async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
        if exc.status_code >= 500:
            logger.warning("%s %s: %s", request.url.path, exc.code, exc.message)
        return _error_response(
            request, exc.status_code, exc.code, exc.message, exc.details, exc.retryable
        )

    @application.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        details = [
            {"field": ".".join(str(loc) for loc in err.get("loc", [])), "message": err.get("msg", "")}
            for err in exc.errors()
        ]
        return _error_response(request, 422, "VALIDATION_ERROR", "Validation failed", details)

    @application.exception_handler(RateLimitExceeded)
    async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
        return _error_response(
            request,
            RateLimitException.status_code,
            RateLimitException.code,
            f"Rate limit exceeded: {exc.detail}",
            retryable=RateLimitException.retryable,
        )

    @application.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return _error_response(request, 500, "INTERNAL_ERROR", "An unexpected error occurred.")


def create_app() -> FastAPI:
    application = FastAPI(
        title="Gift Fulfillment API",
        description="Dispatch, delivery challans and vendor purchase orders for bank and BIP gift orders.",
        version="0.1.0",
        lifespan=lifespan,
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        openapi_url="/api/openapi.json",
    )
    application.state.limiter = limiter

    # Starlette runs the last-added middleware first
    application.add_middleware(SlowAPIMiddleware)
    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=[REQUEST_ID_HEADER, "Content-Disposition"],
    )
    application.add_middleware(RequestIdMiddleware)

    from src.api.v1 import v1_router

    application.include_router(v1_router)
    register_exception_handlers(application)

    @application.get("/health")
    async def health_check(db: AsyncSession = Depends(get_db)) -> JSONResponse:
        try:
            await db.execute(text("SELECT 1"))
        except SQLAlchemyError:
            logger.exception("Health check could not reach the database")
            return JSONResponse(status_code=503, content={"status": "degraded", "database": "unavailable"})
        return JSONResponse(content={"status": "ok", "database": "ok"})

    return application


app = create_app()
