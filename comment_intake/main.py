"""Comment Intake API - Main Application."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from comment_intake.comments.dependencies import (
    build_intake_pipeline,
    build_record_sink,
    build_spam_classifier,
)
from comment_intake.comments.exceptions import ProviderError
from comment_intake.comments.router import router as comments_router
from comment_intake.comments.service import IntakePipeline
from comment_intake.comments.spam import AkismetSpamClassifier
from comment_intake.config import get_settings
from comment_intake.core.context import get_request_id
from comment_intake.core.logging import configure_structlog, get_logger
from comment_intake.core.middleware import RequestContextMiddleware
from comment_intake.health import router as health_router


# Configure logging early (before creating logger)
settings = get_settings()
configure_structlog(
    settings, log_dir=Path(settings.log_dir), to_files=not settings.is_testing
)

logger = get_logger(__name__)


def _lifespan_for(pipeline: IntakePipeline | None):
    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Application lifespan manager."""
        settings = get_settings()
        logger.info(
            "starting_application",
            app_name=settings.app_name,
            version=settings.app_version,
            environment=settings.environment,
            sink_backend=settings.sink_backend,
        )

        cassandra_started = False

        if pipeline is not None:
            app.state.intake_pipeline = pipeline
        else:
            classifier = build_spam_classifier(settings)
            if isinstance(classifier, AkismetSpamClassifier):
                try:
                    key_valid = await classifier.verify_key()
                except ProviderError as e:
                    # Non-critical - comment checks fail closed until Akismet is back
                    logger.warning("akismet_key_check_skipped", error=e.message)
                else:
                    log_method = logger.info if key_valid else logger.warning
                    log_method(
                        "akismet_key_checked",
                        valid=key_valid,
                        blog=settings.akismet_blog_url,
                    )

            cassandra_session = None
            if settings.sink_backend == "cassandra":
                from comment_intake.core.database import (  # noqa: PLC0415
                    init_async_cassandra,
                )

                cassandra_session = await init_async_cassandra()
                cassandra_started = True
                logger.info("cassandra_initialized")

            sink = build_record_sink(settings, cassandra_session)
            app.state.intake_pipeline = build_intake_pipeline(settings, classifier, sink)
            logger.info(
                "intake_pipeline_initialized",
                classifier=type(classifier).__name__,
                sink=type(sink).__name__,
            )

        yield

        logger.info("shutting_down_application")
        if cassandra_started:
            from comment_intake.core.database import (  # noqa: PLC0415
                shutdown_async_cassandra,
            )

            await shutdown_async_cassandra()

    return lifespan


def create_app(pipeline: IntakePipeline | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        pipeline: Pre-built pipeline to serve instead of the one built from
            settings at start-up.
    """
    settings = get_settings()

    # debug=False so Starlette never renders stack traces in responses
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Signed, spam-filtered comment intake API",
        debug=False,
        lifespan=_lifespan_for(pipeline),
        default_response_class=ORJSONResponse,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
        openapi_url="/openapi.json" if settings.is_development else None,
    )

    # Request context middleware (must be added first - outermost)
    app.add_middleware(
        RequestContextMiddleware,
        log_requests=settings.log_requests,
        exclude_paths=settings.log_exclude_paths,
        trusted_proxy_hops=settings.trusted_proxy_hops,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=settings.cors_allow_methods,
        allow_headers=settings.cors_allow_headers,
        max_age=settings.cors_max_age,
    )

    def _get_request_id_safe(request: Request) -> str | None:
        if hasattr(request.state, "request_id"):
            return request.state.request_id
        return get_request_id()

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> ORJSONResponse:
        """Handle HTTP exceptions with safe error messages."""
        logger.warning(
            "http_exception",
            status_code=exc.status_code,
            detail=str(exc.detail),
            path=request.url.path,
            method=request.method,
        )
        return ORJSONResponse(
            status_code=exc.status_code,
            content={
                "error": True,
                "message": str(exc.detail)
                if exc.status_code < status.HTTP_500_INTERNAL_SERVER_ERROR
                else "Internal server error",
                "status_code": exc.status_code,
                "request_id": _get_request_id_safe(request),
            },
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> ORJSONResponse:
        """Handle request validation errors."""
        logger.warning(
            "validation_error",
            errors=exc.errors(),
            path=request.url.path,
            method=request.method,
        )
        return ORJSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={
                "error": True,
                "message": "Validation error",
                "status_code": 422,
                "request_id": _get_request_id_safe(request),
                "details": [
                    {
                        "field": ".".join(str(loc) for loc in err.get("loc", [])),
                        "message": err.get("msg", "Invalid value"),
                    }
                    for err in exc.errors()
                ],
            },
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(
        request: Request, exc: Exception
    ) -> ORJSONResponse:
        """Catch-all handler for unhandled exceptions.

        Details are logged; the caller gets a generic message.
        """
        logger.exception(
            "unhandled_exception",
            error_type=type(exc).__name__,
            error_message=str(exc),
            path=request.url.path,
            method=request.method,
        )
        return ORJSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "error": True,
                "message": "An unexpected error occurred. Please try again later.",
                "status_code": 500,
                "request_id": _get_request_id_safe(request),
            },
        )

    app.include_router(health_router)
    app.include_router(comments_router)

    @app.get("/", include_in_schema=False)
    async def root() -> dict[str, str]:
        """Root endpoint."""
        return {
            "message": "Comment Intake API",
            "version": settings.app_version,
        }

    return app


app = create_app()
