"""FastAPI dependencies for comment intake.

Provides:
- Pipeline lookup from app state
- Factories for the configured spam classifier and record sink
- Error to HTTP response mapping
"""

from typing import Annotated, Any

import structlog
from fastapi import Depends, HTTPException, Request, status
from fastapi.responses import ORJSONResponse

from comment_intake.config.settings import Settings

from .exceptions import IntakeError
from .service import IntakePipeline
from .sinks import CassandraRecordSink, FirebaseRecordSink, InMemoryRecordSink, RecordSink
from .spam import AkismetSpamClassifier, SpamClassifier, StaticSpamClassifier


logger = structlog.get_logger(__name__)


async def get_intake_pipeline(request: Request) -> IntakePipeline:
    """Get the intake pipeline from app state.

    Args:
        request: FastAPI request

    Returns:
        IntakePipeline instance
    """
    app_state = request.app.state
    pipeline = getattr(app_state, "intake_pipeline", None)
    if pipeline is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Comment intake is not available",
        )
    return pipeline


IntakePipelineDep = Annotated[IntakePipeline, Depends(get_intake_pipeline)]


def build_spam_classifier(settings: Settings) -> SpamClassifier:
    """Create the spam classifier for the current settings.

    Production requires Akismet; elsewhere the static classifier stands in
    when no key is configured.
    """
    if settings.akismet_configured:
        return AkismetSpamClassifier(
            api_key=settings.akismet_api_key or "",
            blog_url=settings.akismet_blog_url,
            timeout=settings.akismet_timeout,
        )
    if settings.is_production:
        msg = "AKISMET_API_KEY must be set in production"
        raise RuntimeError(msg)
    logger.warning("akismet_not_configured", fallback="static")
    return StaticSpamClassifier()


def build_record_sink(settings: Settings, cassandra_session: Any = None) -> RecordSink:
    """Create the record sink selected by ``sink_backend``.

    Production requires a durable backend; the in-memory sink loses every
    accepted comment on restart.
    """
    if settings.sink_backend == "memory" and settings.is_production:
        msg = "SINK_BACKEND must be cassandra or firebase in production"
        raise RuntimeError(msg)
    if settings.sink_backend == "cassandra":
        if cassandra_session is None:
            msg = "Cassandra sink selected but no session is available"
            raise RuntimeError(msg)
        return CassandraRecordSink(
            session=cassandra_session, keyspace=settings.cassandra_keyspace
        )
    if settings.sink_backend == "firebase":
        return FirebaseRecordSink(settings)
    return InMemoryRecordSink()


def build_intake_pipeline(
    settings: Settings,
    classifier: SpamClassifier,
    sink: RecordSink,
) -> IntakePipeline:
    """Create the pipeline with limits taken from settings."""
    return IntakePipeline(
        secret=settings.intake_api_key,
        classifier=classifier,
        sink=sink,
        spam_timeout=settings.spam_check_timeout,
        sink_timeout=settings.sink_timeout,
        max_comment_length=settings.comment_max_length,
    )


def intake_error_response(error: IntakeError) -> ORJSONResponse:
    """Convert an intake error to the wire response.

    Rejections (validation, verification, spam) are 400; provider and
    storage failures are 503 so clients can tell they may retry.
    """
    status_code = (
        status.HTTP_503_SERVICE_UNAVAILABLE
        if error.retryable
        else status.HTTP_400_BAD_REQUEST
    )
    return ORJSONResponse(
        status_code=status_code,
        content={"errorMessage": error.envelope_json()},
    )
