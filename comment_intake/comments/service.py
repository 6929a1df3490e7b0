"""Comment intake pipeline.

A submission goes through four stages in a fixed order:

1. Signature verification (reject forgeries before doing any other work)
2. Payload validation (reject malformed input before a metered spam check)
3. Spam classification (skipped when ``skip_spam_check`` is set)
4. Commit to the record sink (skipped when ``dry_run`` is set)

The first failing stage raises its ``IntakeError``; later stages never run.
"""

import asyncio
from collections.abc import Awaitable
from dataclasses import dataclass
from typing import TypeVar

import orjson
import structlog

from .exceptions import (
    IntakeError,
    ProviderError,
    SpamError,
    StorageError,
    VerificationError,
)
from .models import PipelineStage, RecordMetadata, Submission, generate_comment_id
from .schemas import CommentPayload
from .signature import canonical_payload_bytes, verify_signature
from .sinks import RecordSink
from .spam import SpamClassifier, SpamVerdict
from .validators import DEFAULT_MAX_COMMENT_LENGTH, validate_payload


logger = structlog.get_logger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class AcceptedComment:
    """Result of a successful submission."""

    id: str
    committed: bool
    stage: PipelineStage = PipelineStage.RESPONDED

    def to_response(self) -> dict[str, str]:
        """Response body for the caller."""
        return {"id": self.id}


class IntakePipeline:
    """Orchestrates verification, validation, spam check and commit.

    Holds no per-submission state, so one instance serves concurrent
    submissions.
    """

    DEFAULT_SPAM_TIMEOUT = 10.0
    DEFAULT_SINK_TIMEOUT = 10.0

    def __init__(
        self,
        secret: str,
        classifier: SpamClassifier,
        sink: RecordSink,
        *,
        spam_timeout: float = DEFAULT_SPAM_TIMEOUT,
        sink_timeout: float = DEFAULT_SINK_TIMEOUT,
        max_comment_length: int = DEFAULT_MAX_COMMENT_LENGTH,
    ) -> None:
        """Initialize the pipeline.

        Args:
            secret: Shared API key the payload signatures are checked against
            classifier: Spam classification provider
            sink: Record sink for accepted comments
            spam_timeout: Upper bound on one spam check, in seconds
            sink_timeout: Upper bound on one commit, in seconds
            max_comment_length: Upper bound on comment length, in characters
        """
        self._secret = secret
        self.classifier = classifier
        self.sink = sink
        self.spam_timeout = spam_timeout
        self.sink_timeout = sink_timeout
        self.max_comment_length = max_comment_length

    async def handle(self, submission: Submission) -> AcceptedComment:
        """Run a submission through every stage.

        Raises:
            VerificationError: Signature does not match payload and secret
            ValidationError: Payload is missing fields or malformed
            SpamError: Classifier flagged the comment
            ProviderError: Classifier failed or timed out
            StorageError: Sink failed or timed out
        """
        log = logger.bind(
            source_ip=submission.source_ip,
            dry_run=submission.dry_run,
            is_test=submission.is_test,
        )
        trace = log.debug if submission.quiet else log.info
        stage = PipelineStage.RECEIVED

        try:
            self.verify(submission)
            stage = PipelineStage.VERIFIED
            trace("comment_verified")

            comment = validate_payload(submission.payload, self.max_comment_length)
            stage = PipelineStage.VALIDATED
            trace("comment_validated", permalink=comment.permalink)

            if submission.skip_spam_check:
                trace("spam_check_skipped")
            else:
                verdict = await self.classify(comment, submission)
                if verdict.is_spam:
                    raise SpamError
            stage = PipelineStage.SPAM_CHECKED

            if submission.dry_run:
                comment_id = generate_comment_id()
                trace("commit_skipped_dry_run", comment_id=comment_id)
                return AcceptedComment(id=comment_id, committed=False)

            comment_id = await self.commit(comment, submission)
            stage = PipelineStage.COMMITTED
            trace("comment_accepted", comment_id=comment_id)
            return AcceptedComment(id=comment_id, committed=True)

        except IntakeError as e:
            e.stage = PipelineStage.FAILED
            e.failed_after = stage
            log_method = log.error if e.retryable else log.warning
            log_method(
                "comment_rejected",
                error_kind=e.kind,
                stage=e.stage.value,
                failed_after=stage.value,
                data=e.data,
            )
            raise

    def verify(self, submission: Submission) -> None:
        """Check the submission's signature against its payload.

        A payload that has no JSON serialization (non-string keys, lone
        surrogates) cannot have been signed by a client.
        """
        try:
            raw_payload = canonical_payload_bytes(submission.payload)
        except orjson.JSONEncodeError as e:
            raise VerificationError from e
        verify_signature(raw_payload, submission.signature, self._secret)

    async def classify(
        self, comment: CommentPayload, submission: Submission
    ) -> SpamVerdict:
        """Ask the classifier for a verdict within the spam timeout."""
        return await self._bounded(
            self.classifier.classify(
                comment,
                submission.source_ip,
                comment.user_agent,
                is_test=submission.is_test,
            ),
            self.spam_timeout,
            ProviderError("Spam check timed out."),
        )

    async def commit(self, comment: CommentPayload, submission: Submission) -> str:
        """Commit an accepted comment within the sink timeout."""
        metadata = RecordMetadata(
            source_ip=submission.source_ip,
            is_test=submission.is_test,
        )
        return await self._bounded(
            self.sink.commit(comment, metadata),
            self.sink_timeout,
            StorageError("Comment storage timed out."),
        )

    @staticmethod
    async def _bounded(
        call: Awaitable[T], timeout: float, on_timeout: IntakeError
    ) -> T:
        try:
            return await asyncio.wait_for(call, timeout=timeout)
        except TimeoutError as e:
            raise on_timeout from e

