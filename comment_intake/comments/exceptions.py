"""Error kinds raised by the comment intake pipeline.

Every failure surfaces to the caller as an envelope ``{"error": kind, "data": {...}}``.
``data`` maps field names to messages; whole-payload messages live under ``_error``.
"""

from typing import TYPE_CHECKING, Any

import orjson


if TYPE_CHECKING:
    from .models import PipelineStage


GENERAL_ERROR_KEY = "_error"


class IntakeError(Exception):
    """Base intake error."""

    kind = "IntakeError"
    retryable = False

    def __init__(self, message: str, data: dict[str, str] | None = None):
        self.message = message
        self.data = data if data is not None else {GENERAL_ERROR_KEY: message}
        # Set by the pipeline: FAILED and the last stage passed before it
        self.stage: "PipelineStage | None" = None
        self.failed_after: "PipelineStage | None" = None
        super().__init__(message)

    @property
    def code(self) -> str:
        """Error kind, under the name the HTTP layer expects."""
        return self.kind

    def to_envelope(self) -> dict[str, Any]:
        """Return the ``{error, data}`` envelope."""
        return {"error": self.kind, "data": dict(self.data)}

    def envelope_json(self) -> str:
        """Serialize the envelope the same way ``JSON.stringify`` does."""
        return orjson.dumps(self.to_envelope()).decode("utf-8")


class ValidationError(IntakeError):
    """One or more payload fields are missing or malformed."""

    kind = "ValidationError"

    def __init__(self, data: dict[str, str]):
        message = data.get(GENERAL_ERROR_KEY) or "Invalid comment payload"
        super().__init__(message, data)


class VerificationError(IntakeError):
    """The payload signature does not match payload and shared secret."""

    kind = "VerificationError"

    def __init__(self, message: str = "Checksum verification failed."):
        super().__init__(message)


class SpamError(IntakeError):
    """The spam classifier flagged the comment."""

    kind = "SpamError"

    def __init__(self, message: str = "Our automated filter thinks this comment is spam."):
        super().__init__(message)


class ProviderError(IntakeError):
    """The spam classification provider could not give a verdict."""

    kind = "ProviderError"
    retryable = True

    def __init__(self, message: str = "Spam check is temporarily unavailable."):
        super().__init__(message)


class StorageError(IntakeError):
    """The record sink failed to commit an accepted comment."""

    kind = "StorageError"
    retryable = True

    def __init__(self, message: str = "Comment could not be stored."):
        super().__init__(message)


__all__ = [
    "GENERAL_ERROR_KEY",
    "IntakeError",
    "ProviderError",
    "SpamError",
    "StorageError",
    "ValidationError",
    "VerificationError",
]
