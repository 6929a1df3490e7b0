"""Comment intake module.

Accepts signed comment submissions and runs them through:
- Signature verification (HS256 over the compact JSON payload)
- Payload validation (all violations reported together)
- Spam classification (Akismet or a static double)
- Commit to a record sink (memory, Cassandra or Firebase Storage)

Note: Router is not exported here to avoid circular imports.
Import directly from comment_intake.comments.router when needed.
"""

from .exceptions import (
    IntakeError,
    ProviderError,
    SpamError,
    StorageError,
    ValidationError,
    VerificationError,
)
from .handler import handle_event
from .models import AcceptedRecord, PipelineStage, RecordMetadata, Submission
from .schemas import CommentPayload
from .service import AcceptedComment, IntakePipeline
from .signature import canonical_payload_bytes, sign_payload, verify_signature
from .sinks import CassandraRecordSink, FirebaseRecordSink, InMemoryRecordSink, RecordSink
from .spam import AkismetSpamClassifier, SpamClassifier, SpamVerdict, StaticSpamClassifier
from .validators import validate_payload


__all__ = [
    "AcceptedComment",
    "AcceptedRecord",
    "AkismetSpamClassifier",
    "CassandraRecordSink",
    "CommentPayload",
    "FirebaseRecordSink",
    "InMemoryRecordSink",
    "IntakeError",
    "IntakePipeline",
    "PipelineStage",
    "ProviderError",
    "RecordMetadata",
    "RecordSink",
    "SpamClassifier",
    "SpamError",
    "SpamVerdict",
    "StaticSpamClassifier",
    "StorageError",
    "Submission",
    "ValidationError",
    "VerificationError",
    "canonical_payload_bytes",
    "handle_event",
    "sign_payload",
    "validate_payload",
    "verify_signature",
]
