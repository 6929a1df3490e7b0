"""Domain models for the comment intake pipeline.

- Submission: one incoming request (payload, detached signature, request flags)
- AcceptedRecord: the durable artifact handed to a record sink
- Cassandra table definition for the accepted-comment queue
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import TYPE_CHECKING, Any
from uuid import uuid4


if TYPE_CHECKING:
    from .schemas import CommentPayload


class PipelineStage(str, Enum):
    """Stages a submission moves through, in order. Any failure moves to FAILED."""

    RECEIVED = "received"
    VERIFIED = "verified"
    VALIDATED = "validated"
    SPAM_CHECKED = "spam_checked"
    COMMITTED = "committed"
    RESPONDED = "responded"
    FAILED = "failed"


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

# Accepted comments waiting for publication, one row per comment id
COMMENT_QUEUE_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.comment_queue (
    comment_id TEXT PRIMARY KEY,
    permalink TEXT,
    user_agent TEXT,
    referrer TEXT,
    comment_content TEXT,
    author_name TEXT,
    author_email TEXT,
    author_url TEXT,
    source_ip TEXT,
    created_at TIMESTAMP,
    payload_json TEXT
)
"""

# Lookup by page so a publisher can pick up new comments per permalink
COMMENT_QUEUE_PERMALINK_INDEX_CQL = """
CREATE INDEX IF NOT EXISTS comment_queue_permalink_idx
ON {keyspace}.comment_queue (permalink)
"""

COMMENT_QUEUE_TABLES_CQL = [
    COMMENT_QUEUE_TABLE_CQL,
    COMMENT_QUEUE_PERMALINK_INDEX_CQL,
]


def generate_comment_id() -> str:
    """Generate a new opaque comment identifier."""
    return str(uuid4())


def _flag(event: Mapping[str, Any], key: str) -> bool:
    # Only a JSON true switches a flag on; "false" or 1 do not
    return event.get(key) is True


@dataclass(frozen=True)
class Submission:
    """A single comment submission, immutable once received."""

    fields: Mapping[str, Any]
    source_ip: str | None = None
    dry_run: bool = False
    skip_spam_check: bool = False
    is_test: bool = False
    quiet: bool = False

    @property
    def payload(self) -> Any:
        """The unvalidated comment payload."""
        return self.fields.get("payload")

    @property
    def signature(self) -> Any:
        """The detached signature over the payload."""
        return self.fields.get("signature")

    @classmethod
    def from_event(cls, event: Mapping[str, Any]) -> "Submission":
        """Build a submission from a local invocation event.

        The event uses the wire names: ``fields``, ``sourceIp``, ``dryRun``,
        ``skipSpamCheck``, ``isTest`` and ``quiet``.
        """
        fields = event.get("fields")
        source_ip = event.get("sourceIp")
        return cls(
            fields=fields if isinstance(fields, Mapping) else {},
            source_ip=source_ip if isinstance(source_ip, str) and source_ip else None,
            dry_run=_flag(event, "dryRun"),
            skip_spam_check=_flag(event, "skipSpamCheck"),
            is_test=_flag(event, "isTest"),
            quiet=_flag(event, "quiet"),
        )


@dataclass(frozen=True)
class RecordMetadata:
    """Acceptance metadata stored alongside a comment."""

    source_ip: str | None
    accepted_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    is_test: bool = False


@dataclass
class AcceptedRecord:
    """Accepted comment as committed to a record sink."""

    id: str
    payload: "CommentPayload"
    source_ip: str | None
    created_at: datetime

    def to_document(self) -> dict[str, Any]:
        """JSON-ready representation written to object storage."""
        return {
            "id": self.id,
            "payload": self.payload.to_wire(),
            "timestamp": self.created_at.isoformat(),
            "sourceIp": self.source_ip,
        }


def create_accepted_record(
    payload: "CommentPayload",
    metadata: RecordMetadata,
) -> AcceptedRecord:
    """Create a new accepted record with a fresh identifier."""
    return AcceptedRecord(
        id=generate_comment_id(),
        payload=payload,
        source_ip=metadata.source_ip,
        created_at=metadata.accepted_at,
    )
