"""Record sinks for accepted comments.

The pipeline only depends on the ``RecordSink`` protocol. A sink assigns the
comment id and makes the record visible to downstream readers once ``commit``
returns. Sinks do not de-duplicate: retrying a commit produces a second record.

- InMemoryRecordSink: process-local dict (development, tests)
- CassandraRecordSink: ``comment_queue`` table via cassandra-asyncio-driver
- FirebaseRecordSink: one JSON object per comment in Firebase Storage
"""

import asyncio
from pathlib import Path
from typing import TYPE_CHECKING, Any, Protocol

import orjson
import structlog

from comment_intake.config.settings import Settings

from .exceptions import StorageError
from .models import AcceptedRecord, RecordMetadata, create_accepted_record
from .schemas import CommentPayload


if TYPE_CHECKING:
    from google.cloud.storage import Bucket


logger = structlog.get_logger(__name__)


class RecordSink(Protocol):
    """Anything that can durably store an accepted comment."""

    async def commit(self, comment: CommentPayload, metadata: RecordMetadata) -> str:
        """Store a comment and return its generated id.

        Raises:
            StorageError: If the record could not be stored.
        """
        ...


class InMemoryRecordSink:
    """Dict-backed sink. Records live as long as the process."""

    def __init__(self) -> None:
        self.records: dict[str, AcceptedRecord] = {}

    async def commit(self, comment: CommentPayload, metadata: RecordMetadata) -> str:
        """Store the record in memory."""
        record = create_accepted_record(comment, metadata)
        self.records[record.id] = record
        return record.id

    def get(self, comment_id: str) -> AcceptedRecord | None:
        """Return a committed record, if any."""
        return self.records.get(comment_id)

    def __len__(self) -> int:
        return len(self.records)


class CassandraRecordSink:
    """Sink writing to the ``comment_queue`` table."""

    def __init__(self, session: Any, keyspace: str) -> None:
        """Initialize with a Cassandra session supporting ``aexecute``."""
        self.session = session
        self.keyspace = keyspace
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements for efficient queries."""
        self._insert_comment = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.comment_queue
            (comment_id, permalink, user_agent, referrer, comment_content,
             author_name, author_email, author_url, source_ip, created_at, payload_json)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """)

    async def commit(self, comment: CommentPayload, metadata: RecordMetadata) -> str:
        """Insert the record into Cassandra."""
        record = create_accepted_record(comment, metadata)
        params = (
            record.id,
            comment.permalink,
            comment.user_agent,
            comment.referrer,
            comment.comment_content,
            comment.author_name,
            comment.author_email,
            comment.author_url,
            record.source_ip,
            record.created_at,
            orjson.dumps(comment.to_wire()).decode("utf-8"),
        )
        try:
            await self.session.aexecute(self._insert_comment, params)
        except Exception as e:
            logger.exception("cassandra_commit_failed", comment_id=record.id)
            raise StorageError from e

        logger.info("comment_committed", backend="cassandra", comment_id=record.id)
        return record.id


# Firebase app singleton
_firebase_app = None


def _init_firebase_bucket(settings: Settings) -> "Bucket":
    """Initialize Firebase Admin SDK and get the storage bucket.

    Raises:
        StorageError: If Firebase is not configured or fails to initialize.
    """
    global _firebase_app  # noqa: PLW0603

    if not settings.firebase_configured:
        raise StorageError("Firebase Storage is not configured.")

    # Lazy import to avoid loading Firebase SDK unless needed
    import firebase_admin  # noqa: PLC0415
    from firebase_admin import credentials, storage  # noqa: PLC0415

    creds_path = settings.firebase_credentials_path
    if not creds_path or not Path(creds_path).exists():
        raise StorageError(f"Firebase credentials file not found: {creds_path}")

    try:
        if _firebase_app is None:
            cred = credentials.Certificate(creds_path)
            _firebase_app = firebase_admin.initialize_app(
                cred,
                {
                    "storageBucket": settings.firebase_storage_bucket,
                    "projectId": settings.firebase_project_id,
                },
            )
            logger.info(
                "firebase_initialized",
                project_id=settings.firebase_project_id,
                bucket=settings.firebase_storage_bucket,
            )
        return storage.bucket()
    except Exception as e:
        logger.exception("firebase_init_failed", error=str(e))
        raise StorageError(f"Failed to initialize Firebase: {e}") from e


class FirebaseRecordSink:
    """Sink writing ``{prefix}/{id}.json`` objects to Firebase Storage."""

    def __init__(
        self,
        settings: Settings,
        bucket: "Bucket | None" = None,
    ) -> None:
        self.settings = settings
        self.prefix = settings.firebase_comments_prefix.strip("/")
        self._bucket = bucket

    def _get_bucket(self) -> "Bucket":
        """Get Firebase Storage bucket (lazy initialization)."""
        if self._bucket is None:
            self._bucket = _init_firebase_bucket(self.settings)
        return self._bucket

    def build_storage_path(self, comment_id: str) -> str:
        """Object path for a comment."""
        return f"{self.prefix}/{comment_id}.json"

    def _upload(self, storage_path: str, document: bytes) -> None:
        blob = self._get_bucket().blob(storage_path)
        blob.upload_from_string(document, content_type="application/json")

    async def commit(self, comment: CommentPayload, metadata: RecordMetadata) -> str:
        """Upload the record as a JSON object."""
        record = create_accepted_record(comment, metadata)
        storage_path = self.build_storage_path(record.id)
        document = orjson.dumps(record.to_document())

        try:
            # google-cloud-storage is blocking
            await asyncio.to_thread(self._upload, storage_path, document)
        except StorageError:
            raise
        except Exception as e:
            logger.exception("firebase_commit_failed", storage_path=storage_path)
            raise StorageError from e

        logger.info(
            "comment_committed",
            backend="firebase",
            comment_id=record.id,
            storage_path=storage_path,
        )
        return record.id
