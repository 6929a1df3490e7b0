"""Shared fixtures for comment intake tests."""

import os


os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from collections.abc import Iterator  # noqa: E402
from typing import Any  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from comment_intake.comments.service import IntakePipeline  # noqa: E402
from comment_intake.comments.signature import (  # noqa: E402
    canonical_payload_bytes,
    sign_payload,
)
from comment_intake.comments.sinks import InMemoryRecordSink  # noqa: E402
from comment_intake.comments.spam import (  # noqa: E402
    SpamVerdict,
    StaticSpamClassifier,
)
from comment_intake.main import create_app  # noqa: E402


API_KEY = "test-api-key-0123456789"

HANGUL_COMMENT = (
    "비빔밥(乒乓飯)은 대표적인 한국 요리의 하나로, 사발 그릇에 밥과 여러 가지 나물, "
    "고기, 계란, 고추장 등을 넣고 섞어서 먹는 음식이다."
)


class CountingSpamClassifier(StaticSpamClassifier):
    """Static classifier that records how often it was consulted."""

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.calls = 0

    async def classify(self, *args: Any, **kwargs: Any) -> SpamVerdict:
        self.calls += 1
        return await super().classify(*args, **kwargs)


def sign(payload: Any, secret: str = API_KEY) -> str:
    """Sign a payload the way the comment widget does."""
    return sign_payload(canonical_payload_bytes(payload), secret)


def make_event(payload: Any, secret: str = API_KEY, **flags: Any) -> dict[str, Any]:
    """Build a local invocation event for a payload."""
    return {
        "fields": {"payload": payload, "signature": sign(payload, secret)},
        **flags,
    }


@pytest.fixture
def api_key() -> str:
    """Shared secret the pipeline is configured with."""
    return API_KEY


@pytest.fixture
def valid_payload() -> dict[str, str]:
    """A complete, well-formed comment payload."""
    return {
        "permalink": "http://example.com/blog/1/",
        "userAgent": "testhost/1.0 | node-akismet/0.0.1",
        "referrer": "http://jimpick.com/",
        "commentContent": "My comment",
        "authorName": "Bob Bob",
        "authorEmail": "bob@example.com",
        "authorUrl": "http://bob.example.com/",
    }


@pytest.fixture
def spam_payload(valid_payload: dict[str, str]) -> dict[str, str]:
    """A payload the spam classifier flags by author name."""
    return {**valid_payload, "authorName": "viagra-test-123"}


@pytest.fixture
def sink() -> InMemoryRecordSink:
    """In-memory record sink."""
    return InMemoryRecordSink()


@pytest.fixture
def classifier() -> CountingSpamClassifier:
    """Counting static classifier flagging Akismet's test author."""
    return CountingSpamClassifier()


@pytest.fixture
def pipeline(
    api_key: str, classifier: CountingSpamClassifier, sink: InMemoryRecordSink
) -> IntakePipeline:
    """Pipeline wired to in-process doubles."""
    return IntakePipeline(
        secret=api_key,
        classifier=classifier,
        sink=sink,
        spam_timeout=1.0,
        sink_timeout=1.0,
    )


@pytest.fixture
def client(pipeline: IntakePipeline) -> Iterator[TestClient]:
    """Test client serving the pipeline fixture."""
    with TestClient(create_app(pipeline)) as test_client:
        yield test_client
