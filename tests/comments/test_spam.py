"""Tests for spam classification adapters."""

from urllib.parse import parse_qs

import httpx
import pytest

from comment_intake.comments.exceptions import ProviderError
from comment_intake.comments.schemas import CommentPayload
from comment_intake.comments.spam import (
    AKISMET_PRO_TIP_HEADER,
    AkismetSpamClassifier,
    StaticSpamClassifier,
)


@pytest.fixture
def comment(valid_payload: dict[str, str]) -> CommentPayload:
    """Validated comment built from the shared payload."""
    return CommentPayload.model_validate(valid_payload)


def make_classifier(handler, **kwargs) -> AkismetSpamClassifier:
    """Akismet classifier talking to a mock transport."""
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return AkismetSpamClassifier(
        api_key="akismet-key",
        blog_url="http://example.com/",
        client=client,
        **kwargs,
    )


class TestAkismetSpamClassifier:
    """Tests for the Akismet adapter."""

    @pytest.mark.asyncio
    async def test_sends_comment_check_form(self, comment: CommentPayload) -> None:
        """Should post the comment fields to the comment-check endpoint."""
        seen: dict[str, object] = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["form"] = parse_qs(request.content.decode())
            return httpx.Response(200, text="false")

        classifier = make_classifier(handler)
        verdict = await classifier.classify(
            comment, "64.46.22.7", comment.user_agent, is_test=True
        )

        assert verdict.is_spam is False
        assert seen["url"] == "https://akismet-key.rest.akismet.com/1.1/comment-check"
        form = seen["form"]
        assert form["blog"] == ["http://example.com/"]
        assert form["user_ip"] == ["64.46.22.7"]
        assert form["user_agent"] == [comment.user_agent]
        assert form["referrer"] == ["http://jimpick.com/"]
        assert form["permalink"] == ["http://example.com/blog/1/"]
        assert form["comment_type"] == ["comment"]
        assert form["comment_author"] == ["Bob Bob"]
        assert form["comment_author_email"] == ["bob@example.com"]
        assert form["comment_author_url"] == ["http://bob.example.com/"]
        assert form["comment_content"] == ["My comment"]
        assert form["is_test"] == ["1"]

    @pytest.mark.asyncio
    async def test_omits_is_test_for_live_traffic(self, comment: CommentPayload) -> None:
        """is_test should only be sent for test submissions."""
        forms: list[dict[str, list[str]]] = []

        def handler(request: httpx.Request) -> httpx.Response:
            forms.append(parse_qs(request.content.decode(), keep_blank_values=True))
            return httpx.Response(200, text="false")

        await make_classifier(handler).classify(comment, None, comment.user_agent)

        assert "is_test" not in forms[0]
        assert forms[0]["user_ip"] == [""]

    @pytest.mark.asyncio
    async def test_true_means_spam(self, comment: CommentPayload) -> None:
        """A 'true' body is a spam verdict carrying the pro tip."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                200, text="true", headers={AKISMET_PRO_TIP_HEADER: "discard"}
            )

        verdict = await make_classifier(handler).classify(
            comment, "1.2.3.4", comment.user_agent
        )

        assert verdict.is_spam is True
        assert verdict.reason == "discard"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("status_code", "body"),
        [(200, "invalid"), (200, ""), (500, "false"), (403, "true")],
    )
    async def test_unexpected_response_is_provider_error(
        self, comment: CommentPayload, status_code: int, body: str
    ) -> None:
        """Anything other than a 200 true/false must not be read as 'not spam'."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(status_code, text=body)

        with pytest.raises(ProviderError):
            await make_classifier(handler).classify(
                comment, "1.2.3.4", comment.user_agent
            )

    @pytest.mark.asyncio
    async def test_timeout_is_provider_error(self, comment: CommentPayload) -> None:
        """Transport timeouts should surface as ProviderError."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        with pytest.raises(ProviderError) as exc_info:
            await make_classifier(handler).classify(
                comment, "1.2.3.4", comment.user_agent
            )
        assert exc_info.value.retryable is True

    @pytest.mark.asyncio
    async def test_connection_error_is_provider_error(
        self, comment: CommentPayload
    ) -> None:
        """Connection failures should surface as ProviderError."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(ProviderError):
            await make_classifier(handler).classify(
                comment, "1.2.3.4", comment.user_agent
            )

    @pytest.mark.asyncio
    @pytest.mark.parametrize(("body", "expected"), [("valid", True), ("invalid", False)])
    async def test_verify_key(self, body: str, expected: bool) -> None:
        """Key verification should read the response body."""

        def handler(request: httpx.Request) -> httpx.Response:
            assert str(request.url) == "https://rest.akismet.com/1.1/verify-key"
            return httpx.Response(200, text=body)

        assert await make_classifier(handler).verify_key() is expected


class TestStaticSpamClassifier:
    """Tests for the in-process classifier."""

    @pytest.mark.asyncio
    async def test_flags_test_author(self, valid_payload: dict[str, str]) -> None:
        """Akismet's test author should be flagged by default."""
        comment = CommentPayload.model_validate(
            {**valid_payload, "authorName": "viagra-test-123"}
        )
        verdict = await StaticSpamClassifier().classify(comment, None, comment.user_agent)
        assert verdict.is_spam is True

    @pytest.mark.asyncio
    async def test_passes_other_authors(self, comment: CommentPayload) -> None:
        """Other authors should pass."""
        verdict = await StaticSpamClassifier().classify(
            comment, None, comment.user_agent
        )
        assert verdict.is_spam is False

    @pytest.mark.asyncio
    async def test_configured_error(self, comment: CommentPayload) -> None:
        """A configured error should be raised instead of a verdict."""
        classifier = StaticSpamClassifier(error=ProviderError())
        with pytest.raises(ProviderError):
            await classifier.classify(comment, None, comment.user_agent)
