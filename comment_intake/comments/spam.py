"""Spam classification adapters.

The pipeline only depends on the ``SpamClassifier`` protocol. Two
implementations are provided:

- AkismetSpamClassifier: calls the Akismet REST API over httpx
- StaticSpamClassifier: in-process double for development and tests
"""

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Protocol

import httpx
import structlog

from .exceptions import ProviderError
from .schemas import CommentPayload


logger = structlog.get_logger(__name__)


# Akismet's documented author name that always triggers a spam verdict
AKISMET_TEST_SPAM_AUTHOR = "viagra-test-123"

AKISMET_API_VERSION = "1.1"
AKISMET_PRO_TIP_HEADER = "X-akismet-pro-tip"
AKISMET_DEBUG_HEADER = "X-akismet-debug-help"


@dataclass(frozen=True)
class SpamVerdict:
    """Outcome of a spam check."""

    is_spam: bool
    reason: str | None = None


NOT_SPAM = SpamVerdict(is_spam=False)


class SpamClassifier(Protocol):
    """Anything that can tell whether a comment is spam."""

    async def classify(
        self,
        comment: CommentPayload,
        source_ip: str | None,
        user_agent: str,
        *,
        is_test: bool = False,
    ) -> SpamVerdict:
        """Classify a comment.

        Raises:
            ProviderError: If no verdict could be obtained.
        """
        ...


class AkismetSpamClassifier:
    """Spam classifier backed by the Akismet comment-check API."""

    def __init__(
        self,
        api_key: str,
        blog_url: str,
        timeout: float = 5.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the classifier.

        Args:
            api_key: Akismet API key
            blog_url: Blog front page URL registered with the key
            timeout: Per-request timeout in seconds
            client: Optional shared client (tests inject a mock transport here)
        """
        self.api_key = api_key
        self.blog_url = blog_url
        self.timeout = timeout
        self._client = client

    @property
    def comment_check_url(self) -> str:
        """Endpoint for comment-check calls."""
        return f"https://{self.api_key}.rest.akismet.com/{AKISMET_API_VERSION}/comment-check"

    @property
    def verify_key_url(self) -> str:
        """Endpoint for key verification."""
        return f"https://rest.akismet.com/{AKISMET_API_VERSION}/verify-key"

    def build_form(
        self,
        comment: CommentPayload,
        source_ip: str | None,
        user_agent: str,
        is_test: bool,
    ) -> dict[str, str]:
        """Build the comment-check form body."""
        form = {
            "blog": self.blog_url,
            "user_ip": source_ip or "",
            "user_agent": user_agent,
            "permalink": comment.permalink,
            "comment_type": "comment",
            "comment_author": comment.author_name,
            "comment_author_email": comment.author_email,
            "comment_content": comment.comment_content,
            "blog_charset": "UTF-8",
        }
        if comment.referrer:
            form["referrer"] = comment.referrer
        if comment.author_url:
            form["comment_author_url"] = comment.author_url
        if is_test:
            form["is_test"] = "1"
        return form

    async def _post(self, url: str, data: dict[str, str]) -> httpx.Response:
        try:
            if self._client is not None:
                return await self._client.post(url, data=data, timeout=self.timeout)
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                return await client.post(url, data=data)
        except httpx.TimeoutException as e:
            logger.error("akismet_timeout", error=str(e))
            raise ProviderError("Spam check timed out.") from e
        except httpx.RequestError as e:
            logger.error("akismet_request_error", error=str(e))
            raise ProviderError from e

    async def classify(
        self,
        comment: CommentPayload,
        source_ip: str | None,
        user_agent: str,
        *,
        is_test: bool = False,
    ) -> SpamVerdict:
        """Ask Akismet whether a comment is spam.

        Raises:
            ProviderError: On transport errors, non-200 responses or any body
                other than ``true``/``false``.
        """
        response = await self._post(
            self.comment_check_url,
            self.build_form(comment, source_ip, user_agent, is_test),
        )

        if response.status_code != httpx.codes.OK:
            logger.error(
                "akismet_request_failed",
                status_code=response.status_code,
                response_text=response.text[:500],
            )
            raise ProviderError

        body = response.text.strip()
        if body == "true":
            return SpamVerdict(
                is_spam=True,
                reason=response.headers.get(AKISMET_PRO_TIP_HEADER),
            )
        if body == "false":
            return NOT_SPAM

        logger.error(
            "akismet_unexpected_response",
            body=body[:200],
            debug_help=response.headers.get(AKISMET_DEBUG_HEADER),
        )
        raise ProviderError

    async def verify_key(self) -> bool:
        """Check the API key is valid for the configured blog."""
        response = await self._post(
            self.verify_key_url, {"key": self.api_key, "blog": self.blog_url}
        )
        return response.status_code == httpx.codes.OK and response.text.strip() == "valid"


class StaticSpamClassifier:
    """In-process classifier with a fixed rule set.

    Flags comments whose author name is in ``spam_authors``. Mirrors the
    Akismet test author so local runs behave like the real provider.
    """

    def __init__(
        self,
        spam_authors: Iterable[str] = (AKISMET_TEST_SPAM_AUTHOR,),
        *,
        error: ProviderError | None = None,
    ) -> None:
        self.spam_authors = frozenset(spam_authors)
        self.error = error

    async def classify(
        self,
        comment: CommentPayload,
        source_ip: str | None,
        user_agent: str,
        *,
        is_test: bool = False,
    ) -> SpamVerdict:
        """Classify by author name."""
        if self.error is not None:
            raise self.error
        if comment.author_name in self.spam_authors:
            return SpamVerdict(is_spam=True, reason="static_author_rule")
        return NOT_SPAM
