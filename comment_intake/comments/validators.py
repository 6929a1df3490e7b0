"""Validation of submitted comment payloads.

Provides:
- Email shape check
- Absolute http(s) URL check
- ``validate_payload``: checks every field in one pass and reports all
  violations together as a single ``ValidationError``
"""

import re
from collections.abc import Mapping
from typing import Any
from urllib.parse import urlsplit

from .exceptions import GENERAL_ERROR_KEY, ValidationError
from .schemas import CommentPayload


# ==============================================================================
# Constants for validation rules
# ==============================================================================

DEFAULT_MAX_COMMENT_LENGTH = 10000

MSG_INVALID_PAYLOAD = "Invalid payload"
MSG_MISSING_USER_AGENT = "Missing user agent"
MSG_REQUIRED = "Required"
MSG_NOT_A_STRING = "Must be a string"
MSG_INVALID_EMAIL = "Invalid email address"
MSG_INVALID_URL = "Invalid URL"
MSG_TOO_LONG = "Comment is too long"

URL_FIELDS = ("permalink", "referrer", "authorUrl")
OPTIONAL_FIELDS = ("referrer", "authorUrl")

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s.]{2,}$")
URL_SCHEMES = {"http", "https"}


def is_valid_email(email: str) -> bool:
    """Check an email address has a basic ``local@domain.tld`` shape.

    Examples:
        >>> is_valid_email("bob@example.com")
        True
        >>> is_valid_email("bob@localhost")
        False
    """
    return EMAIL_PATTERN.match(email) is not None


def is_valid_url(url: str) -> bool:
    """Check a URL is absolute, uses http(s) and names a host.

    Examples:
        >>> is_valid_url("http://example.com/blog/1/")
        True
        >>> is_valid_url("example.com/blog")
        False
    """
    if any(ch.isspace() for ch in url):
        return False
    try:
        parts = urlsplit(url)
        hostname = parts.hostname
    except ValueError:
        return False
    return parts.scheme.lower() in URL_SCHEMES and bool(hostname)


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _optional(value: Any) -> str | None:
    return None if _is_blank(value) else value


def _check_text(
    payload: Mapping[str, Any], name: str, errors: dict[str, str]
) -> None:
    value = payload.get(name)
    if _is_blank(value):
        errors[name] = MSG_REQUIRED
    elif not isinstance(value, str):
        errors[name] = MSG_NOT_A_STRING


def validate_payload(
    payload: Any,
    max_comment_length: int = DEFAULT_MAX_COMMENT_LENGTH,
) -> CommentPayload:
    """Validate a raw comment payload.

    Fields are checked before anything is reported, so one error carries all
    violations. Whole-payload messages go under ``_error``.

    A payload without a user agent was not sent by the comment widget. It is
    rejected with the user agent message plus the comment body check only,
    which keeps the envelope legacy clients expect for an empty payload::

        {"_error": "Missing user agent", "commentContent": "Required"}

    Author and URL fields are checked once a user agent is present.

    Args:
        payload: Decoded ``fields.payload`` value
        max_comment_length: Upper bound on ``commentContent`` length

    Returns:
        CommentPayload with the submitted values, unmodified

    Raises:
        ValidationError: With ``data`` mapping field names to messages
    """
    if not isinstance(payload, Mapping):
        raise ValidationError({GENERAL_ERROR_KEY: MSG_INVALID_PAYLOAD})

    errors: dict[str, str] = {}

    user_agent = payload.get("userAgent")
    if _is_blank(user_agent) or not isinstance(user_agent, str):
        errors[GENERAL_ERROR_KEY] = MSG_MISSING_USER_AGENT

    _check_text(payload, "commentContent", errors)
    content = payload.get("commentContent")
    if "commentContent" not in errors and len(content) > max_comment_length:
        errors["commentContent"] = MSG_TOO_LONG

    if GENERAL_ERROR_KEY in errors:
        raise ValidationError(errors)

    _check_text(payload, "authorName", errors)

    email = payload.get("authorEmail")
    if _is_blank(email):
        errors["authorEmail"] = MSG_REQUIRED
    elif not isinstance(email, str):
        errors["authorEmail"] = MSG_NOT_A_STRING
    elif not is_valid_email(email):
        errors["authorEmail"] = MSG_INVALID_EMAIL

    for name in URL_FIELDS:
        value = payload.get(name)
        if _is_blank(value):
            if name not in OPTIONAL_FIELDS:
                errors[name] = MSG_REQUIRED
        elif not isinstance(value, str):
            errors[name] = MSG_NOT_A_STRING
        elif not is_valid_url(value):
            errors[name] = MSG_INVALID_URL

    if errors:
        raise ValidationError(errors)

    return CommentPayload(
        permalink=payload["permalink"],
        user_agent=user_agent,
        referrer=_optional(payload.get("referrer")),
        comment_content=content,
        author_name=payload["authorName"],
        author_email=email,
        author_url=_optional(payload.get("authorUrl")),
    )
