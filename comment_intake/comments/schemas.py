"""Pydantic schemas for comment intake.

- CommentPayload: the validated business object carried in ``fields.payload``
- SubmitCommentRequest / CommentCreatedResponse / ErrorMessageResponse: HTTP shapes
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class CommentPayload(BaseModel):
    """A validated comment.

    Values are kept exactly as submitted: no trimming, no Unicode or URL
    normalization.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    permalink: str
    user_agent: str = Field(alias="userAgent")
    referrer: str | None = None
    comment_content: str = Field(alias="commentContent")
    author_name: str = Field(alias="authorName")
    author_email: str = Field(alias="authorEmail")
    author_url: str | None = Field(default=None, alias="authorUrl")

    def to_wire(self) -> dict[str, Any]:
        """Return the camelCase mapping used on the wire, without unset optionals."""
        return self.model_dump(by_alias=True, exclude_none=True)


class SubmitCommentRequest(BaseModel):
    """Body of ``POST /comments``.

    ``payload`` is left untyped; its shape is checked by the payload validator
    after the signature has been verified.
    """

    payload: Any = None
    signature: Any = None


class CommentCreatedResponse(BaseModel):
    """Response for an accepted comment."""

    id: str


class ErrorMessageResponse(BaseModel):
    """Response for a rejected comment.

    ``errorMessage`` holds the stringified ``{error, data}`` envelope.
    """

    errorMessage: str  # noqa: N815
