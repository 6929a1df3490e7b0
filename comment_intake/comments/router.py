"""Comment intake API endpoint.

``POST /comments`` with body ``{payload, signature}``:
- 201 ``{"id": ...}`` when the comment is accepted
- 400 ``{"errorMessage": "<envelope>"}`` when it is rejected
- 503 with the same body when the spam provider or storage is unavailable
"""

import orjson
import structlog
from fastapi import APIRouter, Request, Response, status

from comment_intake.config import get_settings
from comment_intake.core.middleware import get_client_ip

from .dependencies import IntakePipelineDep, intake_error_response
from .exceptions import GENERAL_ERROR_KEY, IntakeError, ValidationError
from .models import Submission
from .schemas import CommentCreatedResponse, ErrorMessageResponse, SubmitCommentRequest
from .validators import MSG_INVALID_PAYLOAD


logger = structlog.get_logger(__name__)


router = APIRouter(tags=["comments"])


async def _read_submission_body(request: Request) -> SubmitCommentRequest:
    """Decode the request body, keeping the payload's key order intact."""
    try:
        body = orjson.loads(await request.body())
    except orjson.JSONDecodeError as e:
        raise ValidationError({GENERAL_ERROR_KEY: MSG_INVALID_PAYLOAD}) from e
    if not isinstance(body, dict):
        raise ValidationError({GENERAL_ERROR_KEY: MSG_INVALID_PAYLOAD})
    return SubmitCommentRequest.model_validate(body)


@router.post(
    "/comments",
    response_model=CommentCreatedResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Submit comment",
    responses={
        status.HTTP_400_BAD_REQUEST: {"model": ErrorMessageResponse},
        status.HTTP_503_SERVICE_UNAVAILABLE: {"model": ErrorMessageResponse},
    },
)
async def submit_comment(
    request: Request,
    pipeline: IntakePipelineDep,
) -> CommentCreatedResponse | Response:
    """Verify, validate and spam-check a signed comment, then queue it.

    The signature must be the HS256 HMAC of the compact JSON serialization of
    ``payload`` under the site's API key.
    """
    try:
        data = await _read_submission_body(request)
        submission = Submission(
            fields={"payload": data.payload, "signature": data.signature},
            source_ip=get_client_ip(request, get_settings().trusted_proxy_hops),
        )
        accepted = await pipeline.handle(submission)
    except IntakeError as e:
        return intake_error_response(e)

    return CommentCreatedResponse(id=accepted.id)
