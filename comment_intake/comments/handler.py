"""In-process entry point for comment submissions.

Events use the same shape the serverless handler received::

    {
        "fields": {"payload": {...}, "signature": "..."},
        "sourceIp": "64.46.22.7",
        "dryRun": false,
        "skipSpamCheck": false,
        "isTest": false,
        "quiet": false,
    }

Failures raise ``IntakeError``; ``error.envelope_json()`` gives the
stringified ``{error, data}`` envelope that legacy clients expect.
"""

from collections.abc import Mapping
from typing import Any

from .exceptions import GENERAL_ERROR_KEY, ValidationError
from .models import Submission
from .service import IntakePipeline
from .validators import MSG_INVALID_PAYLOAD


async def handle_event(
    event: Mapping[str, Any],
    pipeline: IntakePipeline,
) -> dict[str, str]:
    """Run a local invocation event through the pipeline.

    Returns:
        ``{"id": <comment id>}``

    Raises:
        IntakeError: Any pipeline failure
    """
    if not isinstance(event, Mapping) or not isinstance(event.get("fields"), Mapping):
        raise ValidationError({GENERAL_ERROR_KEY: MSG_INVALID_PAYLOAD})

    accepted = await pipeline.handle(Submission.from_event(event))
    return accepted.to_response()
