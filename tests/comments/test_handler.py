"""Tests for the in-process event handler."""

import pytest

from comment_intake.comments.exceptions import (
    SpamError,
    ValidationError,
    VerificationError,
)
from comment_intake.comments.handler import handle_event
from comment_intake.comments.service import IntakePipeline
from comment_intake.comments.sinks import InMemoryRecordSink
from tests.conftest import make_event


@pytest.mark.asyncio
async def test_valid_event_returns_id(
    pipeline: IntakePipeline,
    sink: InMemoryRecordSink,
    valid_payload: dict[str, str],
) -> None:
    """A valid event should return the new comment id."""
    event = make_event(valid_payload, sourceIp="64.46.22.7")

    result = await handle_event(event, pipeline)

    assert list(result) == ["id"]
    record = sink.get(result["id"])
    assert record is not None
    assert record.source_ip == "64.46.22.7"


@pytest.mark.asyncio
async def test_dry_run_event(
    pipeline: IntakePipeline,
    sink: InMemoryRecordSink,
    valid_payload: dict[str, str],
) -> None:
    """dryRun should return an id without storing anything."""
    result = await handle_event(make_event(valid_payload, dryRun=True), pipeline)

    assert result["id"]
    assert len(sink) == 0


@pytest.mark.asyncio
async def test_spam_event_envelope(
    pipeline: IntakePipeline,
    spam_payload: dict[str, str],
) -> None:
    """Spam rejections carry the legacy envelope."""
    with pytest.raises(SpamError) as exc_info:
        await handle_event(make_event(spam_payload, isTest=True), pipeline)

    assert exc_info.value.envelope_json() == (
        '{"error":"SpamError",'
        '"data":{"_error":"Our automated filter thinks this comment is spam."}}'
    )


@pytest.mark.asyncio
async def test_bad_key_event_envelope(
    pipeline: IntakePipeline,
    valid_payload: dict[str, str],
) -> None:
    """Signatures under another key carry the verification envelope."""
    with pytest.raises(VerificationError) as exc_info:
        await handle_event(make_event(valid_payload, "bad api key"), pipeline)

    assert exc_info.value.envelope_json() == (
        '{"error":"VerificationError","data":{"_error":"Checksum verification failed."}}'
    )


@pytest.mark.asyncio
async def test_skip_spam_check_event(
    pipeline: IntakePipeline,
    sink: InMemoryRecordSink,
    spam_payload: dict[str, str],
) -> None:
    """skipSpamCheck lets the spam test author through."""
    result = await handle_event(
        make_event(spam_payload, skipSpamCheck=True, quiet=True), pipeline
    )

    assert sink.get(result["id"]) is not None


@pytest.mark.asyncio
@pytest.mark.parametrize("event", [{}, {"fields": None}, {"fields": "payload"}])
async def test_event_without_fields(
    pipeline: IntakePipeline, event: dict[str, object]
) -> None:
    """Events without a fields object are invalid payloads."""
    with pytest.raises(ValidationError) as exc_info:
        await handle_event(event, pipeline)

    assert exc_info.value.envelope_json() == (
        '{"error":"ValidationError","data":{"_error":"Invalid payload"}}'
    )


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "payload",
    [{1: "x"}, {"commentContent": "\ud800"}],
    ids=["non_string_key", "lone_surrogate"],
)
async def test_unserializable_payload_event_envelope(
    pipeline: IntakePipeline, payload: dict
) -> None:
    """Payloads with no JSON form fail verification, not with a TypeError."""
    event = {"fields": {"payload": payload, "signature": "abc"}}

    with pytest.raises(VerificationError) as exc_info:
        await handle_event(event, pipeline)

    assert exc_info.value.envelope_json() == (
        '{"error":"VerificationError","data":{"_error":"Checksum verification failed."}}'
    )


@pytest.mark.asyncio
@pytest.mark.parametrize("flag", ["false", "true", 1, "yes"])
async def test_only_boolean_true_enables_dry_run(
    pipeline: IntakePipeline,
    sink: InMemoryRecordSink,
    valid_payload: dict[str, str],
    flag: object,
) -> None:
    """Non-boolean flag values leave the flag off."""
    result = await handle_event(make_event(valid_payload, dryRun=flag), pipeline)

    assert sink.get(result["id"]) is not None


@pytest.mark.asyncio
async def test_string_flag_does_not_skip_spam_check(
    pipeline: IntakePipeline,
    spam_payload: dict[str, str],
) -> None:
    """skipSpamCheck must be a real boolean to bypass the classifier."""
    with pytest.raises(SpamError):
        await handle_event(make_event(spam_payload, skipSpamCheck="true"), pipeline)
