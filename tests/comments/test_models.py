"""Tests for submission models."""

import pytest

from comment_intake.comments.models import Submission


class TestSubmissionFromEvent:
    """Tests for Submission.from_event."""

    def test_reads_wire_names(self) -> None:
        """camelCase event keys map to submission flags."""
        submission = Submission.from_event(
            {
                "fields": {"payload": {"a": "b"}, "signature": "sig"},
                "sourceIp": "64.46.22.7",
                "dryRun": True,
                "skipSpamCheck": True,
                "isTest": True,
                "quiet": True,
            }
        )

        assert submission.payload == {"a": "b"}
        assert submission.signature == "sig"
        assert submission.source_ip == "64.46.22.7"
        assert submission.dry_run is True
        assert submission.skip_spam_check is True
        assert submission.is_test is True
        assert submission.quiet is True

    @pytest.mark.parametrize("value", ["false", "true", 1, "1", [True], None])
    def test_non_boolean_flags_are_off(self, value: object) -> None:
        """Only a real True switches a flag on."""
        submission = Submission.from_event(
            {
                "fields": {},
                "dryRun": value,
                "skipSpamCheck": value,
                "isTest": value,
                "quiet": value,
            }
        )

        assert submission.dry_run is False
        assert submission.skip_spam_check is False
        assert submission.is_test is False
        assert submission.quiet is False

    def test_defaults(self) -> None:
        """Missing flags and source IP default to off and None."""
        submission = Submission.from_event({"fields": {}, "sourceIp": ""})

        assert submission.source_ip is None
        assert submission.dry_run is False
        assert submission.payload is None
