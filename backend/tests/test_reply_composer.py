"""
Unit tests for threaded reply composition.
"""

import pytest

from links_connector.models.inbound_email import InboundEmail
from links_connector.services.file_generator import FileGenerationError
from links_connector.services.post_parser import PostParseError
from links_connector.services.publisher import PublishError
from links_connector.services.reply_composer import (
    GENERIC_ERROR_MESSAGE,
    PARSE_ERROR_MESSAGE,
    PUBLISH_ERROR_MESSAGE,
    SUBJECT_ERROR_MESSAGE,
    VALIDATION_ERROR_MESSAGE,
    compose_error_reply,
    compose_success_reply,
    describe_error,
    reply_subject,
)

PR_URL = "https://github.com/owner/site/pull/7"


def _make_email(**overrides) -> InboundEmail:
    fields = {
        "sender_email": "me@example.com",
        "recipient_email": "links@rahulmenon.dev",
        "subject": "My Cool Find",
        "text": "url https://example.com/a\ntags tech\nbody\nx",
        "message_id": "<abc@example.com>",
        "references": "<r1@example.com>",
    }
    fields.update(overrides)
    return InboundEmail(**fields)


class TestReplySubject:
    def test_adds_prefix(self):
        assert reply_subject("My Cool Find") == "Re: My Cool Find"

    @pytest.mark.parametrize("subject", ["Re: hi", "RE: hi", "re:hi"])
    def test_does_not_double_prefix(self, subject):
        assert reply_subject(subject) == subject

    def test_missing_subject(self):
        assert reply_subject(None) == "Re: No Subject"
        assert reply_subject("") == "Re: No Subject"


class TestComposeSuccessReply:
    def test_threads_reply(self):
        reply = compose_success_reply(_make_email(), PR_URL)

        assert reply.subject == "Re: My Cool Find"
        assert reply.in_reply_to == "<abc@example.com>"
        assert reply.references == "<r1@example.com> <abc@example.com>"
        assert reply.to_address == "me@example.com"

    def test_embeds_pull_request_url(self):
        reply = compose_success_reply(_make_email(), PR_URL)
        assert PR_URL in reply.text

    def test_references_without_prior_chain(self):
        reply = compose_success_reply(_make_email(references=None), PR_URL)
        assert reply.references == "<abc@example.com>"

    def test_no_threading_headers_when_message_id_missing(self):
        reply = compose_success_reply(
            _make_email(references=None, message_id=None), PR_URL
        )
        assert reply.in_reply_to is None
        assert reply.references is None

    def test_uses_configured_sender(self):
        reply = compose_success_reply(
            _make_email(), PR_URL, from_address="bot@example.com", from_name="Bot"
        )
        assert reply.sender == "Bot <bot@example.com>"

    def test_rejects_unsafe_url(self):
        with pytest.raises(ValueError):
            compose_success_reply(_make_email(), "http://localhost/pr/1")


class TestComposeErrorReply:
    def test_never_embeds_exception_text(self):
        exc = PublishError("GitHub returned 422: token ghp_secret leaked")
        reply = compose_error_reply(_make_email(), exc)

        assert "ghp_secret" not in reply.text
        assert "422" not in reply.text
        assert PUBLISH_ERROR_MESSAGE in reply.text

    def test_keeps_threading(self):
        reply = compose_error_reply(_make_email(), PostParseError("x"))
        assert reply.subject == "Re: My Cool Find"
        assert reply.in_reply_to == "<abc@example.com>"

    @pytest.mark.parametrize(
        "exc, expected",
        [
            (PostParseError("x"), PARSE_ERROR_MESSAGE),
            (FileGenerationError("x"), SUBJECT_ERROR_MESSAGE),
            (PublishError("x"), PUBLISH_ERROR_MESSAGE),
            (ValueError("x"), VALIDATION_ERROR_MESSAGE),
            (RuntimeError("x"), GENERIC_ERROR_MESSAGE),
        ],
    )
    def test_describe_error_categories(self, exc, expected):
        assert describe_error(exc) == expected


class TestThreadingHeaders:
    def test_includes_in_reply_to_and_references(self):
        reply = compose_success_reply(_make_email(), PR_URL)

        assert reply.threading_headers() == {
            "In-Reply-To": "<abc@example.com>",
            "References": "<r1@example.com> <abc@example.com>",
        }
        assert reply.sender == "links-email-connector <links@rahulmenon.dev>"

    def test_omits_absent_threading_headers(self):
        email = _make_email(references=None, message_id=None)
        assert compose_success_reply(email, PR_URL).threading_headers() == {}
