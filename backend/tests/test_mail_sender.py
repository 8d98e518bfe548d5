"""
Outbound reply delivery tests.

Provider APIs are replaced with httpx.MockTransport.
"""

import json

import httpx
import pytest

from links_connector.config import Settings
from links_connector.models.reply import ReplyMessage
from links_connector.services.mail_sender import (
    POSTMARK_API_URL,
    RESEND_API_URL,
    MailSendError,
    send_reply,
)


def _make_settings(**overrides) -> Settings:
    fields = {
        "allowed_sender": "me@example.com",
        "github_owner": "owner",
        "github_repo": "site",
        "github_token": "test-token",
        "resend_api_key": "re_test",
        "postmark_server_token": "pm_test",
    }
    fields.update(overrides)
    return Settings(**fields)


def _make_reply(**overrides) -> ReplyMessage:
    fields = {
        "from_address": "links@rahulmenon.dev",
        "from_name": "links-email-connector",
        "to_address": "me@example.com",
        "subject": "Re: My Cool Find",
        "in_reply_to": "<abc@example.com>",
        "references": "<r1@example.com> <abc@example.com>",
        "text": "Successfully processed email.",
    }
    fields.update(overrides)
    return ReplyMessage(**fields)


def _recording_transport(calls: list, status: int = 200) -> httpx.MockTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(status, json={"id": "msg-1"})

    return httpx.MockTransport(handler)


class TestSendResend:
    @pytest.mark.asyncio
    async def test_posts_reply_with_threading_headers(self):
        calls: list = []
        await send_reply(_make_reply(), _make_settings(), transport=_recording_transport(calls))

        assert len(calls) == 1
        request = calls[0]
        assert str(request.url) == RESEND_API_URL
        assert request.headers["Authorization"] == "Bearer re_test"

        body = json.loads(request.content)
        assert body["from"] == "links-email-connector <links@rahulmenon.dev>"
        assert body["to"] == ["me@example.com"]
        assert body["subject"] == "Re: My Cool Find"
        assert body["text"] == "Successfully processed email."
        assert body["headers"] == {
            "In-Reply-To": "<abc@example.com>",
            "References": "<r1@example.com> <abc@example.com>",
        }

    @pytest.mark.asyncio
    async def test_omits_headers_when_not_threaded(self):
        calls: list = []
        reply = _make_reply(in_reply_to=None, references=None)
        await send_reply(reply, _make_settings(), transport=_recording_transport(calls))

        assert "headers" not in json.loads(calls[0].content)

    @pytest.mark.asyncio
    async def test_missing_api_key_raises(self):
        calls: list = []
        with pytest.raises(MailSendError):
            await send_reply(
                _make_reply(),
                _make_settings(resend_api_key=None),
                transport=_recording_transport(calls),
            )
        assert calls == []


class TestSendPostmark:
    @pytest.mark.asyncio
    async def test_posts_reply_with_header_list(self):
        calls: list = []
        settings = _make_settings(outbound_email_provider="postmark")
        await send_reply(_make_reply(), settings, transport=_recording_transport(calls))

        request = calls[0]
        assert str(request.url) == POSTMARK_API_URL
        assert request.headers["X-Postmark-Server-Token"] == "pm_test"

        body = json.loads(request.content)
        assert body["To"] == "me@example.com"
        assert body["TextBody"] == "Successfully processed email."
        assert {"Name": "In-Reply-To", "Value": "<abc@example.com>"} in body["Headers"]

    @pytest.mark.asyncio
    async def test_missing_token_raises(self):
        settings = _make_settings(
            outbound_email_provider="postmark", postmark_server_token=None
        )
        with pytest.raises(MailSendError):
            await send_reply(_make_reply(), settings, transport=_recording_transport([]))


class TestSendReplyFailures:
    @pytest.mark.asyncio
    async def test_error_status_raises(self):
        with pytest.raises(MailSendError):
            await send_reply(
                _make_reply(), _make_settings(), transport=_recording_transport([], 500)
            )

    @pytest.mark.asyncio
    async def test_transport_error_raises(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(MailSendError):
            await send_reply(
                _make_reply(), _make_settings(), transport=httpx.MockTransport(handler)
            )

    @pytest.mark.asyncio
    async def test_unknown_provider_raises(self):
        settings = _make_settings(outbound_email_provider="carrier-pigeon")
        with pytest.raises(MailSendError):
            await send_reply(_make_reply(), settings, transport=_recording_transport([]))
