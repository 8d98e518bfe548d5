"""
Outbound reply delivery.

Sends a ReplyMessage through an email provider's HTTP API.

Supported providers:
  - resend    (default; set OUTBOUND_EMAIL_PROVIDER=resend, needs RESEND_API_KEY)
  - postmark  (set OUTBOUND_EMAIL_PROVIDER=postmark, needs POSTMARK_SERVER_TOKEN)

Adding a new provider:
  1. Write an async send_<provider>(client, reply, settings) function.
  2. Register it in _SENDERS.
  3. Set OUTBOUND_EMAIL_PROVIDER=<provider> in the environment.
"""

import logging
from typing import Awaitable, Callable, Optional

import httpx

from links_connector.config import Settings
from links_connector.models.reply import ReplyMessage

logger = logging.getLogger(__name__)

RESEND_API_URL = "https://api.resend.com/emails"
POSTMARK_API_URL = "https://api.postmarkapp.com/email"


class MailSendError(Exception):
    """The reply could not be handed to the outbound provider."""


# ---------------------------------------------------------------------------
# Resend
# ---------------------------------------------------------------------------

async def send_resend(
    client: httpx.AsyncClient, reply: ReplyMessage, settings: Settings
) -> httpx.Response:
    """
    POST the reply to Resend.

    Resend takes custom headers as a flat object, which is where the
    threading headers go.
    """
    if not settings.resend_api_key:
        raise MailSendError("RESEND_API_KEY is required for the resend provider")

    payload: dict = {
        "from": reply.sender,
        "to": [reply.to_address],
        "subject": reply.subject,
        "text": reply.text,
    }
    headers = reply.threading_headers()
    if headers:
        payload["headers"] = headers

    return await client.post(
        RESEND_API_URL,
        json=payload,
        headers={"Authorization": f"Bearer {settings.resend_api_key}"},
    )


# ---------------------------------------------------------------------------
# Postmark
# ---------------------------------------------------------------------------

async def send_postmark(
    client: httpx.AsyncClient, reply: ReplyMessage, settings: Settings
) -> httpx.Response:
    """POST the reply to Postmark; headers go in a [{Name, Value}] list."""
    if not settings.postmark_server_token:
        raise MailSendError("POSTMARK_SERVER_TOKEN is required for the postmark provider")

    payload: dict = {
        "From": reply.sender,
        "To": reply.to_address,
        "Subject": reply.subject,
        "TextBody": reply.text,
        "MessageStream": "outbound",
    }
    headers = reply.threading_headers()
    if headers:
        payload["Headers"] = [{"Name": k, "Value": v} for k, v in headers.items()]

    return await client.post(
        POSTMARK_API_URL,
        json=payload,
        headers={
            "Accept": "application/json",
            "X-Postmark-Server-Token": settings.postmark_server_token,
        },
    )


# ---------------------------------------------------------------------------
# Registry and dispatcher
# ---------------------------------------------------------------------------

_SENDERS: dict[
    str, Callable[[httpx.AsyncClient, ReplyMessage, Settings], Awaitable[httpx.Response]]
] = {
    "resend": send_resend,
    "postmark": send_postmark,
}


async def send_reply(
    reply: ReplyMessage,
    settings: Settings,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> None:
    """
    Deliver reply through settings.outbound_email_provider.

    Raises:
        MailSendError: unknown provider, missing credentials, transport error
            or a non-2xx response.
    """
    provider = settings.outbound_email_provider.lower().strip()
    sender = _SENDERS.get(provider)
    if sender is None:
        raise MailSendError(
            f"Unknown outbound email provider {provider!r}. "
            f"Supported providers: {sorted(_SENDERS)}"
        )

    async with httpx.AsyncClient(
        timeout=settings.http_timeout_seconds, transport=transport
    ) as client:
        try:
            response = await sender(client, reply, settings)
        except httpx.HTTPError as exc:
            raise MailSendError(f"{provider} request failed: {exc}") from exc

    if response.is_error:
        raise MailSendError(
            f"{provider} returned {response.status_code}: {response.text[:500]}"
        )

    logger.info(f"Sent reply to {reply.to_address} via {provider}: {reply.subject!r}")
