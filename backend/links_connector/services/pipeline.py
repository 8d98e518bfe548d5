"""
Email → pull request pipeline.

One inbound email runs through these states:

  RECEIVED → AUTHORIZED → RATE_CHECKED → PARSED → FILE_GENERATED
           → PUBLISHED → REPLIED_SUCCESS

A foreign sender or an exhausted rate limit ends in REJECTED and no reply is
sent.  Any failure after the rate check ends in REPLIED_ERROR: the exception
is logged with its traceback and the sender gets a fixed error description.
Nothing raised by parsing, generation or publishing escapes handle().
"""

import logging
from datetime import datetime
from enum import Enum
from typing import Awaitable, Callable, Optional

from pydantic import BaseModel

from links_connector.config import Settings, get_settings
from links_connector.models.inbound_email import InboundEmail
from links_connector.models.reply import ReplyMessage
from links_connector.services.file_generator import clean_subject, generate_link_file
from links_connector.services.mail_sender import MailSendError, send_reply
from links_connector.services.post_parser import parse_link_post
from links_connector.services.publisher import GitHubPublisher
from links_connector.services.rate_limiter import RateLimiter, default_limiter
from links_connector.services.reply_composer import (
    compose_error_reply,
    compose_success_reply,
)
from links_connector.services.security import sanitize_text, validate_email

logger = logging.getLogger(__name__)


class PipelineState(str, Enum):
    RECEIVED = "received"
    AUTHORIZED = "authorized"
    RATE_CHECKED = "rate_checked"
    PARSED = "parsed"
    FILE_GENERATED = "file_generated"
    PUBLISHED = "published"
    REPLIED_SUCCESS = "replied_success"
    REPLIED_ERROR = "replied_error"
    REJECTED = "rejected"


class RejectionReason(str, Enum):
    SENDER_NOT_ALLOWED = "sender_not_allowed"
    RATE_LIMITED = "rate_limited"


class PipelineResult(BaseModel):
    state: PipelineState
    reason: Optional[RejectionReason] = None
    file_name: Optional[str] = None
    pull_request_url: Optional[str] = None
    reply: Optional[ReplyMessage] = None
    reply_sent: bool = False


class LinkPipeline:
    """
    Runs a single inbound email to completion.

    Collaborators are injected so tests can swap the publisher, the reply
    sender and the clock.
    """

    def __init__(
        self,
        settings: Settings,
        publisher: GitHubPublisher,
        limiter: RateLimiter = default_limiter,
        sender: Callable[[ReplyMessage, Settings], Awaitable[None]] = send_reply,
        now: Optional[Callable[[], datetime]] = None,
    ):
        self.settings = settings
        self.publisher = publisher
        self.limiter = limiter
        self._send = sender
        self._now = now

    def is_authorized(self, sender_email: str) -> bool:
        return validate_email(sender_email) and sender_email == self.settings.allowed_sender

    async def handle(self, email: InboundEmail) -> PipelineResult:
        sender = email.sender_email
        logger.info(
            f"Received email from {sender!r} to {email.recipient_email!r}, "
            f"subject {email.subject!r}"
        )

        if not self.is_authorized(sender):
            logger.warning(f"Rejected email from unauthorized sender {sender!r}")
            return PipelineResult(
                state=PipelineState.REJECTED, reason=RejectionReason.SENDER_NOT_ALLOWED
            )

        if not self.limiter.check(
            sender,
            self.settings.rate_limit_max_requests,
            self.settings.rate_limit_window_ms,
        ):
            logger.warning(f"Rate limit exceeded for {sender!r}")
            return PipelineResult(
                state=PipelineState.REJECTED, reason=RejectionReason.RATE_LIMITED
            )

        result = PipelineResult(state=PipelineState.RATE_CHECKED)
        try:
            post = parse_link_post(sanitize_text(email.text))
            result.state = PipelineState.PARSED

            now = self._now() if self._now else None
            generated = generate_link_file(email.subject, post, now=now)
            result.file_name = generated.file_name
            result.state = PipelineState.FILE_GENERATED

            title = clean_subject(email.subject)
            result.pull_request_url = await self.publisher.publish(
                generated.file_name, generated.content, title
            )
            result.state = PipelineState.PUBLISHED

            reply = compose_success_reply(
                email,
                result.pull_request_url,
                self.settings.reply_from_address,
                self.settings.reply_from_name,
            )
            result.state = PipelineState.REPLIED_SUCCESS
        except Exception as exc:
            logger.exception(f"Failed to process email from {sender!r} at state {result.state.value}")
            reply = compose_error_reply(
                email,
                exc,
                self.settings.reply_from_address,
                self.settings.reply_from_name,
            )
            result.state = PipelineState.REPLIED_ERROR

        result.reply = reply
        result.reply_sent = await self._deliver(reply)
        return result

    async def _deliver(self, reply: ReplyMessage) -> bool:
        try:
            await self._send(reply, self.settings)
        except MailSendError as exc:
            logger.error(f"Failed to send reply to {reply.to_address!r}: {exc}")
            return False
        return True


def build_pipeline(settings: Optional[Settings] = None) -> LinkPipeline:
    """
    Wire a LinkPipeline from configuration.

    Raises ValueError when required settings are missing.
    """
    if settings is None:
        settings = get_settings()

    publisher = GitHubPublisher(
        owner=settings.github_owner,
        repo=settings.github_repo,
        token=settings.github_token,
        base_branch=settings.github_base_branch,
        committer_name=settings.committer_name,
        committer_email=settings.committer_email,
        api_url=settings.github_api_url,
        timeout=settings.http_timeout_seconds,
    )
    return LinkPipeline(settings=settings, publisher=publisher)
