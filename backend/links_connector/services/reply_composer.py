"""
Threaded reply composition.

Replies keep the sender's thread intact: In-Reply-To points at the original
Message-ID and References carries the whole chain.  Error replies only ever
contain one of the fixed descriptions below; exception text stays in the
logs.
"""

from links_connector.config import DEFAULT_FROM_ADDRESS, DEFAULT_FROM_NAME
from links_connector.models.inbound_email import InboundEmail
from links_connector.models.reply import ReplyMessage
from links_connector.services.file_generator import FileGenerationError
from links_connector.services.post_parser import PostParseError
from links_connector.services.publisher import PublishError
from links_connector.services.security import sanitize_text, validate_url

NO_SUBJECT = "No Subject"

PARSE_ERROR_MESSAGE = (
    "The email could not be read as a link post. Expected a 'url' line, "
    "a 'tags' line and a 'body' line followed by the post text."
)
SUBJECT_ERROR_MESSAGE = "The email subject could not be used to name the post."
PUBLISH_ERROR_MESSAGE = "Failed to publish the link post."
VALIDATION_ERROR_MESSAGE = "The link post failed validation."
GENERIC_ERROR_MESSAGE = "An unexpected error occurred while processing the email."


def reply_subject(original: str | None) -> str:
    subject = original or NO_SUBJECT
    if subject.lower().startswith("re:"):
        return subject
    return f"Re: {subject}"


def reply_references(email: InboundEmail) -> str:
    """Original References followed by the original Message-ID, blanks dropped."""
    return " ".join(part for part in (email.references, email.message_id) if part)


def describe_error(exc: BaseException) -> str:
    """Map a failure to the fixed, user-facing description."""
    if isinstance(exc, PostParseError):
        message = PARSE_ERROR_MESSAGE
    elif isinstance(exc, FileGenerationError):
        message = SUBJECT_ERROR_MESSAGE
    elif isinstance(exc, PublishError):
        message = PUBLISH_ERROR_MESSAGE
    elif isinstance(exc, ValueError):
        message = VALIDATION_ERROR_MESSAGE
    else:
        message = GENERIC_ERROR_MESSAGE
    return sanitize_text(message)


def compose_reply(
    email: InboundEmail,
    text: str,
    from_address: str = DEFAULT_FROM_ADDRESS,
    from_name: str = DEFAULT_FROM_NAME,
) -> ReplyMessage:
    return ReplyMessage(
        from_address=from_address,
        from_name=from_name,
        to_address=email.sender_email,
        subject=reply_subject(email.subject),
        in_reply_to=email.message_id or None,
        references=reply_references(email) or None,
        text=text,
    )


def compose_success_reply(
    email: InboundEmail,
    pull_request_url: str,
    from_address: str = DEFAULT_FROM_ADDRESS,
    from_name: str = DEFAULT_FROM_NAME,
) -> ReplyMessage:
    """
    Raises:
        ValueError: pull_request_url is not a safe public URL.
    """
    if not validate_url(pull_request_url):
        raise ValueError("Refusing to embed an unsafe pull request URL")

    text = (
        "Successfully processed email.\n\n"
        f"Pull request: {pull_request_url}\n"
    )
    return compose_reply(email, text, from_address, from_name)


def compose_error_reply(
    email: InboundEmail,
    exc: BaseException,
    from_address: str = DEFAULT_FROM_ADDRESS,
    from_name: str = DEFAULT_FROM_NAME,
) -> ReplyMessage:
    text = f"Error encountered in processing the email: {describe_error(exc)}\n"
    return compose_reply(email, text, from_address, from_name)
