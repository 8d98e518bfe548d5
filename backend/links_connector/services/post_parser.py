"""
Email body → LinkPost parser.

Expected body layout (keys are case-insensitive, order does not matter):

    url https://example.com/article
    tags tech, web
    body
    Free text that becomes the post body.
    Blank lines are kept.

Lines before the ``body`` marker are ``key value`` pairs split on the first
run of whitespace.  Only ``url`` and ``tags`` are recognized; any other key
is ignored.  Everything after the marker is the post body.
"""

import logging
import re

from pydantic import ValidationError

from links_connector.models.link_post import LinkPost
from links_connector.services.security import sanitize_text, validate_tags, validate_url

logger = logging.getLogger(__name__)

BODY_MARKER = "body"

_KEY_VALUE_RE = re.compile(r"\s+")


class PostParseError(ValueError):
    """The email body does not describe a valid link post."""


def _split_key_value(line: str) -> tuple[str, str]:
    parts = _KEY_VALUE_RE.split(line.strip(), maxsplit=1)
    key = parts[0].lower()
    value = parts[1].strip() if len(parts) > 1 else ""
    return key, value


def _parse_tags(value: str) -> list[str]:
    return validate_tags([tag.strip() for tag in value.split(",")])


def parse_link_post(text) -> LinkPost:
    """
    Parse a plain-text email body into a LinkPost.

    A later ``url`` or ``tags`` line replaces an earlier one.

    Raises:
        PostParseError: when the text is empty, the url is missing or unsafe,
            no valid tag remains, or the body is empty (including when the
            ``body`` marker never appears).
    """
    if not text or not isinstance(text, str):
        raise PostParseError("Email body is empty")

    url = ""
    tags: list[str] = []
    body_lines: list[str] = []
    in_body = False

    for line in text.splitlines():
        if in_body:
            body_lines.append(line)
            continue

        if line.strip().lower() == BODY_MARKER:
            in_body = True
            continue

        if not line.strip():
            continue

        key, value = _split_key_value(line)
        if key == "url":
            url = value
        elif key == "tags":
            tags = _parse_tags(value)
        else:
            logger.debug(f"Ignoring unrecognized key {key!r} in email body")

    if not validate_url(url):
        raise PostParseError("Missing or invalid url")
    if not tags:
        raise PostParseError("No valid tags")

    body = sanitize_text("\n".join(body_lines))
    if not body:
        raise PostParseError("Post body is empty")

    try:
        return LinkPost(url=url, tags=tags, body=body)
    except ValidationError as exc:
        raise PostParseError(f"Invalid link post: {exc}") from exc
