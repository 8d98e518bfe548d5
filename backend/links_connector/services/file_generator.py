"""
Markdown file generation for link posts.

Output is a Zola-style post: a TOML front-matter block delimited by ``+++``
followed by a heading that links the subject to the URL, then the body.
Files land in content/posts/links/<YYYY-MM-DD>-<slug>.md.
"""

import json
import re
from datetime import datetime, timezone
from typing import Optional

from pydantic import ValidationError

from links_connector.models.link_post import GeneratedFile, LinkPost
from links_connector.services.security import (
    POSTS_DIRECTORY,
    sanitize_text,
    validate_file_path,
)

MAX_SLUG_WORDS = 4

_WHITESPACE_RE = re.compile(r"\s+")
_SLUG_STRIP_RE = re.compile(r"[^a-z0-9-]")


class FileGenerationError(ValueError):
    """The subject cannot be turned into a safe post file."""


def make_slug(subject: str) -> str:
    """
    Derive a URL/file slug from the first four words of the subject.

    "My Cool Find Of The Week" → "my-cool-find-of"
    """
    words = subject.lower().split()[:MAX_SLUG_WORDS]
    slug = _WHITESPACE_RE.sub("-", " ".join(words))
    return _SLUG_STRIP_RE.sub("", slug)


def clean_subject(subject) -> str:
    """Sanitize a subject and fold it onto one line with single spaces."""
    return _WHITESPACE_RE.sub(" ", sanitize_text(subject))


def _toml_string(value: str) -> str:
    # JSON string escapes are valid TOML basic-string escapes
    return json.dumps(value, ensure_ascii=False)


def render_markdown(subject: str, date: str, post: LinkPost) -> str:
    tags = json.dumps(post.tags, ensure_ascii=False, separators=(",", ":"))
    return (
        "+++\n"
        f"title = {_toml_string(f'Link: {subject}')}\n"
        f"date = {_toml_string(date)}\n"
        "\n"
        "[taxonomies]\n"
        'type = ["posts"]\n'
        f"tags = {tags}\n"
        "+++\n"
        "\n"
        f"### [{subject}]({post.url})\n"
        f"{post.body}"
    )


def generate_link_file(
    subject,
    post: LinkPost,
    now: Optional[datetime] = None,
) -> GeneratedFile:
    """
    Render a LinkPost into a markdown file named after the subject and date.

    Args:
        subject: Raw email subject (sanitized here).
        post:    Validated link post.
        now:     Override for the current time; the date is taken in UTC.

    Raises:
        FileGenerationError: empty subject, empty slug or unsafe file path.
    """
    subject = clean_subject(subject)
    if not subject:
        raise FileGenerationError("Email subject is empty")

    if now is None:
        now = datetime.now(timezone.utc)
    date = now.astimezone(timezone.utc).strftime("%Y-%m-%d")

    slug = make_slug(subject)
    if not slug:
        raise FileGenerationError("Email subject produced an empty slug")

    file_name = f"{POSTS_DIRECTORY}{date}-{slug}.md"
    if not validate_file_path(file_name):
        raise FileGenerationError("Generated file path is not allowed")

    content = render_markdown(subject, date, post)
    try:
        return GeneratedFile(content=content, file_name=file_name)
    except ValidationError as exc:
        raise FileGenerationError(f"Invalid generated file: {exc}") from exc
