"""
Pydantic models for a link post and the markdown file generated from it.

Models:
  LinkPost       — url / tags / body extracted from an email
  GeneratedFile  — rendered markdown plus its repository path
"""

from typing import List

from pydantic import BaseModel, field_validator

from links_connector.services.security import (
    sanitize_text,
    validate_file_path,
    validate_tags,
    validate_url,
)


class LinkPost(BaseModel):
    """
    A fully validated link post.

    Construction raises pydantic.ValidationError when any field is unusable,
    so a LinkPost instance is always complete.
    """

    url: str
    tags: List[str]
    body: str

    @field_validator("url")
    @classmethod
    def check_url(cls, v: str) -> str:
        if not validate_url(v):
            raise ValueError("url must be a public http(s) URL")
        return v

    @field_validator("tags")
    @classmethod
    def check_tags(cls, v: List[str]) -> List[str]:
        tags = validate_tags(v)
        if not tags:
            raise ValueError("at least one valid tag is required")
        return tags

    @field_validator("body")
    @classmethod
    def normalize_body(cls, v: str) -> str:
        """Sanitize and end with exactly one newline."""
        body = sanitize_text(v)
        if not body:
            raise ValueError("body must not be empty")
        return body + "\n"


class GeneratedFile(BaseModel):
    """Markdown content and the repository-relative path it will be written to."""

    content: str
    file_name: str

    @field_validator("file_name")
    @classmethod
    def check_file_name(cls, v: str) -> str:
        if not validate_file_path(v):
            raise ValueError(f"unsafe file path {v!r}")
        return v
