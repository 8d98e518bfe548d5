"""
Input validation and sanitization helpers.

Everything that arrives by email is untrusted.  These functions run before
any value ends up in a file path, a branch name, a commit message or an
outbound reply.  They are pure: no I/O, no state.
"""

import ipaddress
import re
from urllib.parse import urlparse

_ALLOWED_SCHEMES = {"http", "https"}
_BLOCKED_HOSTNAMES = {"localhost", "localhost.localdomain"}

_STRIP_CHARS_RE = re.compile(r"[<>`$]")
_EXCESS_NEWLINES_RE = re.compile(r"[\r\n]{3,}")

_BRANCH_NAME_RE = re.compile(r"^[A-Za-z0-9._/-]+$")
_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

MAX_TAG_LENGTH = 50
MAX_TAGS = 10
MAX_BRANCH_NAME_LENGTH = 250
MAX_FILE_PATH_LENGTH = 200
MAX_COMMIT_MESSAGE_LENGTH = 100
MAX_EMAIL_LENGTH = 254  # RFC 5321

POSTS_DIRECTORY = "content/posts/links/"
FALLBACK_COMMIT_MESSAGE = "Automated commit"


def _is_internal_host(hostname: str) -> bool:
    """Return True for loopback, link-local, private and unspecified hosts."""
    if hostname in _BLOCKED_HOSTNAMES or hostname.endswith(".localhost"):
        return True
    try:
        ip = ipaddress.ip_address(hostname)
    except ValueError:
        return False
    return ip.is_loopback or ip.is_private or ip.is_link_local or ip.is_unspecified


def validate_url(url) -> bool:
    """
    Return True if url is an absolute http(s) URL pointing at a public host.

    Rejects localhost, 127.0.0.1, 0.0.0.0, ::1, the RFC 1918 ranges and the
    IPv6 link-local (fe80::/10) and unique-local (fc00::/7) ranges.
    """
    if not url or not isinstance(url, str):
        return False

    try:
        parsed = urlparse(url.strip())
        hostname = parsed.hostname
    except ValueError:
        return False

    if parsed.scheme.lower() not in _ALLOWED_SCHEMES:
        return False
    if not hostname:
        return False

    # "localhost." and "127.0.0.1." resolve like their undotted forms
    return not _is_internal_host(hostname.lower().rstrip("."))


def sanitize_text(text) -> str:
    """
    Strip characters that could be interpreted as markup or shell syntax.

    Removes < > ` $, collapses runs of three or more newlines to a single
    blank line and trims surrounding whitespace.  Non-strings become "".
    """
    if not text or not isinstance(text, str):
        return ""

    cleaned = _STRIP_CHARS_RE.sub("", text)
    cleaned = _EXCESS_NEWLINES_RE.sub("\n\n", cleaned)
    return cleaned.strip()


def validate_tags(tags) -> list[str]:
    """Sanitize a tag list; drop empty or overlong entries, keep at most 10."""
    if not isinstance(tags, list):
        return []

    cleaned = [sanitize_text(tag) for tag in tags if isinstance(tag, str) and tag]
    return [tag for tag in cleaned if 0 < len(tag) <= MAX_TAG_LENGTH][:MAX_TAGS]


def validate_branch_name(name) -> bool:
    """Git ref rules, restricted to a conservative character set."""
    if not name or not isinstance(name, str):
        return False

    return (
        bool(_BRANCH_NAME_RE.match(name))
        and len(name) <= MAX_BRANCH_NAME_LENGTH
        and not name.startswith(".")
        and not name.endswith(".")
        and ".." not in name
        and "//" not in name
    )


def validate_file_path(path) -> bool:
    """Only markdown files under content/posts/links/ are writable."""
    if not path or not isinstance(path, str):
        return False

    # Path traversal / absolute paths
    if "../" in path or "..\\" in path or path.startswith("/"):
        return False

    return (
        path.startswith(POSTS_DIRECTORY)
        and path.endswith(".md")
        and len(path) <= MAX_FILE_PATH_LENGTH
    )


def sanitize_commit_message(message) -> str:
    if not message or not isinstance(message, str):
        return FALLBACK_COMMIT_MESSAGE

    return sanitize_text(message)[:MAX_COMMIT_MESSAGE_LENGTH]


def validate_email(email) -> bool:
    if not email or not isinstance(email, str):
        return False

    return bool(_EMAIL_RE.match(email)) and len(email) <= MAX_EMAIL_LENGTH
