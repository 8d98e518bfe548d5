"""
Inbound email adapter service.

Normalizes provider-specific inbound webhook payloads into a single
provider-agnostic InboundEmail model.

Supported providers:
  - resend    (default; set EMAIL_PROVIDER=resend or pass provider="resend")
  - postmark
  - raw       the payload carries the whole RFC 822 message, base64-encoded,
              which is decoded here with the standard email package

Adding a new provider:
  1. Write a normalize_<provider>(payload: dict) -> InboundEmail function.
  2. Register it in _NORMALIZERS.
  3. Set EMAIL_PROVIDER=<provider> in the environment.

Payload field assumptions
-------------------------
resend    from, to, subject, text, headers ({name: value} or
          [{name, value}]), optional message_id
postmark  From, To, Subject, TextBody, Headers ([{Name, Value}]).
          Postmark's own MessageID is NOT the Message-ID header, so the
          header value is read from Headers.
raw       from, to, raw (base64 of the full MIME message)

If a provider changes its schema, only this file needs updating.
"""

import base64
import os
import re
from email import policy
from email.parser import BytesParser
from typing import Any, Callable, Optional

from links_connector.models.inbound_email import InboundEmail


def _bare_address(value: Any) -> str:
    """'Alice <alice@example.com>' → 'alice@example.com'."""
    if isinstance(value, list):
        value = value[0] if value else ""
    if not isinstance(value, str):
        return ""
    match = re.search(r"<([^>]+)>", value)
    return match.group(1).strip() if match else value.strip()


def _find_header(headers: Any, name: str) -> Optional[str]:
    """
    Case-insensitive header lookup.

    Accepts a {name: value} dict or a list of {name|Name, value|Value} dicts.
    """
    wanted = name.lower()
    if isinstance(headers, dict):
        for key, value in headers.items():
            if str(key).lower() == wanted:
                return str(value)
        return None
    for item in headers or []:
        if not isinstance(item, dict):
            continue
        key = item.get("name", item.get("Name", ""))
        if str(key).lower() == wanted:
            return str(item.get("value", item.get("Value", "")))
    return None


# ---------------------------------------------------------------------------
# Resend normalizer
# ---------------------------------------------------------------------------

def normalize_resend(payload: dict) -> InboundEmail:
    """Convert a Resend inbound webhook payload (snake_case keys) to InboundEmail."""
    headers = payload.get("headers")
    return InboundEmail(
        sender_email=_bare_address(payload.get("from", "")),
        recipient_email=_bare_address(payload.get("to", "")),
        subject=payload.get("subject"),
        text=payload.get("text") or "",
        message_id=_find_header(headers, "Message-ID") or payload.get("message_id"),
        references=_find_header(headers, "References"),
    )


# ---------------------------------------------------------------------------
# Postmark normalizer
# ---------------------------------------------------------------------------

def normalize_postmark(payload: dict) -> InboundEmail:
    """
    Convert a Postmark inbound webhook payload (PascalCase keys) to InboundEmail.

    FromFull.Email is preferred over From because it never carries a
    display name.
    """
    from_full = payload.get("FromFull") or {}
    sender = from_full.get("Email") if isinstance(from_full, dict) else None
    headers = payload.get("Headers")
    return InboundEmail(
        sender_email=sender or _bare_address(payload.get("From", "")),
        recipient_email=_bare_address(payload.get("To", "")),
        subject=payload.get("Subject"),
        text=payload.get("TextBody") or "",
        message_id=_find_header(headers, "Message-ID"),
        references=_find_header(headers, "References"),
    )


# ---------------------------------------------------------------------------
# Raw MIME normalizer
# ---------------------------------------------------------------------------

def normalize_raw(payload: dict) -> InboundEmail:
    """
    Decode a base64 RFC 822 message and pull out the fields we need.

    The envelope sender/recipient in the payload win over the From/To
    headers, matching how mail routing reports them.

    Raises ValueError when the raw field is missing, not valid base64, or
    the text part cannot be decoded (unknown or mismatched charset).
    """
    raw = payload.get("raw")
    if not raw:
        raise ValueError("raw payload is missing the 'raw' message field")

    message = BytesParser(policy=policy.default).parsebytes(
        base64.b64decode(raw, validate=True)
    )

    body = message.get_body(preferencelist=("plain",))
    try:
        text = body.get_content() if body is not None else ""
    except (LookupError, UnicodeError) as exc:
        raise ValueError(f"raw message body could not be decoded: {exc}") from exc

    return InboundEmail(
        sender_email=_bare_address(payload.get("from") or str(message.get("From", ""))),
        recipient_email=_bare_address(payload.get("to") or str(message.get("To", ""))),
        subject=str(message["Subject"]) if message["Subject"] is not None else None,
        text=text,
        message_id=str(message["Message-ID"]) if message["Message-ID"] else None,
        references=str(message["References"]) if message["References"] else None,
    )


# ---------------------------------------------------------------------------
# Registry and dispatcher
# ---------------------------------------------------------------------------

_NORMALIZERS: dict[str, Callable[[dict], InboundEmail]] = {
    "resend": normalize_resend,
    "postmark": normalize_postmark,
    "raw": normalize_raw,
}


def normalize_webhook(payload: dict, provider: str | None = None) -> InboundEmail:
    """
    Route to the correct normalizer based on the provider argument or the
    EMAIL_PROVIDER environment variable.

    Priority:
      1. provider argument (explicit, used in tests and the webhook endpoint)
      2. EMAIL_PROVIDER env var
      3. Default: "resend"

    Raises ValueError for unknown provider names.
    """
    resolved = provider or os.getenv("EMAIL_PROVIDER", "resend")
    resolved = resolved.lower().strip()

    normalizer = _NORMALIZERS.get(resolved)
    if normalizer is None:
        raise ValueError(
            f"Unknown email provider {resolved!r}. "
            f"Supported providers: {sorted(_NORMALIZERS)}"
        )

    return normalizer(payload)
