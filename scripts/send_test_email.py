#!/usr/bin/env python3
"""
Dev helper: send a test inbound-email webhook to the local connector.

Constructs a link-post email payload for the configured provider and
POST-s it to the /api/links/inbound endpoint.

Usage
-----
# Basic — Resend payload from LINKS_ALLOWED_SENDER, targeting localhost:8000
python scripts/send_test_email.py

# Custom link and tags
python scripts/send_test_email.py --link https://example.com/a --tags tech,web

# Use Postmark or raw MIME payload format instead of Resend
python scripts/send_test_email.py --provider postmark
python scripts/send_test_email.py --provider raw

# Print the payload without sending it
python scripts/send_test_email.py --dry-run

Environment / .env
------------------
LINKS_ALLOWED_SENDER   Default sender address (the one the server trusts).
EMAIL_PROVIDER         Provider format to use (default: resend).
                       Overridden by --provider flag.
"""

import argparse
import base64
import json
import os
import sys
import textwrap
from email.message import EmailMessage
from email.utils import make_msgid
from pathlib import Path

import httpx
from dotenv import load_dotenv


# ---------------------------------------------------------------------------
# Body builder
# ---------------------------------------------------------------------------

def _make_body(link: str, tags: str, text: str) -> str:
    return f"url {link}\ntags {tags}\nbody\n{text}\n"


# ---------------------------------------------------------------------------
# Payload builders
# ---------------------------------------------------------------------------

def _build_resend_payload(
    from_email: str, to_address: str, subject: str, body: str, message_id: str
) -> dict:
    """Resend inbound format: from, to, subject, text, headers."""
    return {
        "from": from_email,
        "to": to_address,
        "subject": subject,
        "text": body,
        "headers": {"Message-ID": message_id},
    }


def _build_postmark_payload(
    from_email: str, to_address: str, subject: str, body: str, message_id: str
) -> dict:
    """Postmark inbound format: From, To, Subject, TextBody, Headers[]."""
    return {
        "From": from_email,
        "FromFull": {"Email": from_email, "Name": ""},
        "To": to_address,
        "Subject": subject,
        "TextBody": body,
        "Headers": [{"Name": "Message-ID", "Value": message_id}],
    }


def _build_raw_payload(
    from_email: str, to_address: str, subject: str, body: str, message_id: str
) -> dict:
    """Raw format: envelope from/to plus the base64 MIME message."""
    msg = EmailMessage()
    msg["From"] = from_email
    msg["To"] = to_address
    msg["Subject"] = subject
    msg["Message-ID"] = message_id
    msg.set_content(body)
    return {
        "from": from_email,
        "to": to_address,
        "raw": base64.b64encode(msg.as_bytes()).decode(),
    }


_PAYLOAD_BUILDERS = {
    "resend": _build_resend_payload,
    "postmark": _build_postmark_payload,
    "raw": _build_raw_payload,
}


# ---------------------------------------------------------------------------
# Pretty printer
# ---------------------------------------------------------------------------

def _print_response(response: httpx.Response) -> None:
    status = response.status_code
    symbol = "OK" if status == 200 else "FAIL"
    print(f"\n[{symbol}] HTTP {status}")
    try:
        print(json.dumps(response.json(), indent=2))
    except ValueError:
        print(response.text)


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------

def main() -> int:
    # Locate project root (scripts/ lives one level below the root)
    project_root = Path(__file__).resolve().parent.parent
    load_dotenv(project_root / ".env")
    load_dotenv(project_root / "backend" / ".env")

    parser = argparse.ArgumentParser(
        prog="send_test_email.py",
        description="Send a test link-post webhook to the connector.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=textwrap.dedent("""\
            Examples:
              python scripts/send_test_email.py
              python scripts/send_test_email.py --subject "My Cool Find"
              python scripts/send_test_email.py --provider postmark
              python scripts/send_test_email.py --url http://localhost:8000
        """),
    )
    parser.add_argument(
        "--url",
        default="http://localhost:8000",
        help="Connector base URL (default: http://localhost:8000)",
    )
    parser.add_argument(
        "--provider",
        default=os.getenv("EMAIL_PROVIDER", "resend"),
        choices=list(_PAYLOAD_BUILDERS),
        help="Webhook payload format to use (default: resend)",
    )
    parser.add_argument(
        "--from",
        dest="from_email",
        default=os.getenv("LINKS_ALLOWED_SENDER", "me@example.com"),
        help="Sender email address (default: LINKS_ALLOWED_SENDER)",
    )
    parser.add_argument(
        "--to",
        default="links@rahulmenon.dev",
        help="Recipient address (default: links@rahulmenon.dev)",
    )
    parser.add_argument("--subject", default="My Cool Find", help="Email subject")
    parser.add_argument("--link", default="https://example.com/a", help="Link to post")
    parser.add_argument("--tags", default="tech, web", help="Comma-separated tags")
    parser.add_argument("--text", default="Check this out.", help="Post body text")
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Print the payload JSON without sending it.",
    )

    args = parser.parse_args()

    builder = _PAYLOAD_BUILDERS[args.provider]
    payload = builder(
        from_email=args.from_email,
        to_address=args.to,
        subject=args.subject,
        body=_make_body(args.link, args.tags, args.text),
        message_id=make_msgid(domain="example.com"),
    )

    endpoint = f"{args.url.rstrip('/')}/api/links/inbound"

    print(f"Provider  : {args.provider}")
    print(f"Endpoint  : {endpoint}")
    print(f"From      : {args.from_email}")
    print(f"Subject   : {args.subject}")

    if args.dry_run:
        print("\n[DRY RUN] Payload:")
        print(json.dumps(payload, indent=2))
        return 0

    try:
        response = httpx.post(endpoint, json=payload, timeout=30)
    except httpx.ConnectError:
        print(
            f"\nERROR: Could not connect to {endpoint}\n"
            "Is the connector running? Start it with:\n"
            "  cd backend && uvicorn links_connector.main:app --reload",
            file=sys.stderr,
        )
        return 1

    _print_response(response)
    return 0 if response.status_code == 200 else 1


if __name__ == "__main__":
    sys.exit(main())
