"""
Provider-agnostic inbound email model.

These models represent a normalized inbound email after provider-specific
fields have been stripped away.  The pipeline works exclusively with this
model; only the adapter layer knows about Resend/Postmark/raw MIME formats.
"""

from typing import Optional
from pydantic import BaseModel


class InboundEmail(BaseModel):
    """
    Normalized inbound email.

    sender_email is the bare address (display name removed).  message_id and
    references are the raw header values, used to thread the reply.
    """

    sender_email: str
    recipient_email: str
    subject: Optional[str] = None
    text: str = ""
    message_id: Optional[str] = None
    references: Optional[str] = None
