"""
Outbound reply model.
"""

from email.headerregistry import Address
from typing import Optional

from pydantic import BaseModel


class ReplyMessage(BaseModel):
    """A threaded plain-text reply to an inbound email."""

    from_address: str
    from_name: str
    to_address: str
    subject: str
    in_reply_to: Optional[str] = None
    references: Optional[str] = None
    text: str

    @property
    def sender(self) -> str:
        """Formatted From header value, e.g. 'links-email-connector <links@x.dev>'."""
        return str(Address(display_name=self.from_name, addr_spec=self.from_address))

    def threading_headers(self) -> dict[str, str]:
        headers: dict[str, str] = {}
        if self.in_reply_to:
            headers["In-Reply-To"] = self.in_reply_to
        if self.references:
            headers["References"] = self.references
        return headers

