"""
Runtime configuration.

Settings come from environment variables (a local .env file is loaded via
python-dotenv).  They are read at call time through get_settings() so tests
can patch os.environ without reloading modules.

Required
--------
LINKS_ALLOWED_SENDER   The single sender address allowed to trigger posts.
GITHUB_OWNER           Owner of the content repository.
GITHUB_REPO            Name of the content repository.
GITHUB_TOKEN           Token used for the GitHub REST API.

Everything else has a default, see Settings.
"""

import os
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel

load_dotenv()

DEFAULT_FROM_ADDRESS = "links@rahulmenon.dev"
DEFAULT_FROM_NAME = "links-email-connector"


class Settings(BaseModel):
    allowed_sender: str
    github_owner: str
    github_repo: str
    github_token: str
    github_base_branch: str = "main"
    github_api_url: str = "https://api.github.com"

    committer_name: str = DEFAULT_FROM_NAME
    committer_email: str = DEFAULT_FROM_ADDRESS

    reply_from_address: str = DEFAULT_FROM_ADDRESS
    reply_from_name: str = DEFAULT_FROM_NAME

    email_provider: str = "resend"
    outbound_email_provider: str = "resend"
    resend_api_key: Optional[str] = None
    postmark_server_token: Optional[str] = None

    rate_limit_max_requests: int = 10
    rate_limit_window_ms: int = 60000
    http_timeout_seconds: float = 30.0


_REQUIRED = {
    "allowed_sender": "LINKS_ALLOWED_SENDER",
    "github_owner": "GITHUB_OWNER",
    "github_repo": "GITHUB_REPO",
    "github_token": "GITHUB_TOKEN",
}

_OPTIONAL = {
    "github_base_branch": "GITHUB_BASE_BRANCH",
    "github_api_url": "GITHUB_API_URL",
    "committer_name": "COMMITTER_NAME",
    "committer_email": "COMMITTER_EMAIL",
    "reply_from_address": "REPLY_FROM_ADDRESS",
    "reply_from_name": "REPLY_FROM_NAME",
    "email_provider": "EMAIL_PROVIDER",
    "outbound_email_provider": "OUTBOUND_EMAIL_PROVIDER",
    "resend_api_key": "RESEND_API_KEY",
    "postmark_server_token": "POSTMARK_SERVER_TOKEN",
    "rate_limit_max_requests": "RATE_LIMIT_MAX_REQUESTS",
    "rate_limit_window_ms": "RATE_LIMIT_WINDOW_MS",
    "http_timeout_seconds": "HTTP_TIMEOUT_SECONDS",
}


def get_settings() -> Settings:
    """
    Build Settings from the current environment.

    Raises ValueError naming every missing required variable.  Blank values
    count as missing.  Optional variables fall back to the model defaults;
    pydantic coerces the numeric ones.
    """
    missing = [env for env in _REQUIRED.values() if not os.getenv(env, "").strip()]
    if missing:
        raise ValueError(
            f"Missing required environment variables: {', '.join(missing)}"
        )

    values: dict = {field: os.getenv(env).strip() for field, env in _REQUIRED.items()}
    for field, env in _OPTIONAL.items():
        raw = os.getenv(env, "").strip()
        if raw:
            values[field] = raw

    return Settings(**values)
