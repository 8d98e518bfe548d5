"""
Links Email Connector API
FastAPI application that turns emailed link posts into pull requests.
"""

import logging

from fastapi import FastAPI

from links_connector.config import get_settings
from links_connector.routers import links

# Configure logging to output to console
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)

logger = logging.getLogger(__name__)

app = FastAPI(
    title="Links Email Connector",
    description="Email-triggered link posts, published as pull requests",
    version="0.1.0",
)

# Include routers
app.include_router(links.router, prefix="/api/links", tags=["links"])


@app.on_event("startup")
async def log_configuration() -> None:
    """Warn early when the environment is incomplete."""
    try:
        settings = get_settings()
    except ValueError as exc:
        logger.warning(f"Configuration incomplete, webhook will return 503: {exc}")
        return

    logger.info(
        "Publishing link posts to %s/%s (base branch %s), inbound provider %s, "
        "outbound provider %s",
        settings.github_owner,
        settings.github_repo,
        settings.github_base_branch,
        settings.email_provider,
        settings.outbound_email_provider,
    )


@app.get("/")
async def root():
    return {"message": "Links Email Connector", "version": "0.1.0"}


@app.get("/health")
async def health():
    return {"status": "ok"}
