"""
Inbound link-post email webhook.

The webhook is provider-agnostic: it normalizes the raw payload via the
inbound_email_adapter service, so swapping providers only requires changing
the EMAIL_PROVIDER env var.

Trust is based on the sender address alone (LINKS_ALLOWED_SENDER); there is
no webhook signature check.

Endpoints:
  POST /inbound   — provider webhook

Status codes
------------
200  The email was handled and a reply was attempted (success or error).
400  Unknown provider or a payload the adapter cannot decode.
403  Sender is not the allowed address.  No reply is sent.
429  Sender exceeded the rate limit.  No reply is sent.
503  Required configuration is missing.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException

from links_connector.services.inbound_email_adapter import normalize_webhook
from links_connector.services.pipeline import (
    LinkPipeline,
    PipelineState,
    RejectionReason,
    build_pipeline,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def get_pipeline() -> LinkPipeline:
    """Build the pipeline from the environment, or fail with 503."""
    try:
        return build_pipeline()
    except ValueError as exc:
        logger.error(f"Link pipeline is not configured: {exc}")
        raise HTTPException(status_code=503, detail="Service not configured")


@router.post("/inbound")
async def receive_inbound_email(
    payload: dict,
    pipeline: LinkPipeline = Depends(get_pipeline),
) -> dict:
    """
    Turn an inbound email into a pull request and reply to the sender.

    Processing errors never surface as HTTP errors: they become an error
    reply and a 200 response so the provider does not retry.
    """
    try:
        email = normalize_webhook(payload, provider=pipeline.settings.email_provider)
    except ValueError as exc:
        logger.error(f"Webhook normalization failed: {exc}")
        raise HTTPException(status_code=400, detail="Unsupported inbound payload")

    result = await pipeline.handle(email)

    if result.state == PipelineState.REJECTED:
        if result.reason == RejectionReason.RATE_LIMITED:
            raise HTTPException(status_code=429, detail="Rate limit exceeded")
        raise HTTPException(status_code=403, detail="Address not allowed")

    response: dict = {
        "received": True,
        "processed": result.state == PipelineState.REPLIED_SUCCESS,
        "state": result.state.value,
        "reply_sent": result.reply_sent,
    }
    if result.pull_request_url:
        response["pull_request_url"] = result.pull_request_url
    if result.file_name:
        response["file_name"] = result.file_name
    return response
