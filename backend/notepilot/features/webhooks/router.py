"""
Webhooks feature: API routes for inbound providers.
"""

import json
import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from supabase import Client

from notepilot.config import get_settings
from notepilot.core.dependencies import get_admin_db
from notepilot.core.exceptions import AppBaseError
from notepilot.features.agent.service import AgentService
from notepilot.features.webhooks.service import (
    EMAIL_RECEIVED_EVENT,
    compose_input,
    find_user,
    first_address,
    is_whitelisted,
    log_email_processing,
    read_email_body,
    verify_signature,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def get_email_agent(db: Client = Depends(get_admin_db)) -> AgentService:
    return AgentService(db)


@router.post("/email")
async def receive_email(
    request: Request,
    db: Client = Depends(get_admin_db),
    agent: AgentService = Depends(get_email_agent),
):
    """Resend inbound email webhook: run the agent on the email text."""
    settings = get_settings()
    body = await request.body()

    signature = request.headers.get("svix-signature")
    if settings.RESEND_WEBHOOK_SECRET and signature:
        if not verify_signature(body, signature, settings.RESEND_WEBHOOK_SECRET):
            logger.warning("Invalid email webhook signature")
            raise HTTPException(status_code=401, detail="Invalid signature")

    try:
        payload = json.loads(body)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid JSON payload")

    if payload.get("type") != EMAIL_RECEIVED_EVENT:
        logger.info(f"Ignoring webhook event: {payload.get('type')}")
        return {"message": "Event type not handled"}

    data = payload.get("data") or {}
    sender = first_address(data.get("from"))
    recipient = first_address(data.get("to"))
    subject = data.get("subject")
    logger.info(f"Inbound email from {sender} to {recipient}: {subject!r}")

    if not is_whitelisted(sender):
        logger.warning(f"Email from non-whitelisted address rejected: {sender}")
        raise HTTPException(status_code=403, detail="Sender not authorized")

    user = find_user(db, recipient, sender)
    if not user:
        logger.error(f"No user found for email from {sender} to {recipient}")
        raise HTTPException(status_code=404, detail="User not found")

    email_body = await read_email_body(data.get("email_id"))
    email_log = {
        "user_id": user["id"],
        "from_email": sender,
        "to_email": recipient,
        "subject": subject or None,
        "body": email_body,
    }

    try:
        response = await agent.handle(user["id"], compose_input(subject, email_body))
    except AppBaseError as e:
        logger.error(f"Email processing failed for user {user['id']}: {e.message} ({e.detail})")
        log_email_processing(db, email_log, None, e.message)
        raise HTTPException(status_code=500, detail="Processing failed")

    log_email_processing(db, email_log, response)
    logger.info(
        f"Email processed for user {user['id']}: "
        f"{[(r.action, r.success) for r in response.tool_results]}"
    )
    return {"success": True, **response.model_dump(mode="json")}
