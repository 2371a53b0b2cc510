"""
Webhooks feature: inbound email → agent.

Resend posts metadata only ({type, data: {from, to, subject, email_id}});
the body is fetched separately. The recipient's local part is the owner id
({user_id}@EMAIL_DOMAIN).
"""

import hashlib
import hmac
import logging
import re
from email.utils import parseaddr

import httpx
from supabase import Client

from notepilot.config import get_settings
from notepilot.core.notifier import RESEND_API_BASE
from notepilot.features.agent.results import AgentResponse

logger = logging.getLogger(__name__)

EMAIL_RECEIVED_EVENT = "email.received"

_TAG_RE = re.compile(r"<[^>]*>")


def verify_signature(payload: bytes, signature: str, secret: str) -> bool:
    """Hex HMAC-SHA256 of the raw body, compared in constant time."""
    expected = hmac.new(secret.encode(), payload, hashlib.sha256).hexdigest()
    return hmac.compare_digest(signature.strip().encode(), expected.encode())


def first_address(value) -> str:
    """'Name <a@b.c>' or ['a@b.c', ...] → 'a@b.c'."""
    if isinstance(value, list):
        value = value[0] if value else ""
    return parseaddr(value or "")[1].strip()


def is_whitelisted(email: str) -> bool:
    return email.strip().lower() in get_settings().email_whitelist


def strip_html(html: str | None) -> str:
    return _TAG_RE.sub("", html or "")


def compose_input(subject: str | None, body: str) -> str:
    """Subject, blank line, body (subject omitted when empty)."""
    return f"{subject}\n\n{body}" if subject else body


def find_user(db: Client, recipient: str, sender: str) -> dict | None:
    """Owner by recipient local part, else by sender address."""
    local_part = recipient.split("@", 1)[0] if "@" in recipient else ""

    if local_part:
        try:
            result = db.table("users").select("id, email").eq("id", local_part).limit(1).execute()
            if result.data:
                return result.data[0]
        except Exception as e:
            # Non-uuid local parts fail the id cast; fall through to the sender lookup
            logger.warning(f"User lookup by id '{local_part}' failed: {e}")

    result = db.table("users").select("id, email").eq("email", sender).limit(1).execute()
    return result.data[0] if result.data else None


async def fetch_full_email(email_id: str) -> tuple[str | None, str | None]:
    """(text, html) of a received email from the Resend API.

    Raises:
        ValueError: If RESEND_API_KEY is not configured.
        httpx.HTTPError: On transport errors or a non-2xx response.
    """
    api_key = get_settings().RESEND_API_KEY
    if not api_key:
        raise ValueError("RESEND_API_KEY not configured")

    async with httpx.AsyncClient(timeout=15) as client:
        response = await client.get(
            f"{RESEND_API_BASE}/emails/receiving/{email_id}",
            headers={"Authorization": f"Bearer {api_key}"},
        )
        response.raise_for_status()
        data = response.json()

    return data.get("text") or None, data.get("html") or None


async def read_email_body(email_id: str | None) -> str:
    """Plain-text body, HTML stripped as fallback, empty on fetch failure."""
    if not email_id:
        return ""
    try:
        text, html = await fetch_full_email(email_id)
    except Exception as e:
        logger.error(f"Failed to fetch email {email_id}: {e}")
        return ""
    logger.info(f"Fetched email {email_id} (text: {bool(text)}, html: {bool(html)})")
    return text or strip_html(html)


def build_email_log(
    email_log: dict,
    response: AgentResponse | None,
    error: str | None = None,
) -> dict:
    """email_logs row: the first tool result decides action, status and related ids."""
    first = response.tool_results[0] if response and response.tool_results else None
    success = bool(first and first.success)

    related_note_id = None
    related_reminder_id = None
    if first is not None and first.success and first.data:
        related_note_id = first.data.get("note_id")
        related_reminder_id = first.data.get("reminder_id")

    if error is None and first is not None and not first.success:
        error = first.error

    return {
        **email_log,
        "ai_result": response.model_dump(mode="json") if response else None,
        "action_type": first.action if first else None,
        "status": "processed" if success else "failed",
        "error_message": error,
        "related_note_id": related_note_id,
        "related_reminder_id": related_reminder_id,
    }


def log_email_processing(
    db: Client,
    email_log: dict,
    response: AgentResponse | None,
    error: str | None = None,
) -> None:
    try:
        db.table("email_logs").insert(build_email_log(email_log, response, error)).execute()
    except Exception as e:
        logger.error(f"Failed to write email log for user {email_log.get('user_id')}: {e}")
