"""
Outbound notification senders for reminders.

Fire-and-forget: every sender returns True/False and never raises.
  - push  → Zalo Bot API (sendMessage). Docs: https://bot.zaloplatforms.com/docs/
  - email → Resend HTTP API (POST /emails). Docs: https://resend.com/docs/api-reference
"""

import html
import logging
import httpx

from notepilot.config import get_settings

logger = logging.getLogger(__name__)

ZALO_API_BASE = "https://bot-api.zaloplatforms.com"
RESEND_API_BASE = "https://api.resend.com"

EMAIL_TEMPLATE = """\
<div style="font-family: sans-serif; max-width: 600px; margin: 0 auto;">
  <h2>Reminder</h2>
  <p style="font-size: 16px; line-height: 1.6;">{message}</p>
  <hr style="border: none; border-top: 1px solid #eee; margin: 20px 0;" />
  <p style="color: #666; font-size: 12px;">This reminder was sent from NotePilot.</p>
</div>
"""


async def send_push_message(text: str, chat_id: str | None = None) -> bool:
    """Send a push notification via Zalo Bot.

    Args:
        text: Message content (max 2000 chars).
        chat_id: Recipient chat ID. Defaults to ZALO_CHAT_ID from config.

    Returns:
        True if sent successfully, False otherwise.
    """
    settings = get_settings()

    token = settings.ZALO_BOT_TOKEN
    recipient = chat_id or settings.ZALO_CHAT_ID

    if not token or not recipient:
        logger.warning("Push not configured (missing ZALO_BOT_TOKEN or chat id)")
        return False

    url = f"{ZALO_API_BASE}/bot{token}/sendMessage"

    # Zalo limits to 2000 chars per message
    if len(text) > 2000:
        text = text[:1997] + "..."

    try:
        async with httpx.AsyncClient(timeout=15) as client:
            response = await client.post(url, json={"chat_id": recipient, "text": text})
            data = response.json()

            if data.get("ok"):
                logger.info(f"Push sent (msg_id: {data['result'].get('message_id', 'N/A')})")
                return True
            logger.error(f"Zalo API error: {data}")
            return False
    except Exception as e:
        logger.error(f"Failed to send push message: {e}")
        return False


async def send_reminder_email(to: str, message: str) -> bool:
    """Send a reminder email through Resend.

    Returns:
        True if Resend accepted the email, False otherwise.
    """
    settings = get_settings()

    if not settings.RESEND_API_KEY or not settings.EMAIL_DOMAIN:
        logger.warning("Email not configured (missing RESEND_API_KEY or EMAIL_DOMAIN)")
        return False

    payload = {
        "from": f"NotePilot <reminders@{settings.EMAIL_DOMAIN}>",
        "to": [to],
        "subject": "Reminder",
        "html": EMAIL_TEMPLATE.format(message=html.escape(message)),
    }

    try:
        async with httpx.AsyncClient(timeout=15) as client:
            response = await client.post(
                f"{RESEND_API_BASE}/emails",
                json=payload,
                headers={"Authorization": f"Bearer {settings.RESEND_API_KEY}"},
            )
            if response.is_success:
                logger.info(f"Reminder email sent to {to}")
                return True
            logger.error(f"Resend API error {response.status_code}: {response.text}")
            return False
    except Exception as e:
        logger.error(f"Failed to send reminder email: {e}")
        return False
