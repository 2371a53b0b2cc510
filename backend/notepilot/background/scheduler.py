"""
Background scheduler for reminder delivery.

Uses APScheduler to poll for due reminders every
REMINDER_CHECK_INTERVAL_SECONDS, send them through their channel,
mark them sent and queue the next occurrence of recurring ones.
"""

import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from supabase import Client

from notepilot.config import get_settings
from notepilot.core.database import get_supabase_admin_client
from notepilot.core.notifier import send_push_message, send_reminder_email
from notepilot.core.timeutils import utc_now_iso
from notepilot.features.reminders.service import DEFAULT_NOTIFY_VIA, NOTIFY_CHANNELS, RemindersService

logger = logging.getLogger(__name__)

REMINDER_JOB_ID = "check_due_reminders"

# Singleton scheduler instance
scheduler = AsyncIOScheduler(timezone="UTC")


def _get_user(db: Client, user_id: str) -> dict | None:
    result = (
        db.table("users")
        .select("id, email, push_chat_id")
        .eq("id", user_id)
        .limit(1)
        .execute()
    )
    return result.data[0] if result.data else None


async def deliver_reminder(reminder: dict, user: dict) -> bool:
    """Send one reminder through its channel(s). True if any channel succeeded."""
    channel = reminder.get("notify_via")
    if channel not in NOTIFY_CHANNELS:
        logger.warning(f"Reminder {reminder.get('id')} has notify_via={channel!r}, using {DEFAULT_NOTIFY_VIA}")
        channel = DEFAULT_NOTIFY_VIA
    delivered = False

    if channel in ("email", "both") and user.get("email"):
        delivered |= await send_reminder_email(user["email"], reminder["message"])
    if channel in ("push", "both"):
        delivered |= await send_push_message(f"⏰ {reminder['message']}", user.get("push_chat_id"))

    return delivered


async def check_due_reminders(db: Client | None = None) -> dict:
    """One dispatch pass over all owners' due reminders.

    Returns:
        {"processed", "sent", "failed"} counts.
    """
    db = db or get_supabase_admin_client()
    reminders = RemindersService(db)

    due = reminders.list_due(utc_now_iso())
    if due:
        logger.info(f"⏰ {len(due)} due reminder(s) found")

    sent = failed = 0
    for reminder in due:
        try:
            user = _get_user(db, reminder["user_id"])
            if not user:
                raise LookupError(f"user {reminder['user_id']} not found")

            if not await deliver_reminder(reminder, user):
                raise RuntimeError(f"no channel delivered (notify_via={reminder.get('notify_via')})")

            reminders.set_status(reminder["id"], "sent")
        except Exception as e:
            logger.error(f"❌ Failed to send reminder {reminder.get('id')}: {e}")
            failed += 1
            continue

        sent += 1
        try:
            next_reminder = reminders.schedule_next_occurrence(reminder)
            if next_reminder:
                logger.info(f"🔁 Next occurrence of {reminder['id']} at {next_reminder['remind_at']}")
        except Exception as e:
            logger.error(f"❌ Failed to queue next occurrence of reminder {reminder['id']}: {e}", exc_info=True)

    if due:
        logger.info(f"✅ Reminder pass done: {sent} sent, {failed} failed")
    return {"processed": len(due), "sent": sent, "failed": failed}


async def run_reminder_check():
    """Callback for the APScheduler interval job."""
    try:
        await check_due_reminders()
    except Exception as e:
        logger.error(f"❌ Reminder check failed: {e}", exc_info=True)


def init_scheduler():
    """Register the reminder job and start the scheduler.

    Called during FastAPI lifespan startup.
    """
    interval = get_settings().REMINDER_CHECK_INTERVAL_SECONDS
    scheduler.add_job(
        func=run_reminder_check,
        trigger=IntervalTrigger(seconds=interval),
        id=REMINDER_JOB_ID,
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )
    scheduler.start()
    logger.info(f"📅 Scheduler started: reminder check every {interval}s")


def shutdown_scheduler():
    """Stop the scheduler (called during FastAPI lifespan shutdown)."""
    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Scheduler stopped.")
