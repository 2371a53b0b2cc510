"""
Reminders feature: Service layer for reminders.
"""

from datetime import datetime
from supabase import Client

from notepilot.core.timeutils import utc_now_iso
from notepilot.features.reminders.recurrence import (
    calculate_next_occurrence,
    should_create_next_occurrence,
)

NOTIFY_CHANNELS = ("email", "push", "both")
DEFAULT_NOTIFY_VIA = "both"


class RemindersService:
    """CRUD operations for reminders plus the dispatcher queries."""

    def __init__(self, db: Client):
        self.db = db

    def list_recent(self, user_id: str, limit: int = 20) -> list[dict]:
        result = (
            self.db.table("reminders")
            .select("id, message, remind_at, status")
            .eq("user_id", user_id)
            .order("created_at", desc=True)
            .limit(limit)
            .execute()
        )
        return result.data

    def create_reminder(
        self,
        user_id: str,
        message: str,
        remind_at: str | None = None,
        notify_via: str | None = None,
        recurrence: str | None = None,
        recurrence_end_date: str | None = None,
    ) -> dict:
        """Insert a pending reminder. notify_via always resolves to a channel."""
        insert_data = {
            "user_id": user_id,
            "message": message,
            "remind_at": remind_at,
            "notify_via": notify_via or DEFAULT_NOTIFY_VIA,
            "status": "pending",
            "recurrence": recurrence,
            "recurrence_end_date": recurrence_end_date,
        }
        result = self.db.table("reminders").insert(insert_data).execute()
        return result.data[0]

    def set_status(self, reminder_id: str, status: str, user_id: str | None = None) -> None:
        query = (
            self.db.table("reminders")
            .update({"status": status, "updated_at": utc_now_iso()})
            .eq("id", reminder_id)
        )
        if user_id is not None:
            query = query.eq("user_id", user_id)
        query.execute()

    def cancel_reminder(self, user_id: str, reminder_id: str) -> None:
        self.set_status(reminder_id, "cancelled", user_id=user_id)

    # ── Dispatcher (cross-owner, admin client only) ──────

    def list_due(self, now_iso: str) -> list[dict]:
        """Pending reminders whose time has come, oldest first."""
        result = (
            self.db.table("reminders")
            .select("*")
            .eq("status", "pending")
            .lte("remind_at", now_iso)
            .order("remind_at", desc=False)
            .execute()
        )
        return result.data

    def schedule_next_occurrence(self, reminder: dict) -> dict | None:
        """Insert the next occurrence of a recurring reminder, if any."""
        remind_at = reminder.get("remind_at")
        end_date = reminder.get("recurrence_end_date")
        current = datetime.fromisoformat(remind_at) if remind_at else None
        end = datetime.fromisoformat(end_date) if end_date else None

        if not should_create_next_occurrence(reminder.get("recurrence"), current, end):
            return None

        next_at = calculate_next_occurrence(current, reminder["recurrence"])
        return self.create_reminder(
            user_id=reminder["user_id"],
            message=reminder["message"],
            remind_at=next_at.isoformat(),
            notify_via=reminder.get("notify_via"),
            recurrence=reminder["recurrence"],
            recurrence_end_date=end_date,
        )
