"""
Integrations feature: third-party connections stored per user.

Lifecycle of a row: pending (OAuth started) → active (callback confirmed)
→ revoked (user disconnected). Rows are never deleted.
"""

from supabase import Client

from notepilot.core.timeutils import utc_now_iso

GOOGLE_CALENDAR_PROVIDER = "google-calendar"


class IntegrationsService:

    def __init__(self, db: Client):
        self.db = db

    def list_active(self, user_id: str) -> list[dict]:
        """Only active integrations contribute tools to the agent."""
        result = (
            self.db.table("user_integrations")
            .select("provider, connected_account_id")
            .eq("user_id", user_id)
            .eq("status", "active")
            .execute()
        )
        return result.data

    def list_for_user(self, user_id: str) -> list[dict]:
        """Every integration of the user, whatever its status."""
        result = (
            self.db.table("user_integrations")
            .select("id, provider, status, created_at")
            .eq("user_id", user_id)
            .execute()
        )
        return result.data

    def save_pending(self, user_id: str, provider: str, connected_account_id: str) -> dict:
        """Record a started connection so the OAuth callback can find its owner.

        Reuses the user's existing row for the provider if there is one.
        """
        existing = (
            self.db.table("user_integrations")
            .select("id")
            .eq("user_id", user_id)
            .eq("provider", provider)
            .limit(1)
            .execute()
        )
        data = {
            "connected_account_id": connected_account_id,
            "status": "pending",
        }

        if existing.data:
            result = (
                self.db.table("user_integrations")
                .update({**data, "updated_at": utc_now_iso()})
                .eq("id", existing.data[0]["id"])
                .execute()
            )
        else:
            result = (
                self.db.table("user_integrations")
                .insert({**data, "user_id": user_id, "provider": provider})
                .execute()
            )
        return result.data[0]

    def find_by_connected_account(self, connected_account_id: str) -> dict | None:
        result = (
            self.db.table("user_integrations")
            .select("*")
            .eq("connected_account_id", connected_account_id)
            .limit(1)
            .execute()
        )
        return result.data[0] if result.data else None

    def set_status(self, integration_id: str, status: str) -> None:
        (
            self.db.table("user_integrations")
            .update({"status": status, "updated_at": utc_now_iso()})
            .eq("id", integration_id)
            .execute()
        )

    def revoke(self, user_id: str, provider: str) -> dict | None:
        """Mark the user's integration revoked. None if there was none."""
        result = (
            self.db.table("user_integrations")
            .update({"status": "revoked", "updated_at": utc_now_iso()})
            .eq("user_id", user_id)
            .eq("provider", provider)
            .execute()
        )
        return result.data[0] if result.data else None
