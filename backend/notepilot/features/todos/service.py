"""
Todos feature: Service layer for the Eisenhower todo board.
"""

from supabase import Client

from notepilot.core.timeutils import utc_now_iso


class TodosService:
    """CRUD operations for todos."""

    def __init__(self, db: Client):
        self.db = db

    def list_pending(self, user_id: str, limit: int = 20) -> list[dict]:
        result = (
            self.db.table("todos")
            .select("id, title, description, status, due_date, position_x, position_y")
            .eq("user_id", user_id)
            .eq("status", "pending")
            .order("created_at", desc=True)
            .limit(limit)
            .execute()
        )
        return result.data

    def create_todo(
        self,
        user_id: str,
        title: str,
        position: tuple[int, int],
        description: str | None = None,
        due_date: str | None = None,
    ) -> dict:
        position_x, position_y = position
        result = (
            self.db.table("todos")
            .insert({
                "user_id": user_id,
                "title": title,
                "description": description,
                "status": "pending",
                "position_x": position_x,
                "position_y": position_y,
                "due_date": due_date,
            })
            .execute()
        )
        return result.data[0]

    def update_todo(self, user_id: str, todo_id: str, update_data: dict) -> dict | None:
        """Apply a partial update. Keys present are written as-is (None clears)."""
        if not update_data:
            return None
        update_data = {**update_data, "updated_at": utc_now_iso()}

        result = (
            self.db.table("todos")
            .update(update_data)
            .eq("id", todo_id)
            .eq("user_id", user_id)
            .execute()
        )
        return result.data[0] if result.data else None

    def complete_todo(self, user_id: str, todo_id: str) -> dict | None:
        now = utc_now_iso()
        return self.update_todo(
            user_id, todo_id, {"status": "completed", "completed_at": now}
        )

    def delete_todo(self, user_id: str, todo_id: str) -> None:
        self.db.table("todos").delete().eq("id", todo_id).eq("user_id", user_id).execute()
