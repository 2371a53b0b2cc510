"""
Notes feature: Service layer for notes and their tag links.
"""

from supabase import Client

from notepilot.core.timeutils import utc_now_iso


class NotesService:
    """Owner-scoped CRUD for notes."""

    def __init__(self, db: Client):
        self.db = db

    def list_recent(self, user_id: str, limit: int = 20) -> list[dict]:
        """Most recently updated notes, soft-deleted ones excluded."""
        result = (
            self.db.table("notes")
            .select("id, title, content, updated_at")
            .eq("user_id", user_id)
            .is_("deleted_at", "null")
            .order("updated_at", desc=True)
            .limit(limit)
            .execute()
        )
        return result.data

    def create_note(self, user_id: str, title: str, content: str) -> dict:
        result = (
            self.db.table("notes")
            .insert({"user_id": user_id, "title": title, "content": content})
            .execute()
        )
        return result.data[0]

    def attach_tags(self, note_id: str, tag_ids: list[str]) -> None:
        """Link existing tags to a note (junction table note_tags)."""
        if not tag_ids:
            return
        self.db.table("note_tags").insert(
            [{"note_id": note_id, "tag_id": tag_id} for tag_id in tag_ids]
        ).execute()

    def update_note(self, user_id: str, note_id: str, update_data: dict) -> dict | None:
        """Update an existing note and bump updated_at."""
        clean_data = {k: v for k, v in update_data.items() if v is not None}
        if not clean_data:
            return None
        clean_data["updated_at"] = utc_now_iso()

        result = (
            self.db.table("notes")
            .update(clean_data)
            .eq("id", note_id)
            .eq("user_id", user_id)
            .execute()
        )
        return result.data[0] if result.data else None

    def delete_note(self, user_id: str, note_id: str) -> None:
        """Hard delete (the agent bypasses the trash)."""
        self.db.table("notes").delete().eq("id", note_id).eq("user_id", user_id).execute()
