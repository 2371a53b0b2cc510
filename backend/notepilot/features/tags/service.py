"""
Tags feature: read access to the owner's tag vocabulary.
"""

from supabase import Client


class TagsService:

    def __init__(self, db: Client):
        self.db = db

    def list_tags(self, user_id: str) -> list[dict]:
        """All tags of the owner, alphabetical."""
        result = (
            self.db.table("tags")
            .select("id, name, color")
            .eq("user_id", user_id)
            .order("name", desc=False)
            .execute()
        )
        return result.data


def match_tags(tag_names: list[str] | None, user_tags: list) -> list:
    """Owner tags whose name equals one of `tag_names`, case-insensitively.

    `user_tags` items only need a `.name` attribute; names with no match
    are dropped silently.
    """
    if not tag_names:
        return []
    wanted = {name.strip().lower() for name in tag_names}
    return [tag for tag in user_tags if tag.name.lower() in wanted]
