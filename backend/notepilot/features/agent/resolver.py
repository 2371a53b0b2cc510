"""
Agent feature: resolve vague references ("the meeting note") to stored rows.

Matching is a case-insensitive substring search over each kind's text
columns, owner-scoped, newest first. The first row wins: ambiguous
queries silently pick the most recent match.
"""

from dataclasses import dataclass

from supabase import Client

from notepilot.core.exceptions import EntityNotFoundError


@dataclass(frozen=True)
class SearchTarget:
    table: str
    fields: tuple[str, ...]
    order_by: str
    exclude_deleted: bool = False


SEARCH_TARGETS: dict[str, SearchTarget] = {
    "note": SearchTarget("notes", ("title", "content"), "updated_at", exclude_deleted=True),
    "reminder": SearchTarget("reminders", ("message",), "created_at"),
    "todo": SearchTarget("todos", ("title", "description"), "created_at"),
}


def ilike_any(fields: tuple[str, ...], query: str) -> str:
    """PostgREST `or` filter: any of `fields` ILIKE %query%.

    The pattern is double-quoted so commas, dots and parentheses in the
    user's text do not break the filter grammar.
    """
    escaped = query.replace("\\", "\\\\").replace('"', '\\"')
    return ",".join(f'{field}.ilike."%{escaped}%"' for field in fields)


class EntityResolver:
    """Find the single best-matching note / reminder / todo for a query."""

    def __init__(self, db: Client):
        self.db = db

    def resolve(
        self,
        user_id: str,
        kind: str,
        query: str,
        status: str | None = None,
    ) -> dict:
        """Return the most recent matching row.

        Args:
            user_id: Owner whose rows are searched.
            kind: "note", "reminder" or "todo".
            query: Free text from the model (title, keywords...).
            status: Optional status constraint (e.g. "pending").

        Raises:
            EntityNotFoundError: If no row matches under the constraint.
        """
        target = SEARCH_TARGETS[kind]
        db_query = (
            self.db.table(target.table)
            .select("*")
            .eq("user_id", user_id)
            .or_(ilike_any(target.fields, query.strip()))
        )
        if target.exclude_deleted:
            db_query = db_query.is_("deleted_at", "null")
        if status:
            db_query = db_query.eq("status", status)

        result = db_query.order(target.order_by, desc=True).limit(1).execute()
        if not result.data:
            raise EntityNotFoundError(kind, query, status)
        return result.data[0]
