"""
Agent feature: bounded snapshot of the user's current state.

The snapshot is the only memory the agent has. Five independent reads
run concurrently; any failure aborts the build (no partial snapshot).
"""

import asyncio
import logging
from datetime import datetime

from pydantic import BaseModel, Field
from supabase import Client

from notepilot.config import get_settings
from notepilot.core.exceptions import ContextAssemblyError
from notepilot.features.integrations.service import GOOGLE_CALENDAR_PROVIDER, IntegrationsService
from notepilot.features.notes.service import NotesService
from notepilot.features.reminders.service import RemindersService
from notepilot.features.tags.service import TagsService
from notepilot.features.todos.service import TodosService

logger = logging.getLogger(__name__)


class ContextNote(BaseModel):
    id: str
    title: str
    preview: str
    updated_at: datetime | None = None


class ContextReminder(BaseModel):
    id: str
    message: str
    remind_at: datetime | None = None
    status: str


class ContextTodo(BaseModel):
    id: str
    title: str
    description: str | None = None
    status: str = "pending"
    due_date: datetime | None = None
    position_x: float
    position_y: float


class ContextTag(BaseModel):
    id: str
    name: str
    color: str | None = None


class ContextIntegration(BaseModel):
    provider: str
    connected_account_id: str


class UserContext(BaseModel):
    notes: list[ContextNote] = Field(default_factory=list)
    reminders: list[ContextReminder] = Field(default_factory=list)
    todos: list[ContextTodo] = Field(default_factory=list)
    tags: list[ContextTag] = Field(default_factory=list)
    integrations: list[ContextIntegration] = Field(default_factory=list)

    def has_integration(self, provider: str) -> bool:
        return any(i.provider == provider for i in self.integrations)

    @property
    def has_calendar_integration(self) -> bool:
        return self.has_integration(GOOGLE_CALENDAR_PROVIDER)


async def build_user_context(db: Client, user_id: str) -> UserContext:
    """Read notes, reminders, pending todos, tags and active integrations.

    Raises:
        ContextAssemblyError: If any of the reads fails.
    """
    settings = get_settings()

    try:
        notes, reminders, todos, tags, integrations = await asyncio.gather(
            asyncio.to_thread(NotesService(db).list_recent, user_id, settings.CONTEXT_NOTES_LIMIT),
            asyncio.to_thread(RemindersService(db).list_recent, user_id, settings.CONTEXT_REMINDERS_LIMIT),
            asyncio.to_thread(TodosService(db).list_pending, user_id, settings.CONTEXT_TODOS_LIMIT),
            asyncio.to_thread(TagsService(db).list_tags, user_id),
            asyncio.to_thread(IntegrationsService(db).list_active, user_id),
        )
    except Exception as e:
        logger.error(f"Context assembly failed for user {user_id}: {e}")
        raise ContextAssemblyError(str(e)) from e

    preview_chars = settings.NOTE_PREVIEW_CHARS
    context = UserContext(
        notes=[
            ContextNote(
                id=n["id"],
                title=n["title"],
                preview=(n.get("content") or "")[:preview_chars],
                updated_at=n.get("updated_at"),
            )
            for n in notes
        ],
        reminders=[ContextReminder(**r) for r in reminders],
        todos=[ContextTodo(**t) for t in todos],
        tags=[ContextTag(**t) for t in tags],
        integrations=[ContextIntegration(**i) for i in integrations],
    )
    logger.info(
        f"Context for {user_id}: {len(context.notes)} notes, {len(context.reminders)} reminders, "
        f"{len(context.todos)} todos, {len(context.tags)} tags, {len(context.integrations)} integrations"
    )
    return context
