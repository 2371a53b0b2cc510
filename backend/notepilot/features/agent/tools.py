"""
Agent feature: the static tool registry.

Tools are built per invocation, bound to one owner, the owner's tag
vocabulary and timezone. Every tool returns a ToolExecutionResult; any
exception (lookup miss or store failure) is converted into a ToolError
tagged with the tool's own action name, so one failing call never
aborts its siblings.
"""

import functools
import logging
from typing import Literal

from langchain_core.tools import BaseTool, StructuredTool
from pydantic import BaseModel, Field
from supabase import Client

from notepilot.core.exceptions import AppBaseError
from notepilot.core.timeutils import resolve_timezone, to_utc_iso
from notepilot.features.agent.resolver import EntityResolver
from notepilot.features.agent.results import ToolError, ToolExecutionResult, ToolSuccess
from notepilot.features.notes.service import NotesService
from notepilot.features.reminders.service import DEFAULT_NOTIFY_VIA, RemindersService
from notepilot.features.tags.service import match_tags
from notepilot.features.todos.priority import DEFAULT_PRIORITY, priority_to_position
from notepilot.features.todos.service import TodosService

logger = logging.getLogger(__name__)

PriorityField = Literal["do_first", "schedule", "delegate", "eliminate"]

PRIORITY_HELP = (
    'Priority quadrant: "do_first" (urgent & important), "schedule" (important, not urgent), '
    '"delegate" (urgent, not important), "eliminate" (not urgent, not important).'
)

# ── Input schemas ────────────────────────────────────────

class CreateNoteInput(BaseModel):
    title: str = Field(description="A concise, descriptive title for the note")
    content: str = Field(description="The full content of the note, formatted as clean markdown if appropriate")
    tags: list[str] | None = Field(
        default=None,
        description="1-3 relevant tag names from the user's available tags to assign to this note",
    )


class EditNoteInput(BaseModel):
    search_query: str = Field(description="Query to find the note to edit - use the exact title or keywords from the note")
    new_title: str | None = Field(default=None, description="New title if the user wants to rename the note")
    new_content: str | None = Field(default=None, description="New content to replace the existing content")
    append_content: str | None = Field(default=None, description="Content to add at the end of the existing note")


class DeleteNoteInput(BaseModel):
    search_query: str = Field(description="Query to find the note to delete - use the exact title or keywords from the note")


class CreateReminderInput(BaseModel):
    message: str = Field(description="The reminder message - what the user wants to be reminded about")
    remind_at: str | None = Field(
        default=None,
        description="Local ISO datetime without UTC offset (e.g. 2025-06-02T17:00:00) for when to send the reminder, or null if no specific time mentioned",
    )
    notify_via: Literal["email", "push", "both"] | None = Field(
        default=None,
        description='How to send the notification: "email", "push", or "both". Defaults to "both" if not specified.',
    )
    recurrence: Literal["daily", "weekly", "monthly"] | None = Field(
        default=None,
        description="Repeat the reminder daily, weekly or monthly. Omit for a one-time reminder.",
    )
    recurrence_end_date: str | None = Field(
        default=None,
        description="Local ISO datetime without UTC offset after which a recurring reminder stops repeating",
    )


class CancelReminderInput(BaseModel):
    search_query: str = Field(description="Query to find the reminder to cancel - use keywords from the reminder message")


class CreateTodoInput(BaseModel):
    title: str = Field(description="A short, actionable task title")
    description: str | None = Field(default=None, description="Optional longer description of the task")
    priority: PriorityField | None = Field(default=None, description=PRIORITY_HELP + ' Defaults to "do_first".')
    due_date: str | None = Field(default=None, description="Optional local ISO datetime (no UTC offset) for when the task is due")


class UpdateTodoInput(BaseModel):
    search_query: str = Field(description="Query to find the todo to update - use keywords from the todo title")
    new_title: str | None = Field(default=None, description="New title if the user wants to rename the todo")
    new_description: str | None = Field(default=None, description="New description for the todo")
    priority: PriorityField | None = Field(default=None, description="New priority quadrant. " + PRIORITY_HELP)
    due_date: str | None = Field(default=None, description="New due date as local ISO datetime (no UTC offset). Leave out to keep the current one")
    remove_due_date: bool = Field(default=False, description="Set to true to clear the due date")


class CompleteTodoInput(BaseModel):
    search_query: str = Field(description="Query to find the todo to complete - use keywords from the todo title")


class DeleteTodoInput(BaseModel):
    search_query: str = Field(description="Query to find the todo to delete - use keywords from the todo title")


# ── Descriptions (what the model reads to pick a tool) ───

TOOL_DESCRIPTIONS = {
    "createNote": (
        "Create a new note with a title and content. Use this when the user wants to save information, "
        "write something down, or create a new note. Suggest 1-3 relevant tags from the user's available tags."
    ),
    "editNote": (
        "Edit an existing note. Use this when the user wants to update, modify, or add to an existing note. "
        "You can change the title, replace the content, or append to it."
    ),
    "deleteNote": "Delete an existing note. Use this when the user wants to remove or delete a note.",
    "createReminder": (
        "Create a reminder to notify the user at a specific time. Use this when the user wants to be reminded "
        'about something. If they mention "push", "push notification" or "notification on my phone", use '
        'notify_via "push". If they mention "email", use notify_via "email". Otherwise leave it out ("both").'
    ),
    "cancelReminder": "Cancel a pending reminder. Use this when the user wants to cancel or remove an existing reminder.",
    "createTodo": (
        "Create a new todo/task. Use this when the user wants to add a task, todo item, or something to their "
        "to-do list. Todos are organized by priority using the Eisenhower Matrix (urgent/important quadrants)."
    ),
    "updateTodo": (
        "Update an existing pending todo/task. Use this when the user wants to modify a task title, "
        "description, priority, or due date. To clear the due date set remove_due_date instead of passing a date."
    ),
    "completeTodo": (
        "Mark a pending todo/task as completed. Use this when the user says they finished, completed, "
        "or are done with a task."
    ),
    "deleteTodo": "Delete a todo/task. Use this when the user wants to remove or delete a task from their list.",
}


def tool_action(action: str):
    """Convert any exception raised by a tool body into a ToolError."""
    def decorator(func):
        @functools.wraps(func)
        def wrapper(*args, **kwargs) -> ToolExecutionResult:
            try:
                return func(*args, **kwargs)
            except AppBaseError as e:
                logger.info(f"Tool {action}: {e.message}")
                return ToolError(action=action, error=e.message)
            except Exception as e:
                logger.error(f"Tool {action} failed: {e}", exc_info=True)
                return ToolError(action=action, error=str(e) or f"Failed to run {action}")
        return wrapper
    return decorator


class AgentToolkit:
    """The local operations the agent may call on behalf of one user."""

    def __init__(self, db: Client, user_id: str, user_tags: list | None = None, timezone: str | None = None):
        self.user_id = user_id
        self.user_tags = user_tags or []
        self.tz = resolve_timezone(timezone)
        self.resolver = EntityResolver(db)
        self.notes = NotesService(db)
        self.reminders = RemindersService(db)
        self.todos = TodosService(db)

    # ── Notes ────────────────────────────────────────────

    @tool_action("createNote")
    def create_note(self, title: str, content: str, tags: list[str] | None = None) -> ToolExecutionResult:
        note = self.notes.create_note(self.user_id, title, content)

        matched = match_tags(tags, self.user_tags)
        if matched:
            self.notes.attach_tags(note["id"], [t.id for t in matched])
        assigned = [t.name for t in matched]

        message = f'Created note: "{note["title"]}"'
        if assigned:
            message += f" with tags: {', '.join(assigned)}"

        return ToolSuccess(
            action="createNote",
            message=message,
            data={"note_id": note["id"], "title": note["title"], "tags": assigned},
        )

    @tool_action("editNote")
    def edit_note(
        self,
        search_query: str,
        new_title: str | None = None,
        new_content: str | None = None,
        append_content: str | None = None,
    ) -> ToolExecutionResult:
        note = self.resolver.resolve(self.user_id, "note", search_query)

        update_data = {}
        if new_title:
            update_data["title"] = new_title
        if new_content:
            update_data["content"] = new_content
        if append_content:
            base = update_data.get("content", note["content"])
            update_data["content"] = f"{base}\n\n{append_content}"

        if not update_data:
            return ToolError(action="editNote", error="Nothing to update: give a new title, new content or content to append")

        updated = self.notes.update_note(self.user_id, note["id"], update_data) or {**note, **update_data}
        return ToolSuccess(
            action="editNote",
            message=f'Updated note: "{updated["title"]}"',
            data={"note_id": updated["id"], "title": updated["title"]},
        )

    @tool_action("deleteNote")
    def delete_note(self, search_query: str) -> ToolExecutionResult:
        note = self.resolver.resolve(self.user_id, "note", search_query)
        self.notes.delete_note(self.user_id, note["id"])
        return ToolSuccess(
            action="deleteNote",
            message=f'Deleted note: "{note["title"]}"',
            data={"title": note["title"]},
        )

    # ── Reminders ────────────────────────────────────────

    @tool_action("createReminder")
    def create_reminder(
        self,
        message: str,
        remind_at: str | None = None,
        notify_via: str | None = None,
        recurrence: str | None = None,
        recurrence_end_date: str | None = None,
    ) -> ToolExecutionResult:
        channel = notify_via or DEFAULT_NOTIFY_VIA
        reminder = self.reminders.create_reminder(
            user_id=self.user_id,
            message=message,
            remind_at=to_utc_iso(remind_at, self.tz),
            notify_via=channel,
            recurrence=recurrence,
            recurrence_end_date=to_utc_iso(recurrence_end_date, self.tz),
        )

        result_message = f'Created reminder: "{reminder["message"]}"'
        if reminder.get("remind_at"):
            result_message += f" for {reminder['remind_at']}"
        if recurrence:
            result_message += f", repeating {recurrence}"
        result_message += f" (via {channel})"

        return ToolSuccess(
            action="createReminder",
            message=result_message,
            data={
                "reminder_id": reminder["id"],
                "message": reminder["message"],
                "remind_at": reminder.get("remind_at"),
                "notify_via": channel,
            },
        )

    @tool_action("cancelReminder")
    def cancel_reminder(self, search_query: str) -> ToolExecutionResult:
        reminder = self.resolver.resolve(self.user_id, "reminder", search_query, status="pending")
        self.reminders.cancel_reminder(self.user_id, reminder["id"])
        return ToolSuccess(
            action="cancelReminder",
            message=f'Cancelled reminder: "{reminder["message"]}"',
            data={"message": reminder["message"]},
        )

    # ── Todos ────────────────────────────────────────────

    @tool_action("createTodo")
    def create_todo(
        self,
        title: str,
        description: str | None = None,
        priority: str | None = None,
        due_date: str | None = None,
    ) -> ToolExecutionResult:
        priority = priority or DEFAULT_PRIORITY
        todo = self.todos.create_todo(
            user_id=self.user_id,
            title=title,
            position=priority_to_position(priority),
            description=description or None,
            due_date=to_utc_iso(due_date, self.tz),
        )

        message = f'Created todo: "{todo["title"]}" in {priority} quadrant'
        if todo.get("due_date"):
            message += f" (due: {todo['due_date']})"

        return ToolSuccess(
            action="createTodo",
            message=message,
            data={"todo_id": todo["id"], "title": todo["title"], "priority": priority},
        )

    @tool_action("updateTodo")
    def update_todo(
        self,
        search_query: str,
        new_title: str | None = None,
        new_description: str | None = None,
        priority: str | None = None,
        due_date: str | None = None,
        remove_due_date: bool = False,
    ) -> ToolExecutionResult:
        todo = self.resolver.resolve(self.user_id, "todo", search_query, status="pending")

        update_data = {}
        if new_title:
            update_data["title"] = new_title
        if new_description is not None:
            update_data["description"] = new_description
        if priority:
            update_data["position_x"], update_data["position_y"] = priority_to_position(priority)
        if remove_due_date:
            update_data["due_date"] = None
        elif due_date:
            update_data["due_date"] = to_utc_iso(due_date, self.tz)

        if not update_data:
            return ToolError(action="updateTodo", error="Nothing to update: give a new title, description, priority or due date")

        updated = self.todos.update_todo(self.user_id, todo["id"], update_data) or {**todo, **update_data}
        return ToolSuccess(
            action="updateTodo",
            message=f'Updated todo: "{updated["title"]}"',
            data={"todo_id": updated["id"], "title": updated["title"]},
        )

    @tool_action("completeTodo")
    def complete_todo(self, search_query: str) -> ToolExecutionResult:
        todo = self.resolver.resolve(self.user_id, "todo", search_query, status="pending")
        self.todos.complete_todo(self.user_id, todo["id"])
        return ToolSuccess(
            action="completeTodo",
            message=f'Completed todo: "{todo["title"]}"',
            data={"title": todo["title"]},
        )

    @tool_action("deleteTodo")
    def delete_todo(self, search_query: str) -> ToolExecutionResult:
        todo = self.resolver.resolve(self.user_id, "todo", search_query)
        self.todos.delete_todo(self.user_id, todo["id"])
        return ToolSuccess(
            action="deleteTodo",
            message=f'Deleted todo: "{todo["title"]}"',
            data={"title": todo["title"]},
        )

    # ── Registry ─────────────────────────────────────────

    def as_tools(self) -> dict[str, BaseTool]:
        """Name → LangChain tool, in the order the prompt lists them."""
        specs = [
            ("createNote", self.create_note, CreateNoteInput),
            ("editNote", self.edit_note, EditNoteInput),
            ("deleteNote", self.delete_note, DeleteNoteInput),
            ("createReminder", self.create_reminder, CreateReminderInput),
            ("cancelReminder", self.cancel_reminder, CancelReminderInput),
            ("createTodo", self.create_todo, CreateTodoInput),
            ("updateTodo", self.update_todo, UpdateTodoInput),
            ("completeTodo", self.complete_todo, CompleteTodoInput),
            ("deleteTodo", self.delete_todo, DeleteTodoInput),
        ]
        return {
            name: StructuredTool.from_function(
                func=func,
                name=name,
                description=TOOL_DESCRIPTIONS[name],
                args_schema=schema,
            )
            for name, func, schema in specs
        }
