"""
Agent feature: system prompt composition.

The prompt carries the current time in the owner's timezone, the
decision table between calendar events, reminders, todos and notes,
datetime rules, the context snapshot and the calendar availability.
"""

from datetime import datetime, timezone

from notepilot.core.timeutils import resolve_timezone
from notepilot.features.agent.context import UserContext
from notepilot.features.todos.priority import quadrant_label


def format_utc_offset(now: datetime) -> str:
    """'UTC+07:00' style offset of an aware datetime."""
    offset = now.utcoffset()
    total_minutes = int(offset.total_seconds() // 60) if offset else 0
    sign = "+" if total_minutes >= 0 else "-"
    hours, minutes = divmod(abs(total_minutes), 60)
    return f"UTC{sign}{hours:02d}:{minutes:02d}"


def format_context_for_prompt(context: UserContext, tz=None) -> str:
    """Render the snapshot as numbered lists with entity ids."""
    tz = tz or timezone.utc
    lines: list[str] = []

    if context.notes:
        lines.append("Your existing Notes:")
        for i, note in enumerate(context.notes, 1):
            lines.append(f'{i}. [ID: {note.id}] "{note.title}" - {note.preview}...')
    else:
        lines.append("You have no existing notes.")

    lines.append("")
    if context.reminders:
        lines.append("Your existing Reminders:")
        for i, reminder in enumerate(context.reminders, 1):
            when = (
                f" (scheduled: {reminder.remind_at.astimezone(tz).strftime('%Y-%m-%d %H:%M')})"
                if reminder.remind_at
                else " (no time set)"
            )
            lines.append(f'{i}. [ID: {reminder.id}] [{reminder.status}] "{reminder.message}"{when}')
    else:
        lines.append("You have no existing reminders.")

    lines.append("")
    if context.todos:
        lines.append("Your pending Todos:")
        for i, todo in enumerate(context.todos, 1):
            due = f" (due: {todo.due_date.astimezone(tz).strftime('%Y-%m-%d')})" if todo.due_date else ""
            lines.append(
                f'{i}. [ID: {todo.id}] "{todo.title}" - {quadrant_label(todo.position_x, todo.position_y)}{due}'
            )
    else:
        lines.append("You have no pending todos.")

    lines.append("")
    if context.tags:
        lines.append("Your available Tags:")
        lines.append(", ".join(tag.name for tag in context.tags))
    else:
        lines.append("You have no tags yet.")

    return "\n".join(lines)


def build_system_prompt(
    context: UserContext,
    user_timezone: str | None = None,
    has_calendar_tools: bool = False,
    now: datetime | None = None,
) -> str:
    """Build the system instruction for one agent invocation."""
    tz = resolve_timezone(user_timezone)
    local_now = (now or datetime.now(timezone.utc)).astimezone(tz)

    utc_offset = format_utc_offset(local_now)
    calendar_status = "" if has_calendar_tools else " (NOT AVAILABLE - user needs to connect Google Calendar)"
    calendar_section = CALENDAR_TOOLS_SECTION if has_calendar_tools else CALENDAR_UNAVAILABLE_SECTION

    return SYSTEM_PROMPT_TEMPLATE.format(
        current_time=local_now.strftime("%Y-%m-%d %H:%M:%S (%A)"),
        timezone=tz.key,
        utc_offset=utc_offset,
        calendar_status=calendar_status,
        calendar_section=calendar_section,
        context=format_context_for_prompt(context, tz),
    )


CALENDAR_TOOLS_SECTION = """GOOGLE CALENDAR TOOLS:
- GOOGLECALENDAR_CREATE_EVENT: Create events. Required: summary (title), start datetime, end datetime (default 1 hour after start if not specified). Optional: description, location, attendees.
- GOOGLECALENDAR_EVENTS_LIST: List events in a date range.
- GOOGLECALENDAR_UPDATE_EVENT: Modify an existing event by ID.
- GOOGLECALENDAR_DELETE_EVENT: Delete an event by ID.
- GOOGLECALENDAR_EVENTS_GET: Get one event by ID.
- GOOGLECALENDAR_FIND_EVENT: Search events by text."""

CALENDAR_UNAVAILABLE_SECTION = """NOTE: Google Calendar is not connected. If the user asks to add calendar events or appointments, do not create a note or todo instead: tell them to connect Google Calendar on the Integrations page first."""

SYSTEM_PROMPT_TEMPLATE = """You are a helpful assistant that manages notes, reminders, todos, and calendar events for the user.

Current local time: {current_time}
Timezone: {timezone} ({utc_offset})

TOOL SELECTION GUIDE - Use the RIGHT tool for each request:

1. CALENDAR EVENTS (time-bound activities with others or scheduled commitments):
   Keywords: "appointment", "meeting", "schedule", "calendar", "event", "book", "reserve"
   Examples: "Add appointment with Robin", "Schedule a meeting", "Put X on my calendar"
   → Use GOOGLECALENDAR_CREATE_EVENT{calendar_status}

2. REMINDERS (notifications to remember something):
   Keywords: "remind me", "reminder", "don't forget", "alert me", "notify me"
   Examples: "Remind me to call mom", "Set a reminder for the meeting"
   → Use createReminder

3. TODOS (tasks to complete, action items):
   Keywords: "todo", "task", "to-do", "add to my list", "I need to", "action item"
   Examples: "Add a todo to buy groceries", "Create a task for...", "I need to finish the report"
   → Use createTodo (with priority: do_first, schedule, delegate, or eliminate)
   Priority quadrants (Eisenhower Matrix):
   - do_first: Urgent AND Important (deadlines, crises)
   - schedule: Important but NOT Urgent (planning, learning)
   - delegate: Urgent but NOT Important (interruptions, some emails)
   - eliminate: NOT Urgent and NOT Important (time wasters)

4. NOTES (information to save/reference later):
   Keywords: "note", "write down", "save", "jot down", "remember this info"
   Examples: "Make a note about...", "Save this recipe", "Write down these ideas"
   → Use createNote

CRITICAL: Choose the right tool:
- Calendar event = scheduled activity with a specific time (goes on calendar)
- Todo = task to complete, action item (goes on todo list)
- Note = saved information (for reference)
- Reminder = future notification (alerts the user)

A single request may need MULTIPLE tools, called in sequence. For example:
"Add appointment Sunday 7pm and remind me 24h before" → Calendar event + Reminder

To edit, delete, cancel or complete something, pass keywords from its title or message as search_query; the most recent match is used.

{calendar_section}

DATETIME HANDLING:
- Resolve relative times ("tomorrow at 3pm", "next Sunday", "in 2 hours") against the current local time above.
- Pass datetimes to tools as local wall-clock ISO 8601 WITHOUT a UTC offset, e.g. 2025-01-31T15:00:00. They are read in {timezone}, including daylight-saving changes, so never add or convert offsets yourself.
- For calendar events, also pass the timezone {timezone} when the tool accepts one.
- For calendar events, always set both start AND end time (default to 1 hour duration).

NOTES: When creating notes, suggest 1-3 relevant tags from the user's available tags.

{context}

Always confirm what actions you took and be specific about dates/times used."""
