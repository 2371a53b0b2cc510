"""
Shared fixtures: an in-memory Supabase query builder and a scripted chat model.
"""

import os

os.environ.setdefault("SUPABASE_URL", "http://localhost:54321")
os.environ.setdefault("SUPABASE_KEY", "test-anon-key")
os.environ.setdefault("SUPABASE_SERVICE_KEY", "test-service-key")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret")
os.environ.setdefault("EMAIL_WHITELIST", "Owner@Example.com, second@example.com")
os.environ.setdefault("RESEND_WEBHOOK_SECRET", "whsec_test")

import copy
import re
import uuid
from datetime import datetime, timezone

import pytest
from langchain_core.language_models import BaseChatModel
from langchain_core.messages import AIMessage
from langchain_core.outputs import ChatGeneration, ChatResult
from pydantic import Field


# -- Fake Supabase --

def _like_to_regex(pattern: str) -> re.Pattern:
    parts = [".*" if ch == "%" else "." if ch == "_" else re.escape(ch) for ch in pattern]
    return re.compile("^" + "".join(parts) + "$", re.IGNORECASE | re.DOTALL)


def _split_or_filter(filters: str) -> list[str]:
    """Split a PostgREST or-filter on commas outside double quotes."""
    items, current, quoted, escaped = [], "", False, False
    for ch in filters:
        if escaped:
            current += ch
            escaped = False
        elif ch == "\\":
            current += ch
            escaped = True
        elif ch == '"':
            current += ch
            quoted = not quoted
        elif ch == "," and not quoted:
            items.append(current)
            current = ""
        else:
            current += ch
    items.append(current)
    return items


def _parse_condition(condition: str):
    field, op, value = condition.split(".", 2)
    if value.startswith('"') and value.endswith('"'):
        value = re.sub(r"\\(.)", r"\1", value[1:-1])
    if op == "ilike":
        regex = _like_to_regex(value)
        return lambda row: regex.match(str(row.get(field) or "")) is not None
    if op == "eq":
        return lambda row: str(row.get(field)) == value
    raise NotImplementedError(op)


class FakeResult:
    def __init__(self, data):
        self.data = data


class FakeQuery:
    def __init__(self, db: "FakeSupabase", table: str):
        self.db = db
        self.table_name = table
        self.op = "select"
        self.columns = "*"
        self.payload = None
        self.filters = []
        self.order_by = None
        self.limit_n = None

    # operations
    def select(self, columns: str = "*"):
        self.op, self.columns = "select", columns
        return self

    def insert(self, payload):
        self.op, self.payload = "insert", payload
        return self

    def update(self, payload):
        self.op, self.payload = "update", payload
        return self

    def delete(self):
        self.op = "delete"
        return self

    # filters
    def eq(self, field, value):
        self.filters.append(lambda row: row.get(field) == value)
        return self

    def is_(self, field, value):
        assert value == "null"
        self.filters.append(lambda row: row.get(field) is None)
        return self

    def lte(self, field, value):
        self.filters.append(lambda row: row.get(field) is not None and row[field] <= value)
        return self

    def ilike(self, field, pattern):
        regex = _like_to_regex(pattern)
        self.filters.append(lambda row: regex.match(str(row.get(field) or "")) is not None)
        return self

    def or_(self, filters: str):
        conditions = [_parse_condition(c) for c in _split_or_filter(filters)]
        self.filters.append(lambda row: any(cond(row) for cond in conditions))
        return self

    def order(self, field, desc=False):
        self.order_by = (field, desc)
        return self

    def limit(self, n):
        self.limit_n = n
        return self

    # execution
    def _project(self, row: dict) -> dict:
        if self.columns.strip() == "*":
            return dict(row)
        return {c.strip(): row.get(c.strip()) for c in self.columns.split(",")}

    def execute(self) -> FakeResult:
        self.db.queries.append((self.table_name, self.op))
        error = self.db.fail_on.get((self.table_name, self.op)) or self.db.fail_on.get(self.table_name)
        if error is not None:
            raise error

        rows = self.db.tables.setdefault(self.table_name, [])

        if self.op == "insert":
            payloads = self.payload if isinstance(self.payload, list) else [self.payload]
            inserted = []
            for payload in payloads:
                now = self.db.now()
                row = {"id": str(uuid.uuid4()), "created_at": now, "updated_at": now, **payload}
                rows.append(row)
                inserted.append(copy.deepcopy(row))
            return FakeResult(inserted)

        matched = [row for row in rows if all(f(row) for f in self.filters)]

        if self.op == "update":
            for row in matched:
                row.update(self.payload)
            return FakeResult([copy.deepcopy(row) for row in matched])

        if self.op == "delete":
            self.db.tables[self.table_name] = [row for row in rows if row not in matched]
            return FakeResult(copy.deepcopy(matched))

        if self.order_by:
            field, desc = self.order_by
            present = [r for r in matched if r.get(field) is not None]
            missing = [r for r in matched if r.get(field) is None]
            matched = sorted(present, key=lambda r: r[field], reverse=desc) + missing
        if self.limit_n is not None:
            matched = matched[: self.limit_n]
        return FakeResult([self._project(copy.deepcopy(row)) for row in matched])


class FakeSupabase:
    """Just enough of supabase.Client for the services: table(...).<chain>.execute()."""

    def __init__(self, tables: dict[str, list[dict]] | None = None):
        self.tables = copy.deepcopy(tables or {})
        self.fail_on: dict = {}
        self.queries: list[tuple[str, str]] = []

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)

    def now(self) -> str:
        return datetime.now(timezone.utc).isoformat()

    def rows(self, table: str) -> list[dict]:
        return self.tables.get(table, [])


# -- Scripted chat model --

class ScriptedChatModel(BaseChatModel):
    """Replays fixed AIMessages, one per model turn; "Done." once exhausted."""

    responses: list[AIMessage] = Field(default_factory=list)
    error: str | None = None
    calls: list = Field(default_factory=list)
    bound_tools: list[str] = Field(default_factory=list)

    @property
    def _llm_type(self) -> str:
        return "scripted"

    def bind_tools(self, tools, **kwargs):
        self.bound_tools = [t.name for t in tools]
        return self

    def _generate(self, messages, stop=None, run_manager=None, **kwargs) -> ChatResult:
        self.calls.append(list(messages))
        if self.error:
            raise RuntimeError(self.error)
        turn = len(self.calls) - 1
        message = self.responses[turn] if turn < len(self.responses) else AIMessage(content="Done.")
        return ChatResult(generations=[ChatGeneration(message=message)])


def tool_calls(*calls: tuple[str, dict]) -> AIMessage:
    """AIMessage requesting the given (name, args) tool calls in order."""
    return AIMessage(
        content="",
        tool_calls=[
            {"name": name, "args": args, "id": f"call_{i}", "type": "tool_call"}
            for i, (name, args) in enumerate(calls)
        ],
    )


# -- Fixtures --

USER_ID = "user-1"
OTHER_USER_ID = "user-2"


@pytest.fixture
def db():
    return FakeSupabase({
        "notes": [
            {"id": "n1", "user_id": USER_ID, "title": "Meeting notes", "content": "Discuss Q3 roadmap",
             "deleted_at": None, "created_at": "2025-05-01T08:00:00+00:00", "updated_at": "2025-05-01T08:00:00+00:00"},
            {"id": "n2", "user_id": USER_ID, "title": "Team meeting follow-up", "content": "Send slides",
             "deleted_at": None, "created_at": "2025-05-02T08:00:00+00:00", "updated_at": "2025-05-03T08:00:00+00:00"},
            {"id": "n3", "user_id": USER_ID, "title": "Old meeting", "content": "trashed",
             "deleted_at": "2025-05-04T08:00:00+00:00", "created_at": "2025-05-04T08:00:00+00:00",
             "updated_at": "2025-05-04T09:00:00+00:00"},
            {"id": "n4", "user_id": OTHER_USER_ID, "title": "Someone else's meeting", "content": "private",
             "deleted_at": None, "created_at": "2025-05-05T08:00:00+00:00", "updated_at": "2025-05-05T08:00:00+00:00"},
        ],
        "reminders": [
            {"id": "r1", "user_id": USER_ID, "message": "Call the dentist", "remind_at": "2025-05-10T09:00:00+00:00",
             "status": "pending", "notify_via": "both", "created_at": "2025-05-01T08:00:00+00:00"},
            {"id": "r2", "user_id": USER_ID, "message": "Pay rent", "remind_at": "2025-05-01T09:00:00+00:00",
             "status": "sent", "notify_via": "email", "created_at": "2025-05-02T08:00:00+00:00"},
        ],
        "todos": [
            {"id": "t1", "user_id": USER_ID, "title": "Finish the report", "description": "Quarterly numbers",
             "status": "pending", "due_date": None, "position_x": 15, "position_y": 15,
             "created_at": "2025-05-01T08:00:00+00:00"},
            {"id": "t2", "user_id": USER_ID, "title": "Renew passport", "description": None,
             "status": "completed", "due_date": None, "position_x": 85, "position_y": 15,
             "completed_at": "2025-05-02T08:00:00+00:00", "created_at": "2025-05-02T08:00:00+00:00"},
        ],
        "tags": [
            {"id": "tag-work", "user_id": USER_ID, "name": "Work", "color": "#f00"},
            {"id": "tag-ideas", "user_id": USER_ID, "name": "Ideas", "color": None},
            {"id": "tag-other", "user_id": OTHER_USER_ID, "name": "Private", "color": None},
        ],
        "user_integrations": [],
        "users": [
            {"id": USER_ID, "email": "owner@example.com", "push_chat_id": "chat-1"},
        ],
    })


@pytest.fixture
def empty_db():
    return FakeSupabase({"users": [{"id": USER_ID, "email": "owner@example.com", "push_chat_id": None}]})
