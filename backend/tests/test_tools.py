"""
Unit tests for the static agent tools.
"""

import asyncio

from conftest import USER_ID
from notepilot.features.agent.context import ContextTag
from notepilot.features.agent.tools import AgentToolkit

TAGS = [ContextTag(id="tag-work", name="Work"), ContextTag(id="tag-ideas", name="Ideas")]


def toolkit(db, timezone=None) -> AgentToolkit:
    return AgentToolkit(db, USER_ID, TAGS, timezone)


# -- Registry --

class TestRegistry:
    def test_nine_static_tools(self, db):
        assert list(toolkit(db).as_tools()) == [
            "createNote", "editNote", "deleteNote",
            "createReminder", "cancelReminder",
            "createTodo", "updateTodo", "completeTodo", "deleteTodo",
        ]

    def test_tools_expose_input_schema(self, db):
        tool = toolkit(db).as_tools()["createReminder"]
        assert set(tool.args) >= {"message", "remind_at", "notify_via"}


# -- Notes --

class TestCreateNote:
    def test_creates_note_and_links_matching_tags(self, db):
        result = toolkit(db).create_note("Ideas for Q4", "Ship it", tags=["work", "unknown"])

        assert result.success
        assert result.action == "createNote"
        assert result.data["tags"] == ["Work"]
        assert result.message == 'Created note: "Ideas for Q4" with tags: Work'
        links = db.rows("note_tags")
        assert len(links) == 1
        assert (links[0]["note_id"], links[0]["tag_id"]) == (result.data["note_id"], "tag-work")

    def test_without_tags_no_links(self, db):
        result = toolkit(db).create_note("Plain", "text")
        assert result.data["tags"] == []
        assert db.rows("note_tags") == []


class TestEditNote:
    def test_append_uses_blank_line(self, db):
        result = toolkit(db).edit_note("meeting notes", append_content="Action items")

        assert result.success
        note = next(n for n in db.rows("notes") if n["id"] == "n1")
        assert note["content"] == "Discuss Q3 roadmap\n\nAction items"

    def test_rename(self, db):
        result = toolkit(db).edit_note("follow-up", new_title="Follow-up done")
        assert result.message == 'Updated note: "Follow-up done"'

    def test_nothing_to_update(self, db):
        result = toolkit(db).edit_note("meeting")
        assert not result.success
        assert result.action == "editNote"

    def test_missing_note(self, db):
        result = toolkit(db).edit_note("groceries", new_content="milk")
        assert not result.success
        assert result.error == 'No note found matching "groceries"'


class TestDeleteNote:
    def test_hard_deletes_most_recent_match(self, db):
        result = toolkit(db).delete_note("meeting")
        assert result.success
        assert result.data == {"title": "Team meeting follow-up"}
        assert "n2" not in [n["id"] for n in db.rows("notes")]


# -- Reminders --

class TestCreateReminder:
    def test_notify_via_defaults_to_both(self, db):
        result = toolkit(db).create_reminder("Stand-up", "2025-06-02T09:00:00+00:00")
        assert result.data["notify_via"] == "both"
        assert db.rows("reminders")[-1]["status"] == "pending"

    def test_explicit_push(self, db):
        result = toolkit(db).create_reminder("Stand-up", "2025-06-02T09:00:00+00:00", notify_via="push")
        assert result.data["notify_via"] == "push"
        assert result.message.endswith("(via push)")

    def test_naive_time_is_read_in_owner_timezone(self, db):
        result = toolkit(db, "Europe/Paris").create_reminder("Call mom", "2025-06-02T17:00:00")
        assert result.data["remind_at"] == "2025-06-02T15:00:00+00:00"

    def test_naive_time_across_dst_change_uses_that_day_offset(self, db):
        # Paris switches from +01:00 to +02:00 on 2025-03-30
        result = toolkit(db, "Europe/Paris").create_reminder("Call mom", "2025-03-30T17:00:00")
        assert result.data["remind_at"] == "2025-03-30T15:00:00+00:00"

    def test_without_time(self, db):
        result = toolkit(db).create_reminder("Someday")
        assert result.success
        assert result.data["remind_at"] is None

    def test_unparseable_time_is_a_tool_error(self, db):
        result = toolkit(db).create_reminder("Stand-up", "next tuesday-ish")
        assert not result.success
        assert result.action == "createReminder"


class TestCancelReminder:
    def test_cancels_pending(self, db):
        result = toolkit(db).cancel_reminder("dentist")
        assert result.success
        assert next(r for r in db.rows("reminders") if r["id"] == "r1")["status"] == "cancelled"

    def test_never_matches_sent(self, db):
        result = toolkit(db).cancel_reminder("rent")
        assert not result.success
        assert result.error == 'No pending reminder found matching "rent"'


# -- Todos --

class TestCreateTodo:
    def test_priority_sets_position(self, db):
        result = toolkit(db).create_todo("Plan offsite", priority="schedule")
        row = db.rows("todos")[-1]
        assert (row["position_x"], row["position_y"]) == (85, 15)
        assert result.data["priority"] == "schedule"

    def test_default_priority_is_do_first(self, db):
        result = toolkit(db).create_todo("Fix prod")
        row = db.rows("todos")[-1]
        assert (row["position_x"], row["position_y"]) == (15, 15)
        assert result.message == 'Created todo: "Fix prod" in do_first quadrant'


class TestUpdateTodo:
    def test_omitted_due_date_is_left_alone(self, db):
        db.tables["todos"][0]["due_date"] = "2025-06-01T00:00:00+00:00"
        tool = toolkit(db).as_tools()["updateTodo"]

        result = tool.invoke({"search_query": "report", "priority": "eliminate"})

        row = db.rows("todos")[0]
        assert result.success
        assert row["due_date"] == "2025-06-01T00:00:00+00:00"
        assert (row["position_x"], row["position_y"]) == (85, 85)

    def test_explicit_null_due_date_is_left_alone(self, db):
        db.tables["todos"][0]["due_date"] = "2025-06-01T00:00:00+00:00"
        tool = toolkit(db).as_tools()["updateTodo"]

        result = tool.invoke({"search_query": "report", "new_title": "Finish it", "due_date": None})

        row = db.rows("todos")[0]
        assert result.success
        assert row["title"] == "Finish it"
        assert row["due_date"] == "2025-06-01T00:00:00+00:00"

    def test_remove_due_date_clears_it(self, db):
        db.tables["todos"][0]["due_date"] = "2025-06-01T00:00:00+00:00"
        tool = toolkit(db).as_tools()["updateTodo"]

        result = tool.invoke({"search_query": "report", "remove_due_date": True})

        assert result.success
        assert db.rows("todos")[0]["due_date"] is None

    def test_new_due_date_is_read_in_owner_timezone(self, db):
        tool = toolkit(db, "Europe/Paris").as_tools()["updateTodo"]

        tool.invoke({"search_query": "report", "due_date": "2025-01-31T18:00:00"})

        assert db.rows("todos")[0]["due_date"] == "2025-01-31T17:00:00+00:00"

    def test_completed_todos_are_not_updated(self, db):
        result = toolkit(db).update_todo("passport", new_title="Renew passport now")
        assert not result.success


class TestCompleteTodo:
    def test_sets_completed_at_then_second_call_fails(self, db):
        first = toolkit(db).complete_todo("report")
        row = db.rows("todos")[0]
        assert first.success
        assert row["status"] == "completed"
        assert row["completed_at"] is not None

        second = toolkit(db).complete_todo("report")
        assert not second.success
        assert second.error == 'No pending todo found matching "report"'


class TestDeleteTodo:
    def test_deletes_regardless_of_status(self, db):
        result = toolkit(db).delete_todo("passport")
        assert result.success
        assert [t["id"] for t in db.rows("todos")] == ["t1"]


# -- Failure isolation --

class TestStoreFailures:
    def test_store_error_becomes_tool_error(self, db):
        db.fail_on[("notes", "insert")] = RuntimeError("insert failed")
        result = toolkit(db).create_note("X", "Y")
        assert not result.success
        assert result.action == "createNote"
        assert result.error == "insert failed"

    def test_async_invocation_returns_result(self, db):
        tool = toolkit(db).as_tools()["createTodo"]
        result = asyncio.run(tool.ainvoke({"title": "Async task"}))
        assert result.success
