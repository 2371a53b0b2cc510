"""
Agent orchestrator tests with a scripted chat model (no network).
"""

import asyncio

import pytest
from langchain_core.messages import AIMessage
from langchain_core.tools import StructuredTool

from conftest import USER_ID, ScriptedChatModel, tool_calls
from notepilot.core.exceptions import ContextAssemblyError, ModelInvocationError
from notepilot.features.agent.service import AgentService


def create_event(summary: str, start_datetime: str, end_datetime: str) -> dict:
    return {"successful": True, "data": {"id": "evt_1", "summary": summary}, "error": None}


def calendar_tools(user_id: str) -> list:
    return [
        StructuredTool.from_function(
            func=create_event,
            name="GOOGLECALENDAR_CREATE_EVENT",
            description="Create a Google Calendar event.",
        )
    ]


def no_calendar(user_id: str) -> list:
    raise AssertionError("calendar tools must not be requested")


def connect_calendar(db):
    db.tables["user_integrations"] = [
        {"user_id": USER_ID, "provider": "google-calendar", "connected_account_id": "ca_1", "status": "active"},
    ]


def run(service: AgentService, text: str, timezone: str | None = None):
    return asyncio.run(service.handle(USER_ID, text, timezone))


# -- Scenarios --

class TestScenarios:
    def test_reminder_tomorrow_at_five(self, db):
        llm = ScriptedChatModel(responses=[
            tool_calls(("createReminder", {"message": "Call mom", "remind_at": "2025-06-02T17:00:00"})),
            AIMessage(content="I'll remind you to call mom tomorrow at 17:00."),
        ])
        service = AgentService(db, llm=llm, calendar_tools_loader=no_calendar)

        response = run(service, "Remind me to call mom tomorrow at 5pm", "Europe/Paris")

        assert response.message == "I'll remind you to call mom tomorrow at 17:00."
        assert len(response.tool_results) == 1
        result = response.tool_results[0]
        assert result.success and result.action == "createReminder"
        assert result.data["remind_at"] == "2025-06-02T15:00:00+00:00"
        assert result.data["notify_via"] == "both"

    def test_delete_missing_note(self, db):
        llm = ScriptedChatModel(responses=[
            tool_calls(("deleteNote", {"search_query": "groceries"})),
            AIMessage(content="I couldn't find a note about groceries."),
        ])
        service = AgentService(db, llm=llm, calendar_tools_loader=no_calendar)

        response = run(service, "Delete my groceries note")

        [result] = response.tool_results
        assert not result.success
        assert result.action == "deleteNote"
        assert result.error == 'No note found matching "groceries"'
        assert response.message == "I couldn't find a note about groceries."

    def test_urgent_important_todo_is_do_first(self, db):
        llm = ScriptedChatModel(responses=[
            tool_calls(("createTodo", {"title": "Fix the outage", "priority": "do_first"})),
        ])
        service = AgentService(db, llm=llm, calendar_tools_loader=no_calendar)

        response = run(service, "Add an urgent and important todo: fix the outage")

        [result] = response.tool_results
        assert result.data["priority"] == "do_first"
        row = db.rows("todos")[-1]
        assert (row["position_x"], row["position_y"]) == (15, 15)
        assert response.message == "Done."

    def test_calendar_unavailable_yields_no_calendar_results(self, db):
        llm = ScriptedChatModel(responses=[
            tool_calls(("GOOGLECALENDAR_CREATE_EVENT", {"summary": "Dentist"})),
            AIMessage(content="Please connect Google Calendar first."),
        ])
        service = AgentService(db, llm=llm, calendar_tools_loader=no_calendar)

        response = run(service, "Add a dentist appointment Friday 3pm")

        assert response.tool_results == []
        assert "GOOGLECALENDAR_CREATE_EVENT" not in llm.bound_tools
        system_prompt = llm.calls[0][0].content
        assert "Google Calendar is not connected" in system_prompt


# -- Multi-tool runs --

class TestToolResults:
    def test_results_keep_invocation_order(self, db):
        llm = ScriptedChatModel(responses=[
            tool_calls(
                ("createTodo", {"title": "Book flights"}),
                ("createNote", {"title": "Trip ideas", "content": "Lisbon", "tags": ["Ideas"]}),
            ),
            tool_calls(("completeTodo", {"search_query": "report"})),
            AIMessage(content="All set."),
        ])
        service = AgentService(db, llm=llm, calendar_tools_loader=no_calendar)

        response = run(service, "Plan my trip and mark the report done")

        assert [r.action for r in response.tool_results] == ["createTodo", "createNote", "completeTodo"]
        assert all(r.success for r in response.tool_results)
        assert response.tool_results[1].data["tags"] == ["Ideas"]

    def test_one_failure_does_not_abort_siblings(self, db):
        llm = ScriptedChatModel(responses=[
            tool_calls(
                ("cancelReminder", {"search_query": "rent"}),
                ("cancelReminder", {"search_query": "dentist"}),
            ),
        ])
        service = AgentService(db, llm=llm, calendar_tools_loader=no_calendar)

        response = run(service, "Cancel my rent and dentist reminders")

        assert [r.success for r in response.tool_results] == [False, True]

    def test_tool_results_are_fed_back_to_the_model(self, db):
        llm = ScriptedChatModel(responses=[
            tool_calls(("deleteTodo", {"search_query": "passport"})),
        ])
        service = AgentService(db, llm=llm, calendar_tools_loader=no_calendar)

        run(service, "Remove the passport task")

        tool_message = llm.calls[1][-1]
        assert tool_message.tool_call_id == "call_0"
        assert '"success": true' in tool_message.content


# -- Connector tools --

class TestCalendarConnector:
    def test_connected_calendar_tools_are_merged(self, db):
        connect_calendar(db)
        llm = ScriptedChatModel(responses=[
            tool_calls(("GOOGLECALENDAR_CREATE_EVENT", {
                "summary": "Dentist",
                "start_datetime": "2025-06-06T15:00:00+02:00",
                "end_datetime": "2025-06-06T16:00:00+02:00",
            })),
            AIMessage(content="Added to your calendar."),
        ])
        service = AgentService(db, llm=llm, calendar_tools_loader=calendar_tools)

        response = run(service, "Dentist appointment Friday 3pm")

        assert "GOOGLECALENDAR_CREATE_EVENT" in llm.bound_tools
        assert len(llm.bound_tools) == 10
        [result] = response.tool_results
        assert result.success
        assert result.action == "GOOGLECALENDAR_CREATE_EVENT"
        assert result.data == {"id": "evt_1", "summary": "Dentist"}
        assert "GOOGLE CALENDAR TOOLS:" in llm.calls[0][0].content

    def test_connector_failure_falls_back_to_static_tools(self, db):
        connect_calendar(db)

        def broken(user_id):
            raise RuntimeError("composio down")

        llm = ScriptedChatModel(responses=[AIMessage(content="Calendar is unavailable right now.")])
        service = AgentService(db, llm=llm, calendar_tools_loader=broken)

        response = run(service, "What's on my calendar?")

        assert response.tool_results == []
        assert len(llm.bound_tools) == 9
        assert "Google Calendar is not connected" in llm.calls[0][0].content


# -- Failures and limits --

class TestFailures:
    def test_model_failure_raises(self, db):
        service = AgentService(db, llm=ScriptedChatModel(error="quota exceeded"), calendar_tools_loader=no_calendar)

        with pytest.raises(ModelInvocationError) as exc:
            run(service, "Make a note")
        assert exc.value.message == "Failed to process input"
        assert "quota exceeded" in exc.value.detail

    def test_endless_tool_loop_is_cut_off(self, db):
        notes_before = len(db.rows("notes"))
        llm = ScriptedChatModel(responses=[
            tool_calls(("createNote", {"title": f"Loop {i}", "content": "again"})) for i in range(30)
        ])
        service = AgentService(db, llm=llm, calendar_tools_loader=no_calendar)

        response = run(service, "Keep going")

        assert len(llm.calls) == 5
        assert [r.action for r in response.tool_results] == ["createNote"] * 5
        assert all(r.success for r in response.tool_results)
        assert len(db.rows("notes")) == notes_before + 5
        assert response.message.startswith("I reached the step limit")
        assert '"Loop 0"' in response.message and '"Loop 4"' in response.message

    def test_cut_off_summary_reports_failures(self, db):
        llm = ScriptedChatModel(responses=[
            tool_calls(("deleteNote", {"search_query": f"missing {i}"})) for i in range(30)
        ])
        service = AgentService(db, llm=llm, calendar_tools_loader=no_calendar)

        response = run(service, "Delete everything")

        assert [r.success for r in response.tool_results] == [False] * 5
        assert 'deleteNote failed: No note found matching "missing 0"' in response.message

    def test_context_failure_skips_model(self, db):
        db.fail_on["notes"] = RuntimeError("timeout")
        llm = ScriptedChatModel()
        service = AgentService(db, llm=llm, calendar_tools_loader=no_calendar)

        with pytest.raises(ContextAssemblyError):
            run(service, "Make a note")
        assert llm.calls == []
