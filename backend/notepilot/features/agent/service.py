"""
Agent feature: the orchestrator every caller goes through.

  handle(user_id, text, timezone?)  →  context snapshot  →  process(...)
  process(...)  →  tool registry + system prompt  →  one agent run  →  AgentResponse
"""

import asyncio
import logging
from typing import Callable

from langchain_core.language_models import BaseChatModel
from langchain_core.messages import HumanMessage
from langchain_core.tools import BaseTool
from supabase import Client

from notepilot.config import get_settings
from notepilot.core.exceptions import ModelInvocationError
from notepilot.core.llm_provider import create_llm
from notepilot.features.agent.context import UserContext, build_user_context
from notepilot.features.agent.graph import build_agent_graph, extract_text
from notepilot.features.agent.prompts import build_system_prompt
from notepilot.features.agent.results import AgentResponse
from notepilot.features.agent.tools import AgentToolkit
from notepilot.features.integrations.composio import get_google_calendar_tools

logger = logging.getLogger(__name__)

CalendarToolsLoader = Callable[[str], list[BaseTool]]


class AgentService:
    """Turns one free-text message into mutations plus a reply."""

    def __init__(
        self,
        db: Client,
        llm: BaseChatModel | None = None,
        calendar_tools_loader: CalendarToolsLoader = get_google_calendar_tools,
    ):
        self.db = db
        self.llm = llm
        self.calendar_tools_loader = calendar_tools_loader

    async def build_tools(
        self, user_id: str, context: UserContext, timezone: str | None = None
    ) -> tuple[dict[str, BaseTool], bool]:
        """Static tools plus connector tools when the user has them.

        Returns:
            (registry, has_calendar_tools). Connector failures are logged and
            leave the registry static-only.
        """
        tools = AgentToolkit(self.db, user_id, context.tags, timezone).as_tools()

        if not context.has_calendar_integration:
            return tools, False

        try:
            logger.debug(f"Fetching Google Calendar tools for user {user_id}")
            calendar_tools = await asyncio.to_thread(self.calendar_tools_loader, user_id)
        except Exception as e:
            logger.error(f"Failed to load Google Calendar tools for user {user_id}: {e}")
            return tools, False

        if not calendar_tools:
            return tools, False

        tools = {**tools, **{t.name: t for t in calendar_tools}}
        logger.info(f"Added {len(calendar_tools)} Google Calendar tools for user {user_id}")
        return tools, True

    async def process(
        self,
        user_id: str,
        input_text: str,
        context: UserContext,
        timezone: str | None = None,
    ) -> AgentResponse:
        """Run the agent once over `input_text`.

        Raises:
            ModelInvocationError: If the model call fails. Tool failures are
                never raised; they come back as error results. Hitting the
                turn cap is not an error either: the reply summarizes the
                results committed so far.
        """
        tools, has_calendar_tools = await self.build_tools(user_id, context, timezone)
        system_prompt = build_system_prompt(context, timezone, has_calendar_tools)

        settings = get_settings()
        max_turns = settings.AGENT_MAX_MODEL_TURNS
        # agent + tools per turn, plus the finish step
        recursion_limit = max(settings.AGENT_RECURSION_LIMIT, 2 * max_turns + 2)

        try:
            graph = build_agent_graph(self.llm or create_llm(), tools, max_turns)
            state = await graph.ainvoke(
                {
                    "messages": [HumanMessage(content=input_text)],
                    "system_prompt": system_prompt,
                    "tool_results": [],
                },
                config={"recursion_limit": recursion_limit},
            )
        except Exception as e:
            logger.error(f"Model invocation failed for user {user_id}: {e}", exc_info=True)
            raise ModelInvocationError(str(e)) from e

        response = AgentResponse(
            message=extract_text(state["messages"][-1].content),
            tool_results=state["tool_results"],
        )
        logger.info(
            f"Agent finished for user {user_id}: "
            f"{[(r.action, r.success) for r in response.tool_results]}"
        )
        return response

    async def handle(self, user_id: str, input_text: str, timezone: str | None = None) -> AgentResponse:
        """Caller contract: snapshot the user's state, then process.

        Raises:
            ContextAssemblyError: If the snapshot cannot be built.
            ModelInvocationError: If the model call fails.
        """
        context = await build_user_context(self.db, user_id)
        return await self.process(user_id, input_text, context, timezone)
