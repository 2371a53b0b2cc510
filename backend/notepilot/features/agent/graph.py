"""
Agent feature: LangGraph state machine with ReAct loop.

Architecture:
  User Message → Agent (LLM) → Tool Decision → Execute Tool(s) → Agent → Response
                                                       ↘ Finish (turn cap reached)

Constraints:
  - at most max_model_turns model calls; after that a summary reply closes the run
  - recursion_limit from AGENT_RECURSION_LIMIT config, set at invoke time
  - one user message per run, no conversation memory
  - every executed tool yields exactly one ToolExecutionResult, in call order
"""

import logging
import operator
from typing import Annotated, TypedDict

from langchain_core.language_models import BaseChatModel
from langchain_core.messages import AIMessage, BaseMessage, SystemMessage, ToolMessage
from langchain_core.tools import BaseTool
from langgraph.graph import StateGraph, END, START
from langgraph.graph.message import add_messages

from notepilot.features.agent.results import (
    ToolError,
    ToolExecutionResult,
    normalize_tool_output,
    tool_message_content,
)

logger = logging.getLogger(__name__)


# ── State Definition ─────────────────────────────────────
class AgentState(TypedDict):
    """State passed through the LangGraph graph."""
    messages: Annotated[list[BaseMessage], add_messages]
    system_prompt: str
    tool_results: Annotated[list[ToolExecutionResult], operator.add]


def extract_text(content) -> str:
    """Flatten message content (plain string or provider content blocks)."""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = []
        for item in content:
            if isinstance(item, dict) and item.get("type", "text") == "text" and "text" in item:
                parts.append(item["text"])
            elif isinstance(item, str):
                parts.append(item)
        return "\n".join(parts)
    return str(content)


def summarize_results(results: list[ToolExecutionResult]) -> str:
    """Reply used when the run hits the turn cap before the model answered."""
    if not results:
        return "I reached the step limit before completing your request. Nothing was changed."
    lines = [
        f"- {r.message}" if r.success else f"- {r.action} failed: {r.error}"
        for r in results
    ]
    return "I reached the step limit and stopped. Here is what was done:\n" + "\n".join(lines)


def count_model_turns(messages: list[BaseMessage]) -> int:
    return sum(1 for m in messages if isinstance(m, AIMessage))


def build_agent_graph(llm: BaseChatModel, tools: dict[str, BaseTool], max_model_turns: int = 5):
    """Build the ReAct graph for one invocation's tool registry.

    Args:
        llm: Tool-calling chat model.
        tools: Registry (name → tool), static and connector tools merged.
        max_model_turns: Model calls allowed before the run is closed with
            a summary of the results already committed.

    Returns:
        Compiled graph ready to invoke.
    """
    llm_with_tools = llm.bind_tools(list(tools.values()))

    # ── Node: Agent (LLM decision) ──────────────────────
    async def agent_node(state: AgentState) -> dict:
        """LLM processes messages and decides: respond or call tool."""
        messages = [SystemMessage(content=state["system_prompt"]), *state["messages"]]
        response = await llm_with_tools.ainvoke(messages)
        return {"messages": [response]}

    # ── Routing: should we call tools or end? ────────────
    def should_continue(state: AgentState) -> str:
        """Route based on whether LLM wants to call tools."""
        last_message = state["messages"][-1]
        if getattr(last_message, "tool_calls", None):
            return "tools"
        return END

    # ── Node: Tools (sequential, failures captured) ──────
    async def tool_node(state: AgentState) -> dict:
        """Execute the requested tools in order and record their results."""
        last_message = state["messages"][-1]
        messages = []
        results: list[ToolExecutionResult] = []

        for tc in last_message.tool_calls:
            tool_fn = tools.get(tc["name"])
            if tool_fn is None:
                # Not recorded as a result: the model asked for a tool it was never offered
                logger.warning(f"Model requested unknown tool: {tc['name']}")
                messages.append(ToolMessage(
                    content=f"Tool '{tc['name']}' does not exist. Use one of the available tools.",
                    tool_call_id=tc["id"],
                    name=tc["name"],
                    status="error",
                ))
                continue

            try:
                logger.info(f"Calling tool: {tc['name']} with args: {tc['args']}")
                output = await tool_fn.ainvoke(dict(tc["args"]))
                result = normalize_tool_output(tc["name"], output)
            except Exception as e:
                logger.error(f"Tool {tc['name']} error: {e}")
                result = ToolError(action=tc["name"], error=str(e) or f"Failed to run {tc['name']}")

            logger.info(f"Tool {tc['name']} {'succeeded' if result.success else 'failed'}")
            results.append(result)
            messages.append(ToolMessage(
                content=tool_message_content(result),
                tool_call_id=tc["id"],
                name=tc["name"],
                status="success" if result.success else "error",
            ))

        return {"messages": messages, "tool_results": results}

    # ── Routing: another model turn or close the run? ────
    def after_tools(state: AgentState) -> str:
        turns = count_model_turns(state["messages"])
        if turns >= max_model_turns:
            logger.warning(f"Agent reached {turns} model turns, closing the run")
            return "finish"
        return "agent"

    # ── Node: Finish (turn cap reached) ──────────────────
    def finish_node(state: AgentState) -> dict:
        return {"messages": [AIMessage(content=summarize_results(state["tool_results"]))]}

    # ── Build Graph ──────────────────────────────────────
    graph = StateGraph(AgentState)
    graph.add_node("agent", agent_node)
    graph.add_node("tools", tool_node)
    graph.add_node("finish", finish_node)

    graph.add_edge(START, "agent")
    graph.add_conditional_edges("agent", should_continue, {"tools": "tools", END: END})
    graph.add_conditional_edges("tools", after_tools, {"agent": "agent", "finish": "finish"})
    graph.add_edge("finish", END)

    return graph.compile()
