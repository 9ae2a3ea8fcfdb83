"""LangGraph tool-calling agent for the EHR assistant.

This module is the "brain" of the application. It wires together:
- An LLM (Claude) that reasons about what to do
- The tool catalog that reads and writes clinic records
- The system prompt that keeps the assistant on clinic topics

The loop (Reason → Act → Observe → Repeat):
1. The model receives the system prompt, prior conversation and new message
2. If it asks for tools, every requested tool runs and its JSON result is
   appended as a ToolMessage, in the order the calls were requested
3. The model sees the results and either asks for more tools or answers
4. A plain answer ends the run; so does the iteration ceiling, which makes
   ``run_agent`` raise LoopExhausted instead of returning nothing

Unlike ``create_react_agent``, the graph is built by hand so the ceiling
counts model calls and so tool failures (unknown names, invalid arguments,
unexpected exceptions) always come back to the model as ``{"error": ...}``
observations rather than aborting the run.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Annotated, Any, TypedDict

from langchain_anthropic import ChatAnthropic
from langchain_core.messages import (
    AIMessage,
    AnyMessage,
    BaseMessage,
    HumanMessage,
    SystemMessage,
    ToolMessage,
)
from langchain_core.tools import BaseTool
from langgraph.errors import GraphRecursionError
from langgraph.graph import END, START, StateGraph
from langgraph.graph.message import add_messages
from pydantic import SecretStr, ValidationError

from ehr_assistant import db
from ehr_assistant.config import AGENT_MAX_ITERATIONS, ANTHROPIC_API_KEY, ANTHROPIC_MODEL
from ehr_assistant.errors import LoopExhausted
from ehr_assistant.prompts import get_system_prompt
from ehr_assistant.tools import build_catalog
from ehr_assistant.tools.base import failure

logger = logging.getLogger(__name__)

EMPTY_RESPONSE_MESSAGE = (
    "I apologize, but I was unable to generate a response. Please try again."
)


class AgentState(TypedDict):
    messages: Annotated[list[AnyMessage], add_messages]
    iterations: int


@dataclass(frozen=True)
class CompiledAgent:
    """A compiled graph plus the ceiling it was built with.

    Holds no per-request state, so one instance serves every request.
    """

    graph: Any
    max_iterations: int


@dataclass
class AgentResult:
    response: str
    messages: list[BaseMessage]
    tool_calls: int


def _requests_tools(message: BaseMessage) -> bool:
    return isinstance(message, AIMessage) and bool(message.tool_calls)


def _message_text(message: BaseMessage) -> str:
    """Flatten message content; Claude may return a list of content blocks."""
    content = message.content
    if isinstance(content, str):
        return content
    parts = []
    for block in content:
        if isinstance(block, str):
            parts.append(block)
        elif isinstance(block, dict) and block.get("type") == "text":
            parts.append(block.get("text", ""))
    return "".join(parts)


async def _execute_tool_call(tools_by_name: dict[str, BaseTool], call: dict[str, Any]) -> ToolMessage:
    """Run one requested tool call; any failure becomes an error envelope."""
    name = call.get("name", "")
    tool = tools_by_name.get(name)

    if tool is None:
        content = failure(f"Unknown tool: {name}")
    else:
        try:
            content = await tool.ainvoke(call.get("args") or {})
        except ValidationError as e:
            content = failure(f"Invalid input for {name}: {e}")
        except Exception as e:
            logger.exception("Tool %s raised", name)
            content = failure(f"{name} failed: {e}")

    logger.debug("Tool %s finished", name)
    return ToolMessage(content=str(content), tool_call_id=call.get("id") or "", name=name)


def build_agent(
    model: Any,
    tools: Sequence[BaseTool],
    max_iterations: int = AGENT_MAX_ITERATIONS,
) -> CompiledAgent:
    """Compile the agent graph.

    Args:
        model: A chat model (already bound to ``tools``) exposing
            ``ainvoke(messages) -> AIMessage``.
        tools: The tool catalog; calls are dispatched by tool name.
        max_iterations: Maximum number of model calls in one run.
    """
    tools_by_name = {tool.name: tool for tool in tools}

    async def call_model(state: AgentState) -> dict[str, Any]:
        response = await model.ainvoke(state["messages"])
        return {"messages": [response], "iterations": state["iterations"] + 1}

    async def call_tools(state: AgentState) -> dict[str, Any]:
        last = state["messages"][-1]
        # gather keeps results in request order and copies the current
        # context (including the caller's credential) into each task.
        results = await asyncio.gather(
            *(_execute_tool_call(tools_by_name, call) for call in last.tool_calls)
        )
        return {"messages": list(results)}

    def should_continue(state: AgentState) -> str:
        last = state["messages"][-1]
        if not _requests_tools(last):
            return END
        if state["iterations"] >= max_iterations:
            logger.warning("Iteration ceiling (%d) reached with tool calls pending", max_iterations)
            return END
        return "tools"

    workflow = StateGraph(AgentState)
    workflow.add_node("agent", call_model)
    workflow.add_node("tools", call_tools)
    workflow.add_edge(START, "agent")
    workflow.add_conditional_edges("agent", should_continue, {"tools": "tools", END: END})
    workflow.add_edge("tools", "agent")

    return CompiledAgent(graph=workflow.compile(), max_iterations=max_iterations)


# ---------------------------------------------------------------------------
# Agent creation
# ---------------------------------------------------------------------------
# Built lazily (on first use) so importing this module doesn't fail when
# ANTHROPIC_API_KEY is not set (e.g., in CI).

_agent: CompiledAgent | None = None


def _get_agent() -> CompiledAgent:
    """Create the process-wide agent (lazily, on first call)."""
    global _agent  # noqa: PLW0603
    if _agent is not None:
        return _agent

    if not ANTHROPIC_API_KEY:
        raise RuntimeError("ANTHROPIC_API_KEY is not configured")

    tools = build_catalog(include_database=db.is_configured())
    model = ChatAnthropic(
        model_name=ANTHROPIC_MODEL,  # type: ignore[call-arg]
        anthropic_api_key=SecretStr(ANTHROPIC_API_KEY),  # type: ignore[call-arg]
        temperature=0,
    )

    _agent = build_agent(model.bind_tools(tools), tools)
    logger.info("Compiled agent with %d tools", len(tools))
    return _agent


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


async def run_agent(
    message: str,
    history: Sequence[BaseMessage] = (),
    agent: CompiledAgent | None = None,
    system_prompt: str | None = None,
) -> AgentResult:
    """Run one user message through the agent loop.

    Must be awaited inside ``credentials.run_with_credential`` so tools can
    call the EHR API as the requesting user.

    Args:
        message: The (context-decorated) user message.
        history: Prior conversation messages, oldest first.
        agent: Agent to use; defaults to the process-wide one.
        system_prompt: Overrides the cached system prompt.

    Returns:
        The final answer, the full message list, and the number of tool calls.

    Raises:
        LoopExhausted: If the iteration ceiling is hit without an answer.
        Exception: Whatever the model call raised (propagated unchanged).
    """
    agent = agent or _get_agent()

    messages: list[BaseMessage] = [
        SystemMessage(content=system_prompt or get_system_prompt()),
        *history,
        HumanMessage(content=message),
    ]

    try:
        result = await agent.graph.ainvoke(
            {"messages": messages, "iterations": 0},
            config={"recursion_limit": 2 * agent.max_iterations + 1},
        )
    except GraphRecursionError as exc:
        raise LoopExhausted(agent.max_iterations) from exc

    final_messages: list[BaseMessage] = result["messages"]
    last = final_messages[-1]
    if _requests_tools(last):
        raise LoopExhausted(result["iterations"])

    tool_calls = sum(1 for m in final_messages if isinstance(m, ToolMessage))
    response = _message_text(last).strip() or EMPTY_RESPONSE_MESSAGE
    return AgentResult(response=response, messages=final_messages, tool_calls=tool_calls)
