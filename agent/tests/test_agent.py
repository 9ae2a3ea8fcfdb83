"""Tests for the agent control loop.

The chat model is replaced by a scripted stub, so no Anthropic API key is
needed. Each call to the stub returns a *new* AIMessage; the graph merges
messages by ID, so reusing one message object would overwrite history
instead of appending to it.
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import Callable
from typing import Any

import pytest
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage, ToolMessage
from pydantic import BaseModel

from ehr_assistant.agent import EMPTY_RESPONSE_MESSAGE, build_agent, run_agent
from ehr_assistant.credentials import require_credential, run_with_credential
from ehr_assistant.errors import LoopExhausted
from ehr_assistant.tools.base import NoArgs, make_tool, success


class ScriptedModel:
    """Stub chat model: replays ``steps`` (repeating the last one forever)."""

    def __init__(self, *steps: Callable[[], AIMessage]) -> None:
        self.steps = steps
        self.calls: list[list[BaseMessage]] = []

    async def ainvoke(self, messages: list[BaseMessage]) -> AIMessage:
        self.calls.append(list(messages))
        index = min(len(self.calls) - 1, len(self.steps) - 1)
        return self.steps[index]()


def answer(text: str) -> Callable[[], AIMessage]:
    return lambda: AIMessage(content=text)


def call_tools(*calls: tuple[str, dict[str, Any]]) -> Callable[[], AIMessage]:
    def make() -> AIMessage:
        return AIMessage(
            content="",
            tool_calls=[
                {"name": name, "args": args, "id": f"call_{i}"} for i, (name, args) in enumerate(calls)
            ],
        )

    return make


# --- Test tools ---


class LookupArgs(BaseModel):
    patient_id: int


async def lookup_patient(patient_id: int) -> str:
    """Look up a patient."""
    await asyncio.sleep(0.01)
    return success(patient_id=patient_id, mrn=f"P{patient_id:03d}")


async def get_clinic_name() -> str:
    """Return the clinic name."""
    return success(name="Sunrise Clinic")


async def whoami() -> str:
    """Return the bound credential."""
    return success(token=require_credential())


async def explode() -> str:
    """Always raises."""
    raise RuntimeError("kaboom")


TOOLS = [
    make_tool(lookup_patient, LookupArgs),
    make_tool(get_clinic_name, NoArgs),
    make_tool(whoami, NoArgs),
    make_tool(explode, NoArgs),
]


# --- Tests ---


@pytest.mark.asyncio
async def test_plain_answer_uses_no_tools() -> None:
    model = ScriptedModel(answer("Hello! How can I help with the clinic today?"))
    agent = build_agent(model, TOOLS)

    result = await run_agent("Hello", agent=agent, system_prompt="SYS")

    assert result.response == "Hello! How can I help with the clinic today?"
    assert result.tool_calls == 0
    assert len(model.calls) == 1


@pytest.mark.asyncio
async def test_first_call_sees_system_history_and_message() -> None:
    model = ScriptedModel(answer("ok"))
    agent = build_agent(model, TOOLS)
    history = [HumanMessage(content="earlier question"), AIMessage(content="earlier answer")]

    await run_agent("new question", history=history, agent=agent, system_prompt="SYS")

    sent = model.calls[0]
    assert isinstance(sent[0], SystemMessage)
    assert sent[0].content == "SYS"
    assert [m.content for m in sent[1:]] == ["earlier question", "earlier answer", "new question"]


@pytest.mark.asyncio
async def test_tool_results_follow_request_order() -> None:
    model = ScriptedModel(
        call_tools(("lookup_patient", {"patient_id": 7}), ("get_clinic_name", {})),
        answer("Patient P007 is registered at Sunrise Clinic."),
    )
    agent = build_agent(model, TOOLS)

    result = await run_agent("who is 7?", agent=agent, system_prompt="SYS")

    assert result.response == "Patient P007 is registered at Sunrise Clinic."
    assert result.tool_calls == 2

    tool_messages = [m for m in model.calls[1] if isinstance(m, ToolMessage)]
    assert [m.tool_call_id for m in tool_messages] == ["call_0", "call_1"]
    assert json.loads(tool_messages[0].content)["mrn"] == "P007"
    assert json.loads(tool_messages[1].content)["name"] == "Sunrise Clinic"


@pytest.mark.asyncio
async def test_loop_stops_at_iteration_ceiling() -> None:
    model = ScriptedModel(call_tools(("get_clinic_name", {})))
    agent = build_agent(model, TOOLS, max_iterations=15)

    with pytest.raises(LoopExhausted) as exc_info:
        await run_agent("loop forever", agent=agent, system_prompt="SYS")

    assert len(model.calls) == 15
    assert exc_info.value.iterations == 15


@pytest.mark.asyncio
async def test_unknown_tool_becomes_error_observation() -> None:
    model = ScriptedModel(call_tools(("delete_everything", {})), answer("I can't do that."))
    agent = build_agent(model, TOOLS)

    result = await run_agent("hmm", agent=agent, system_prompt="SYS")

    assert result.response == "I can't do that."
    observation = model.calls[1][-1]
    assert isinstance(observation, ToolMessage)
    assert json.loads(observation.content) == {"error": "Unknown tool: delete_everything"}


@pytest.mark.asyncio
async def test_invalid_arguments_become_error_observation() -> None:
    model = ScriptedModel(
        call_tools(("lookup_patient", {"patient_id": "not-a-number"})), answer("Sorry.")
    )
    agent = build_agent(model, TOOLS)

    await run_agent("look up", agent=agent, system_prompt="SYS")

    error = json.loads(model.calls[1][-1].content)["error"]
    assert "lookup_patient" in error


@pytest.mark.asyncio
async def test_tool_exception_becomes_error_observation() -> None:
    model = ScriptedModel(call_tools(("explode", {})), answer("Something went wrong."))
    agent = build_agent(model, TOOLS)

    result = await run_agent("boom", agent=agent, system_prompt="SYS")

    assert result.response == "Something went wrong."
    assert json.loads(model.calls[1][-1].content) == {"error": "explode failed: kaboom"}


@pytest.mark.asyncio
async def test_model_failure_propagates() -> None:
    class FailingModel:
        async def ainvoke(self, messages: list[BaseMessage]) -> AIMessage:
            raise RuntimeError("overloaded_error")

    agent = build_agent(FailingModel(), TOOLS)

    with pytest.raises(RuntimeError, match="overloaded_error"):
        await run_agent("hi", agent=agent, system_prompt="SYS")


@pytest.mark.asyncio
async def test_empty_answer_gets_fallback_text() -> None:
    model = ScriptedModel(answer("   "))
    agent = build_agent(model, TOOLS)

    result = await run_agent("hi", agent=agent, system_prompt="SYS")
    assert result.response == EMPTY_RESPONSE_MESSAGE


@pytest.mark.asyncio
async def test_list_content_blocks_are_flattened() -> None:
    model = ScriptedModel(
        lambda: AIMessage(content=[{"type": "text", "text": "Two "}, {"type": "text", "text": "visits."}])
    )
    agent = build_agent(model, TOOLS)

    result = await run_agent("count", agent=agent, system_prompt="SYS")
    assert result.response == "Two visits."


@pytest.mark.asyncio
async def test_tools_see_caller_credential() -> None:
    model = ScriptedModel(call_tools(("whoami", {}), ("whoami", {})), answer("done"))
    agent = build_agent(model, TOOLS)

    await run_with_credential("user-jwt", run_agent, "who am i", agent=agent, system_prompt="SYS")

    for observation in model.calls[1][-2:]:
        assert json.loads(observation.content)["token"] == "user-jwt"
