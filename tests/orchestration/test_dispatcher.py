"""Tests for the sub-agent dispatcher."""

from unittest.mock import AsyncMock

import pytest
from langchain_core.messages import AIMessage, HumanMessage, SystemMessage
from langgraph.errors import GraphRecursionError

from consensus_agora.orchestration.dispatcher import DispatchRequest, DispatchResult
from consensus_agora.utils.exceptions import (
    DispatchError,
    DispatchTimeoutError,
    InvalidStateError,
)
from tests.helpers.fake_llm import ErrorFakeLLM, PredictableFakeLLM


def fixed(reply: str, delay: float = 0.0) -> PredictableFakeLLM:
    return PredictableFakeLLM(default_response=reply, delay=delay)


class TestDispatch:
    """Test single dispatches."""

    @pytest.mark.asyncio
    async def test_dispatch_returns_reply_and_sub_transcript(self, harness):
        h = harness({"alice": fixed("Alice's view"), "bob": fixed("Bob's view")})
        view = [HumanMessage(content="Topic")]

        result = await h.dispatcher.dispatch("t1", "alice", view, "Share your view")

        assert isinstance(result, DispatchResult)
        assert result.task_id == "t1"
        assert result.participant_id == "alice"
        assert result.reply_text == "Alice's view"
        assert [m.content for m in result.sub_transcript] == [
            "Topic",
            "Share your view",
            "Alice's view",
        ]
        assert result.sub_transcript[-1].name == "alice"

    @pytest.mark.asyncio
    async def test_session_sees_only_its_input(self, harness):
        alice_llm = fixed("ok")
        h = harness({"alice": alice_llm, "bob": fixed("other")})

        await h.dispatcher.dispatch("t1", "bob", [HumanMessage(content="Only for bob")], "Go")
        await h.dispatcher.dispatch("t2", "alice", [HumanMessage(content="Topic")], "Speak")

        sent = alice_llm.last_messages
        assert isinstance(sent[0], SystemMessage)
        assert "Alice" in sent[0].content
        assert [m.content for m in sent[1:]] == ["Topic", "Speak"]

    @pytest.mark.asyncio
    async def test_to_tool_message(self, harness):
        h = harness({"alice": fixed("Agreed")})

        result = await h.dispatcher.dispatch("t1", "alice", [], "Speak")
        message = result.to_tool_message("ask_alice_speak")

        assert message.content == "task_id: t1\n---\nAgreed"
        assert message.tool_call_id == "t1"
        assert message.name == "ask_alice_speak"
        assert result.to_tool_message("ask_alice_speak", "call_9").tool_call_id == "call_9"

    @pytest.mark.asyncio
    async def test_task_store_entry(self, harness):
        h = harness({"alice": fixed("Agreed")})

        result = await h.dispatcher.dispatch("t1", "alice", [], "Speak")

        entry = result.task_store_entry()
        assert list(entry) == ["t1"]
        assert isinstance(entry["t1"][-1], AIMessage)

    @pytest.mark.asyncio
    async def test_unknown_participant(self, harness):
        h = harness({"alice": fixed("x")})

        with pytest.raises(InvalidStateError):
            await h.dispatcher.dispatch("t1", "mallory", [], "Speak")


class TestDispatchFailures:
    """Test how session failures are reported."""

    @pytest.mark.asyncio
    async def test_llm_error_becomes_dispatch_error(self, harness):
        h = harness({"alice": ErrorFakeLLM()})

        with pytest.raises(DispatchError) as exc_info:
            await h.dispatcher.dispatch("t1", "alice", [], "Speak")

        assert exc_info.value.task_id == "t1"
        assert exc_info.value.participant_id == "alice"
        assert not isinstance(exc_info.value, DispatchTimeoutError)

    @pytest.mark.asyncio
    async def test_recursion_limit_becomes_timeout(self, harness):
        h = harness({"alice": fixed("x")})
        h.agents["alice"].ainvoke = AsyncMock(side_effect=GraphRecursionError("too deep"))

        with pytest.raises(DispatchTimeoutError) as exc_info:
            await h.dispatcher.dispatch("t1", "alice", [], "Speak")

        assert exc_info.value.limit == 25

    @pytest.mark.asyncio
    async def test_wall_clock_timeout(self, harness):
        h = harness({"alice": fixed("slow", delay=1.0)}, timeout_seconds=0.05)

        with pytest.raises(DispatchTimeoutError) as exc_info:
            await h.dispatcher.dispatch("t1", "alice", [], "Speak")

        assert exc_info.value.limit == 0.05


class TestDispatchMany:
    """Test concurrent fan-out."""

    @pytest.mark.asyncio
    async def test_results_in_request_order(self, harness):
        h = harness(
            {
                "alice": fixed("first", delay=0.2),
                "bob": fixed("second", delay=0.0),
                "carol": fixed("third", delay=0.1),
            }
        )
        requests = [
            DispatchRequest(f"v:{pid}", pid, [], "Vote") for pid in ("alice", "bob", "carol")
        ]

        results = await h.dispatcher.dispatch_many(requests)

        assert [r.reply_text for r in results] == ["first", "second", "third"]
        assert [r.task_id for r in results] == ["v:alice", "v:bob", "v:carol"]

    @pytest.mark.asyncio
    async def test_failure_returned_in_place(self, harness):
        h = harness({"alice": fixed("yes"), "bob": ErrorFakeLLM(), "carol": fixed("yes")})
        requests = [
            DispatchRequest(f"v:{pid}", pid, [], "Vote") for pid in ("alice", "bob", "carol")
        ]

        results = await h.dispatcher.dispatch_many(requests)

        assert isinstance(results[0], DispatchResult)
        assert isinstance(results[1], DispatchError)
        assert results[1].participant_id == "bob"
        assert isinstance(results[2], DispatchResult)
