"""Tests for transcript message helpers."""

from langchain_core.messages import AIMessage, HumanMessage, ToolMessage

from consensus_agora.context.messages import (
    agent_message,
    format_task_result,
    has_tool_calls,
    human_message,
    message_text,
    parse_speak_tool_name,
    speak_tool_name,
    split_task_result,
    tool_result_message,
)


class TestConstructors:
    def test_human_message(self):
        assert human_message("hello") == HumanMessage(content="hello")

    def test_agent_message_carries_author(self):
        msg = agent_message("alice", "I agree")
        assert isinstance(msg, AIMessage)
        assert msg.name == "alice"
        assert msg.tool_calls == []

    def test_tool_result_message(self):
        msg = tool_result_message("task-1", "done", "ask_alice_speak")
        assert isinstance(msg, ToolMessage)
        assert msg.tool_call_id == "task-1"
        assert msg.name == "ask_alice_speak"

    def test_has_tool_calls(self):
        calling = agent_message(
            "moderator", "", tool_calls=[{"name": "ask_everyone_to_vote", "args": {}, "id": "c1"}]
        )
        assert has_tool_calls(calling)
        assert not has_tool_calls(agent_message("moderator", "hi"))


class TestMessageText:
    def test_string_content(self):
        assert message_text(HumanMessage(content="plain")) == "plain"

    def test_block_content_keeps_text_blocks(self):
        msg = AIMessage(
            content=[
                {"type": "text", "text": "Hello "},
                {"type": "image_url", "image_url": {"url": "http://x"}},
                {"type": "text", "text": "world"},
            ]
        )
        assert message_text(msg) == "Hello world"


class TestSpeakToolNames:
    def test_round_trip(self):
        assert speak_tool_name("technical-director") == "ask_technical-director_speak"
        assert parse_speak_tool_name("ask_technical-director_speak") == "technical-director"

    def test_non_speak_names(self):
        assert parse_speak_tool_name("ask_everyone_to_vote") is None
        assert parse_speak_tool_name("ask__speak") is None
        assert parse_speak_tool_name(None) is None


class TestTaskResultCodec:
    def test_format(self):
        assert format_task_result("t1", "reply") == "task_id: t1\n---\nreply"

    def test_split(self):
        assert split_task_result("task_id: t1\n---\nreply") == ("t1", "reply")

    def test_split_without_separator(self):
        assert split_task_result("no header") == (None, "no header")

    def test_split_keeps_later_separators(self):
        task_id, reply = split_task_result("task_id: t1\n---\na\n---\nb")
        assert task_id == "t1"
        assert reply == "a\n---\nb"
