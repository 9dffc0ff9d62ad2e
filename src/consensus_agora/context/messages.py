"""Transcript message model for Consensus Agora.

The meeting transcript is a list of LangChain messages. Three kinds
carry meaning for the engine:

- ``HumanMessage``: external input, or statements re-attributed to a viewer
  as coming from someone else.
- ``AIMessage``: authored by a participant or the moderator (``name`` holds the
  author id); may carry tool calls.
- ``ToolMessage``: the outcome of a dispatched task (``tool_call_id`` holds the
  task id, ``name`` the tool name).

This module provides constructors for those shapes plus the codecs for
speak-tool names and task-result payloads.
"""

from typing import Any, Optional, Sequence

from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, ToolMessage

SPEAK_TOOL_PREFIX = "ask_"
SPEAK_TOOL_SUFFIX = "_speak"
TASK_RESULT_SEPARATOR = "\n---\n"
MODERATOR_ID = "moderator"


def human_message(content: str) -> HumanMessage:
    """Create a human (external input) message."""
    return HumanMessage(content=content)


def agent_message(
    author_id: str,
    content: str,
    tool_calls: Optional[Sequence[dict[str, Any]]] = None,
) -> AIMessage:
    """Create a message authored by a participant or the moderator."""
    return AIMessage(content=content, name=author_id, tool_calls=list(tool_calls or []))


def tool_result_message(task_id: str, content: str, tool_name: str) -> ToolMessage:
    """Create the tool result recorded for a dispatched task."""
    return ToolMessage(content=content, tool_call_id=task_id, name=tool_name)


def message_text(message: BaseMessage) -> str:
    """Return the plain text of a message.

    Providers may return content as a list of blocks; only text blocks
    are kept.
    """
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


def has_tool_calls(message: AIMessage) -> bool:
    """Whether an AI message carries tool machinery."""
    return bool(message.tool_calls) or bool(message.invalid_tool_calls)


def speak_tool_name(participant_id: str) -> str:
    """Name of the tool that asks ``participant_id`` to speak."""
    return f"{SPEAK_TOOL_PREFIX}{participant_id}{SPEAK_TOOL_SUFFIX}"


def parse_speak_tool_name(tool_name: Optional[str]) -> Optional[str]:
    """Extract the participant id from an ``ask_<id>_speak`` tool name.

    Returns:
        The participant id, or None if the name does not follow the pattern.
    """
    if not tool_name:
        return None
    if not (tool_name.startswith(SPEAK_TOOL_PREFIX) and tool_name.endswith(SPEAK_TOOL_SUFFIX)):
        return None
    participant_id = tool_name[len(SPEAK_TOOL_PREFIX) : -len(SPEAK_TOOL_SUFFIX)]
    return participant_id or None


def format_task_result(task_id: str, reply: str) -> str:
    """Encode a task reply as ``task_id: <id>\\n---\\n<reply>``."""
    return f"task_id: {task_id}{TASK_RESULT_SEPARATOR}{reply}"


def split_task_result(content: str) -> tuple[Optional[str], str]:
    """Decode a task result payload.

    The payload is split on the first separator only, so replies may
    contain the separator themselves.

    Returns:
        Tuple of (task_id, reply). task_id is None when the payload has no
        header, in which case the whole content is the reply.
    """
    header, sep, reply = content.partition(TASK_RESULT_SEPARATOR)
    if not sep:
        return None, content

    header = header.strip()
    if header.startswith("task_id:"):
        return header[len("task_id:") :].strip(), reply
    return None, reply
