"""Context management for Consensus Agora.

This package holds the transcript message model and the filters that
project the shared transcript into a participant-specific view.
"""

from .filters import MessageFilter, filter_messages
from .messages import (
    agent_message,
    format_task_result,
    human_message,
    message_text,
    parse_speak_tool_name,
    speak_tool_name,
    split_task_result,
    tool_result_message,
)

__all__ = [
    "MessageFilter",
    "filter_messages",
    "agent_message",
    "format_task_result",
    "human_message",
    "message_text",
    "parse_speak_tool_name",
    "speak_tool_name",
    "split_task_result",
    "tool_result_message",
]
