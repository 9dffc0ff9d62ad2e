"""Moderator tools for Consensus Agora."""

from .meeting_tools import (
    DISSENT_TOOL_NAME,
    VOTE_TOOL_NAME,
    MeetingTools,
    create_error_tool_message,
)

__all__ = [
    "DISSENT_TOOL_NAME",
    "VOTE_TOOL_NAME",
    "MeetingTools",
    "create_error_tool_message",
]
