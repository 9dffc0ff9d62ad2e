"""Participant-specific views of the meeting transcript.

The filter is the system's information-isolation boundary: a participant
only ever receives attributed natural-language statements, never tool-call
arguments or another participant's internal tool machinery.
"""

from enum import Enum
from typing import List, Optional, Sequence, Union

from langchain_core.messages import (
    AIMessage,
    BaseMessage,
    HumanMessage,
    ToolMessage,
)

from consensus_agora.context.messages import (
    has_tool_calls,
    message_text,
    parse_speak_tool_name,
    split_task_result,
)
from consensus_agora.utils.logging import get_logger

logger = get_logger(__name__)


class MessageFilter(str, Enum):
    """Filtering strategies for sub-agent context."""

    ALL = "all"
    DISCUSSION = "discussion"
    DISCUSSION_WITH_REPLIES = "discussion_with_replies"
    USER = "user"


def filter_messages(
    messages: Sequence[BaseMessage],
    viewer_id: str,
    mode: Union[MessageFilter, str] = MessageFilter.DISCUSSION,
) -> List[BaseMessage]:
    """Project the transcript into the view of one participant.

    Args:
        messages: The meeting transcript
        viewer_id: Participant the view is built for
        mode: Filtering strategy

    Returns:
        New list of messages; the input is not modified
    """
    mode = MessageFilter(mode)

    if mode is MessageFilter.ALL:
        return list(messages)

    if mode is MessageFilter.USER:
        return [msg for msg in messages if isinstance(msg, HumanMessage)]

    with_replies = mode is MessageFilter.DISCUSSION_WITH_REPLIES
    filtered: List[BaseMessage] = []

    for msg in messages:
        if isinstance(msg, HumanMessage):
            filtered.append(msg)
        elif isinstance(msg, AIMessage):
            if has_tool_calls(msg):
                continue
            # Someone else's statement is external input for the viewer
            filtered.append(HumanMessage(content=msg.content))
        elif isinstance(msg, ToolMessage):
            if with_replies:
                reply = _unpack_speak_reply(msg, viewer_id)
                if reply is not None:
                    filtered.append(reply)
        # System and any other message kinds never reach a participant

    logger.debug(
        f"Filtered {len(messages)} messages to {len(filtered)} "
        f"for {viewer_id} (mode={mode.value})"
    )
    return filtered


def _unpack_speak_reply(msg: ToolMessage, viewer_id: str) -> Optional[BaseMessage]:
    """Turn an ``ask_<id>_speak`` result into an attributed statement.

    Only well-formed results (``task_id: <id>`` header and separator) are
    unpacked. Failed calls and malformed payloads are tool plumbing and
    never reach a participant.

    Returns:
        AIMessage if the viewer authored the reply, an attributed
        HumanMessage otherwise, or None for any other tool result.
    """
    author_id = parse_speak_tool_name(msg.name)
    if author_id is None or msg.status == "error":
        return None

    task_id, reply = split_task_result(message_text(msg))
    if task_id is None:
        logger.debug(f"Dropping malformed speak result {msg.tool_call_id} from {author_id}")
        return None

    if author_id == viewer_id:
        return AIMessage(content=reply, name=viewer_id)
    return HumanMessage(content=f"[{author_id}]: {reply}")
