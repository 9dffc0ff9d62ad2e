"""Dissent resolution for Consensus Agora.

After a failed vote, the dissenters explain their objections and the
combined statement is added to the meeting so supporters can respond.
"""

import uuid
from typing import List, Optional, Sequence

from consensus_agora.context.filters import MessageFilter, filter_messages
from consensus_agora.context.messages import MODERATOR_ID, human_message
from consensus_agora.orchestration.dispatcher import (
    DispatchRequest,
    DispatchResult,
    SubAgentDispatcher,
)
from consensus_agora.orchestration.models import DissentingAgent, DissentResult, NewMessage
from consensus_agora.state.manager import MeetingStateManager
from consensus_agora.utils.logging import get_logger

logger = get_logger(__name__)

SUMMARY_HEADER = "## Dissenting opinions"
SUPPORTER_INVITATION = (
    "Other participants (supporters), please respond to the dissenters' points "
    "and try to find common ground."
)
NO_STATEMENT_PLACEHOLDER = "(No statement could be collected.)"


def build_dissent_prompt(reason: str) -> str:
    """Build the instruction sent to each dissenter."""
    return (
        "The vote did not reach consensus, so the meeting now hears the dissenting "
        "views.\n"
        f"Reason given by the moderator: {reason}\n\n"
        "Explain in detail why you object, and what would have to change for you to "
        "support the proposal.\n\n"
        "Cover the following points:\n"
        "1. Your core objection\n"
        "2. Specific concerns or risks\n"
        "3. Required adjustments or compensating measures\n"
        "4. Proposed improvements"
    )


def build_dissent_summary(sections: Sequence[str]) -> str:
    """Join per-dissenter sections into one meeting message."""
    body = "\n\n".join(sections)
    return f"{SUMMARY_HEADER}\n\n{body}\n\n---\n\n{SUPPORTER_INVITATION}"


class DissentResolutionCoordinator:
    """Collects dissenting statements after a failed vote."""

    def __init__(self, state_manager: MeetingStateManager, dispatcher: SubAgentDispatcher):
        self.state_manager = state_manager
        self.dispatcher = dispatcher

    async def resolve(
        self,
        dissenting_ids: Sequence[str],
        reason: str,
        task_id: Optional[str] = None,
    ) -> DissentResult:
        """Ask each dissenter to explain their objection.

        Unknown ids are ignored. With no known dissenter nothing is
        dispatched and the transcript is left unchanged.

        Args:
            dissenting_ids: Participants who voted no, in speaking order
            reason: Why consensus was not reached
            task_id: Base id for the per-dissenter tasks

        Returns:
            DissentResult describing the summary that was added
        """
        state = self.state_manager
        dissenters = []
        seen = set()
        for participant_id in dissenting_ids:
            if participant_id in seen:
                continue
            seen.add(participant_id)
            participant = state.get_participant(participant_id)
            if participant is None:
                logger.warning(f"Ignoring unknown dissenter id: {participant_id}")
                continue
            dissenters.append(participant)

        if not dissenters:
            logger.info("No known dissenters; skipping dissent discussion")
            return DissentResult(message="No dissenters found")

        view = filter_messages(state.messages, MODERATOR_ID, MessageFilter.DISCUSSION)
        prompt = build_dissent_prompt(reason)
        base_id = task_id or f"dissent_{uuid.uuid4().hex[:12]}"
        requests = [DispatchRequest(f"{base_id}:{p.id}", p.id, view, prompt) for p in dissenters]

        logger.info(f"Inviting {len(dissenters)} dissenters to speak")
        outcomes = await self.dispatcher.dispatch_many(requests)

        sections: List[str] = []
        failed: List[str] = []
        task_results = {}
        for participant, outcome in zip(dissenters, outcomes):
            if isinstance(outcome, DispatchResult):
                sections.append(f"### {participant.display_name}:\n{outcome.reply_text}")
                task_results.update(outcome.task_store_entry())
            else:
                logger.error(f"No statement collected from {participant.id}: {outcome}")
                # Error details stay in the log, out of the shared transcript
                sections.append(f"### {participant.display_name}:\n{NO_STATEMENT_PLACEHOLDER}")
                failed.append(participant.id)

        summary = build_dissent_summary(sections)
        state.merge_task_results(task_results)
        state.append_messages(human_message(summary))

        return DissentResult(
            message=f"Invited {len(dissenters)} dissenters to speak",
            dissenting_agents=[
                DissentingAgent(id=p.id, name=p.display_name) for p in dissenters
            ],
            new_messages=[NewMessage(content=summary)],
            failed_agents=failed,
        )
