"""Voting coordination for Consensus Agora.

This module polls every participant concurrently, parses their ballots
and tallies the round. Consensus requires unanimous agreement.
"""

import re
import uuid
from datetime import datetime
from typing import List, Optional, Tuple, Union

from consensus_agora.context.filters import MessageFilter, filter_messages
from consensus_agora.context.messages import MODERATOR_ID
from consensus_agora.orchestration.dispatcher import (
    DispatchRequest,
    DispatchResult,
    SubAgentDispatcher,
)
from consensus_agora.orchestration.models import (
    VoteBreakdownEntry,
    VoteLimitReached,
    VoteRecord,
    VoteResult,
)
from consensus_agora.state.manager import MeetingStateManager
from consensus_agora.state.schema import Ballot, VotingRound
from consensus_agora.utils.exceptions import InvalidStateError
from consensus_agora.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_PROPOSAL = "the preceding discussion"


def build_vote_instruction(proposal: Optional[str] = None) -> str:
    """Build the instruction sent to every voter."""
    return (
        "The meeting is now voting.\n"
        "Based on the discussion so far, decide whether you agree with the current "
        "proposal.\n\n"
        f"**Proposal:** {proposal or DEFAULT_PROPOSAL}\n\n"
        "**Important: the meeting can only end when everyone votes yes "
        "(100% agreement).**\n\n"
        "Reply in exactly this format:\n\n"
        "<vote>yes</vote> or <vote>no</vote>\n\n"
        "You may add a short reason of about 20 words."
    )


class VoteParser:
    """Parses ``<vote>yes</vote>`` / ``<vote>no</vote>`` ballots."""

    VOTE_PATTERN = re.compile(r"<\s*vote\s*>\s*(yes|no)\s*<\s*/\s*vote\s*>", re.IGNORECASE)

    def parse(self, text: str) -> Tuple[bool, str]:
        """Parse a ballot.

        A ballot agrees only if it carries a yes marker and no no marker;
        missing or contradictory markers count as disagreement.

        Args:
            text: The voter's reply

        Returns:
            Tuple of (agree, rationale) where rationale is the reply with
            all markers removed
        """
        markers = {m.lower() for m in self.VOTE_PATTERN.findall(text or "")}
        agree = "yes" in markers and "no" not in markers
        rationale = self.VOTE_PATTERN.sub("", text or "").strip()
        return agree, rationale


class VotingCoordinator:
    """Runs voting rounds against the meeting state."""

    def __init__(
        self,
        state_manager: MeetingStateManager,
        dispatcher: SubAgentDispatcher,
        parser: Optional[VoteParser] = None,
    ):
        self.state_manager = state_manager
        self.dispatcher = dispatcher
        self.parser = parser or VoteParser()

    async def vote(
        self, proposal: Optional[str] = None, task_id: Optional[str] = None
    ) -> Union[VoteResult, VoteLimitReached]:
        """Poll every participant and tally the result.

        Every call counts as an attempt, including the one that finds
        the round limit exceeded.

        Args:
            proposal: What is being voted on; defaults to the preceding discussion
            task_id: Base id for the per-participant tasks

        Returns:
            VoteResult, or VoteLimitReached if ``round_count`` exceeds ``max_rounds``

        Raises:
            InvalidStateError: If the meeting has no participants
        """
        state = self.state_manager
        participants = state.participants
        if not participants:
            raise InvalidStateError("Cannot vote without participants", operation="vote")

        round_count = state.increment_round()
        if round_count > state.max_rounds:
            logger.warning(
                f"Vote attempt {round_count} exceeds the limit of {state.max_rounds} rounds"
            )
            return VoteLimitReached(
                round_count=round_count,
                max_rounds=state.max_rounds,
                message=(
                    f"The maximum of {state.max_rounds} voting rounds has been reached and "
                    "the meeting could not reach consensus. Write a dissent report and "
                    "end the meeting."
                ),
            )

        # DISCUSSION views do not depend on the viewer
        view = filter_messages(state.messages, MODERATOR_ID, MessageFilter.DISCUSSION)
        instruction = build_vote_instruction(proposal)
        base_id = task_id or f"vote_{uuid.uuid4().hex[:12]}"

        requests = [
            DispatchRequest(f"{base_id}:{p.id}", p.id, view, instruction) for p in participants
        ]
        logger.info(f"Starting voting round {round_count} with {len(requests)} participants")
        outcomes = await self.dispatcher.dispatch_many(requests)

        ballots: List[Ballot] = []
        records: List[VoteRecord] = []
        task_results = {}
        for participant, outcome in zip(participants, outcomes):
            now = datetime.now()
            ballot = Ballot(
                participant_id=participant.id,
                participant_name=participant.display_name,
                agree=False,
                rationale="",
                timestamp=now,
            )
            if isinstance(outcome, DispatchResult):
                ballot["agree"], ballot["rationale"] = self.parser.parse(outcome.reply_text)
                task_results.update(outcome.task_store_entry())
            else:
                logger.error(f"No vote collected from {participant.id}: {outcome}")
                ballot["error"] = str(outcome)
                ballot["rationale"] = f"Vote could not be collected: {outcome}"
            ballots.append(ballot)
            records.append(
                VoteRecord(
                    agent_id=ballot["participant_id"],
                    agent_name=ballot["participant_name"],
                    agree=ballot["agree"],
                    reason=ballot["rationale"],
                    timestamp=int(now.timestamp() * 1000),
                    error=ballot.get("error"),
                )
            )

        total_votes = len(ballots)
        yes_votes = sum(1 for b in ballots if b["agree"])
        consensus_reached = yes_votes == total_votes
        dissenting = [b["participant_id"] for b in ballots if not b["agree"]]

        state.merge_task_results(task_results)
        state.record_voting_round(
            VotingRound(
                round_number=round_count,
                proposal=proposal,
                ballots=ballots,
                consensus_reached=consensus_reached,
                timestamp=datetime.now(),
            )
        )

        logger.info(
            f"Voting round {round_count}: {yes_votes}/{total_votes} yes, "
            f"consensus={'reached' if consensus_reached else 'not reached'}"
        )

        return VoteResult(
            vote_round=round_count,
            total_votes=total_votes,
            yes_votes=yes_votes,
            no_votes=total_votes - yes_votes,
            agreement_ratio=yes_votes / total_votes,
            consensus_reached=consensus_reached,
            vote_records=records,
            vote_breakdown=[VoteBreakdownEntry.from_record(r) for r in records],
            dissenting_agents=dissenting,
            needs_follow_up=bool(dissenting),
            max_rounds=state.max_rounds,
        )
