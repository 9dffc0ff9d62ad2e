"""Tests for voting rounds."""

import pytest
from langchain_core.messages import HumanMessage, SystemMessage, ToolMessage

from consensus_agora.context.messages import agent_message, tool_result_message
from consensus_agora.orchestration.dispatcher import SubAgentDispatcher
from consensus_agora.orchestration.models import VoteLimitReached, VoteResult
from consensus_agora.orchestration.voting import (
    VoteParser,
    VotingCoordinator,
    build_vote_instruction,
)
from consensus_agora.state.manager import MeetingStateManager
from consensus_agora.utils.exceptions import InvalidStateError
from tests.helpers.fake_llm import ErrorFakeLLM, VoterFakeLLM


def voters(*scripts):
    """Participants named alice, bob, carol... voting per script."""
    names = ["alice", "bob", "carol", "dave"]
    return {name: VoterFakeLLM(votes=list(script)) for name, script in zip(names, scripts)}


def coordinator(h) -> VotingCoordinator:
    return VotingCoordinator(h.state_manager, h.dispatcher)


class TestVoteParser:
    """Test ballot parsing."""

    @pytest.mark.parametrize(
        "text,agree",
        [
            ("<vote>yes</vote> Looks good", True),
            ("<vote>no</vote> Too risky", False),
            ("< VOTE > Yes </vote>", True),
            ("I think so", False),
            ("<vote>yes</vote> but also <vote>no</vote>", False),
            ("", False),
        ],
    )
    def test_agreement(self, text, agree):
        assert VoteParser().parse(text)[0] is agree

    def test_rationale_strips_markers(self):
        agree, rationale = VoteParser().parse("<vote>yes</vote>  Worth a pilot. ")
        assert agree
        assert rationale == "Worth a pilot."


class TestVoteInstruction:
    def test_includes_proposal(self):
        text = build_vote_instruction("Pilot for one quarter")
        assert "Pilot for one quarter" in text
        assert "<vote>yes</vote>" in text
        assert "<vote>no</vote>" in text

    def test_defaults_to_preceding_discussion(self):
        assert "the preceding discussion" in build_vote_instruction()


class TestVotingRound:
    """Test tallying and recording of voting rounds."""

    @pytest.mark.asyncio
    async def test_unanimous_vote_reaches_consensus(self, harness):
        h = harness(voters(["<vote>yes</vote> Good"], ["<vote>yes</vote>"], ["<vote>yes</vote> Fine"]))

        result = await coordinator(h).vote("Adopt it", task_id="call_1")

        assert isinstance(result, VoteResult)
        assert result.vote_round == 1
        assert result.total_votes == 3
        assert result.yes_votes == 3
        assert result.no_votes == 0
        assert result.agreement_ratio == 1.0
        assert result.consensus_reached is True
        assert result.dissenting_agents == []
        assert result.needs_follow_up is False
        assert result.vote_limit_reached is False
        assert [e.vote for e in result.vote_breakdown] == ["赞成", "赞成", "赞成"]

    @pytest.mark.asyncio
    async def test_single_no_blocks_consensus(self, harness):
        h = harness(voters(["<vote>yes</vote>"], ["<vote>no</vote> Too costly"], ["<vote>yes</vote>"]))

        result = await coordinator(h).vote()

        assert result.consensus_reached is False
        assert result.yes_votes == 2
        assert result.no_votes == 1
        assert result.agreement_ratio == pytest.approx(2 / 3)
        assert result.dissenting_agents == ["bob"]
        assert result.needs_follow_up is True
        assert result.vote_breakdown[1].vote == "反对"
        assert result.vote_breakdown[1].reason == "Too costly"
        assert result.vote_breakdown[0].reason == "No reason given"

    @pytest.mark.asyncio
    async def test_round_recorded_in_history(self, harness):
        h = harness(voters(["<vote>yes</vote>"], ["<vote>no</vote>"]))

        await coordinator(h).vote("Adopt it")

        voting_round = h.state_manager.latest_round()
        assert voting_round["round_number"] == 1
        assert voting_round["proposal"] == "Adopt it"
        assert voting_round["consensus_reached"] is False
        assert [b["participant_id"] for b in voting_round["ballots"]] == ["alice", "bob"]
        assert [b["agree"] for b in voting_round["ballots"]] == [True, False]

    @pytest.mark.asyncio
    async def test_sub_transcripts_merged_under_sub_task_ids(self, harness):
        h = harness(voters(["<vote>yes</vote>"], ["<vote>yes</vote>"]))

        await coordinator(h).vote(task_id="call_7")

        assert set(h.state_manager.task_store) == {"call_7:alice", "call_7:bob"}
        # Voting adds nothing to the transcript by itself
        assert len(h.state_manager.messages) == 1

    @pytest.mark.asyncio
    async def test_generated_task_ids(self, harness):
        h = harness(voters(["<vote>yes</vote>"]))

        await coordinator(h).vote()

        (task_id,) = h.state_manager.task_store
        assert task_id.startswith("vote_")
        assert task_id.endswith(":alice")

    @pytest.mark.asyncio
    async def test_voters_see_discussion_view(self, harness):
        h = harness(voters(["<vote>yes</vote>"]))
        state = h.state_manager
        state.append_messages(
            agent_message(
                "moderator", "", tool_calls=[{"name": "ask_alice_speak", "args": {}, "id": "c1"}]
            )
        )
        state.append_tool_result(tool_result_message("c1", "task_id: c1\n---\nhidden", "ask_alice_speak"))
        state.append_messages(agent_message("moderator", "Let's vote."))

        await coordinator(h).vote("Adopt it")

        sent = h.llms["alice"].last_messages
        assert isinstance(sent[0], SystemMessage)
        assert not any(isinstance(m, ToolMessage) for m in sent)
        assert all(isinstance(m, HumanMessage) for m in sent[1:])
        assert sent[-2].content == "Let's vote."
        assert "Adopt it" in sent[-1].content


class TestRoundLimit:
    """Test the bounded number of voting rounds."""

    @pytest.mark.asyncio
    async def test_third_vote_with_two_rounds_hits_limit(self, harness):
        h = harness(voters(["<vote>no</vote>"], ["<vote>yes</vote>"]), max_rounds=2)
        votes = coordinator(h)

        first = await votes.vote()
        second = await votes.vote()
        calls_before = h.llms["alice"].call_count
        third = await votes.vote()

        assert isinstance(first, VoteResult)
        assert isinstance(second, VoteResult)
        assert isinstance(third, VoteLimitReached)
        assert third.vote_limit_reached is True
        assert third.round_count == 3
        assert third.max_rounds == 2
        assert h.llms["alice"].call_count == calls_before
        assert len(h.state_manager.vote_history) == 2

    @pytest.mark.asyncio
    async def test_every_attempt_counts(self, harness):
        h = harness(voters(["<vote>yes</vote>"]), max_rounds=1)
        votes = coordinator(h)

        await votes.vote()
        await votes.vote()
        await votes.vote()

        assert h.state_manager.round_count == 3
        payload = (await votes.vote()).to_payload()
        assert payload["voteLimitReached"] is True
        assert payload["roundCount"] == 4

    @pytest.mark.asyncio
    async def test_zero_participants_rejected_before_counting(self, meeting_config):
        manager = MeetingStateManager(meeting_config, [])
        manager.initialize_state("empty")
        votes = VotingCoordinator(manager, SubAgentDispatcher({}))

        with pytest.raises(InvalidStateError):
            await votes.vote()

        assert manager.round_count == 0


class TestFailurePolicy:
    """Test votes that cannot be collected."""

    @pytest.mark.asyncio
    async def test_failed_dispatch_counts_as_no(self, harness):
        h = harness(
            {
                "alice": VoterFakeLLM(votes=["<vote>yes</vote>"]),
                "bob": ErrorFakeLLM(error_message="provider down"),
            }
        )

        result = await coordinator(h).vote(task_id="call_1")

        assert result.total_votes == 2
        assert result.yes_votes == 1
        assert result.consensus_reached is False
        assert result.dissenting_agents == ["bob"]

        record = result.vote_records[1]
        assert record.agree is False
        assert "provider down" in record.error
        assert record.reason.startswith("Vote could not be collected:")

        ballot = h.state_manager.latest_round()["ballots"][1]
        assert "error" in ballot
        # Only successful sessions reach the task store
        assert set(h.state_manager.task_store) == {"call_1:alice"}
