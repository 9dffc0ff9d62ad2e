"""Tests for custom exceptions."""

import pytest

from consensus_agora.utils.exceptions import (
    ConfigurationError,
    ConsensusAgoraError,
    DispatchError,
    DispatchTimeoutError,
    InvalidStateError,
    MeetingStepLimitError,
)


class TestExceptions:
    def test_base_message(self):
        error = ConsensusAgoraError("Something failed")
        assert str(error) == "Something failed"
        assert error.details == {}

    def test_details_in_str(self):
        error = ConfigurationError("Bad config", details={"path": "meeting.yml"})
        assert str(error) == "Bad config (path=meeting.yml)"

    @pytest.mark.parametrize(
        "error",
        [
            ConfigurationError("x"),
            InvalidStateError("x", operation="vote"),
            DispatchError("x", task_id="t1", participant_id="alice"),
            DispatchTimeoutError("x", limit=25),
            MeetingStepLimitError("x", step_limit=10),
        ],
    )
    def test_hierarchy(self, error):
        assert isinstance(error, ConsensusAgoraError)

    def test_timeout_is_dispatch_error(self):
        error = DispatchTimeoutError("slow", task_id="t1", participant_id="bob", limit=2.5)

        assert isinstance(error, DispatchError)
        assert error.task_id == "t1"
        assert error.participant_id == "bob"
        assert error.limit == 2.5

    def test_invalid_state_operation(self):
        assert InvalidStateError("x", operation="speak").operation == "speak"
