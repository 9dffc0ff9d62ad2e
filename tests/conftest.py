"""Pytest configuration and shared fixtures for Consensus Agora tests.

This module provides common test fixtures and configuration
that can be used across all test modules.
"""

from pathlib import Path
from typing import Callable, Dict, Generator, List, Optional

import pytest
from _pytest.config import Config as PytestConfig
from langchain_core.language_models.chat_models import BaseChatModel

from consensus_agora.agents.participant import ParticipantAgent
from consensus_agora.config.models import MeetingConfig, ModelConfig, ParticipantConfig
from consensus_agora.orchestration.dispatcher import SubAgentDispatcher
from consensus_agora.state.manager import MeetingStateManager
from consensus_agora.tools.meeting_tools import MeetingTools


def make_participant(participant_id: str, display_name: Optional[str] = None) -> ParticipantConfig:
    """Build a participant configuration with test defaults."""
    return ParticipantConfig(
        id=participant_id,
        display_name=display_name or participant_id.replace("-", " ").title(),
        description=f"Responsible for {participant_id} concerns",
        perspective=f"The {participant_id} point of view",
        model=ModelConfig(provider="openai", model="gpt-4o-mini"),
    )


class MeetingHarness:
    """Wires state, dispatcher and tools around fake chat models."""

    def __init__(
        self,
        llms: Dict[str, BaseChatModel],
        max_rounds: int = 5,
        speak_filter: str = "discussion",
        initial_proposal: Optional[str] = None,
        timeout_seconds: Optional[float] = None,
        recursion_limit: int = 25,
    ):
        self.participants = [make_participant(pid) for pid in llms]
        self.meeting = MeetingConfig(
            topic="Adopt a four-day work week",
            initial_proposal=initial_proposal,
            max_rounds=max_rounds,
            speak_filter=speak_filter,
        )
        self.llms = llms
        self.state_manager = MeetingStateManager(self.meeting, self.participants)
        self.state_manager.initialize_state("test-meeting")
        self.agents = {
            p.id: ParticipantAgent(p, llms[p.id]) for p in self.participants
        }
        self.dispatcher = SubAgentDispatcher(
            self.agents, recursion_limit=recursion_limit, timeout_seconds=timeout_seconds
        )
        self.tools = MeetingTools(self.state_manager, self.dispatcher, speak_filter=speak_filter)


@pytest.fixture
def participants() -> List[ParticipantConfig]:
    """Three participants in configuration order."""
    return [make_participant(pid) for pid in ("alice", "bob", "carol")]


@pytest.fixture
def meeting_config() -> MeetingConfig:
    return MeetingConfig(topic="Adopt a four-day work week", max_rounds=5)


@pytest.fixture
def state_manager(meeting_config, participants) -> MeetingStateManager:
    """Initialized state manager for the default meeting."""
    manager = MeetingStateManager(meeting_config, participants)
    manager.initialize_state("test-meeting")
    return manager


@pytest.fixture
def harness() -> Callable[..., MeetingHarness]:
    """Factory for meeting harnesses around fake chat models."""
    return MeetingHarness


@pytest.fixture
def temp_config_file(tmp_path: Path) -> Generator[Path, None, None]:
    """Create a temporary meeting config file for testing."""
    config_file = tmp_path / "meeting.yml"
    config_content = """
meeting:
  topic: How do we improve team collaboration?
  max_rounds: 3

moderator:
  provider: OpenAI
  model: gpt-4o

participants:
  - id: technical-director
    display_name: Technical Director
    perspective: Technical soundness
    model:
      provider: openai
      model: gpt-4o-mini
  - id: product-manager
    display_name: Product Manager
    perspective: User value
    model:
      provider: Anthropic
      model: claude-3-5-haiku-latest
"""
    config_file.write_text(config_content)
    yield config_file


@pytest.fixture
def mock_env_vars(monkeypatch: pytest.MonkeyPatch) -> None:
    """Mock environment variables for testing."""
    monkeypatch.setenv("GOOGLE_API_KEY", "test_google_key")
    monkeypatch.setenv("OPENAI_API_KEY", "test_openai_key")
    monkeypatch.setenv("ANTHROPIC_API_KEY", "test_anthropic_key")
    monkeypatch.setenv("XAI_API_KEY", "test_xai_key")


@pytest.fixture(autouse=True)
def isolate_tests(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Isolate tests by changing to a temporary directory."""
    monkeypatch.chdir(tmp_path)


def pytest_configure(config: PytestConfig) -> None:
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "integration: mark test as an integration test")
