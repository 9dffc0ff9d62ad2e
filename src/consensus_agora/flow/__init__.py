"""Meeting flow for Consensus Agora."""

from .moderator import MeetingOrchestrator, MeetingOutcome, MeetingResult

__all__ = ["MeetingOrchestrator", "MeetingOutcome", "MeetingResult"]
