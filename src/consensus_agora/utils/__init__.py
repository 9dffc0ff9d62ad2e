"""Utility functions and helpers for Consensus Agora.

This module contains shared utilities including logging setup
and custom exceptions.
"""

from .logging import setup_logging, get_logger
from .exceptions import (
    ConsensusAgoraError,
    ConfigurationError,
    InvalidStateError,
    DispatchError,
    DispatchTimeoutError,
    MeetingStepLimitError,
)

__all__ = [
    "setup_logging",
    "get_logger",
    "ConsensusAgoraError",
    "ConfigurationError",
    "InvalidStateError",
    "DispatchError",
    "DispatchTimeoutError",
    "MeetingStepLimitError",
]
