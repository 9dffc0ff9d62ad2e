"""Logging configuration and utilities for Consensus Agora.

This module provides centralized logging setup and helper functions
for consistent logging across the application.
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Optional

from rich.logging import RichHandler


# Global logger cache
_loggers: dict[str, logging.Logger] = {}


def setup_logging(
    level: str = "WARNING",
    log_dir: Optional[Path] = None,
    session_id: Optional[str] = None,
    always_debug_file: bool = True,
) -> Path:
    """Set up logging configuration for the application.

    Args:
        level: Console logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL). Default: WARNING.
        log_dir: Directory for log files. Defaults to 'logs' in the working directory.
        session_id: Unique meeting identifier for log file naming.
        always_debug_file: Always log DEBUG level to file regardless of console level.

    Returns:
        Path to the main log file.
    """
    log_level = getattr(logging, level.upper(), logging.WARNING)

    if log_dir is None:
        log_dir = Path("logs")
    log_dir.mkdir(parents=True, exist_ok=True)

    if session_id is None:
        session_id = datetime.now().strftime("%Y-%m-%d_%H%M%S")

    log_file = log_dir / f"meeting_{session_id}.log"

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)  # Handlers do the filtering
    root_logger.handlers.clear()

    console_handler = RichHandler(
        rich_tracebacks=True,
        show_time=True,
        show_path=False,
    )
    console_handler.setLevel(log_level)
    console_handler.setFormatter(logging.Formatter("%(message)s"))

    file_handler = logging.FileHandler(log_file, encoding="utf-8")
    file_handler.setLevel(logging.DEBUG if always_debug_file else log_level)
    file_handler.setFormatter(
        logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )

    root_logger.addHandler(console_handler)
    root_logger.addHandler(file_handler)

    # Third-party HTTP clients are noisy at DEBUG
    for noisy in ("httpx", "httpcore", "openai", "anthropic"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    logger = get_logger(__name__)
    logger.debug(f"Logging initialized - Meeting ID: {session_id}")
    logger.debug(f"Console log level: {level}")
    logger.debug(f"Main log file: {log_file.absolute()}")

    return log_file


def get_logger(name: str) -> logging.Logger:
    """Get or create a logger with the specified name.

    Args:
        name: Logger name (typically __name__ of the module).

    Returns:
        Configured logger instance.
    """
    if name not in _loggers:
        _loggers[name] = logging.getLogger(name)
    return _loggers[name]


def log_meeting_transition(from_phase: str, to_phase: str, details: str = "") -> None:
    """Log a meeting phase transition.

    Args:
        from_phase: Phase transitioning from
        to_phase: Phase transitioning to
        details: Optional additional details
    """
    logger = get_logger("consensus_agora.meeting")
    if details:
        logger.info(f"Phase transition: {from_phase} → {to_phase} ({details})")
    else:
        logger.info(f"Phase transition: {from_phase} → {to_phase}")
