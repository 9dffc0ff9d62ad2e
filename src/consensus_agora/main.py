#!/usr/bin/env python3
"""Main entry point for Consensus Agora.

This module provides the command-line interface: it loads the
environment and the meeting configuration, runs the meeting and
reports the outcome.
"""

import argparse
import asyncio
import sys
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from consensus_agora import __version__
from consensus_agora.config.loader import API_KEY_ENV_VARS, ConfigLoader
from consensus_agora.config.models import Provider
from consensus_agora.flow.moderator import MeetingOrchestrator, MeetingOutcome, MeetingResult
from consensus_agora.state.manager import MeetingStateManager
from consensus_agora.utils.exceptions import ConfigurationError, ConsensusAgoraError
from consensus_agora.utils.logging import get_logger, setup_logging


logger = get_logger(__name__)
console = Console()

OUTCOME_STYLES = {
    MeetingOutcome.CONSENSUS: ("Consensus reached", "green"),
    MeetingOutcome.LIMIT_REACHED: ("Voting limit reached without consensus", "red"),
    MeetingOutcome.ENDED: ("Meeting ended without consensus", "yellow"),
}


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments.

    Returns:
        Parsed command-line arguments.
    """
    parser = argparse.ArgumentParser(
        prog="consensus-agora",
        description="Run an LLM meeting until its participants reach unanimous agreement",
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
        help="Show program version and exit",
    )

    parser.add_argument(
        "--config",
        type=Path,
        default=Path("meeting.yml"),
        help="Path to the meeting configuration file (default: meeting.yml)",
    )

    parser.add_argument(
        "--env-file",
        type=Path,
        default=Path(".env"),
        help="Path to environment file with API keys (default: .env)",
    )

    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Console log level (default: WARNING)",
    )

    parser.add_argument(
        "--output",
        type=Path,
        default=None,
        help="Write a JSON snapshot of the meeting to this path",
    )

    return parser.parse_args(argv)


def render_vote_history(state_manager: MeetingStateManager) -> Table:
    """Build a table with one row per ballot of every voting round."""
    table = Table(title="Vote history", show_lines=False)
    table.add_column("Round", justify="right")
    table.add_column("Participant")
    table.add_column("Vote")
    table.add_column("Reason", overflow="fold")

    for voting_round in state_manager.vote_history:
        for ballot in voting_round["ballots"]:
            vote = "[green]yes[/green]" if ballot["agree"] else "[red]no[/red]"
            table.add_row(
                str(voting_round["round_number"]),
                ballot["participant_name"],
                vote,
                ballot["rationale"],
            )
    return table


def report_outcome(result: MeetingResult, state_manager: MeetingStateManager) -> None:
    """Print the vote history and the final moderator message."""
    if state_manager.vote_history:
        console.print(render_vote_history(state_manager))

    title, style = OUTCOME_STYLES[result.outcome]
    console.print(
        Panel(
            result.final_message or "(no closing statement)",
            title=f"[bold {style}]{title}[/bold {style}]",
            subtitle=f"{result.round_count} vote attempts, {result.steps} moderator steps",
            border_style=style,
        )
    )


async def run_application(args: argparse.Namespace) -> int:
    """Run a meeting.

    Args:
        args: Parsed command-line arguments.

    Returns:
        Exit code (0 on consensus, 1 otherwise, 2 for configuration errors).
    """
    orchestrator: Optional[MeetingOrchestrator] = None
    try:
        log_file = setup_logging(level=args.log_level)
        logger.info(f"Starting Consensus Agora v{__version__}")

        if args.env_file.exists():
            load_dotenv(args.env_file)
        else:
            logger.debug(f"Environment file not found: {args.env_file}")

        loader = ConfigLoader(args.config)
        config = loader.load()

        missing = loader.get_missing_api_keys()
        if missing:
            env_vars = ", ".join(API_KEY_ENV_VARS[Provider(p)] for p in missing)
            raise ConfigurationError(
                f"Missing API keys for providers: {', '.join(missing)}",
                details={"env_vars": env_vars},
            )

        orchestrator = MeetingOrchestrator.from_config(config)
        console.print(f"[bold]Meeting:[/bold] {config.meeting.topic}")
        console.print(f"[dim]Log file: {log_file}[/dim]")

        result = await orchestrator.run()
        report_outcome(result, orchestrator.state_manager)
        return 0 if result.outcome is MeetingOutcome.CONSENSUS else 1

    except ConfigurationError as e:
        console.print(f"[red]Configuration error:[/red] {e}")
        return 2

    except ConsensusAgoraError as e:
        logger.error(f"Meeting failed: {e}")
        console.print(f"[red]Error:[/red] {e}")
        return 1

    except KeyboardInterrupt:
        logger.info("Received keyboard interrupt")
        return 130  # Standard exit code for SIGINT

    finally:
        if (
            args.output is not None
            and orchestrator is not None
            and orchestrator.state_manager.is_initialized
        ):
            path = orchestrator.state_manager.save_snapshot(args.output)
            console.print(f"[dim]Snapshot saved to {path}[/dim]")


def main(argv: Optional[List[str]] = None) -> None:
    """Main entry point for the application."""
    args = parse_arguments(argv)
    exit_code = asyncio.run(run_application(args))
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
