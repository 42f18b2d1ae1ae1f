#!/usr/bin/env python3
"""Command-line entry point: run the calibration workflow against one robot."""

import argparse
import logging
import signal
import sys
from collections.abc import Mapping, Sequence
from pathlib import Path

from armcal_common.config import build_run_config
from armcal_common.constants import (
    DEFAULT_HOST,
    DEFAULT_POLL_INTERVAL,
    DEFAULT_PORT,
    DEFAULT_ROBOT_ID,
    DEFAULT_SAVE_DIR,
    EXIT_CONFIG_ERROR,
    EXIT_INTERRUPTED,
)
from armcal_common.errors import ConfigError
from armcal_common.utils.response_utils import dump_response
from armcal_common.utils.utils import init_logging
from armcal_client.calibration.cancellation import CancelFlag
from armcal_client.calibration.orchestrator import CalibrationOrchestrator
from armcal_client.client.robot_client import RobotClient

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    # Settings default to None so that unset flags don't mask the config file
    # or the environment
    parser = argparse.ArgumentParser(
        description="Run the robot calibration sequence through the robot-control HTTP API"
    )
    parser.add_argument("--host", help=f"API host (default: {DEFAULT_HOST})")
    parser.add_argument("--port", type=int, help=f"API port (default: {DEFAULT_PORT})")
    parser.add_argument(
        "--rid", dest="robot_id", type=int, help=f"Robot id (default: {DEFAULT_ROBOT_ID})"
    )
    parser.add_argument(
        "--save-dir",
        type=Path,
        help=f"Directory to save bad JSON responses (default: {DEFAULT_SAVE_DIR})",
    )
    parser.add_argument(
        "--force",
        action="store_true",
        help="Continue even if a response contains NaN/null/empty values",
    )
    parser.add_argument(
        "--dry-run", action="store_true", help="Do not perform HTTP requests, only log them"
    )
    parser.add_argument(
        "--simulate", action="store_true", help="Use simulated responses for testing"
    )
    parser.add_argument(
        "--poll-interval",
        type=float,
        help=f"Seconds between calibration status polls (default: {DEFAULT_POLL_INTERVAL})",
    )
    parser.add_argument("--max-polls", type=int, help="Maximum number of status polls")
    parser.add_argument("--poll-timeout", type=float, help="Maximum seconds spent polling")
    parser.add_argument("--request-timeout", type=float, help="Per-request timeout in seconds")
    parser.add_argument(
        "--retries", type=int, help="Connection retries per request (default: 0)"
    )
    parser.add_argument("--config", type=Path, help="Path to a YAML configuration file")
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO)",
    )
    return parser


def main(argv: Sequence[str] | None = None, environ: Mapping[str, str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        config = build_run_config(args, environ)
    except ConfigError as e:
        init_logging()
        logger.error(e.message)
        return EXIT_CONFIG_ERROR

    init_logging(config.log_level)
    logger.info(config.summary())

    # SIGTERM stops the workflow before its next step or poll; Ctrl-C interrupts anything
    cancel_event = CancelFlag()
    previous_handler = signal.signal(signal.SIGTERM, lambda signum, frame: cancel_event.set())

    try:
        with RobotClient(config) as client:
            outcome = CalibrationOrchestrator(client, config, cancel_event=cancel_event).run()
    except KeyboardInterrupt:
        logger.warning("Calibration interrupted by operator")
        return EXIT_INTERRUPTED
    finally:
        if previous_handler is not None:
            signal.signal(signal.SIGTERM, previous_handler)

    if outcome.cancelled:
        logger.warning(f"Calibration cancelled after {outcome.completed_steps or 'no steps'}")
        return outcome.exit_code

    if not outcome.success:
        logger.error(f"Calibration workflow failed after {outcome.completed_steps or 'no steps'}")
        if outcome.last_response is not None:
            logger.error(f"Last response: {dump_response(outcome.last_response)}")
        return outcome.exit_code

    logger.info("Done")
    return outcome.exit_code


if __name__ == "__main__":
    sys.exit(main())
