"""Poll loop driving the remote calibration sequence to a terminal state."""

import logging
import threading
import time
from collections.abc import Callable
from typing import Any

from armcal_common.config import RunConfig
from armcal_common.constants import PHASE_CALIBRATE_POLLING, PHASE_CALIBRATE_RESPONSE
from armcal_common.errors import (
    CalibrationCancelled,
    CalibrationError,
    PoisonedValueError,
    PollTimeoutError,
    TerminalStatusError,
)
from armcal_common.types.calibration_types import (
    CalibrationProgress,
    CalibrationStatus,
    PollState,
)
from armcal_common.utils.response_utils import dump_response, read_progress, validate_response
from armcal_client.calibration.cancellation import CancelFlag
from armcal_client.calibration.diagnostics import DiagnosticsWriter
from armcal_client.client.robot_client import RobotClient

logger = logging.getLogger(__name__)


class CalibrationPoller:
    """
    State machine: STARTED -> POLLING -> {SUCCESS, FAILED}.

    Each ``/calibrate`` response is validated before any field is read. A
    poisoned response is saved to the diagnostics directory and aborts the loop
    unless ``force`` is set, in which case defaults stand in for the bad
    fields. ``in_progress`` waits ``poll_interval`` and polls again, ``success``
    ends the loop, and any other status fails it regardless of ``force``.

    The wait between polls returns early when ``cancel_event`` is set.
    """

    def __init__(
        self,
        client: RobotClient,
        config: RunConfig,
        diagnostics: DiagnosticsWriter,
        on_progress: Callable[[CalibrationProgress], None] | None = None,
        cancel_event: CancelFlag | threading.Event | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.client = client
        self.config = config
        self.diagnostics = diagnostics
        self.on_progress = on_progress
        self.cancel_event = cancel_event or CancelFlag()
        self.clock = clock

        self.state = PollState.STARTED
        self.polls = 0
        self.progress: list[CalibrationProgress] = []
        self.warnings: list[str] = []
        self.last_response: Any = None

    def run(self) -> CalibrationProgress:
        """Trigger calibration and poll until it finishes.

        Returns:
            The final progress snapshot, with status SUCCESS

        Raises:
            PoisonedValueError: Invalid response and ``force`` not set
            TerminalStatusError: Calibration ended in error or an unknown status
            PollTimeoutError: ``max_polls`` or ``poll_timeout`` exhausted
            CalibrationCancelled: ``cancel_event`` set during a wait
            TransportError, MalformedBodyError: Raised by the client
        """
        try:
            return self._run()
        except CalibrationError:
            self.state = PollState.FAILED
            raise

    def _run(self) -> CalibrationProgress:
        started = self.clock()
        phase = PHASE_CALIBRATE_RESPONSE
        total_steps = 0

        while True:
            response = self.client.calibrate()
            self.polls += 1
            self.last_response = response
            self.state = PollState.POLLING

            self._check_response(response, phase)

            snapshot = read_progress(response, previous_total=total_steps)
            if total_steps and snapshot.total_steps < total_steps:
                self._warn(
                    f"Total calibration steps decreased from {total_steps} to {snapshot.total_steps}"
                )
            total_steps = snapshot.total_steps
            self._emit(snapshot)

            if snapshot.status is CalibrationStatus.SUCCESS:
                self.state = PollState.SUCCESS
                return snapshot
            if snapshot.status is not CalibrationStatus.IN_PROGRESS:
                raise TerminalStatusError(
                    f"Calibration did not finish in success. Response: {dump_response(response)}",
                    response=response,
                )

            self._check_budget(started)
            self._wait()
            phase = PHASE_CALIBRATE_POLLING

    def _check_response(self, response: Any, phase: str):
        verdict = validate_response(response)
        if verdict:
            return

        logger.error(
            f"Calibration response contains invalid values at: {', '.join(verdict.poisoned_paths)}"
        )
        self.diagnostics.persist(phase, response)
        if not self.config.force:
            raise PoisonedValueError(
                "Aborting: calibration response contains NaN/null/empty values "
                f"(use --force to continue). Response: {dump_response(response)}",
                response=response,
            )
        self._warn(f"--force enabled: continuing despite bad response in {phase}")

    def _check_budget(self, started: float):
        max_polls = self.config.max_polls
        if max_polls is not None and self.polls >= max_polls:
            raise PollTimeoutError(
                f"Calibration still in progress after {self.polls} polls",
                response=self.last_response,
            )
        timeout = self.config.poll_timeout
        if timeout is not None and self.clock() - started >= timeout:
            raise PollTimeoutError(
                f"Calibration still in progress after {timeout:.0f}s",
                response=self.last_response,
            )

    def _wait(self):
        if self.cancel_event.wait(self.config.poll_interval):
            raise CalibrationCancelled(
                "Calibration polling cancelled by operator", response=self.last_response
            )

    def _emit(self, snapshot: CalibrationProgress):
        self.progress.append(snapshot)
        logger.info(f"  -> {snapshot}")
        if self.on_progress is not None:
            self.on_progress(snapshot)

    def _warn(self, message: str):
        logger.warning(message)
        self.warnings.append(message)
