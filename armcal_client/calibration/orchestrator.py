"""Sequences the full calibration workflow against the robot-control service."""

import logging
import threading
from collections.abc import Callable
from typing import Any

import numpy as np

from armcal_common.config import RunConfig
from armcal_common.constants import MESSAGE, PHASE_JOINTS_READ, STATUS, VERIFICATION_MOVE
from armcal_common.errors import (
    CalibrationCancelled,
    CalibrationError,
    MalformedBodyError,
    PoisonedValueError,
)
from armcal_common.types.calibration_types import CalibrationProgress, WorkflowOutcome
from armcal_common.utils.response_utils import (
    dump_response,
    read_field,
    read_joints,
    validate_response,
)
from armcal_client.calibration.cancellation import CancelFlag
from armcal_client.calibration.diagnostics import DiagnosticsWriter
from armcal_client.calibration.poller import CalibrationPoller
from armcal_client.client.robot_client import ApiResponse, RobotClient

logger = logging.getLogger(__name__)


class CalibrationOrchestrator:
    """
    Runs, strictly in order: init pose, torque off, calibration poll loop,
    joint-reading check, torque on, verification move, final joint read.

    Torque is only re-enabled once the joint reading has been validated (or
    ``force`` overrides a bad one). Any CalibrationError stops the remaining
    steps and is reported in the returned WorkflowOutcome. A set ``cancel_event``
    is honoured before every step and during the wait between polls.
    """

    def __init__(
        self,
        client: RobotClient,
        config: RunConfig,
        diagnostics: DiagnosticsWriter | None = None,
        on_progress: Callable[[CalibrationProgress], None] | None = None,
        cancel_event: CancelFlag | threading.Event | None = None,
    ):
        self.client = client
        self.config = config
        self.diagnostics = diagnostics or DiagnosticsWriter(config.save_dir)
        self.on_progress = on_progress
        self.cancel_event = cancel_event or CancelFlag()
        self.last_response: Any = None
        self._current_step = ""

    def run(self) -> WorkflowOutcome:
        """Execute the workflow and report how far it got."""
        outcome = WorkflowOutcome()
        try:
            self._run_steps(outcome)
        except CalibrationError as e:
            if isinstance(e, MalformedBodyError):
                self.diagnostics.persist(f"malformed_{self._current_step}", e.response)
            outcome.error_kind = type(e).__name__
            outcome.message = e.message
            outcome.last_response = e.response if e.response is not None else self.last_response
            logger.error(f"{self._current_step} failed ({outcome.error_kind}): {e.message}")
            return outcome

        outcome.success = True
        outcome.last_response = self.last_response
        logger.info("Calibration workflow complete")
        return outcome

    def _run_steps(self, outcome: WorkflowOutcome):
        self._step(outcome, "init_pose", "Initializing robot (move/init)", self.client.init_pose)
        self._step(
            outcome,
            "torque_off",
            "Disabling torque before calibration",
            lambda: self.client.toggle_torque(False),
        )

        self._current_step = "calibration"
        self._check_cancelled()
        logger.info("Starting calibration (hold the arm: torque is OFF)")
        self._calibrate(outcome)
        outcome.completed_steps.append("calibration")
        logger.info("Calibration COMPLETE")

        self._step(
            outcome,
            "joints_check",
            "Checking joints read from hardware (must not contain NaN)",
            lambda: self._check_joints(outcome),
        )
        self._step(
            outcome, "torque_on", "Re-enabling torque", lambda: self.client.toggle_torque(True)
        )
        self._step(
            outcome,
            "verification_move",
            f"Verification move to {VERIFICATION_MOVE}",
            lambda: self.client.move_absolute(
                x=VERIFICATION_MOVE["x"],
                y=VERIFICATION_MOVE["y"],
                z=VERIFICATION_MOVE["z"],
                open_gripper=VERIFICATION_MOVE["open"],
                max_trials=VERIFICATION_MOVE["max_trials"],
            ),
        )

        response = self._step(
            outcome,
            "final_joints_read",
            "Reading joints (rad) from hardware",
            self.client.read_joints,
        )
        joints = read_joints(response)
        logger.info(f"Joints (rad): {np.array2string(joints, precision=4)}")

    def _step(
        self,
        outcome: WorkflowOutcome,
        name: str,
        banner: str,
        call: Callable[[], ApiResponse],
    ) -> ApiResponse:
        self._current_step = name
        self._check_cancelled()
        logger.info(banner)
        response = call()
        self.last_response = response

        status = read_field(response, STATUS)
        if status is not None:
            logger.info(f"  status={status} message={read_field(response, MESSAGE, '')}")
        outcome.completed_steps.append(name)
        return response

    def _check_cancelled(self):
        if self.cancel_event.is_set():
            raise CalibrationCancelled(
                f"Calibration workflow cancelled by operator before {self._current_step}",
                response=self.last_response,
            )

    def _calibrate(self, outcome: WorkflowOutcome):
        poller = CalibrationPoller(
            self.client,
            self.config,
            self.diagnostics,
            on_progress=self.on_progress,
            cancel_event=self.cancel_event,
        )
        try:
            poller.run()
        finally:
            outcome.progress.extend(poller.progress)
            outcome.warnings.extend(poller.warnings)
            self.last_response = poller.last_response

    def _check_joints(self, outcome: WorkflowOutcome) -> ApiResponse:
        response = self.client.read_joints()
        verdict = validate_response(response)
        if verdict:
            logger.info("Joint reading OK (no NaN)")
            return response

        logger.error(
            f"Joint reading contains invalid values at: {', '.join(verdict.poisoned_paths)}"
        )
        self.diagnostics.persist(PHASE_JOINTS_READ, response)
        if not self.config.force:
            raise PoisonedValueError(
                "Joint reading contains NaN/null values; torque will not be enabled "
                f"(use --force to override). Response: {dump_response(response)}",
                response=response,
            )
        warning = "--force enabled: continuing despite invalid joint reading"
        logger.warning(warning)
        outcome.warnings.append(warning)
        return response
