"""HTTP client for the robot-control service."""

import json
import logging
from typing import Any

import httpx

from armcal_common.config import RunConfig
from armcal_common.constants import (
    CALIBRATE_ENDPOINT,
    INIT_ENDPOINT,
    JOINTS_READ_BODY,
    JOINTS_READ_ENDPOINT,
    MOVE_ABSOLUTE_ENDPOINT,
    TORQUE_ENDPOINT,
)
from armcal_common.errors import MalformedBodyError, TransportError
from armcal_common.types.calibration_types import TransportMode
from armcal_client.client.transports import DryRunTransport, SimulatedTransport

logger = logging.getLogger(__name__)

ApiResponse = dict[str, Any]


def make_transport(config: RunConfig) -> httpx.BaseTransport:
    """Pick the transport matching the configured mode."""
    if config.mode is TransportMode.DRY_RUN:
        return DryRunTransport()
    if config.mode is TransportMode.SIMULATE:
        return SimulatedTransport(config.simulate_responses)
    # Only connection establishment is retried; a request that reached the
    # service is never replayed
    return httpx.HTTPTransport(retries=config.retries)


class RobotClient:
    """
    Client for the robot-control HTTP service.

    Every call is a POST carrying the ``robot_id`` query parameter and returns
    the decoded JSON object. Failures surface as TransportError (the call
    itself failed) or MalformedBodyError (the body is not a JSON object).

    Usage:
        with RobotClient(config) as robot:
            robot.init_pose()
    """

    def __init__(self, config: RunConfig, transport: httpx.BaseTransport | None = None):
        self.config = config
        self.robot_id = config.robot_id
        self._transport = transport
        self.http: httpx.Client | None = None

    def __enter__(self):
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.disconnect()

    def connect(self):
        """Open the HTTP session."""
        if self.http is not None:
            raise RuntimeError("Already connected to server")

        transport = self._transport or make_transport(self.config)
        self.http = httpx.Client(
            base_url=self.config.base_url,
            transport=transport,
            timeout=self.config.request_timeout,
        )
        logger.info(f"Session opened for robot {self.robot_id} at {self.config.base_url}")

    def disconnect(self):
        """Close the HTTP session."""
        if self.http is not None:
            self.http.close()
            self.http = None
            logger.info("Session closed")

    def post(self, endpoint: str, body: dict | None = None) -> ApiResponse:
        """POST to an endpoint and decode the JSON object it returns.

        Args:
            endpoint: Service path, e.g. "/calibrate"
            body: Optional JSON body

        Returns:
            Decoded response object

        Raises:
            TransportError: Connection failure, timeout or non-2xx status
            MalformedBodyError: Body is not a JSON object
        """
        self._ensure_connected()

        try:
            response = self.http.post(endpoint, params={"robot_id": self.robot_id}, json=body)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise TransportError(
                f"POST {endpoint} returned HTTP {e.response.status_code}",
                response=e.response.text,
            ) from e
        except httpx.HTTPError as e:
            raise TransportError(f"POST {endpoint} failed: {e}") from e

        try:
            data = response.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise MalformedBodyError(
                f"POST {endpoint} returned a body that is not JSON: {e}", response=response.text
            ) from e

        if not isinstance(data, dict):
            raise MalformedBodyError(
                f"POST {endpoint} returned JSON {type(data).__name__}, expected an object",
                response=response.text,
            )

        logger.debug(f"POST {endpoint} -> {data}")
        return data

    def init_pose(self) -> ApiResponse:
        """Move the robot to its initial, safe starting pose."""
        return self.post(INIT_ENDPOINT)

    def toggle_torque(self, enabled: bool) -> ApiResponse:
        """Enable or disable actuator torque."""
        return self.post(TORQUE_ENDPOINT, {"torque_status": enabled})

    def calibrate(self) -> ApiResponse:
        """Start the calibration sequence, or poll its status once started."""
        return self.post(CALIBRATE_ENDPOINT)

    def read_joints(self) -> ApiResponse:
        """Read joint positions in radians from the hardware."""
        return self.post(JOINTS_READ_ENDPOINT, dict(JOINTS_READ_BODY))

    def move_absolute(
        self, x: float, y: float, z: float, open_gripper: float = 1, max_trials: int = 10
    ) -> ApiResponse:
        """Move the end effector to an absolute position (cm, relative to the init pose)."""
        return self.post(
            MOVE_ABSOLUTE_ENDPOINT,
            {"x": x, "y": y, "z": z, "open": open_gripper, "max_trials": max_trials},
        )

    def _ensure_connected(self):
        """Ensure the HTTP session is open."""
        if self.http is None:
            raise RuntimeError("Not connected to server")
