"""HTTP client for the robot-control service."""

from armcal_client.client.robot_client import RobotClient, make_transport
from armcal_client.client.transports import DryRunTransport, SimulatedTransport

__all__ = ["RobotClient", "make_transport", "DryRunTransport", "SimulatedTransport"]
