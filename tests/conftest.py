"""Shared fixtures for armcal tests."""

import pytest

from armcal_common.config import RunConfig
from armcal_common.types.calibration_types import TransportMode
from armcal_client.calibration.diagnostics import DiagnosticsWriter
from armcal_client.client.robot_client import RobotClient
from armcal_client.client.transports import SimulatedTransport


@pytest.fixture
def make_config(tmp_path):
    """Factory for simulate-mode configs that never sleep."""

    def _make(**overrides):
        settings = {
            "save_dir": tmp_path / "diagnostics",
            "poll_interval": 0.0,
            "mode": TransportMode.SIMULATE,
        }
        settings.update(overrides)
        return RunConfig(**settings)

    return _make


@pytest.fixture
def make_client(make_config):
    """Factory returning a connected client and the simulated transport behind it."""
    clients = []

    def _make(responses=None, **config_overrides):
        transport = SimulatedTransport(responses)
        client = RobotClient(make_config(**config_overrides), transport=transport)
        client.connect()
        clients.append(client)
        return client, transport

    yield _make

    for client in clients:
        client.disconnect()


@pytest.fixture
def diagnostics(tmp_path):
    return DiagnosticsWriter(tmp_path / "diagnostics")
