"""Tests for the command-line entry point."""

import os
import signal

import pytest

from armcal_common.constants import EXIT_CONFIG_ERROR, EXIT_INTERRUPTED
from armcal_client.client import robot_client
from armcal_client.client.transports import SimulatedTransport
from armcal_client.main import main


class RecordingTransport(SimulatedTransport):
    """Simulated service that keeps full requests and can signal the process."""

    def __init__(self, responses=None, sigterm_on=None):
        super().__init__(responses)
        self.requests = []
        self.sigterm_on = sigterm_on

    def _handle(self, request):
        response = super()._handle(request)
        self.requests.append(request)
        if self.sigterm_on is not None and self.calls[-1] == (
            self.sigterm_on[0],
            {"torque_status": self.sigterm_on[1]},
        ):
            os.kill(os.getpid(), signal.SIGTERM)
        return response


def recording_transports(monkeypatch, sigterm_on=None):
    created = []

    def make_transport(config):
        transport = RecordingTransport(config.simulate_responses, sigterm_on=sigterm_on)
        created.append(transport)
        return transport

    monkeypatch.setattr(robot_client, "make_transport", make_transport)
    return created


@pytest.fixture
def base_args(tmp_path):
    return ["--save-dir", str(tmp_path / "diagnostics"), "--poll-interval", "0"]


def test_simulate_exits_zero(base_args):
    assert main(["--simulate", *base_args], environ={}) == 0


def test_dry_run_never_reports_success(base_args):
    # Dry-run answers {} everywhere, so calibration status defaults to error
    assert main(["--dry-run", *base_args], environ={}) == 1


def test_failed_workflow_exits_one(base_args, tmp_path):
    config_file = tmp_path / "bad_joints.yaml"
    config_file.write_text(
        "mode: simulate\n"
        "simulate_responses:\n"
        "  /joints/read: {joints: [0.0, .nan]}\n"
    )

    assert main(["--config", str(config_file), *base_args], environ={}) == 1
    assert main(["--config", str(config_file), "--force", *base_args], environ={}) == 0


@pytest.mark.parametrize(
    "argv",
    [["--port", "0"], ["--retries", "-1"], ["--poll-interval", "-2"], ["--config", "/nonexistent.yaml"]],
)
def test_config_errors_exit_two(argv):
    assert main(["--simulate", *argv], environ={}) == EXIT_CONFIG_ERROR


def test_invalid_environment_value_exits_two(base_args):
    assert main(["--simulate", *base_args], environ={"RID": "not-a-number"}) == EXIT_CONFIG_ERROR


def test_environment_configures_run(base_args, monkeypatch):
    transports = recording_transports(monkeypatch)

    assert main(["--simulate", *base_args], environ={"RID": "4", "HOST": "robot.local"}) == 0

    (transport,) = transports
    assert {request.url.params["robot_id"] for request in transport.requests} == {"4"}
    assert {request.url.host for request in transport.requests} == {"robot.local"}


def test_sigterm_stops_workflow_before_next_step(base_args, monkeypatch):
    transports = recording_transports(monkeypatch, sigterm_on=("/torque/toggle", True))
    previous_handler = signal.getsignal(signal.SIGTERM)

    assert main(["--simulate", *base_args], environ={}) == EXIT_INTERRUPTED

    (transport,) = transports
    assert "/move/absolute" not in transport.endpoints_called()
    assert signal.getsignal(signal.SIGTERM) == previous_handler


def test_invalid_host_exits_two():
    assert main(["--simulate", "--host", "bad host"], environ={}) == EXIT_CONFIG_ERROR
