"""Calibration workflow: diagnostics sink, poll loop and orchestrator."""

from armcal_client.calibration.cancellation import CancelFlag
from armcal_client.calibration.diagnostics import DiagnosticsWriter
from armcal_client.calibration.orchestrator import CalibrationOrchestrator
from armcal_client.calibration.poller import CalibrationPoller

__all__ = ["CancelFlag", "DiagnosticsWriter", "CalibrationOrchestrator", "CalibrationPoller"]
