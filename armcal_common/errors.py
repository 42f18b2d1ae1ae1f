"""Exception hierarchy for the calibration workflow."""

from typing import Any


class CalibrationError(Exception):
    """Base class for every fatal workflow condition.

    Args:
        message: Operator-facing description
        response: Last raw response involved, kept for forensics
    """

    def __init__(self, message: str, response: Any = None):
        super().__init__(message)
        self.message = message
        self.response = response


class ConfigError(CalibrationError):
    """Run configuration is invalid."""


class TransportError(CalibrationError):
    """The remote call failed: connection refused, timeout or non-2xx status."""


class MalformedBodyError(CalibrationError):
    """The response body could not be decoded as a JSON object."""


class PoisonedValueError(CalibrationError):
    """The response decoded but contains null, NaN or empty scalars."""


class TerminalStatusError(CalibrationError):
    """The remote operation reported a non-success terminal state."""


class PollTimeoutError(CalibrationError):
    """The poll loop exceeded its attempt count or wall-clock budget."""


class CalibrationCancelled(CalibrationError):
    """The operator cancelled the run while the poll loop was waiting."""
