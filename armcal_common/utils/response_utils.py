"""Utilities for validating API responses and reading fields out of them safely."""

import json
from collections.abc import Iterator, Mapping, Sequence
from typing import Any

import numpy as np
from numpy.typing import NDArray

from armcal_common.constants import (
    CALIBRATION_STATUS,
    CURRENT_STEP,
    JOINTS,
    MESSAGE,
    POISONED_TEXT,
    TOTAL_STEPS,
)
from armcal_common.types.calibration_types import (
    CalibrationProgress,
    CalibrationStatus,
    ValidationVerdict,
)

_MISSING = object()


def is_poisoned(value: Any) -> bool:
    """Return True for null, NaN (float or text) and empty-string scalars."""
    if value is None:
        return True
    if isinstance(value, bool):
        return False
    if isinstance(value, float):
        return bool(np.isnan(value))
    if isinstance(value, str):
        return value in POISONED_TEXT
    return False


def iter_leaves(node: Any, path: str = "") -> Iterator[tuple[str, Any]]:
    """Yield (path, value) for every scalar leaf of a decoded JSON tree.

    Mappings and sequences are traversed, never yielded, so empty containers
    produce no leaves at all.
    """
    if isinstance(node, Mapping):
        for key, child in node.items():
            yield from iter_leaves(child, f"{path}.{key}" if path else str(key))
    elif isinstance(node, Sequence) and not isinstance(node, (str, bytes)):
        for index, child in enumerate(node):
            yield from iter_leaves(child, f"{path}[{index}]")
    else:
        yield path or "$", node


def validate_response(response: Any) -> ValidationVerdict:
    """Scan a response for poisoned scalar leaves."""
    poisoned = tuple(path for path, value in iter_leaves(response) if is_poisoned(value))
    return ValidationVerdict(poisoned_paths=poisoned)


def _split_path(path: str | Sequence[str | int]) -> list[str | int]:
    if isinstance(path, str):
        return [part for part in path.split(".") if part]
    return list(path)


def _resolve(response: Any, path: str | Sequence[str | int]) -> Any:
    node = response
    for key in _split_path(path):
        if isinstance(node, Mapping):
            if key not in node:
                return _MISSING
            node = node[key]
        elif isinstance(node, Sequence) and not isinstance(node, (str, bytes)):
            try:
                index = int(key)
            except ValueError:
                return _MISSING
            # Negative indices would resolve from the end of the list
            if not 0 <= index < len(node):
                return _MISSING
            node = node[index]
        else:
            return _MISSING
    return node


def read_field(response: Any, path: str | Sequence[str | int], default: Any = None) -> Any:
    """Read a field, substituting ``default`` when it is absent or poisoned.

    Args:
        response: Decoded response tree
        path: Dotted path ("meta.temp") or a sequence of keys and indices
        default: Value returned instead of a missing or poisoned field

    Returns:
        The resolved value unchanged, or ``default``
    """
    value = _resolve(response, path)
    if value is _MISSING or is_poisoned(value):
        return default
    return value


def read_int_field(response: Any, path: str | Sequence[str | int], default: int = 0) -> int:
    """Read a non-negative integer field, falling back to ``default``."""
    value = read_field(response, path, _MISSING)
    if value is _MISSING or isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value if value >= 0 else default
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError:
            return default
    if isinstance(value, float) and np.isfinite(value) and value.is_integer() and value >= 0:
        return int(value)
    return default


def read_status(response: Any) -> CalibrationStatus:
    """Read ``calibration_status``; anything absent or unrecognized is ERROR."""
    raw = read_field(response, CALIBRATION_STATUS, CalibrationStatus.ERROR.value)
    if not isinstance(raw, str):
        return CalibrationStatus.ERROR
    return CalibrationStatus.parse(raw)


def read_progress(response: Any, previous_total: int = 0) -> CalibrationProgress:
    """Build a progress snapshot from a calibration status response.

    ``total_steps`` carries over from ``previous_total`` unless this response
    reports a non-zero value of its own.
    """
    total = read_int_field(response, TOTAL_STEPS, 0)
    return CalibrationProgress(
        status=read_status(response),
        current_step=read_int_field(response, CURRENT_STEP, 0),
        total_steps=total or previous_total,
        message=str(read_field(response, MESSAGE, "")),
        raw_status=str(read_field(response, CALIBRATION_STATUS, CalibrationStatus.ERROR.value)),
    )


def read_joints(response: Any) -> NDArray:
    """Return the ``joints`` sequence as a float array, empty if unusable."""
    joints = read_field(response, JOINTS, None)
    if not isinstance(joints, list):
        return np.array([], dtype=np.float64)
    try:
        return np.asarray(joints, dtype=np.float64)
    except (TypeError, ValueError):
        return np.array([], dtype=np.float64)


def dump_response(response: Any) -> str:
    """Render a response compactly for log and error messages."""
    if isinstance(response, str):
        return response
    return json.dumps(response, default=str)
