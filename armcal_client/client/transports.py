"""Offline transports: dry-run echo and simulated robot-control service.

Both plug into ``httpx.Client`` in place of the network transport, so the
client and the calibration state machine run unchanged without hardware.
"""

import json
import logging
from collections.abc import Mapping
from typing import Any

import httpx

from armcal_common.constants import CALIBRATE_ENDPOINT, INIT_ENDPOINT, JOINTS_READ_ENDPOINT

logger = logging.getLogger(__name__)

DEFAULT_SIMULATED_RESPONSES: dict[str, Any] = {
    CALIBRATE_ENDPOINT: {
        "calibration_status": "success",
        "total_nb_steps": 10,
        "current_step": 10,
        "message": "simulated",
    },
    INIT_ENDPOINT: {"status": "ok", "message": "simulated init"},
    JOINTS_READ_ENDPOINT: {"joints": [0.0, 0.1, 0.2, 0.3, 0.4, 0.5]},
}


def _json_response(body: Any) -> httpx.Response:
    # Encode by hand so NaN survives, as a misbehaving service would send it
    if isinstance(body, str):
        content = body.encode()
    else:
        content = json.dumps(body).encode()
    return httpx.Response(200, content=content, headers={"Content-Type": "application/json"})


def _request_body(request: httpx.Request) -> Any:
    if not request.content:
        return None
    try:
        return json.loads(request.content)
    except json.JSONDecodeError:
        return request.content.decode(errors="replace")


class DryRunTransport(httpx.MockTransport):
    """Logs each request it would have sent and answers ``{}``."""

    def __init__(self):
        super().__init__(self._handle)
        self.requests: list[httpx.Request] = []

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        line = f"DRY-RUN: {request.method} {request.url}"
        if request.content:
            line += f" -d '{request.content.decode(errors='replace')}'"
        logger.info(line)
        return _json_response({})


class SimulatedTransport(httpx.MockTransport):
    """Serves canned bodies per endpoint path.

    A configured value is either one body, served on every call, or a list of
    bodies served in order with the last one repeating. A string body is sent
    as raw text. Endpoints without a canned body answer ``{}``.
    """

    def __init__(self, responses: Mapping[str, Any] | None = None):
        super().__init__(self._handle)
        scripted = {**DEFAULT_SIMULATED_RESPONSES, **(responses or {})}
        self._scripts: dict[str, list[Any]] = {
            path: list(body) if isinstance(body, list) else [body]
            for path, body in scripted.items()
        }
        self.calls: list[tuple[str, Any]] = []

    def _next_body(self, path: str) -> Any:
        script = self._scripts.get(path)
        if not script:
            return {}
        return script.pop(0) if len(script) > 1 else script[0]

    def _handle(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        self.calls.append((path, _request_body(request)))
        logger.debug(f"SIMULATE: {request.method} {request.url}")
        return _json_response(self._next_body(path))

    def endpoints_called(self) -> list[str]:
        return [path for path, _ in self.calls]
