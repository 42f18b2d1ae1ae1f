"""Best-effort persistence of bad responses for later inspection."""

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from armcal_common.constants import DIAGNOSTIC_TIMESTAMP_FORMAT

logger = logging.getLogger(__name__)


class DiagnosticsWriter:
    """Writes raw responses to ``{phase}_{UTC timestamp}.json`` under a directory.

    Writing never raises: a failure is logged and ``persist`` returns None, so
    callers never branch on it.
    """

    def __init__(self, save_dir: str | Path):
        self.save_dir = Path(save_dir)
        self.written: list[Path] = []

    def persist(self, phase: str, body: Any) -> Path | None:
        """Save a response body tagged with the workflow phase it came from."""
        timestamp = datetime.now(timezone.utc).strftime(DIAGNOSTIC_TIMESTAMP_FORMAT)
        path = self.save_dir / f"{phase}_{timestamp}.json"
        text = body if isinstance(body, str) else json.dumps(body, indent=2, default=str)

        try:
            self.save_dir.mkdir(parents=True, exist_ok=True)
            path.write_text(text + "\n")
        except OSError as e:
            logger.error(f"Could not save bad response to {path}: {e}")
            return None

        self.written.append(path)
        logger.error(f"Saved bad response to: {path}")
        return path
