"""Operator cancellation shared between the signal handler and the workflow."""

import time


class CancelFlag:
    """
    Cancellation flag that can be set from a signal handler.

    ``threading.Event.set`` takes the same non-reentrant lock that ``wait``
    holds, so a handler running on the waiting thread can block forever. This
    flag is a plain attribute: ``set`` never blocks, and ``wait`` sleeps in
    short slices, returning as soon as the flag is seen.
    """

    def __init__(self, granularity: float = 0.1):
        self.granularity = granularity
        self._cancelled = False

    def set(self):
        self._cancelled = True

    def is_set(self) -> bool:
        return self._cancelled

    def wait(self, timeout: float) -> bool:
        """Sleep up to ``timeout`` seconds; return True if cancelled."""
        deadline = time.monotonic() + timeout
        while not self._cancelled:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                break
            time.sleep(min(remaining, self.granularity))
        return self._cancelled
