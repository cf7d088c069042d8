# litdlc/polling.py
"""Wait for a condition that something outside this process makes true."""

import logging
import threading
import time
from typing import Callable, Optional

from litdlc.errors import ActivationTimeout, Cancelled

log = logging.getLogger("litdlc.polling")


def sleep(seconds: float, cancel: Optional[threading.Event] = None):
    """Sleep, waking early (and raising Cancelled) if `cancel` is set."""
    if cancel is None:
        time.sleep(seconds)
        return
    if cancel.wait(seconds):
        raise Cancelled("cancelled while waiting")


def wait_until(
    predicate: Callable[[], bool],
    interval: float,
    max_attempts: Optional[int] = None,
    timeout: Optional[float] = None,
    cancel: Optional[threading.Event] = None,
    what: str = "condition",
    clock=time.monotonic,
) -> int:
    """Call `predicate` every `interval` seconds until it returns True.

    With neither `max_attempts` nor `timeout` this waits forever. Errors from
    the predicate propagate. Returns the number of attempts it took.
    """
    deadline = clock() + timeout if timeout is not None else None
    attempts = 0

    while True:
        if cancel is not None and cancel.is_set():
            raise Cancelled(f"cancelled while waiting for {what}")

        attempts += 1
        if predicate():
            return attempts

        if max_attempts is not None and attempts >= max_attempts:
            raise ActivationTimeout(f"{what} not reached after {attempts} attempts")

        pause = interval
        if deadline is not None:
            remaining = deadline - clock()
            if remaining <= 0:
                raise ActivationTimeout(f"{what} not reached within {timeout}s")
            # last attempt lands on the deadline
            pause = min(interval, remaining)

        log.debug(f"waiting for {what} (attempt {attempts})")
        sleep(pause, cancel)
