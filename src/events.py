"""
Supervisor Events
Single-consumer queue shared by the exit watchers, the activity signal
handler and the tick loop
"""

import queue
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class ProcessExited:
    """A background child terminated"""
    pid: int
    returncode: Optional[int] = None
    serial: Optional[int] = None


@dataclass(frozen=True)
class OperatorActivity:
    """Payload-less liveness ping from the configuration service"""


class EventQueue:
    """
    Thin wrapper around SimpleQueue

    SimpleQueue.put is reentrant, so posting from a signal handler that
    interrupts the consumer mid-get cannot deadlock.
    """

    def __init__(self):
        self._queue = queue.SimpleQueue()

    def post(self, event):
        """Post an event from any thread or signal handler"""
        self._queue.put(event)

    def get(self, timeout: Optional[float] = None):
        """
        Wait for the next event

        Args:
            timeout: Seconds to wait, None to block

        Returns:
            The event, or None if the timeout elapsed first
        """
        if timeout is not None and timeout <= 0:
            try:
                return self._queue.get_nowait()
            except queue.Empty:
                return None

        try:
            return self._queue.get(timeout=timeout)
        except queue.Empty:
            return None

    def empty(self) -> bool:
        return self._queue.empty()
