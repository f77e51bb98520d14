"""
Activity Signal
Receives the configuration service's liveness ping as a POSIX signal
"""

import atexit
import logging
import os
import signal
from pathlib import Path

from events import OperatorActivity


DEFAULT_PID_FILE = '/run/appliance-supervisor.pid'


def signal_number(name: str) -> int:
    """
    Resolve a signal name such as "SIGUSR1"

    Raises:
        ValueError: Unknown signal name
    """
    try:
        return int(getattr(signal, name))
    except (AttributeError, TypeError):
        raise ValueError(f"Unknown signal: {name!r}")


def send_activity_ping(pid_file: str = DEFAULT_PID_FILE, signal_name: str = 'SIGUSR1'):
    """
    Send one liveness ping to a running supervisor

    Args:
        pid_file: PID file written by the supervisor
        signal_name: Signal the supervisor listens for

    Returns:
        int: PID that was signalled
    """
    pid = int(Path(pid_file).read_text().strip())
    os.kill(pid, signal_number(signal_name))
    return pid


class ActivitySignal:
    """
    Installs the liveness signal handler and publishes our PID

    The handler only posts OperatorActivity to the event queue; the tick
    loop decides what the ping means for the current mode.
    """

    def __init__(self, events, signal_name: str = 'SIGUSR1', pid_file: str = DEFAULT_PID_FILE):
        self.logger = logging.getLogger(__name__)
        self.events = events
        self.signal_name = signal_name
        self.signum = signal_number(signal_name)
        self.pid_file = Path(pid_file) if pid_file else None
        self.previous_handler = None
        self.installed = False

    @classmethod
    def from_config(cls, config, events):
        return cls(
            events,
            signal_name=config.get('activity.signal', 'SIGUSR1'),
            pid_file=config.get('activity.pid_file', DEFAULT_PID_FILE)
        )

    def install(self):
        """Install the handler and write the PID file"""
        self.previous_handler = signal.signal(self.signum, self._handle)
        self.installed = True

        if self.pid_file:
            try:
                self.pid_file.parent.mkdir(parents=True, exist_ok=True)
                self.pid_file.write_text(f"{os.getpid()}\n")
                atexit.register(self._remove_pid_file)
            except OSError as e:
                self.logger.warning(f"Could not write PID file {self.pid_file}: {e}")

        self.logger.info(f"Listening for operator activity on {self.signal_name}")

    def uninstall(self):
        if not self.installed:
            return
        signal.signal(self.signum, self.previous_handler or signal.SIG_DFL)
        self.installed = False
        self._remove_pid_file()

    def _handle(self, signum, frame):
        self.events.post(OperatorActivity())

    def _remove_pid_file(self):
        if self.pid_file and self.pid_file.exists():
            try:
                if self.pid_file.read_text().strip() == str(os.getpid()):
                    self.pid_file.unlink()
            except OSError as e:
                self.logger.debug(f"Could not remove PID file: {e}")
