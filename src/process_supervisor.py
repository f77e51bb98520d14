"""
Process Supervisor
Starts and stops background processes and tells expected exits from crashes
"""

import itertools
import logging
import os
import signal
import subprocess
from dataclasses import dataclass
from pathlib import Path
from threading import Thread, Lock
from typing import Dict, List, Optional

from events import ProcessExited
from failures import FailureKind
from utils.helpers import command_label, ensure_directory, is_root


@dataclass(frozen=True)
class BackgroundProcess:
    """A supervised child process"""
    command: str
    pid: int
    serial: int = 0


class ProcessSupervisor:
    """
    Tracks background processes by pid

    A record for pid P exists exactly while stop(P) has not been called
    since P was started. stop() removes the record before signalling, so an
    exit notification for a pid without a record is always an expected (or
    foreign) exit and never a failure.

    Exit notifications are not handled here directly: one watcher thread per
    child waits on it and posts ProcessExited to the event queue. The tick
    loop hands them back through handle_exit(). Each start gets a serial
    number carried by its exit event, so a queued exit of a stopped child
    cannot match a newer child that reused the pid.
    """

    def __init__(self, failure_policy, events, log_dir: str = '/var/log/appliance-supervisor'):
        """
        Initialize process supervisor

        Args:
            failure_policy: FailurePolicy instance
            events: EventQueue receiving ProcessExited notifications
            log_dir: Directory for per-process output logs
        """
        self.logger = logging.getLogger(__name__)
        self.failure_policy = failure_policy
        self.events = events
        self.log_dir = Path(log_dir)

        self.processes: Dict[int, BackgroundProcess] = {}
        self.processes_lock = Lock()
        self._serials = itertools.count(1)

    @classmethod
    def from_config(cls, config, failure_policy, events):
        return cls(
            failure_policy,
            events,
            log_dir=config.get('processes.log_dir', '/var/log/appliance-supervisor')
        )

    def start(self, command: str, as_user: Optional[str] = None) -> int:
        """
        Start a command in the background

        Args:
            command: Shell command line
            as_user: Unprivileged account to run the command as (root only)

        Returns:
            int: Process id of the child
        """
        user = as_user
        if user and not is_root():
            self.logger.warning(f"Not root, running {command} as current user instead of {user}")
            user = None

        try:
            ensure_directory(self.log_dir)
            log_path = self.log_dir / f"{command_label(command)}.log"
            with open(log_path, 'a') as log_file:
                popen_kwargs = dict(
                    shell=True,
                    stdin=subprocess.DEVNULL,
                    stdout=log_file,
                    stderr=subprocess.STDOUT,
                    start_new_session=True
                )
                if user:
                    popen_kwargs['user'] = user
                proc = subprocess.Popen(command, **popen_kwargs)
        except OSError as e:
            self.failure_policy.report_fatal(
                f"Error starting {command} ({e})",
                FailureKind.COMMAND_LAUNCH_FAILED
            )

        with self.processes_lock:
            record = BackgroundProcess(command=command, pid=proc.pid, serial=next(self._serials))
            self.processes[proc.pid] = record

        watcher = Thread(
            target=self._watch,
            args=(proc, record.serial),
            name=f"watch-{proc.pid}",
            daemon=True
        )
        watcher.start()

        self.logger.info(f"BackgroundCommand: {command} (PID={proc.pid})")
        return proc.pid

    def stop(self, pid: int):
        """
        Forcefully stop a background process

        Removes the record before sending SIGKILL. Stopping an unknown or
        already stopped pid does nothing.

        Args:
            pid: Process id returned by start()
        """
        with self.processes_lock:
            record = self.processes.pop(pid, None)

        if record is None:
            return

        self.logger.info(f"Stopping {record.command} (PID {pid})")

        try:
            # Children run in their own session, so pid is also the group id
            os.killpg(pid, signal.SIGKILL)
        except ProcessLookupError:
            self.logger.debug(f"PID {pid} already gone")

    def stop_all(self):
        """Stop every tracked background process"""
        for pid in self.tracked_pids():
            self.stop(pid)

    def tracked_pids(self) -> List[int]:
        with self.processes_lock:
            return list(self.processes)

    def get(self, pid: int) -> Optional[BackgroundProcess]:
        with self.processes_lock:
            return self.processes.get(pid)

    def handle_exit(self, pid: int, returncode: Optional[int] = None,
                    serial: Optional[int] = None):
        """
        Handle an exit notification for a child

        Args:
            pid: Process id that terminated
            returncode: Exit status, if known
            serial: Start serial from the exit event, if known

        Note: Reports a fatal condition (and does not return) when the pid
        is still tracked, i.e. the process died on its own.
        """
        with self.processes_lock:
            record = self.processes.get(pid)

        if record is None:
            self.logger.debug(f"Expected exit of PID {pid}")
            return

        if serial is not None and serial != record.serial:
            self.logger.debug(f"Stale exit of PID {pid} (serial {serial}, tracking {record.serial})")
            return

        self.failure_policy.report_fatal(
            f"Reboot due to command exit: {record.command} (PID {pid}, status {returncode})",
            FailureKind.PROCESS_EXITED_UNEXPECTEDLY
        )

    def _watch(self, proc: subprocess.Popen, serial: int):
        """Reap a child and post its exit to the event queue"""
        returncode = proc.wait()
        self.events.post(ProcessExited(pid=proc.pid, returncode=returncode, serial=serial))
