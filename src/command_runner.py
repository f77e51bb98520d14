"""
Command Runner
Runs one external command with a deadline; a hang or launch failure reboots
"""

import logging
import subprocess

from failures import FailureKind


DEFAULT_DEADLINE = 60


class CommandRunner:
    """
    Deadline-bounded execution of shell commands

    Used for device bring-up steps (network services, access point) that
    usually finish quickly but occasionally wedge. A command that outlives
    its deadline is not killed: the failure policy reboots the whole device.
    """

    def __init__(self, failure_policy, default_deadline: float = DEFAULT_DEADLINE):
        """
        Initialize command runner

        Args:
            failure_policy: FailurePolicy instance
            default_deadline: Seconds allowed when run() is given no deadline
        """
        self.logger = logging.getLogger(__name__)
        self.failure_policy = failure_policy
        self.default_deadline = default_deadline

    def run(self, command: str, deadline: float = None) -> str:
        """
        Execute a command and return its output

        Args:
            command: Shell command line (e.g. "systemctl stop dhcpcd")
            deadline: Seconds to wait for completion

        Returns:
            str: Combined stdout/stderr of the command

        Note: On timeout or launch failure this reports a fatal condition
        and does not return.
        """
        deadline = deadline or self.default_deadline
        self.logger.debug(f"Running: {command} (deadline {deadline}s)")

        try:
            proc = subprocess.Popen(
                command,
                shell=True,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True
            )
        except OSError as e:
            self.failure_policy.report_fatal(
                f"Error executing {command} ({e})",
                FailureKind.COMMAND_LAUNCH_FAILED
            )

        try:
            output, _ = proc.communicate(timeout=deadline)
        except subprocess.TimeoutExpired:
            self.failure_policy.report_fatal(
                f"Timeout ({deadline} secs) executing {command}",
                FailureKind.COMMAND_TIMED_OUT
            )

        if proc.returncode:
            self.logger.warning(f"Command exited {proc.returncode}: {command}")
        self.logger.debug(f"Command complete: {command}")
        if output:
            self.logger.debug(output.rstrip())

        return output or ''
