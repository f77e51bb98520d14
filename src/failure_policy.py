"""
Failure Policy
Single funnel for every condition that must end in a device reboot
"""

import logging
import shlex
import subprocess
import time
from threading import Event
from typing import Callable, NoReturn, Optional

from failures import FailureKind, FatalCondition, RebootFailed
from utils.helpers import format_duration


REBOOT_DEADLINE = 60
SHUTDOWN_TIMEOUT = 300


def system_reboot(command: str = 'reboot', deadline: float = REBOOT_DEADLINE,
                  shutdown_timeout: float = SHUTDOWN_TIMEOUT):
    """
    Reboot the device and wait for it to go down

    Args:
        command: Reboot command line
        deadline: Seconds allowed for the reboot command itself
        shutdown_timeout: Seconds to wait for init to stop us afterwards

    Raises:
        RebootFailed: The command could not run, hung, exited non-zero,
            or the system was still up after shutdown_timeout. The
            supervisor then exits so the service manager sees the failure.
    """
    logger = logging.getLogger(__name__)

    try:
        result = subprocess.run(shlex.split(command), check=False, timeout=deadline)
    except OSError as e:
        logger.critical(f"Reboot command failed: {command} ({e})")
        raise RebootFailed(f"{command}: {e}") from e
    except subprocess.TimeoutExpired:
        logger.critical(f"Timeout ({deadline} secs) executing {command}")
        raise RebootFailed(f"{command}: timed out after {deadline}s")

    if result.returncode != 0:
        logger.critical(f"Reboot command exited {result.returncode}: {command}")
        raise RebootFailed(f"{command}: exit status {result.returncode}")

    # Park until init takes us down
    if not Event().wait(shutdown_timeout):
        logger.critical(f"Still running {format_duration(shutdown_timeout)} after {command}")
        raise RebootFailed(f"{command}: system did not go down")


class FailurePolicy:
    """
    Logs a fatal condition, defers while an operator is logged in, reboots

    Reboot sequence:
    1. Log the message on every channel
    2. While an operator session is open, wait for it to close
    3. Wait out the grace window, then check for operators again
    4. Reboot
    """

    def __init__(self, guard, grace_seconds: float = 60,
                 reboot_action: Optional[Callable[[], None]] = None,
                 reboot_command: str = 'reboot'):
        """
        Initialize failure policy

        Args:
            guard: ReachabilityGuard instance
            grace_seconds: Delay between the failure and the reboot
            reboot_action: Terminal action, defaults to system_reboot
            reboot_command: Command used by the default reboot action
        """
        self.logger = logging.getLogger(__name__)
        self.guard = guard
        self.grace_seconds = grace_seconds
        self.reboot_command = reboot_command
        self.reboot_action = reboot_action or (lambda: system_reboot(self.reboot_command))

    @classmethod
    def from_config(cls, config, guard, reboot_action=None):
        return cls(
            guard,
            grace_seconds=config.get('failure_policy.grace_seconds', 60),
            reboot_action=reboot_action,
            reboot_command=config.get('failure_policy.reboot_command', 'reboot')
        )

    def report_fatal(self, message: str, kind: FailureKind) -> NoReturn:
        """
        Report a fatal condition and reboot the device

        Args:
            message: Description of what failed
            kind: FailureKind of the condition

        Note: Never returns. Blocks while an operator is logged in.
        """
        self.logger.critical(f"{message} ({kind})")

        while True:
            if self.guard.is_operator_present():
                self.logger.error("No reboot, due to operator login (deferred)")
                self.guard.await_operator_absence()
                self.logger.error("Reinstating reboot timer due to operator logout")

            self.logger.critical(f"Critical error - rebooting in {format_duration(self.grace_seconds)}")
            time.sleep(self.grace_seconds)

            if not self.guard.is_operator_present():
                break

        self.logger.critical("Rebooting")
        self.reboot_action()

        # Only reached when an injected action returns
        raise FatalCondition(message, kind)
