"""
Failure Taxonomy
Conditions whose only remedy is a full device reboot
"""

from enum import Enum


class FailureKind(Enum):
    """Kinds of fatal condition routed through the failure policy"""

    COMMAND_TIMED_OUT = 'CommandTimedOut'
    COMMAND_LAUNCH_FAILED = 'CommandLaunchFailed'
    PROCESS_EXITED_UNEXPECTEDLY = 'ProcessExitedUnexpectedly'

    def __str__(self):
        return self.value


class FatalCondition(Exception):
    """
    Carries a fatal message and its kind

    Raised only by injected reboot actions (tests, dry runs) so the caller
    can observe what would have rebooted the device.
    """

    def __init__(self, message: str, kind: FailureKind):
        super().__init__(f"{kind}: {message}")
        self.message = message
        self.kind = kind


class RebootFailed(RuntimeError):
    """The reboot command failed, hung, or the system did not go down"""
