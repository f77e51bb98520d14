"""
Supervisor State Machine
Drives the device between running the product and configuration mode

Modes:
- IDLE: product applications running, button polled every tick
- WAITING_FOR_OPERATOR: access point up, indicator blinking
- OPERATOR_CONNECTED: a client is using the configuration service, indicator solid

The tick loop is the only consumer of the event queue, so ticks, process
exits and activity pings are handled strictly one at a time.
"""

import logging
import time
from enum import Enum
from typing import List, Optional

from events import OperatorActivity, ProcessExited
from utils.helpers import format_duration


DEFAULT_INACTIVITY_WINDOW = 300


class Mode(Enum):
    IDLE = 'Idle'
    WAITING_FOR_OPERATOR = 'WaitingForOperator'
    OPERATOR_CONNECTED = 'OperatorConnected'


class StateMachine:
    """Operating mode of the device"""

    def __init__(self, supervisor, config_mode, events, applications: List[str],
                 button=None, indicator=None, run_as: Optional[str] = None,
                 inactivity_window: int = DEFAULT_INACTIVITY_WINDOW,
                 tick_seconds: float = 1.0):
        """
        Initialize state machine

        Args:
            supervisor: ProcessSupervisor instance
            config_mode: ConfigModeController instance
            events: EventQueue shared with the exit watchers and signal handler
            applications: Product application commands
            button: TriggerButton, or None if not fitted
            indicator: StatusIndicator, or None if not fitted
            run_as: Account the product applications run as
            inactivity_window: Seconds of operator inactivity before leaving configuration mode
            tick_seconds: Tick period
        """
        self.logger = logging.getLogger(__name__)
        self.supervisor = supervisor
        self.config_mode = config_mode
        self.events = events
        self.applications = list(applications)
        self.button = button
        self.indicator = indicator
        self.run_as = run_as
        self.inactivity_window = inactivity_window
        self.tick_seconds = tick_seconds

        self.mode = Mode.IDLE
        self.countdown = 0
        self.ticks = 0

    def boot(self):
        """
        Enter the power-on state

        The product starts immediately unless the button is held at boot,
        in which case the first tick enters configuration mode.
        """
        self.mode = Mode.IDLE
        self.countdown = 0
        self._set_indicator(False)

        if self._button_pressed():
            self.logger.info("Button held at boot - product not started")
            return

        self.start_applications()

    def start_applications(self):
        for command in self.applications:
            self.supervisor.start(command, as_user=self.run_as)

    def tick(self):
        """One iteration of the polling loop"""
        self.ticks += 1

        if self.mode == Mode.IDLE:
            if self._button_pressed():
                self.enter_waiting()
            return

        if self.mode == Mode.WAITING_FOR_OPERATOR and self.indicator is not None:
            self.indicator.toggle()

        self.countdown -= 1
        if self.countdown <= 0:
            self.logger.info(f"No operator activity for {format_duration(self.inactivity_window)}")
            self.return_to_idle()

    def handle_event(self, event):
        """Dispatch one event taken off the queue"""
        if isinstance(event, ProcessExited):
            self.supervisor.handle_exit(event.pid, event.returncode, event.serial)
        elif isinstance(event, OperatorActivity):
            self.operator_activity()
        else:
            self.logger.warning(f"Ignoring unknown event: {event!r}")

    def operator_activity(self):
        """Liveness ping from the configuration service"""
        if self.mode == Mode.IDLE:
            self.logger.debug("Operator activity while idle ignored")
            return

        if self.mode == Mode.WAITING_FOR_OPERATOR:
            self.logger.info("Operator connected")
            self.mode = Mode.OPERATOR_CONNECTED
            self._set_indicator(True)

        self.countdown = self.inactivity_window

    def enter_waiting(self):
        """Idle -> WaitingForOperator"""
        self.logger.info("Button pressed - switching to configuration mode")
        self.supervisor.stop_all()
        self.config_mode.enter_config_mode()
        self.mode = Mode.WAITING_FOR_OPERATOR
        self.countdown = self.inactivity_window

    def return_to_idle(self):
        """WaitingForOperator/OperatorConnected -> Idle"""
        self._set_indicator(False)
        self.config_mode.exit_config_mode()
        self.mode = Mode.IDLE
        self.countdown = 0
        self.start_applications()

    def run(self, max_ticks: Optional[int] = None):
        """
        Tick loop

        Waits on the event queue until the next tick is due, handling events
        as they arrive. Runs forever unless max_ticks is given.
        """
        self.logger.info(f"Supervisor running (tick {self.tick_seconds}s)")
        next_tick = time.monotonic() + self.tick_seconds
        ticks = 0

        while max_ticks is None or ticks < max_ticks:
            event = self.events.get(timeout=next_tick - time.monotonic())
            if event is not None:
                self.handle_event(event)
                continue

            self.tick()
            ticks += 1
            next_tick += self.tick_seconds

            # A blocking transition can overrun several periods; don't burst
            now = time.monotonic()
            if next_tick < now:
                next_tick = now + self.tick_seconds

    def _button_pressed(self) -> bool:
        return self.button is not None and self.button.is_pressed()

    def _set_indicator(self, on: bool):
        if self.indicator is not None:
            self.indicator.set(on)
