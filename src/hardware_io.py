"""
Hardware I/O
Configuration-mode button and status indicator on GPIO

Both are optional. A missing pin or an unusable GPIO stack degrades to
supervision only: the button never reads pressed and the indicator is a
no-op.
"""

import logging

from gpiozero import Button, LED
from gpiozero.exc import GPIOZeroError


class TriggerButton:
    """Digital input polled once per tick"""

    def __init__(self, pin=None, pull_up: bool = True, bounce_time: float = 0.05):
        """
        Initialize button

        Args:
            pin: BCM pin number or gpiozero pin name, None if not fitted
            pull_up: Button wired to ground with the internal pull-up
            bounce_time: Debounce time in seconds
        """
        self.logger = logging.getLogger(__name__)
        self.pin = pin
        self.device = None

        if pin is None:
            self.logger.info("No button configured - configuration mode disabled")
            return

        try:
            self.device = Button(pin, pull_up=pull_up, bounce_time=bounce_time)
            self.logger.info(f"Button on GPIO {pin}")
        except (GPIOZeroError, OSError, RuntimeError) as e:
            self.logger.warning(f"Button on GPIO {pin} unavailable: {e} - configuration mode disabled")
            self.device = None

    @property
    def available(self) -> bool:
        return self.device is not None

    def is_pressed(self) -> bool:
        if self.device is None:
            return False
        return bool(self.device.is_pressed)

    def close(self):
        if self.device is not None:
            self.device.close()
            self.device = None


class StatusIndicator:
    """Digital output driven once per tick"""

    def __init__(self, pin=None):
        self.logger = logging.getLogger(__name__)
        self.pin = pin
        self.device = None
        self.lit = False

        if pin is None:
            return

        try:
            self.device = LED(pin)
            self.logger.info(f"Status indicator on GPIO {pin}")
        except (GPIOZeroError, OSError, RuntimeError) as e:
            self.logger.warning(f"Status indicator on GPIO {pin} unavailable: {e}")
            self.device = None

    @property
    def available(self) -> bool:
        return self.device is not None

    def set(self, on: bool):
        self.lit = bool(on)
        if self.device is None:
            return
        if self.lit:
            self.device.on()
        else:
            self.device.off()

    def toggle(self):
        self.set(not self.lit)

    def close(self):
        if self.device is not None:
            self.device.off()
            self.device.close()
            self.device = None
