#!/usr/bin/env python3
"""
Appliance Supervisor - Main Application

Runs the product application, reboots the device when anything it depends
on fails, and switches to access-point configuration mode on a button press.
"""

import os
import sys
import signal
import logging
import argparse

sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from config_manager import ConfigManager
from events import EventQueue
from reachability_guard import ReachabilityGuard
from failure_policy import FailurePolicy
from command_runner import CommandRunner
from process_supervisor import ProcessSupervisor
from config_mode import ConfigModeController
from hardware_io import TriggerButton, StatusIndicator
from activity_signal import ActivitySignal
from state_machine import StateMachine
from failures import RebootFailed
from utils.logger import setup_logging


__version__ = '1.0.0'


def pin_number(value: str):
    """BCM pin as int, or a gpiozero pin name such as "GPIO17" """
    return int(value) if value.isdigit() else value


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        prog='appliance-supervisor',
        description='Supervise the product application, reboot on failure, '
                    'and enter access point configuration mode on a button press.'
    )
    parser.add_argument('applications', nargs='*', metavar='COMMAND',
                        help='Product application command (quote commands with arguments); '
                             'overrides processes.applications from the config file')
    parser.add_argument('-b', '--button-pin', type=pin_number,
                        help='GPIO pin of the configuration mode button')
    parser.add_argument('-l', '--indicator-pin', type=pin_number,
                        help='GPIO pin of the status indicator LED')
    parser.add_argument('-u', '--user',
                        help='Run the applications as this (unprivileged) user')
    parser.add_argument('-d', '--served-dir',
                        help='Directory published by the content server in configuration mode')
    parser.add_argument('-c', '--config-dir',
                        help='Directory holding supervisor_config.yaml and logging_config.yaml')
    parser.add_argument('-v', '--verbose', action='store_true',
                        help='Verbose logging')
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')
    return parser.parse_args(argv)


class ApplianceSupervisor:
    """Main application class"""

    def __init__(self):
        self.config = None
        self.events = None
        self.guard = None
        self.failure_policy = None
        self.runner = None
        self.supervisor = None
        self.config_mode = None
        self.button = None
        self.indicator = None
        self.activity = None
        self.state_machine = None
        self.logger = None

    def initialize(self, args):
        """Initialize all components"""

        # Load configuration
        self.config = ConfigManager(config_dir=args.config_dir)
        self.config.load_configs()
        self.config.apply_args(args)

        # Setup logging
        logging_config = None
        if args.config_dir:
            logging_config = os.path.join(args.config_dir, 'logging_config.yaml')
            if not os.path.exists(logging_config):
                logging_config = None
        setup_logging(
            verbose=args.verbose,
            config_path=logging_config,
            log_dir=self.config.get('processes.log_dir')
        )
        self.logger = logging.getLogger(__name__)
        if not args.verbose:
            logging.getLogger().setLevel(self.config.get('logging.level', 'INFO'))

        self.logger.info("=" * 50)
        self.logger.info(f"Appliance Supervisor {__version__} starting")
        self.logger.info("=" * 50)

        self.config.validate()

        self.events = EventQueue()

        self.guard = ReachabilityGuard.from_config(self.config)
        self.failure_policy = FailurePolicy.from_config(self.config, self.guard)
        self.runner = CommandRunner(
            self.failure_policy,
            default_deadline=self.config.get('commands.default_deadline', 60)
        )
        self.supervisor = ProcessSupervisor.from_config(self.config, self.failure_policy, self.events)
        self.config_mode = ConfigModeController.from_config(self.config, self.runner, self.supervisor)

        # Hardware is optional
        self.button = TriggerButton(
            self.config.get('hardware.button_pin'),
            pull_up=self.config.get('hardware.button_pull_up', True),
            bounce_time=self.config.get('hardware.bounce_seconds', 0.05)
        )
        self.indicator = StatusIndicator(self.config.get('hardware.indicator_pin'))

        self.activity = ActivitySignal.from_config(self.config, self.events)
        self.activity.install()

        self.state_machine = StateMachine(
            self.supervisor,
            self.config_mode,
            self.events,
            applications=self.config.get('processes.applications', []),
            button=self.button if self.button.available else None,
            indicator=self.indicator if self.indicator.available else None,
            run_as=self.config.get('processes.run_as'),
            inactivity_window=self.config.get('state_machine.inactivity_window', 300),
            tick_seconds=self.config.get('state_machine.tick_seconds', 1)
        )

        self.logger.info("Initialization complete!")

    def run(self) -> int:
        """Boot the product and run the tick loop"""
        try:
            self.state_machine.boot()
            self.state_machine.run()
        except KeyboardInterrupt:
            self.logger.info("Received interrupt signal")
        except RebootFailed as e:
            self.logger.critical(f"Reboot failed ({e}), exiting")
            return 1
        finally:
            self.cleanup()
        return 0

    def cleanup(self):
        """Stop children on a deliberate shutdown (development use)"""
        self.logger.info("Cleaning up...")

        if self.supervisor:
            self.supervisor.stop_all()

        if self.activity:
            self.activity.uninstall()

        if self.button:
            self.button.close()

        if self.indicator:
            self.indicator.close()

        self.logger.info("Shutdown complete")


def signal_handler(signum, frame):
    """Handle shutdown signals"""
    print(f"\nReceived signal {signum}, shutting down...")
    sys.exit(0)


def main(argv=None):
    args = parse_args(argv)

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)
    # Pings can arrive before the activity handler is installed
    signal.signal(signal.SIGUSR1, signal.SIG_IGN)

    app = ApplianceSupervisor()

    try:
        app.initialize(args)
    except ValueError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2

    return app.run()


if __name__ == "__main__":
    sys.exit(main())
