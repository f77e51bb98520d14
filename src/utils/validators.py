"""
Configuration Validators
"""

import logging
import signal
from pathlib import Path
from typing import Dict

from .helpers import is_root


SESSION_TYPES = ('remote', 'ssh', 'any')


class ConfigValidator:
    """Validates supervisor configuration settings"""

    def __init__(self):
        self.logger = logging.getLogger(__name__)
        self.errors = []
        self.warnings = []

    def validate_all(self, config: Dict) -> bool:
        """
        Validate entire configuration

        Returns: True if valid, False if errors found
        """
        self.errors = []
        self.warnings = []

        # Validate each section
        self.validate_processes(config)
        self.validate_timing(config)
        self.validate_hardware(config)
        self.validate_reachability(config)
        self.validate_config_mode(config)
        self.validate_activity(config)

        # Log results
        if self.errors:
            for error in self.errors:
                self.logger.error(f"Config validation error: {error}")

        if self.warnings:
            for warning in self.warnings:
                self.logger.warning(f"Config validation warning: {warning}")

        return len(self.errors) == 0

    def validate_processes(self, config: Dict):
        """Validate supervised application settings"""
        processes = config.get('processes') or {}

        applications = processes.get('applications') or []
        if not applications:
            self.errors.append("At least one application command is required")
        for i, command in enumerate(applications):
            if not isinstance(command, str) or not command.strip():
                self.errors.append(f"Application {i}: command must be a non-empty string")

        if processes.get('run_as') and not is_root():
            self.warnings.append(
                f"processes.run_as={processes['run_as']} ignored unless running as root"
            )

    def validate_timing(self, config: Dict):
        """Validate tick, window and deadline settings"""
        checks = [
            ('state_machine', 'tick_seconds'),
            ('state_machine', 'inactivity_window'),
            ('failure_policy', 'grace_seconds'),
            ('commands', 'default_deadline'),
            ('config_mode', 'command_deadline'),
            ('config_mode', 'ap_enable_deadline'),
        ]

        for section, key in checks:
            value = (config.get(section) or {}).get(key)
            if value is None:
                continue
            if not isinstance(value, (int, float)) or isinstance(value, bool) or value <= 0:
                self.errors.append(f"{section}.{key} must be a positive number, got {value!r}")

        grace = (config.get('failure_policy') or {}).get('grace_seconds')
        if isinstance(grace, (int, float)) and 0 < grace < 10:
            self.warnings.append(f"failure_policy.grace_seconds={grace} leaves little time to log in")

    def validate_hardware(self, config: Dict):
        """Validate GPIO pin settings"""
        hardware = config.get('hardware') or {}

        for key in ('button_pin', 'indicator_pin'):
            pin = hardware.get(key)
            if pin is None:
                continue
            if isinstance(pin, bool) or not isinstance(pin, (int, str)):
                self.errors.append(f"hardware.{key} must be a pin number or name, got {pin!r}")
            elif isinstance(pin, int) and not 0 <= pin <= 53:
                self.errors.append(f"hardware.{key}={pin} is not a valid BCM pin")

        if hardware.get('button_pin') is None:
            self.warnings.append("No button configured - configuration mode cannot be entered")

        if (hardware.get('button_pin') is not None
                and hardware.get('button_pin') == hardware.get('indicator_pin')):
            self.errors.append("hardware.button_pin and hardware.indicator_pin must differ")

    def validate_reachability(self, config: Dict):
        """Validate operator session detection settings"""
        reachability = config.get('reachability') or {}

        session_types = reachability.get('session_types', 'remote')
        if session_types not in SESSION_TYPES:
            self.errors.append(
                f"Invalid reachability.session_types: {session_types}. "
                f"Must be one of {list(SESSION_TYPES)}"
            )
        elif session_types == 'any':
            self.warnings.append(
                "reachability.session_types=any: an auto-logged-in console "
                "user will block every failure reboot"
            )

        poll_interval = reachability.get('poll_interval', 10)
        if not isinstance(poll_interval, (int, float)) or poll_interval <= 0:
            self.errors.append(f"reachability.poll_interval must be positive, got {poll_interval!r}")

    def validate_config_mode(self, config: Dict):
        """Validate access point mode settings"""
        config_mode = config.get('config_mode') or {}

        for key in ('client_stop_commands', 'ap_enable_commands',
                    'ap_disable_commands', 'client_start_commands'):
            commands = config_mode.get(key) or []
            if not isinstance(commands, list):
                self.errors.append(f"config_mode.{key} must be a list of commands")

        served_dir = config_mode.get('served_dir')
        if served_dir and not Path(served_dir).is_dir():
            self.warnings.append(f"Served directory not found: {served_dir}")

        if not config_mode.get('config_service_command'):
            self.warnings.append("config_mode.config_service_command not set")

    def validate_activity(self, config: Dict):
        """Validate the liveness signal name"""
        activity = config.get('activity') or {}

        name = activity.get('signal', 'SIGUSR1')
        if not isinstance(name, str) or not hasattr(signal, name):
            self.errors.append(f"Unknown activity.signal: {name!r}")

    def get_report(self) -> str:
        """Get validation report as string"""
        report = []

        if self.errors:
            report.append("ERRORS:")
            for error in self.errors:
                report.append(f"  - {error}")

        if self.warnings:
            report.append("\nWARNINGS:")
            for warning in self.warnings:
                report.append(f"  - {warning}")

        if not self.errors and not self.warnings:
            report.append("Configuration is valid")

        return "\n".join(report)
