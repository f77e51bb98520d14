"""
Configuration Mode Controller
Brings the local access point and configuration service up and down
"""

import logging
from typing import Callable, List, Optional

from failure_policy import system_reboot
from utils.helpers import is_root


DEFAULT_CLIENT_STOP_COMMANDS = [
    'systemctl stop dhcpcd',
    'systemctl stop wpa_supplicant',
]
DEFAULT_AP_ENABLE_COMMANDS = [
    'systemctl start hostapd',
    'systemctl start dnsmasq',
]
DEFAULT_AP_DISABLE_COMMANDS = [
    'systemctl stop dnsmasq',
    'systemctl stop hostapd',
]
DEFAULT_CLIENT_START_COMMANDS = [
    'systemctl start wpa_supplicant',
    'systemctl start dhcpcd',
]


class ConfigModeController:
    """
    Enters and leaves access-point configuration mode

    Network services are only touched when running as root; without
    privileges the content server and configuration service still start,
    which is enough for bench testing.
    """

    def __init__(self, runner, supervisor,
                 client_stop_commands: Optional[List[str]] = None,
                 ap_enable_commands: Optional[List[str]] = None,
                 ap_disable_commands: Optional[List[str]] = None,
                 client_start_commands: Optional[List[str]] = None,
                 command_deadline: float = 60,
                 ap_enable_deadline: float = 120,
                 served_dir: Optional[str] = None,
                 content_server_command: Optional[str] = None,
                 config_service_command: Optional[str] = None,
                 pid_file: Optional[str] = None,
                 reboot_on_exit: bool = True,
                 reboot_command: str = 'reboot',
                 reboot_action: Optional[Callable[[], None]] = None):
        """
        Initialize configuration mode controller

        Args:
            runner: CommandRunner for network service commands
            supervisor: ProcessSupervisor for the access point processes
            client_stop_commands: Stop normal DHCP/DNS client services
            ap_enable_commands: Bring the access point up
            ap_disable_commands: Take the access point down
            client_start_commands: Restart normal DHCP/DNS client services
            command_deadline: Deadline for each network command
            ap_enable_deadline: Deadline for each access point enable command
            served_dir: Directory published by the content server
            content_server_command: Format string, may use {served_dir}
            config_service_command: Format string, may use {pid_file} and {served_dir}
            pid_file: Supervisor PID file handed to the configuration service
            reboot_on_exit: Reboot first when leaving configuration mode
            reboot_command: Command used by the default reboot action
            reboot_action: Reboot implementation, defaults to system_reboot
        """
        self.logger = logging.getLogger(__name__)
        self.runner = runner
        self.supervisor = supervisor

        self.client_stop_commands = DEFAULT_CLIENT_STOP_COMMANDS if client_stop_commands is None else client_stop_commands
        self.ap_enable_commands = DEFAULT_AP_ENABLE_COMMANDS if ap_enable_commands is None else ap_enable_commands
        self.ap_disable_commands = DEFAULT_AP_DISABLE_COMMANDS if ap_disable_commands is None else ap_disable_commands
        self.client_start_commands = DEFAULT_CLIENT_START_COMMANDS if client_start_commands is None else client_start_commands

        self.command_deadline = command_deadline
        self.ap_enable_deadline = ap_enable_deadline
        self.served_dir = served_dir
        self.content_server_command = content_server_command
        self.config_service_command = config_service_command
        self.pid_file = pid_file
        self.reboot_on_exit = reboot_on_exit
        self.reboot_command = reboot_command
        self.reboot_action = reboot_action or (lambda: system_reboot(self.reboot_command))

        self.active = False

    @classmethod
    def from_config(cls, config, runner, supervisor, reboot_action=None):
        return cls(
            runner,
            supervisor,
            client_stop_commands=config.get('config_mode.client_stop_commands'),
            ap_enable_commands=config.get('config_mode.ap_enable_commands'),
            ap_disable_commands=config.get('config_mode.ap_disable_commands'),
            client_start_commands=config.get('config_mode.client_start_commands'),
            command_deadline=config.get('config_mode.command_deadline', 60),
            ap_enable_deadline=config.get('config_mode.ap_enable_deadline', 120),
            served_dir=config.get('config_mode.served_dir'),
            content_server_command=config.get('config_mode.content_server_command'),
            config_service_command=config.get('config_mode.config_service_command'),
            pid_file=config.get('activity.pid_file'),
            reboot_on_exit=config.get('config_mode.reboot_on_exit', True),
            reboot_command=config.get('failure_policy.reboot_command', 'reboot'),
            reboot_action=reboot_action
        )

    def enter_config_mode(self):
        """Stop the product, start the access point and configuration service"""
        self.logger.info("Entering configuration mode")
        self.supervisor.stop_all()

        if is_root():
            self._run_all(self.client_stop_commands, self.command_deadline)
            self._run_all(self.ap_enable_commands, self.ap_enable_deadline)
        else:
            self.logger.warning("Not root - leaving network services unchanged")

        if self.served_dir and self.content_server_command:
            self.supervisor.start(self.content_server_command.format(served_dir=self.served_dir))

        if self.config_service_command:
            self.supervisor.start(self.config_service_command.format(
                pid_file=self.pid_file or '',
                served_dir=self.served_dir or ''
            ))

        self.active = True

    def exit_config_mode(self):
        """Stop the configuration processes and restore normal networking"""
        self.logger.info("Leaving configuration mode")
        self.supervisor.stop_all()

        # The wireless driver does not reliably return to client mode after
        # hosting an access point, so leaving configuration mode reboots
        # before the network teardown below.
        if self.reboot_on_exit:
            self.logger.warning("Rebooting to leave access point mode")
            self.reboot_action()

        if is_root():
            self._run_all(self.ap_disable_commands, self.command_deadline)
            self._run_all(self.client_start_commands, self.command_deadline)

        self.active = False

    def _run_all(self, commands, deadline):
        for command in commands:
            self.runner.run(command, deadline)
