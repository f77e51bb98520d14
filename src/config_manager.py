"""
Configuration Manager
Handles loading and merging configuration from multiple sources
"""

import copy
import os
import yaml
import logging
from pathlib import Path
from typing import Any, Dict

from utils.validators import ConfigValidator


DEFAULT_CONFIG: Dict[str, Any] = {
    'state_machine': {
        'tick_seconds': 1,
        'inactivity_window': 300,
    },
    'hardware': {
        'button_pin': None,
        'indicator_pin': None,
        'button_pull_up': True,
        'bounce_seconds': 0.05,
    },
    'processes': {
        'applications': [],
        'run_as': None,
        'log_dir': '/var/log/appliance-supervisor',
    },
    'commands': {
        'default_deadline': 60,
    },
    'failure_policy': {
        'grace_seconds': 60,
        'reboot_command': 'reboot',
    },
    'reachability': {
        'session_types': 'remote',
        'poll_interval': 10,
        'ssh_port': 22,
    },
    'config_mode': {
        'command_deadline': 60,
        'ap_enable_deadline': 120,
        'served_dir': None,
        'content_server_command': 'python3 -m http.server 80 --directory {served_dir}',
        'config_service_command': None,
        'reboot_on_exit': True,
    },
    'activity': {
        'signal': 'SIGUSR1',
        'pid_file': '/run/appliance-supervisor.pid',
    },
    'logging': {
        'level': 'INFO',
    },
}


def _deep_merge(base: Dict, override: Dict) -> Dict:
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value
    return base


def _coerce(value: str) -> Any:
    """Turn numeric environment strings into numbers"""
    for cast in (int, float):
        try:
            return cast(value)
        except ValueError:
            continue
    return value


class ConfigManager:
    """Manages supervisor configuration from multiple sources"""

    def __init__(self, config_dir: str = None):
        self.config = copy.deepcopy(DEFAULT_CONFIG)
        self.logger = logging.getLogger(__name__)

        # Configuration file paths
        self.default_config_dir = Path(__file__).resolve().parent.parent / 'config'
        self.config_dir = Path(config_dir or os.getenv('SUPERVISOR_CONFIG_DIR', '/etc/appliance-supervisor'))

    def load_configs(self):
        """Load configuration from YAML files and environment variables"""

        # 1. Shipped defaults
        self._load_file(self.default_config_dir / 'supervisor_config.yaml')

        # 2. Site overrides
        site_config_path = self.config_dir / 'supervisor_config.yaml'
        if site_config_path.resolve() != (self.default_config_dir / 'supervisor_config.yaml').resolve():
            self._load_file(site_config_path)

        # 3. Override with environment variables
        self._apply_env_overrides()

        self.logger.info(f"Configuration loaded ({len(self.get('processes.applications', []))} applications)")

    def _load_file(self, path: Path):
        if not path.exists():
            return

        with open(path) as f:
            loaded = yaml.safe_load(f) or {}

        if not isinstance(loaded, dict):
            raise ValueError(f"{path}: expected a mapping at top level")

        _deep_merge(self.config, loaded)
        self.logger.debug(f"Loaded {path}")

    def _apply_env_overrides(self):
        """Override config with environment variables"""
        env_overrides = {
            'LOG_LEVEL': 'logging.level',
            'SUPERVISOR_TICK': 'state_machine.tick_seconds',
            'INACTIVITY_WINDOW': 'state_machine.inactivity_window',
            'REBOOT_GRACE': 'failure_policy.grace_seconds',
        }

        for env_key, config_key in env_overrides.items():
            value = os.getenv(env_key)
            if value:
                self.set(config_key, _coerce(value))

    def apply_args(self, args):
        """
        Override config with parsed command-line arguments

        Args:
            args: argparse Namespace from main.parse_args()
        """
        if getattr(args, 'button_pin', None) is not None:
            self.set('hardware.button_pin', args.button_pin)
        if getattr(args, 'indicator_pin', None) is not None:
            self.set('hardware.indicator_pin', args.indicator_pin)
        if getattr(args, 'user', None):
            self.set('processes.run_as', args.user)
        if getattr(args, 'served_dir', None):
            self.set('config_mode.served_dir', args.served_dir)
        if getattr(args, 'verbose', False):
            self.set('logging.level', 'DEBUG')
        if getattr(args, 'applications', None):
            self.set('processes.applications', list(args.applications))

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get configuration value using dot notation
        Example: config.get('failure_policy.grace_seconds')
        """
        keys = key.split('.')
        value = self.config

        for k in keys:
            if isinstance(value, dict):
                value = value.get(k)
                if value is None:
                    return default
            else:
                return default

        return value

    def set(self, key: str, value: Any):
        """Set configuration value using dot notation"""
        keys = key.split('.')
        config = self.config

        for k in keys[:-1]:
            if not isinstance(config.get(k), dict):
                config[k] = {}
            config = config[k]

        config[keys[-1]] = value

    def validate(self):
        """Validate configuration, raising ValueError on errors"""
        validator = ConfigValidator()
        if not validator.validate_all(self.config):
            raise ValueError(f"Invalid configuration\n{validator.get_report()}")
