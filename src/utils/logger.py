"""
Logging Utility
Configures centralized logging: primary log, system log and boot console
"""

import os
import logging
import logging.config
import logging.handlers
from pathlib import Path
from typing import Optional

import yaml

from .helpers import ensure_directory, is_root


LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
CHANNEL_FORMAT = '**** appliance-supervisor: %(message)s'

DEFAULT_LOG_DIR = '/var/log/appliance-supervisor'
SYSLOG_SOCKET = '/dev/log'
CONSOLE_DEVICE = '/dev/tty0'


class BootConsoleHandler(logging.Handler):
    """
    Writes systemd-style PASS/FAIL lines to the boot console

    Records at ERROR and above are shown as "[FAILED]" in red, the rest as
    "[  OK  ]" in green.
    """

    RED = '\033[0;31m'
    GREEN = '\033[0;32m'
    NC = '\033[0m'

    def __init__(self, device: str = CONSOLE_DEVICE, level=logging.INFO):
        super().__init__(level)
        self.device = device

    @classmethod
    def available(cls, device: str = CONSOLE_DEVICE) -> bool:
        """Console output requires root and a writable console device"""
        return is_root() and os.path.exists(device) and os.access(device, os.W_OK)

    def format_line(self, record: logging.LogRecord) -> str:
        msg = self.format(record)
        if record.levelno >= logging.ERROR:
            return f"[{self.RED}FAILED{self.NC}] {msg}\n"
        return f"[{self.GREEN}  OK  {self.NC}] {msg}\n"

    def emit(self, record):
        try:
            line = self.format_line(record)
            with open(self.device, 'w') as console:
                console.write(line)
        except Exception:
            self.handleError(record)


def _default_config_path() -> Path:
    config_dir = os.getenv('SUPERVISOR_CONFIG_DIR')
    if config_dir:
        return Path(config_dir) / 'logging_config.yaml'
    return Path(__file__).resolve().parents[2] / 'config' / 'logging_config.yaml'


def _add_failure_channels(root: logging.Logger):
    """Attach the system log and boot console handlers when present"""
    channel_formatter = logging.Formatter(CHANNEL_FORMAT)

    if os.path.exists(SYSLOG_SOCKET):
        try:
            syslog = logging.handlers.SysLogHandler(address=SYSLOG_SOCKET)
        except OSError as e:
            root.warning(f"System log unavailable: {e}")
        else:
            syslog.setLevel(logging.INFO)
            syslog.setFormatter(channel_formatter)
            root.addHandler(syslog)

    if BootConsoleHandler.available():
        console = BootConsoleHandler()
        console.setFormatter(channel_formatter)
        root.addHandler(console)


def setup_logging(verbose: bool = False, config_path: Optional[str] = None,
                  log_dir: Optional[str] = None):
    """
    Setup logging configuration

    Args:
        verbose: Lower the root level to DEBUG
        config_path: dictConfig YAML file, defaults to config/logging_config.yaml
        log_dir: Directory for the supervisor log file
    """
    path = Path(config_path) if config_path else _default_config_path()
    log_dir = log_dir or os.getenv('SUPERVISOR_LOG_DIR', DEFAULT_LOG_DIR)

    # Ensure log directory exists
    try:
        ensure_directory(log_dir)
    except OSError:
        log_dir = None

    if path.exists() and log_dir:
        with open(path) as f:
            config = yaml.safe_load(f)

        for handler in config.get('handlers', {}).values():
            if 'filename' in handler:
                handler['filename'] = str(Path(log_dir) / Path(handler['filename']).name)

        logging.config.dictConfig(config)
    else:
        # Fallback to basic config
        handlers = [logging.StreamHandler()]
        if log_dir:
            handlers.append(logging.handlers.RotatingFileHandler(
                Path(log_dir) / 'supervisor.log',
                maxBytes=1024 * 1024,
                backupCount=3
            ))
        logging.basicConfig(
            level=logging.INFO,
            format=LOG_FORMAT,
            handlers=handlers
        )

    root = logging.getLogger()
    _add_failure_channels(root)

    if verbose:
        root.setLevel(logging.DEBUG)

    logger = logging.getLogger(__name__)
    logger.info("Logging configured")
