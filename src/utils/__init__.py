"""
Utility modules
"""

from .logger import setup_logging, BootConsoleHandler
from .validators import ConfigValidator
from .helpers import (
    ensure_directory,
    is_root,
    command_label,
    format_duration
)

__all__ = [
    'setup_logging',
    'BootConsoleHandler',
    'ConfigValidator',
    'ensure_directory',
    'is_root',
    'command_label',
    'format_duration'
]
