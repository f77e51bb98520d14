"""
Helper utilities
"""

import os
import re
import shlex
from pathlib import Path


def ensure_directory(path: str) -> Path:
    """
    Ensure directory exists, create if it doesn't

    Args:
        path: Directory path

    Returns:
        Path object
    """
    p = Path(path)
    p.mkdir(parents=True, exist_ok=True)
    return p


def is_root() -> bool:
    """Return True if the supervisor runs with root privileges"""
    return os.geteuid() == 0


def command_label(command: str) -> str:
    """
    Derive a short, filesystem-safe label from a shell command

    Args:
        command: Shell command line (e.g. "/opt/app/bin/kiosk --fullscreen")

    Returns:
        Label such as "kiosk", used for per-process log file names
    """
    try:
        words = shlex.split(command)
    except ValueError:
        words = command.split()

    # Skip leading VAR=value assignments and sudo/nice style wrappers
    for word in words:
        if '=' in word and not word.startswith(('/', '.')):
            continue
        if word in ('sudo', 'nice', 'nohup', 'exec', 'env'):
            continue
        label = re.sub(r'[^A-Za-z0-9_.-]', '_', os.path.basename(word))
        if label:
            return label

    return 'command'


def format_duration(seconds: float) -> str:
    """
    Format a duration in seconds for log messages

    Args:
        seconds: Number of seconds

    Returns:
        Formatted string (e.g., "4m 05s")
    """
    seconds = int(seconds)
    if seconds < 60:
        return f"{seconds}s"
    minutes, seconds = divmod(seconds, 60)
    if minutes < 60:
        return f"{minutes}m {seconds:02d}s"
    hours, minutes = divmod(minutes, 60)
    return f"{hours}h {minutes:02d}m"
