#!/usr/bin/env python3
"""
Send an operator activity ping to the running supervisor
Called by the configuration service on every client action
"""

import argparse
import os
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent / 'src'))

from activity_signal import DEFAULT_PID_FILE, send_activity_ping


def main():
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument('--pid-file', default=os.getenv('SUPERVISOR_PID_FILE', DEFAULT_PID_FILE),
                        help='PID file written by the supervisor')
    parser.add_argument('--signal', default='SIGUSR1',
                        help='Signal the supervisor listens for')
    args = parser.parse_args()

    try:
        pid = send_activity_ping(args.pid_file, args.signal)
    except (OSError, ValueError) as e:
        print(f"Error: {e}")
        return 1

    print(f"Pinged supervisor (PID {pid})")
    return 0


if __name__ == '__main__':
    sys.exit(main())
