"""
Reachability Guard
Reports whether an operator is logged in, so failure reboots can wait
"""

import logging
import time

import psutil


class ReachabilityGuard:
    """
    Detects open operator sessions

    Session types:
    - remote: utmp sessions that came in from another host (ssh, telnet)
    - ssh: established TCP connections to the local sshd port
    - any: every logged-in user, including an auto-logged-in console

    Only remote sessions are counted by default. Counting local sessions on
    an image that logs a desktop user in automatically would make the device
    permanently unrebootable.
    """

    def __init__(self, session_types: str = 'remote', poll_interval: float = 10,
                 ssh_port: int = 22):
        self.logger = logging.getLogger(__name__)
        self.session_types = session_types
        self.poll_interval = poll_interval
        self.ssh_port = ssh_port

        if session_types not in ('remote', 'ssh', 'any'):
            raise ValueError(f"Unknown session type: {session_types}")

    @classmethod
    def from_config(cls, config):
        return cls(
            session_types=config.get('reachability.session_types', 'remote'),
            poll_interval=config.get('reachability.poll_interval', 10),
            ssh_port=config.get('reachability.ssh_port', 22)
        )

    def count_sessions(self) -> int:
        """
        Count open operator sessions of the configured type

        Returns:
            int: Number of sessions
        """
        if self.session_types == 'ssh':
            return self._count_ssh_connections()

        users = psutil.users()
        if self.session_types == 'any':
            return len(users)

        return sum(1 for user in users if self._is_remote_host(user.host))

    def is_operator_present(self) -> bool:
        """True if one or more operator sessions are open"""
        return self.count_sessions() > 0

    def await_operator_absence(self):
        """Block until no operator session is open, polling at a fixed interval"""
        while self.is_operator_present():
            time.sleep(self.poll_interval)

        self.logger.info("No operator sessions open")

    def _count_ssh_connections(self) -> int:
        try:
            connections = psutil.net_connections(kind='tcp')
        except psutil.AccessDenied:
            # Fall back to utmp when socket enumeration needs privileges
            self.logger.debug("Socket list denied, counting remote logins instead")
            return sum(1 for user in psutil.users() if self._is_remote_host(user.host))

        return sum(
            1 for conn in connections
            if conn.status == psutil.CONN_ESTABLISHED
            and conn.laddr and conn.laddr.port == self.ssh_port
        )

    @staticmethod
    def _is_remote_host(host) -> bool:
        # Local X displays show up as ":0"
        if not host:
            return False
        if host.startswith(':') or host in ('localhost', '127.0.0.1', '::1'):
            return False
        return True
