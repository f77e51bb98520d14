"""
Unit tests for deadline-bounded command execution
"""

import unittest
from unittest.mock import Mock, patch, MagicMock
import subprocess
import sys
import os

# Add src directory to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from command_runner import CommandRunner
from failures import FailureKind, FatalCondition


def _fatal(message, kind):
    raise FatalCondition(message, kind)


def raising_policy():
    """Failure policy whose report_fatal never returns, like the real one"""
    policy = Mock()
    policy.report_fatal.side_effect = _fatal
    return policy


class TestCommandRunner(unittest.TestCase):

    def setUp(self):
        """Set up test fixtures"""
        self.policy = raising_policy()
        self.runner = CommandRunner(self.policy)

    def test_returns_output(self):
        """Output of a command finishing inside its deadline is returned"""
        output = self.runner.run('echo hello', deadline=10)

        self.assertEqual(output, 'hello\n')
        self.policy.report_fatal.assert_not_called()

    def test_captures_stderr(self):
        output = self.runner.run('echo oops >&2', deadline=10)

        self.assertEqual(output, 'oops\n')

    def test_nonzero_exit_is_not_fatal(self):
        """Only hangs and launch failures are fatal"""
        output = self.runner.run('echo partial; exit 3', deadline=10)

        self.assertEqual(output, 'partial\n')
        self.policy.report_fatal.assert_not_called()

    def test_timeout_is_fatal(self):
        """A command outliving its deadline reports CommandTimedOut"""
        with self.assertRaises(FatalCondition) as ctx:
            self.runner.run('sleep 5', deadline=0.2)

        self.assertEqual(ctx.exception.kind, FailureKind.COMMAND_TIMED_OUT)
        self.assertIn('sleep 5', ctx.exception.message)

    @patch('command_runner.subprocess.Popen')
    def test_hung_command_is_not_killed(self, mock_popen):
        """No targeted cleanup: the reboot is the remedy"""
        proc = MagicMock()
        proc.communicate.side_effect = subprocess.TimeoutExpired('hang', 1)
        mock_popen.return_value = proc

        with self.assertRaises(FatalCondition):
            self.runner.run('hang', deadline=1)

        proc.kill.assert_not_called()
        proc.terminate.assert_not_called()

    @patch('command_runner.subprocess.Popen', side_effect=OSError('fork failed'))
    def test_launch_failure_is_fatal(self, mock_popen):
        with self.assertRaises(FatalCondition) as ctx:
            self.runner.run('ifconfig', deadline=5)

        self.assertEqual(ctx.exception.kind, FailureKind.COMMAND_LAUNCH_FAILED)
        self.assertIn('ifconfig', ctx.exception.message)

    @patch('command_runner.subprocess.Popen')
    def test_default_deadline(self, mock_popen):
        """Commands get 60 seconds unless told otherwise"""
        proc = MagicMock()
        proc.communicate.return_value = ('', None)
        proc.returncode = 0
        mock_popen.return_value = proc

        self.runner.run('true')

        proc.communicate.assert_called_once_with(timeout=60)


if __name__ == '__main__':
    unittest.main()
