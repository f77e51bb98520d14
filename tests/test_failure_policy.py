"""
Unit tests for the failure policy
"""

import subprocess
import unittest
from unittest.mock import Mock, patch
import sys
import os

# Add src directory to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from failures import FailureKind, FatalCondition, RebootFailed
from failure_policy import FailurePolicy, system_reboot


class TestFailurePolicy(unittest.TestCase):

    def setUp(self):
        """Set up test fixtures"""
        self.guard = Mock()
        self.reboot = Mock()
        self.policy = FailurePolicy(self.guard, grace_seconds=60, reboot_action=self.reboot)

    @patch('failure_policy.time.sleep')
    def test_reboots_after_grace_window(self, mock_sleep):
        """No operator: wait the grace window, then reboot"""
        self.guard.is_operator_present.side_effect = [False, False]

        with self.assertRaises(FatalCondition) as ctx:
            self.policy.report_fatal("app died", FailureKind.PROCESS_EXITED_UNEXPECTEDLY)

        mock_sleep.assert_called_once_with(60)
        self.reboot.assert_called_once_with()
        self.guard.await_operator_absence.assert_not_called()
        self.assertEqual(ctx.exception.kind, FailureKind.PROCESS_EXITED_UNEXPECTEDLY)
        self.assertEqual(ctx.exception.message, "app died")

    @patch('failure_policy.time.sleep')
    def test_defers_while_operator_present(self, mock_sleep):
        """Operator logged in: wait for logout before the grace window"""
        self.guard.is_operator_present.side_effect = [True, False]

        with self.assertRaises(FatalCondition):
            self.policy.report_fatal("timeout", FailureKind.COMMAND_TIMED_OUT)

        self.guard.await_operator_absence.assert_called_once_with()
        mock_sleep.assert_called_once_with(60)
        self.reboot.assert_called_once_with()

    @patch('failure_policy.time.sleep')
    def test_operator_arriving_during_grace_window_defers_again(self, mock_sleep):
        """Operator logs in during the grace window"""
        self.guard.is_operator_present.side_effect = [False, True, True, False]

        with self.assertRaises(FatalCondition):
            self.policy.report_fatal("launch", FailureKind.COMMAND_LAUNCH_FAILED)

        self.guard.await_operator_absence.assert_called_once_with()
        self.assertEqual(mock_sleep.call_count, 2)
        self.reboot.assert_called_once_with()

    @patch('failure_policy.time.sleep')
    def test_reboot_not_issued_before_operator_leaves(self, mock_sleep):
        """The reboot action runs only after the deferral ends"""
        order = []
        self.guard.is_operator_present.side_effect = [True, False]
        self.guard.await_operator_absence.side_effect = lambda: order.append('await')
        self.reboot.side_effect = lambda: order.append('reboot')

        with self.assertRaises(FatalCondition):
            self.policy.report_fatal("x", FailureKind.COMMAND_TIMED_OUT)

        self.assertEqual(order, ['await', 'reboot'])

    def test_from_config(self):
        """Policy settings come from configuration"""
        config = Mock()
        config.get.side_effect = lambda k, d=None: {
            'failure_policy.grace_seconds': 5,
            'failure_policy.reboot_command': 'shutdown -r now',
        }.get(k, d)

        policy = FailurePolicy.from_config(config, self.guard)

        self.assertEqual(policy.grace_seconds, 5)
        self.assertEqual(policy.reboot_command, 'shutdown -r now')


class TestSystemReboot(unittest.TestCase):

    @patch('failure_policy.Event')
    @patch('failure_policy.subprocess.run')
    def test_runs_reboot_command(self, mock_run, mock_event):
        """The reboot command runs with a deadline and the caller is parked"""
        mock_run.return_value.returncode = 0

        system_reboot('sudo reboot', deadline=30, shutdown_timeout=120)

        mock_run.assert_called_once_with(['sudo', 'reboot'], check=False, timeout=30)
        mock_event.return_value.wait.assert_called_once_with(120)

    @patch('failure_policy.Event')
    @patch('failure_policy.subprocess.run')
    def test_non_zero_exit_raises(self, mock_run, mock_event):
        """A refused reboot is logged and raised instead of parking"""
        mock_run.return_value.returncode = 1

        with self.assertLogs('failure_policy', level='CRITICAL') as logs:
            with self.assertRaises(RebootFailed):
                system_reboot('reboot')

        mock_event.return_value.wait.assert_not_called()
        self.assertIn('exited 1', logs.output[0])

    @patch('failure_policy.subprocess.run',
           side_effect=subprocess.TimeoutExpired('reboot', 60))
    def test_hung_reboot_command_raises(self, mock_run):
        with self.assertRaises(RebootFailed):
            system_reboot('reboot')

    @patch('failure_policy.Event')
    @patch('failure_policy.subprocess.run')
    def test_system_still_up_raises(self, mock_run, mock_event):
        mock_run.return_value.returncode = 0
        mock_event.return_value.wait.return_value = False

        with self.assertRaises(RebootFailed):
            system_reboot('reboot')

    @patch('failure_policy.subprocess.run', side_effect=FileNotFoundError('reboot'))
    def test_missing_reboot_command_raises(self, mock_run):
        with self.assertRaises(RebootFailed):
            system_reboot()

    @patch('failure_policy.system_reboot')
    def test_policy_default_action_uses_configured_command(self, mock_reboot):
        policy = FailurePolicy(Mock(), reboot_command='sudo /sbin/reboot')

        policy.reboot_action()

        mock_reboot.assert_called_once_with('sudo /sbin/reboot')


if __name__ == '__main__':
    unittest.main()
