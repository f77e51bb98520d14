"""
Unit tests for logging setup and helper utilities
"""

import unittest
from unittest.mock import patch
import logging
import shutil
import tempfile
import sys
import os
from pathlib import Path

# Add src directory to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from utils.helpers import command_label, format_duration, ensure_directory
from utils.logger import BootConsoleHandler, setup_logging


class TestBootConsoleHandler(unittest.TestCase):

    def setUp(self):
        self.tmp_dir = tempfile.mkdtemp()
        self.device = Path(self.tmp_dir) / 'tty0'
        self.handler = BootConsoleHandler(device=str(self.device))

    def tearDown(self):
        shutil.rmtree(self.tmp_dir, ignore_errors=True)

    def record(self, level, msg):
        return logging.LogRecord('test', level, __file__, 1, msg, None, None)

    def test_failure_line(self):
        self.handler.emit(self.record(logging.CRITICAL, 'Rebooting'))

        line = self.device.read_text()
        self.assertIn('FAILED', line)
        self.assertIn('Rebooting', line)

    def test_ok_line(self):
        self.handler.emit(self.record(logging.INFO, 'BackgroundCommand: kiosk'))

        line = self.device.read_text()
        self.assertIn('  OK  ', line)
        self.assertNotIn('FAILED', line)

    @patch('utils.logger.is_root', return_value=False)
    def test_unavailable_without_root(self, mock_root):
        self.assertFalse(BootConsoleHandler.available(str(self.device)))


class TestSetupLogging(unittest.TestCase):

    def setUp(self):
        self.tmp_dir = tempfile.mkdtemp()

    def tearDown(self):
        shutil.rmtree(self.tmp_dir, ignore_errors=True)

    @patch('utils.logger._add_failure_channels')
    @patch('utils.logger.logging.config.dictConfig')
    def test_yaml_config_used(self, mock_dict_config, mock_channels):
        """File handlers are redirected into the log directory"""
        config_path = Path(self.tmp_dir) / 'logging_config.yaml'
        config_path.write_text(
            "version: 1\n"
            "handlers:\n"
            "  file:\n"
            "    class: logging.FileHandler\n"
            "    filename: /somewhere/else/supervisor.log\n"
            "root:\n"
            "  handlers: [file]\n"
        )
        log_dir = Path(self.tmp_dir) / 'logs'

        setup_logging(config_path=str(config_path), log_dir=str(log_dir))

        config = mock_dict_config.call_args.args[0]
        self.assertEqual(config['handlers']['file']['filename'], str(log_dir / 'supervisor.log'))
        self.assertTrue(log_dir.is_dir())
        mock_channels.assert_called_once()

    @patch('utils.logger._add_failure_channels')
    @patch('utils.logger.logging.basicConfig')
    def test_fallback_basic_config(self, mock_basic_config, mock_channels):
        setup_logging(config_path=str(Path(self.tmp_dir) / 'missing.yaml'), log_dir=self.tmp_dir)

        mock_basic_config.assert_called_once()
        self.assertEqual(len(mock_basic_config.call_args.kwargs['handlers']), 2)


class TestHelpers(unittest.TestCase):

    def test_command_label(self):
        self.assertEqual(command_label('/opt/kiosk/bin/kiosk --fullscreen'), 'kiosk')
        self.assertEqual(command_label('DISPLAY=:0 chromium-browser --kiosk'), 'chromium-browser')
        self.assertEqual(command_label('sudo nohup sync-agent'), 'sync-agent')
        self.assertEqual(command_label(''), 'command')

    def test_format_duration(self):
        self.assertEqual(format_duration(42), '42s')
        self.assertEqual(format_duration(245), '4m 05s')
        self.assertEqual(format_duration(3720), '1h 02m')

    def test_ensure_directory(self):
        tmp_dir = tempfile.mkdtemp()
        try:
            path = ensure_directory(os.path.join(tmp_dir, 'a', 'b'))
            self.assertTrue(path.is_dir())
        finally:
            shutil.rmtree(tmp_dir, ignore_errors=True)


if __name__ == '__main__':
    unittest.main()
