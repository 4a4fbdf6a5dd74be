"""
Unit Tests for Logging Setup
"""

import logging
import tempfile
import unittest
from logging.handlers import RotatingFileHandler
from pathlib import Path

from jira_sync.utils.logger import HANDLER_PREFIX, resolve_level, setup_logging


class TestResolveLevel(unittest.TestCase):

    def test_names_and_numbers(self):
        self.assertEqual(resolve_level('debug'), logging.DEBUG)
        self.assertEqual(resolve_level('WARNING'), logging.WARNING)
        self.assertEqual(resolve_level(logging.ERROR), logging.ERROR)

    def test_unknown_or_missing_means_info(self):
        self.assertEqual(resolve_level(None), logging.INFO)
        self.assertEqual(resolve_level('chatty'), logging.INFO)
        self.assertEqual(resolve_level('Formatter'), logging.INFO)


class TestSetupLogging(unittest.TestCase):

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        root = logging.getLogger()
        self.saved_level = root.level
        self.addCleanup(self.restore_root)

    def restore_root(self):
        root = logging.getLogger()
        for handler in self.own_handlers():
            root.removeHandler(handler)
            handler.close()
        root.setLevel(self.saved_level)
        self.tmp.cleanup()

    def own_handlers(self):
        return [h for h in logging.getLogger().handlers if (h.get_name() or '').startswith(HANDLER_PREFIX)]

    def log_config(self, **overrides):
        config = {'level': 'WARNING', 'file': str(Path(self.tmp.name, 'logs', 'sync.log'))}
        config.update(overrides)
        return config

    def test_console_and_rotating_file(self):
        setup_logging(log_config=self.log_config())

        handlers = self.own_handlers()
        self.assertEqual(len(handlers), 2)
        self.assertTrue(any(isinstance(h, RotatingFileHandler) for h in handlers))
        self.assertTrue(Path(self.tmp.name, 'logs').is_dir())
        self.assertEqual(logging.getLogger().level, logging.WARNING)
        self.assertEqual(logging.getLogger('urllib3').level, logging.WARNING)

    def test_repeated_setup_replaces_own_handlers(self):
        setup_logging(log_config=self.log_config())
        setup_logging('DEBUG', log_config=self.log_config())

        self.assertEqual(len(self.own_handlers()), 2)
        self.assertEqual(logging.getLogger().level, logging.DEBUG)
        for handler in self.own_handlers():
            self.assertEqual(handler.level, logging.DEBUG)

    def test_blank_file_logs_to_console_only(self):
        setup_logging(log_config=self.log_config(file=''))

        handlers = self.own_handlers()
        self.assertEqual(len(handlers), 1)
        self.assertNotIsInstance(handlers[0], RotatingFileHandler)


if __name__ == '__main__':
    unittest.main()
