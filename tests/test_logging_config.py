import unittest
import sys
import logging
import logging.handlers
import shutil
import tempfile
from pathlib import Path

# Add project root to sys.path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from docquill.core.logging_config import LOG_FILE_NAME, setup_logging, setup_logging_from_settings


class TestSetupLogging(unittest.TestCase):
    def setUp(self):
        self.test_dir = Path(tempfile.mkdtemp())
        self.root = logging.getLogger()
        self.saved_handlers = list(self.root.handlers)
        self.saved_level = self.root.level

    def tearDown(self):
        for handler in list(self.root.handlers):
            if handler not in self.saved_handlers:
                handler.close()
        self.root.handlers[:] = self.saved_handlers
        self.root.setLevel(self.saved_level)
        shutil.rmtree(self.test_dir)

    def test_file_and_console_handlers(self):
        log_file = setup_logging(self.test_dir / 'logs')
        self.assertEqual(log_file, self.test_dir / 'logs' / LOG_FILE_NAME)
        self.assertTrue(log_file.exists())
        kinds = [type(h) for h in self.root.handlers]
        self.assertIn(logging.handlers.RotatingFileHandler, kinds)
        self.assertIn(logging.StreamHandler, kinds)
        self.assertEqual(self.root.level, logging.INFO)

    def test_repeated_setup_does_not_duplicate_handlers(self):
        setup_logging(self.test_dir, debug_mode=True)
        setup_logging(self.test_dir, debug_mode=True)
        self.assertEqual(len(self.root.handlers), 2)
        self.assertEqual(self.root.level, logging.DEBUG)

        logging.getLogger('docquill.test').debug("debug line")
        for handler in self.root.handlers:
            handler.flush()
        self.assertIn("debug line", (self.test_dir / LOG_FILE_NAME).read_text(encoding='utf-8'))

    def test_settings_choose_file_and_level(self):
        settings = {'log_dir': str(self.test_dir / 'app-logs'), 'log_file': 'editor.log', 'debug': True}
        log_file = setup_logging_from_settings(settings)
        self.assertEqual(log_file, self.test_dir / 'app-logs' / 'editor.log')
        self.assertEqual(self.root.level, logging.DEBUG)
        self.assertEqual(logging.getLogger('werkzeug').level, logging.WARNING)

        setup_logging_from_settings(settings, debug_mode=False)
        self.assertEqual(self.root.level, logging.INFO)


if __name__ == '__main__':
    unittest.main()
