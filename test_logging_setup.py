#!/usr/bin/env python3
"""
test_logging_setup.py
=====================
Handler wiring of :func:`logging_setup.setup_logging`.

Usage::

    python -m pytest test_logging_setup.py
"""

from __future__ import annotations

import logging
import os
import tempfile
import unittest

from logging_setup import setup_logging


class SetupLoggingTests(unittest.TestCase):
    def setUp(self) -> None:
        self.root = logging.getLogger()
        self.cycle = logging.getLogger("step_controller")
        self.saved_root = (list(self.root.handlers), self.root.level)
        self.saved_cycle = (list(self.cycle.handlers), self.cycle.level)
        self.cwd = os.getcwd()
        self.tmp = tempfile.TemporaryDirectory()
        os.chdir(self.tmp.name)

    def tearDown(self) -> None:
        for logger, (handlers, level) in (
            (self.root, self.saved_root),
            (self.cycle, self.saved_cycle),
        ):
            for handler in list(logger.handlers):
                logger.removeHandler(handler)
                if handler not in handlers:
                    handler.close()
            for handler in handlers:
                logger.addHandler(handler)
            logger.setLevel(level)
        os.chdir(self.cwd)
        self.tmp.cleanup()

    def test_repeated_setup_keeps_one_handler_per_destination(self) -> None:
        log_path = os.path.join(self.tmp.name, "bridge.log")
        setup_logging(logging.INFO, log_path)
        setup_logging(logging.DEBUG, log_path)

        self.assertEqual(len(self.root.handlers), 2)
        self.assertEqual(len(self.cycle.handlers), 1)
        self.assertEqual(self.root.level, logging.DEBUG)

    def test_cycle_log_is_written_to_working_directory(self) -> None:
        setup_logging(logging.INFO, os.path.join(self.tmp.name, "bridge.log"))
        logging.getLogger("step_controller").debug("tick 1")
        for handler in self.cycle.handlers:
            handler.flush()
        with open(os.path.join(self.tmp.name, "cycle_debug.log")) as fh:
            self.assertIn("tick 1", fh.read())


if __name__ == "__main__":
    unittest.main()
