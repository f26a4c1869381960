# -*- coding: utf-8 -*-
"""Logging and configuration setup checks."""

from __future__ import annotations

import logging
import sys
import threading
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))

from printle.config import Config, TestingConfig
from printle.dispatcher import get_print_transport
from printle.logging_config import setup_logging


def test_log_lines_carry_thread_name(tmp_path: Path) -> None:
    root = setup_logging("DEBUG", log_dir=tmp_path)
    try:
        child = logging.getLogger("printle.dispatcher")

        def worker() -> None:
            child.error("job failed")

        thread = threading.Thread(target=worker, name="Job-report")
        thread.start()
        thread.join()
        for handler in root.handlers:
            handler.flush()

        app_log = (tmp_path / "printle.log").read_text(encoding="utf-8")
        error_log = (tmp_path / "printle_error.log").read_text(encoding="utf-8")
        assert "[Job-report] printle.dispatcher - job failed" in app_log
        assert "job failed" in error_log
        assert "Logging configured" not in error_log
    finally:
        for handler in list(root.handlers):
            handler.close()
        root.handlers.clear()


def test_unknown_level_falls_back_to_info() -> None:
    root = setup_logging("LOUD")
    try:
        assert root.level == logging.INFO
    finally:
        root.handlers.clear()


def test_transport_factory_uses_config() -> None:
    transport = get_print_transport(TestingConfig)
    assert transport.timeout == TestingConfig.IPP_TIMEOUT
    assert transport.requesting_user == Config.REQUESTING_USER
    assert TestingConfig.TESTING is True
