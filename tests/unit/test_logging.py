"""Tests for vidscribe.util.logging."""

from __future__ import annotations

import logging
from pathlib import Path

from vidscribe.util.logging import get_logger, setup_logging


class TestSetupLogging:
    """Tests for setup_logging."""

    def test_default_verbosity_sets_warning(self) -> None:
        setup_logging(0)

        logger = logging.getLogger("vidscribe")
        assert logger.level == logging.WARNING

    def test_verbosity_one_sets_info(self) -> None:
        setup_logging(1)

        logger = logging.getLogger("vidscribe")
        assert logger.level == logging.INFO

    def test_verbosity_two_sets_debug(self) -> None:
        setup_logging(2)

        logger = logging.getLogger("vidscribe")
        assert logger.level == logging.DEBUG

    def test_clears_existing_handlers(self) -> None:
        setup_logging(0)
        setup_logging(0)

        logger = logging.getLogger("vidscribe")
        assert len(logger.handlers) == 1

    def test_log_file_receives_debug_records(self, tmp_path: Path) -> None:
        log_file = tmp_path / "logs" / "vidscribe.log"
        setup_logging(0, log_file=log_file)

        get_logger("probe").debug("hello from the file sink")
        for handler in logging.getLogger("vidscribe").handlers:
            handler.flush()

        assert "hello from the file sink" in log_file.read_text(encoding="utf-8")

    def test_stream_handler_keeps_own_level_with_file(self, tmp_path: Path) -> None:
        setup_logging(0, log_file=tmp_path / "v.log")

        handlers = logging.getLogger("vidscribe").handlers
        levels = sorted(h.level for h in handlers)
        assert levels == [logging.DEBUG, logging.WARNING]


class TestGetLogger:
    """Tests for get_logger."""

    def test_returns_namespaced_logger(self) -> None:
        logger = get_logger("test_module")

        assert logger.name == "vidscribe.test_module"

    def test_module_names_are_not_double_prefixed(self) -> None:
        logger = get_logger("vidscribe.core.binary")

        assert logger.name == "vidscribe.core.binary"
