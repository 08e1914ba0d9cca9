"""Tests for logging configuration."""

import logging

from carbone_storage.logging_config import LOGGER_NAME, _rotate_log_if_needed, setup_logging


class TestSetupLogging:
    def test_stderr_only_by_default(self):
        logger = setup_logging("debug")

        assert logger.name == LOGGER_NAME
        assert logger.level == logging.DEBUG
        assert len(logger.handlers) == 1

    def test_file_handler(self, tmp_path):
        logger = setup_logging("INFO", log_dir=tmp_path / "logs")

        logging.getLogger("carbone_storage.adapter").info("hello from adapter")
        for handler in logger.handlers:
            handler.flush()

        log_file = tmp_path / "logs" / "carbone_storage.log"
        assert "hello from adapter" in log_file.read_text()

        for handler in logger.handlers:
            handler.close()
        logger.handlers.clear()

    def test_repeated_setup_replaces_handlers(self):
        setup_logging()
        logger = setup_logging()

        assert len(logger.handlers) == 1


class TestRotation:
    def test_small_file_not_rotated(self, tmp_path):
        log_file = tmp_path / "carbone_storage.log"
        log_file.write_text("small")

        _rotate_log_if_needed(log_file, max_bytes=100)

        assert log_file.exists()
        assert not (tmp_path / "carbone_storage.log.1").exists()

    def test_large_file_rotated(self, tmp_path):
        log_file = tmp_path / "carbone_storage.log"
        (tmp_path / "carbone_storage.log.1").write_text("older")
        log_file.write_text("x" * 200)

        _rotate_log_if_needed(log_file, max_bytes=100, backup_count=3)

        assert not log_file.exists()
        assert (tmp_path / "carbone_storage.log.1").read_text() == "x" * 200
        assert (tmp_path / "carbone_storage.log.2").read_text() == "older"
