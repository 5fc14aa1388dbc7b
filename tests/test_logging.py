"""
Logging configuration tests: rotation and level filtering
"""
import logging

import pytest

from config.logging_config import setup_logging


@pytest.fixture(autouse=True)
def restore_root_logger():
    root = logging.getLogger()
    saved_handlers = list(root.handlers)
    saved_level = root.level
    yield
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
    for handler in saved_handlers:
        root.addHandler(handler)
    root.setLevel(saved_level)


def test_log_rotation(tmp_path):
    log_file = tmp_path / "rotation.log"
    setup_logging(log_level="DEBUG", log_file=str(log_file), max_bytes=1024, backup_count=2)
    logger = logging.getLogger("RotationTest")

    for i in range(100):
        logger.info(f"Test log entry {i} " * 20)

    assert log_file.exists()
    assert (tmp_path / "rotation.log.1").exists()
    assert not (tmp_path / "rotation.log.3").exists()


def test_log_levels(tmp_path):
    log_file = tmp_path / "levels.log"
    setup_logging(log_level="WARNING", log_file=str(log_file))
    logger = logging.getLogger("LevelTest")

    logger.debug("DEBUG: This should NOT appear")
    logger.info("INFO: This should NOT appear")
    logger.warning("WARNING: This SHOULD appear")
    logger.error("ERROR: This SHOULD appear")

    content = log_file.read_text(encoding="utf-8")
    assert "WARNING: This SHOULD appear" in content
    assert "ERROR: This SHOULD appear" in content
    assert "should NOT appear" not in content


def test_creates_log_directory_and_quiets_sqlalchemy(tmp_path):
    log_file = tmp_path / "logs" / "wartracker.log"
    setup_logging(log_level="DEBUG", log_file=str(log_file))

    assert log_file.parent.is_dir()
    assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING
