import sys

import pytest
from loguru import logger

from smartteam_live import runner


@pytest.fixture
def restore_logger():
    yield
    logger.remove()
    logger.add(sys.stderr)


def test_stderr_logging_follows_log_level(monkeypatch, capsys, restore_logger):
    monkeypatch.setattr(runner.settings, "LOG_LEVEL", "DEBUG")
    runner._configure_logging()
    logger.debug("event=debug_visible")
    assert "event=debug_visible" in capsys.readouterr().err


def test_dashboard_logging_keeps_stderr_quiet(capsys, restore_logger):
    runner._configure_logging(stderr_level="ERROR")
    logger.warning("event=hidden")
    logger.error("event=shown")
    err = capsys.readouterr().err
    assert "event=hidden" not in err
    assert "event=shown" in err


def test_log_file_uses_log_level(tmp_path, monkeypatch, restore_logger):
    monkeypatch.setattr(runner.settings, "LOG_LEVEL", "INFO")
    log_file = tmp_path / "live.log"
    runner._configure_logging(log_file)
    logger.info("event=written")
    logger.remove()
    assert "event=written" in log_file.read_text()
