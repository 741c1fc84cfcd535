import logging

import pytest
import structlog

from asg_ebs import log


@pytest.fixture
def root_logger(monkeypatch):
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    monkeypatch.setattr(log, "SYSLOG_SOCKET", "/nonexistent/log")
    yield root
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    log._handlers.clear()
    root.setLevel(level)
    structlog.reset_defaults()


def test_writes_key_value_lines(root_logger, tmp_path):
    log_file = tmp_path / "asg-ebs.log"
    log.setup_logging(verbose=True, log_file=str(log_file))

    structlog.get_logger().info("Attaching volume", volume="vol-1")
    for handler in root_logger.handlers:
        handler.flush()

    line = log_file.read_text().strip()
    assert "level='info'" in line
    assert "event='Attaching volume'" in line
    assert "volume='vol-1'" in line
    assert root_logger.level == logging.DEBUG
    assert logging.getLogger("botocore").level == logging.INFO


def test_unwritable_log_file_is_skipped(root_logger, monkeypatch):
    def refuse(*args, **kwargs):
        raise PermissionError("read-only")

    monkeypatch.setattr(log.logging, "FileHandler", refuse)
    before = len(root_logger.handlers)

    log.setup_logging(log_file="/var/log/asg-ebs.log")

    assert len(root_logger.handlers) == before + 1
    assert root_logger.level == logging.INFO


def test_setting_up_twice_replaces_handlers(root_logger, tmp_path):
    before = len(root_logger.handlers)

    log.setup_logging(log_file=str(tmp_path / "first.log"))
    log.setup_logging(log_file=str(tmp_path / "second.log"))

    added = [h for h in root_logger.handlers if h in log._handlers]
    assert len(root_logger.handlers) == before + 2
    assert len(added) == 2
    files = [h.baseFilename for h in added if isinstance(h, logging.FileHandler)]
    assert files == [str(tmp_path / "second.log")]
