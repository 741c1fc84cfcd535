import logging
import logging.handlers
import sys
from pathlib import Path

import structlog

SYSLOG_SOCKET = "/dev/log"
DEFAULT_LOG_FILE = "/var/log/asg-ebs.log"

# Handlers installed by the last setup_logging() call.
_handlers: list[logging.Handler] = []


def setup_logging(verbose: bool = False, log_file: str | None = DEFAULT_LOG_FILE) -> None:
    level = logging.DEBUG if verbose else logging.INFO

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            structlog.processors.KeyValueRenderer(
                key_order=["timestamp", "level", "event"]
            ),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )

    logger = logging.getLogger()
    logger.setLevel(level)

    while _handlers:
        handler = _handlers.pop()
        logger.removeHandler(handler)
        handler.close()

    stream = logging.StreamHandler(sys.stderr)
    stream.setFormatter(logging.Formatter("%(message)s"))
    _handlers.append(stream)

    if Path(SYSLOG_SOCKET).exists():
        syslog = logging.handlers.SysLogHandler(SYSLOG_SOCKET)
        syslog.setFormatter(logging.Formatter("asg-ebs %(message)s"))
        _handlers.append(syslog)

    if log_file:
        try:
            file_handler = logging.FileHandler(log_file)
        except PermissionError:
            pass
        else:
            file_handler.setFormatter(logging.Formatter("%(message)s"))
            _handlers.append(file_handler)

    for handler in _handlers:
        logger.addHandler(handler)

    logging.getLogger("botocore").setLevel(logging.INFO)
    logging.getLogger("boto3").setLevel(logging.INFO)
    logging.getLogger("urllib3").setLevel(logging.INFO)
