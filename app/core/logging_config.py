"""
Logging setup for the API and the Celery worker.

JSON lines (python-json-logger) in deployed environments, plain text locally.
Every handler masks anything shaped like a reset code before it is written.
"""

import logging
import re
import sys
from typing import Any, Dict
from datetime import datetime, timezone
from pythonjsonlogger import jsonlogger

# Six consecutive digits not embedded in a longer number
RESET_CODE_PATTERN = re.compile(r'(?<!\d)\d{6}(?!\d)')
REDACTED_CODE = '******'

NOISY_LOGGERS = ("urllib3", "boto3", "botocore", "google", "kombu", "amqp")


class ResetCodeRedactionFilter(logging.Filter):
    """Replace 6-digit numbers in log messages with a mask"""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        redacted = RESET_CODE_PATTERN.sub(REDACTED_CODE, message)
        if redacted != message:
            record.msg = redacted
            record.args = None
        return True


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """JSON formatter that stamps every record with service and source fields"""

    def __init__(self, *args, service: str = "elite-glam-api", **kwargs):
        super().__init__(*args, **kwargs)
        self.service = service

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)

        log_record['timestamp'] = datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat().replace('+00:00', 'Z')
        log_record['level'] = record.levelname
        log_record['logger'] = record.name
        log_record['service'] = self.service
        log_record['thread'] = record.threadName

        if record.levelno >= logging.WARNING:
            log_record['location'] = f"{record.pathname}:{record.lineno}"


def setup_logging(log_level: str = "INFO", json_logs: bool = True, service: str = "elite-glam-api") -> None:
    """
    Replace the root logger's handlers with one stdout handler.

    Args:
        log_level: Name of the root level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_logs: JSON output when True, human readable lines when False
        service: Value of the "service" field in JSON output
    """
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    if json_logs:
        handler.setFormatter(CustomJsonFormatter('%(message)s', service=service))
    else:
        handler.setFormatter(logging.Formatter(
            '%(asctime)s %(levelname)-8s [%(threadName)s] %(name)s: %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        ))
    handler.addFilter(ResetCodeRedactionFilter())

    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))
    root_logger.addHandler(handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
