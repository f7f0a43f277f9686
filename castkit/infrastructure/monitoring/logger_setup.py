"""Centralized logging configuration for the castkit application.

Console records go to stderr so command output on stdout stays clean. An
optional log file rotates by size. Every handler carries a redaction filter
that masks bearer tokens, custody credentials and any secret registered at
startup (the private key, a static bearer token).
"""

import logging
import logging.handlers
import re
import sys
from typing import Optional, Set

DEFAULT_LOG_LEVEL = logging.INFO
DEFAULT_LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DEFAULT_LOG_FILE = None
LOG_FILE_MAX_BYTES = 5 * 1024 * 1024
LOG_FILE_BACKUP_COUNT = 3

# Chatty third-party loggers that would log every request at INFO
QUIET_LOGGERS = ("httpx", "httpcore")

REDACTED = "***"

# Authorization values that may show up in exception text
_CREDENTIAL_PATTERN = re.compile(r"(Bearer\s+)(eip191:)?[^\s\"',]+")


class SecretRedactionFilter(logging.Filter):
    """Masks credentials in the rendered message of every record."""

    def __init__(self) -> None:
        super().__init__()
        self._secrets: Set[str] = set()

    def register(self, secret: Optional[str]) -> None:
        """Adds a literal value to mask; short values are ignored."""
        if secret and len(secret) >= 8:
            self._secrets.add(secret)

    def redact(self, text: str) -> str:
        # Longest first so a secret containing another is masked whole
        for secret in sorted(self._secrets, key=len, reverse=True):
            text = text.replace(secret, REDACTED)
        return _CREDENTIAL_PATTERN.sub(lambda m: f"{m.group(1)}{m.group(2) or ''}{REDACTED}", text)

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        redacted = self.redact(message)
        if redacted != message:
            record.msg = redacted
            record.args = None
        return True


# Shared by all handlers; secrets registered before or after setup both apply
secret_filter = SecretRedactionFilter()

def register_secret(secret: Optional[str]) -> None:
    secret_filter.register(secret)

def setup_logging(
    log_level: int = DEFAULT_LOG_LEVEL,
    log_format: str = DEFAULT_LOG_FORMAT,
    log_file: Optional[str] = DEFAULT_LOG_FILE
) -> None:
    """Configures the root logger for the application.

    Args:
        log_level: The minimum logging level (e.g., logging.DEBUG, logging.INFO).
        log_format: The format string for log messages.
        log_file: Optional path of a size-rotated log file.
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    formatter = logging.Formatter(log_format)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(formatter)
    console_handler.addFilter(secret_filter)
    root_logger.addHandler(console_handler)

    if log_file:
        try:
            file_handler = logging.handlers.RotatingFileHandler(
                log_file,
                maxBytes=LOG_FILE_MAX_BYTES,
                backupCount=LOG_FILE_BACKUP_COUNT,
                encoding='utf-8',
            )
            file_handler.setLevel(log_level)
            file_handler.setFormatter(formatter)
            file_handler.addFilter(secret_filter)
            root_logger.addHandler(file_handler)
            logging.info(f"Logging to file: {log_file}")
        except OSError as e:
            logging.error(f"Failed to set up file logging to {log_file}: {e}", exc_info=True)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(log_level, logging.WARNING))

    logging.debug(f"Logging configured. Level={logging.getLevelName(log_level)}")
