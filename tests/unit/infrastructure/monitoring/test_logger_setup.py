import logging
import logging.handlers
from pathlib import Path

import pytest

from castkit.infrastructure.monitoring.logger_setup import SecretRedactionFilter, setup_logging

@pytest.fixture(autouse=True)
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    httpx_level = logging.getLogger("httpx").level
    yield
    for handler in root.handlers[:]:
        root.removeHandler(handler)
        handler.close()
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)
    logging.getLogger("httpx").setLevel(httpx_level)

def test_setup_logging_replaces_root_handlers():
    setup_logging(log_level=logging.WARNING)
    root = logging.getLogger()

    assert root.level == logging.WARNING
    assert len(root.handlers) == 1
    assert isinstance(root.handlers[0], logging.StreamHandler)

def test_setup_logging_writes_to_file(tmp_path: Path):
    log_file = tmp_path / "castkit.log"
    setup_logging(log_level=logging.INFO, log_format="%(levelname)s %(message)s", log_file=str(log_file))

    logging.getLogger("castkit.test").info("cast published")
    for handler in logging.getLogger().handlers:
        handler.flush()

    assert "INFO cast published" in log_file.read_text()

def test_http_library_logging_is_quietened():
    setup_logging(log_level=logging.DEBUG)
    assert logging.getLogger("httpx").level == logging.WARNING

def test_file_handler_rotates(tmp_path: Path):
    setup_logging(log_file=str(tmp_path / "castkit.log"))

    file_handlers = [h for h in logging.getLogger().handlers if isinstance(h, logging.handlers.RotatingFileHandler)]
    assert len(file_handlers) == 1
    assert file_handlers[0].maxBytes > 0

def test_bearer_tokens_are_masked_in_output(tmp_path: Path):
    log_file = tmp_path / "castkit.log"
    setup_logging(log_format="%(message)s", log_file=str(log_file))

    logging.getLogger("castkit.test").warning("request failed: Authorization: Bearer %s", "abc.def-123")
    logging.getLogger("castkit.test").warning("auth header Bearer eip191:c2lnbmVk rejected")
    for handler in logging.getLogger().handlers:
        handler.flush()

    content = log_file.read_text()
    assert "abc.def-123" not in content
    assert "c2lnbmVk" not in content
    assert "Authorization: Bearer ***" in content
    assert "Bearer eip191:***" in content

def test_registered_secret_is_masked():
    redaction = SecretRedactionFilter()
    redaction.register("0x4c0883a69102937d")
    redaction.register("short")

    record = logging.LogRecord("castkit", logging.ERROR, __file__, 1, "bad key %s (short)", ("0x4c0883a69102937d",), None)
    redaction.filter(record)

    assert record.getMessage() == "bad key *** (short)"
