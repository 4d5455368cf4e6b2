import io
import json
import logging
import sys
import os

import pytest

# Ensure backend can be imported
sys.path.append(os.getcwd())

from backend.app.utils import logger as logger_module
from backend.app.utils.logger import create_logger


@pytest.fixture
def captured():
    log = create_logger("tests.captured", level="debug")
    stream = io.StringIO()
    log.handlers[0].setStream(stream)
    return log, stream


def test_console_line_includes_function_name(captured):
    log, stream = captured
    log.info("hello")

    line = stream.getvalue()
    assert "tests.captured.test_console_line_includes_function_name" in line
    assert "INFO" in line
    assert "hello" in line


def test_error_with_exc_info_is_emitted(captured):
    log, stream = captured
    try:
        raise RuntimeError("disk on fire")
    except RuntimeError as exc:
        log.error("POST /upload/csv -> 500", exc_info=(type(exc), exc, exc.__traceback__))

    output = stream.getvalue()
    assert "POST /upload/csv -> 500" in output
    assert "Traceback" in output
    assert "RuntimeError: disk on fire" in output


def test_file_handler_writes_json_lines(tmp_path, monkeypatch):
    monkeypatch.setattr(logger_module, "LOG_DIR", str(tmp_path))
    root = logging.getLogger()
    before = list(root.handlers)

    log = create_logger("tests.file", level="info", log_file="upload-api")
    added = [h for h in root.handlers if h not in before]
    try:
        try:
            raise ValueError("bad path")
        except ValueError:
            log.error("failed", exc_info=True)
        for handler in added:
            handler.flush()
    finally:
        for handler in added:
            root.removeHandler(handler)
            handler.close()

    [log_path] = list(tmp_path.glob("*/upload-api/*.json"))
    record = json.loads(log_path.read_text().strip().splitlines()[-1])
    assert record["name"] == "tests.file"
    assert record["level"] == "ERROR"
    assert record["message"] == "failed"
    assert "ValueError: bad path" in record["exception"]
