"""Tests for logging setup and formatters."""

import json
import logging
import sys
import threading

import pytest

from takeout_organizer.common import LogContext, setup_logging
from takeout_organizer.common.logging import CONSOLE_FORMATS, StructuredFormatter


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield root
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


def _record(message: str = "Scan complete: {'files': 3}") -> logging.LogRecord:
    return logging.LogRecord(
        name="takeout_organizer.scanner",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg=message,
        args=(),
        exc_info=None,
    )


class TestSetupLogging:
    
    def test_sets_level_and_console_formatter(self, restore_root_logger):
        setup_logging(level="DEBUG", format="detailed")
        
        root = restore_root_logger
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1
        assert root.handlers[0].formatter is CONSOLE_FORMATS["detailed"]
        assert "%(threadName)s" in root.handlers[0].formatter._fmt
    
    def test_simple_is_default(self, restore_root_logger):
        setup_logging()
        assert restore_root_logger.handlers[0].formatter is CONSOLE_FORMATS["simple"]
    
    def test_file_handler_uses_json(self, restore_root_logger, tmp_path):
        log_file = tmp_path / "logs" / "run.log"
        setup_logging(level="INFO", format="simple", log_file=log_file)
        
        logging.getLogger("takeout_organizer.test").info("File handler check: {'ok': True}")
        for handler in restore_root_logger.handlers:
            handler.flush()
        
        lines = log_file.read_text(encoding="utf-8").strip().splitlines()
        payload = json.loads(lines[-1])
        assert payload["message"] == "File handler check: {'ok': True}"
        assert payload["level"] == "INFO"
    
    def test_repeated_setup_does_not_duplicate_handlers(self, restore_root_logger):
        setup_logging()
        setup_logging()
        assert len(restore_root_logger.handlers) == 1


class TestStructuredFormatter:
    
    def test_emits_json(self):
        output = StructuredFormatter().format(_record())
        payload = json.loads(output)
        
        assert payload["logger"] == "takeout_organizer.scanner"
        assert payload["message"] == "Scan complete: {'files': 3}"
        assert "timestamp" in payload
    
    def test_includes_context_fields(self):
        record = _record()
        record.context = {"phase": "deliver"}
        payload = json.loads(StructuredFormatter().format(record))
        
        assert payload["phase"] == "deliver"
        assert payload["location"].startswith("test_logging_setup:")
    
    def test_keeps_non_ascii_messages(self):
        output = StructuredFormatter().format(_record("Copied: {'name': 'été.jpg'}"))
        assert "été.jpg" in output
    
    def test_exception_is_text(self):
        try:
            raise ValueError("bad sidecar")
        except ValueError:
            record = _record()
            record.exc_info = sys.exc_info()
        payload = json.loads(StructuredFormatter().format(record))
        
        assert "ValueError: bad sidecar" in payload["exception"]


def _new_record() -> logging.LogRecord:
    return logging.getLogRecordFactory()("x", logging.INFO, __file__, 1, "msg", (), None)


class TestLogContext:
    
    def test_adds_fields_inside_context_only(self):
        with LogContext(run_id="abc"):
            assert _new_record().context == {"run_id": "abc"}
        
        assert _new_record().context == {}
    
    def test_nested_contexts_restore_outer_fields(self):
        with LogContext(run_id="abc"):
            with LogContext(phase="plan"):
                assert _new_record().context == {"run_id": "abc", "phase": "plan"}
            assert _new_record().context == {"run_id": "abc"}
    
    def test_fields_reach_worker_threads(self):
        seen = []
        with LogContext(run_id="abc"):
            worker = threading.Thread(target=lambda: seen.append(_new_record().context))
            worker.start()
            worker.join()
        
        assert seen == [{"run_id": "abc"}]
    
    def test_file_log_carries_context(self, restore_root_logger, tmp_path):
        log_file = tmp_path / "run.log"
        setup_logging(log_file=log_file)
        
        with LogContext(run_id="abc", phase="deliver"):
            logging.getLogger("takeout_organizer.test").info("Delivered: {'files': 1}")
        for handler in restore_root_logger.handlers:
            handler.flush()
        
        payload = json.loads(log_file.read_text(encoding="utf-8").strip().splitlines()[-1])
        assert payload["run_id"] == "abc"
        assert payload["phase"] == "deliver"
