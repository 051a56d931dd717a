"""Unit tests for logging configuration."""

import json
import logging

import pytest

from lesson_compiler.utils.logging_config import (
    JsonFormatter,
    compile_stage_logger,
    configure_logging,
)


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    level = root.level
    yield root
    for handler in root.handlers[:]:
        if isinstance(handler, logging.FileHandler):
            handler.close()
            root.removeHandler(handler)
    root.setLevel(level)


class TestJsonFormatter:
    def test_format_includes_extra_fields(self):
        record = logging.LogRecord("lesson_compiler.test", logging.INFO, __file__, 1, "Compilato %s", ("moto",), None)
        record.stage = "parse"
        data = json.loads(JsonFormatter().format(record))

        assert data["level"] == "INFO"
        assert data["logger"] == "lesson_compiler.test"
        assert data["message"] == "Compilato moto"
        assert data["extra"] == {"stage": "parse"}
        assert "timestamp" in data


class TestConfigureLogging:
    def test_log_file(self, tmp_path, restore_root_logger):
        log_file = tmp_path / "logs" / "compile.log"
        configure_logging(level="info", log_file=log_file, json_format=True, console_output=False)

        logging.getLogger("lesson_compiler.test").info("ciao", extra={"file_count": 2})
        for handler in restore_root_logger.handlers:
            handler.flush()

        lines = log_file.read_text(encoding="utf-8").strip().splitlines()
        record = json.loads(lines[-1])
        assert record["message"] == "ciao"
        assert record["extra"] == {"file_count": 2}


class TestCompileStageLogger:
    def test_success_logs_duration(self, caplog):
        caplog.set_level(logging.DEBUG, logger="lesson_compiler.stage")
        with compile_stage_logger("parse", source_path="moto.md") as logger:
            logger.debug("lavoro")

        completed = [r for r in caplog.records if getattr(r, "status", None) == "completed"]
        assert len(completed) == 1
        assert completed[0].stage == "parse"
        assert completed[0].source_path == "moto.md"
        assert completed[0].duration_ms >= 0

    def test_failure_is_logged_and_reraised(self, caplog):
        caplog.set_level(logging.DEBUG, logger="lesson_compiler.stage")
        with pytest.raises(RuntimeError):
            with compile_stage_logger("compile"):
                raise RuntimeError("rotto")

        failed = [r for r in caplog.records if getattr(r, "status", None) == "failed"]
        assert len(failed) == 1
        assert failed[0].levelno == logging.ERROR
        assert failed[0].error == "rotto"
