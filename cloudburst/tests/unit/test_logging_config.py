"""
Unit tests for logging setup
"""
import json
import logging

import pytest

from cloudburst.core.logging_config import JSONFormatter, setup_logging


@pytest.fixture
def restore_root():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)


class TestJSONFormatter:

    @pytest.mark.unit
    def test_context_fields_are_kept(self):
        record = logging.LogRecord("cloudburst.alerts", logging.WARNING, __file__, 10, "Alert %s", ("a1",), None)
        record.alert_id = "alert_1"
        record.node_id = None

        entry = json.loads(JSONFormatter().format(record))

        assert entry["level"] == "WARNING"
        assert entry["msg"] == "Alert a1"
        assert entry["alert_id"] == "alert_1"
        assert "node_id" not in entry


class TestSetupLogging:

    @pytest.mark.unit
    def test_file_handler_writes_json(self, tmp_path, restore_root):
        log_file = tmp_path / "logs" / "cloudburst.log"
        setup_logging(log_level="debug", log_file=str(log_file), json_format=True, console_output=False)

        logging.getLogger("cloudburst.test").info("node registered", extra={"node_id": "node1"})
        for handler in logging.getLogger().handlers:
            handler.flush()

        lines = [json.loads(line) for line in log_file.read_text().splitlines()]
        assert lines[-1]["msg"] == "node registered"
        assert lines[-1]["node_id"] == "node1"
        assert logging.getLogger().level == logging.DEBUG

    @pytest.mark.unit
    def test_repeated_setup_does_not_duplicate(self, restore_root):
        setup_logging(log_file=None)
        setup_logging(log_file=None)

        assert len(logging.getLogger().handlers) == 1
        assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING
