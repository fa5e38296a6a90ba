import json
import logging
import sys

from common.logging_config import (
    AUDIT_LOGGER_NAME,
    JSONFormatter,
    setup_audit_logging,
)


def test_json_formatter_includes_extra_fields():
    formatter = JSONFormatter(service_name="pbs-installer")
    record = logging.LogRecord(
        "pbs_installer.audit", logging.INFO, __file__, 10, "build: skipped", None, None
    )
    record.step = "build"
    record.status = "skipped"

    entry = json.loads(formatter.format(record))

    assert entry["level"] == "INFO"
    assert entry["service"] == "pbs-installer"
    assert entry["logger"] == "pbs_installer.audit"
    assert entry["message"] == "build: skipped"
    assert entry["extra"] == {"step": "build", "status": "skipped"}
    assert entry["timestamp"].endswith("+00:00")


def test_json_formatter_records_exceptions():
    formatter = JSONFormatter()
    try:
        raise RuntimeError("boom")
    except RuntimeError:
        exc_info = sys.exc_info()
    record = logging.LogRecord(
        "test", logging.ERROR, __file__, 10, "failed", None, exc_info
    )

    entry = json.loads(formatter.format(record))

    assert "RuntimeError: boom" in entry["exception"]


def test_setup_audit_logging_writes_json_lines(tmp_path):
    audit_file = tmp_path / "logs" / "run.audit.jsonl"

    audit_logger = setup_audit_logging(audit_file)
    try:
        audit_logger.info("inventory: success", extra={"step": "inventory"})
        audit_logger.info("preconditions: failed", extra={"step": "preconditions"})
        for handler in audit_logger.handlers:
            handler.flush()

        lines = audit_file.read_text().splitlines()
        assert [json.loads(line)["extra"]["step"] for line in lines] == [
            "inventory",
            "preconditions",
        ]
        assert audit_logger.name == AUDIT_LOGGER_NAME
        assert audit_logger.propagate is False
    finally:
        for handler in list(audit_logger.handlers):
            audit_logger.removeHandler(handler)
            handler.close()
