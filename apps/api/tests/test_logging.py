import io
import json
import logging
import sys

import pytest
from loguru import logger

from loyalty_club_api.core.logging import BRIDGED_LOGGERS, configure_logging


@pytest.fixture
def log_stream():
    stream = io.StringIO()
    saved = {name: (logging.getLogger(name).handlers[:], logging.getLogger(name).propagate) for name in BRIDGED_LOGGERS}
    configure_logging(service_name="loyalty-club-api", environment="test", version="0.1.0", stream=stream)
    try:
        yield stream
    finally:
        logger.remove()
        logger.add(sys.stderr)
        for name, (handlers, propagate) in saved.items():
            logging.getLogger(name).handlers = handlers
            logging.getLogger(name).propagate = propagate


def _lines(stream: io.StringIO) -> list[dict]:
    return [json.loads(line) for line in stream.getvalue().splitlines()]


def test_job_summary_fields_are_top_level(log_stream) -> None:
    summary = {
        "job": "run-all-cleanup-jobs",
        "execution_date": "2026-10-18",
        "success": False,
        "records_processed": 3,
        "execution_time_ms": 12,
        "error": "1 cleanup job(s) failed: cleanup-otp-tokens",
        "jobs": [
            {"job": "cleanup-otp-tokens", "success": False, "records_processed": 0},
            {"job": "cleanup-unverified-accounts", "success": True, "records_processed": 3},
        ],
    }

    logger.bind(summary=summary).warning("Cleanup pass finished with failures", failed=["cleanup-otp-tokens"])

    (line,) = _lines(log_stream)
    assert line["service"] == "loyalty-club-api"
    assert line["environment"] == "test"
    assert line["level"] == "warning"
    assert line["job"] == "run-all-cleanup-jobs"
    assert line["success"] is False
    assert line["records_processed"] == 3
    assert line["error"].startswith("1 cleanup job(s) failed")
    assert line["sub_jobs"] == [
        {"job": "cleanup-otp-tokens", "success": False},
        {"job": "cleanup-unverified-accounts", "success": True},
    ]
    assert line["failed"] == ["cleanup-otp-tokens"]
    assert "summary" not in line
    assert "trace_id" not in line


def test_stdlib_records_are_bridged_with_their_logger_name(log_stream) -> None:
    logging.getLogger("apscheduler.scheduler").info("Added job {id}")
    logging.getLogger("sqlalchemy.engine.Engine").info("SELECT 1")

    (line,) = _lines(log_stream)
    assert line["logger"] == "apscheduler.scheduler"
    assert line["message"] == "Added job {id}"
    assert line["level"] == "info"


def test_exceptions_are_named(log_stream) -> None:
    try:
        raise ValueError("bad row")
    except ValueError:
        logger.exception("Maintenance job failed", job="adhoc-job")

    (line,) = _lines(log_stream)
    assert line["exception"] == "ValueError"
    assert line["job"] == "adhoc-job"
