"""JSON log lines for the maintenance runtime.

Every line carries the service identity. Job completion lines bind a
``summary`` dict; its scalar fields are lifted to the top level so log
queries can filter on ``job``, ``success`` or ``records_processed`` directly.
"""

from __future__ import annotations

import json
import logging
import sys
from typing import Any, Dict, TextIO

from loguru import logger
from opentelemetry import trace

SUMMARY_FIELDS = (
    "job",
    "execution_date",
    "success",
    "records_processed",
    "execution_time_ms",
    "error",
)

# stdlib loggers forwarded into loguru, with the minimum level worth keeping
BRIDGED_LOGGERS = {
    "sqlalchemy.engine": logging.WARNING,
    "apscheduler": logging.INFO,
    "alembic": logging.INFO,
}


class InterceptHandler(logging.Handler):
    """Forward SQLAlchemy and APScheduler records into loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno
        logger.bind(logger_name=record.name).opt(exception=record.exc_info).log(level, record.getMessage())


def build_log_payload(record: Dict[str, Any], metadata: Dict[str, str]) -> Dict[str, Any]:
    extra = dict(record["extra"])
    payload: Dict[str, Any] = {
        "timestamp": record["time"].isoformat(),
        "level": record["level"].name.lower(),
        "message": record["message"],
        "logger": extra.pop("logger_name", record["name"]),
        **metadata,
    }

    span_context = trace.get_current_span().get_span_context()
    if span_context.is_valid:
        payload["trace_id"] = f"{span_context.trace_id:032x}"
        payload["span_id"] = f"{span_context.span_id:016x}"

    summary = extra.pop("summary", None)
    if isinstance(summary, dict):
        payload.update({key: summary[key] for key in SUMMARY_FIELDS if key in summary})
        if "jobs" in summary:
            payload["sub_jobs"] = [
                {"job": item.get("job"), "success": item.get("success")} for item in summary["jobs"]
            ]
    payload.update(extra)

    exception = record["exception"]
    if exception is not None and exception.type is not None:
        payload["exception"] = exception.type.__name__
    return payload


def configure_logging(
    *,
    service_name: str,
    environment: str,
    version: str,
    stream: TextIO | None = None,
) -> None:
    """Replace loguru's default handler with one JSON line per record."""

    metadata = {"service": service_name, "environment": environment, "version": version}
    out = stream or sys.stdout

    def _sink(message: Any) -> None:
        out.write(json.dumps(build_log_payload(message.record, metadata), default=str) + "\n")

    logger.remove()
    logger.add(_sink, backtrace=False, diagnose=False)

    handler = InterceptHandler()
    for name, level in BRIDGED_LOGGERS.items():
        bridged = logging.getLogger(name)
        bridged.handlers = [handler]
        bridged.setLevel(level)
        bridged.propagate = False


__all__ = ["InterceptHandler", "build_log_payload", "configure_logging"]
