"""
Structured JSON logging for retention observability.

Provides structured logging with trace IDs for correlating the log lines
of one cleanup tick or one clear request, plus a stage context manager
that records start, end and duration.
"""

import json
import logging
import sys
import time
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import UTC, datetime

# Context variables for trace correlation
trace_id_var: ContextVar[str | None] = ContextVar("trace_id", default=None)
stage_var: ContextVar[str | None] = ContextVar("stage", default=None)

# Extra record attributes copied into the JSON payload
EXTRA_FIELDS = (
    "event",
    "duration_ms",
    "flag_type_id",
    "owner_id",
    "items_requested",
    "items_deleted",
    "items_failed",
    "batch_size",
    "tick_state",
)


# -----------------------------------------------------------------------------
# JSON Formatter
# -----------------------------------------------------------------------------


class JSONFormatter(logging.Formatter):
    """
    Format log records as single-line JSON.

    Output format:
    {"timestamp": "...", "level": "INFO", "message": "...", "trace_id": "...", ...}
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(UTC).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        # Add trace context if available
        trace_id = trace_id_var.get()
        if trace_id:
            log_data["trace_id"] = trace_id

        stage = getattr(record, "stage", None) or stage_var.get()
        if stage:
            log_data["stage"] = stage

        # Add exception info if present
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        for key in EXTRA_FIELDS:
            if hasattr(record, key):
                log_data[key] = getattr(record, key)

        return json.dumps(log_data, default=str)


def configure_logging(json_format: bool = True, level: str = "INFO") -> None:
    """
    Configure logging for deployed or local use.

    Args:
        json_format: If True, use JSON format. If False, use human-readable format.
        level: Log level (DEBUG, INFO, WARNING, ERROR)
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper()))

    # Remove existing handlers
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(getattr(logging, level.upper()))

    if json_format:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s"))

    root_logger.addHandler(handler)

    # Reduce noise from third-party libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy").setLevel(logging.WARNING)


# -----------------------------------------------------------------------------
# Context Managers
# -----------------------------------------------------------------------------


@contextmanager
def log_stage(stage: str, trace_id: str | None = None):
    """
    Context manager for stage-level logging.

    Logs stage start and end with duration. Yields the trace ID in effect,
    generating one when none is set.

    Usage:
        with log_stage("flag_cleanup") as trace_id:
            # ... stage logic ...
    """
    trace_id = trace_id or trace_id_var.get() or str(uuid.uuid4())
    trace_token = trace_id_var.set(trace_id)
    stage_token = stage_var.set(stage)

    start_time = time.time()
    logger = logging.getLogger("flag_retention.stage")

    logger.info(f"Stage {stage} started", extra={"event": "stage_start", "stage": stage})

    try:
        yield trace_id
        duration_ms = int((time.time() - start_time) * 1000)
        logger.info(
            f"Stage {stage} completed",
            extra={
                "event": "stage_complete",
                "stage": stage,
                "duration_ms": duration_ms,
            },
        )
    except Exception as e:
        duration_ms = int((time.time() - start_time) * 1000)
        logger.error(
            f"Stage {stage} failed: {e}",
            extra={
                "event": "stage_failed",
                "stage": stage,
                "duration_ms": duration_ms,
            },
            exc_info=True,
        )
        raise
    finally:
        stage_var.reset(stage_token)
        trace_id_var.reset(trace_token)
