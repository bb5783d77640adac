"""Structured JSON logging for production observability"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict
from pythonjsonlogger import jsonlogger

from financial_shift.config import settings


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """Custom JSON formatter with timestamp and service metadata"""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["service"] = settings.service_name


def setup_logging(level: str = "INFO") -> None:
    """Configure structured JSON logging"""
    logger = logging.getLogger()
    logger.setLevel(level)

    # Remove existing handlers
    logger.handlers.clear()

    # JSON handler for stdout
    handler = logging.StreamHandler(sys.stdout)
    formatter = CustomJsonFormatter(
        "%(timestamp)s %(level)s %(name)s %(message)s"
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)


def log_calculation(request_id: str, operation: str, duration_ms: float, **fields: Any) -> None:
    """Log structured calculation outcome for analysis"""
    logging.info(
        "Calculation completed",
        extra={
            "request_id": request_id,
            "step": "calculation_complete",
            "operation": operation,
            "duration_ms": duration_ms,
            **fields,
        },
    )


def log_retry(attempt: int, max_retries: int, delay: float, error: Exception) -> None:
    """Log a scheduled retry of a failed request"""
    logging.getLogger("financial_shift.retry").warning(
        "Request failed, retrying",
        extra={
            "step": "retry_scheduled",
            "attempt": attempt,
            "max_retries": max_retries,
            "delay_seconds": round(delay, 3),
            "status": getattr(error, "status", None),
            "error": str(error),
        },
    )
